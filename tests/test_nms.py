import unittest

from yolo_overlay.nms import iou, suppress
from yolo_overlay.types import Candidate, Rect


def cand(cx, cy, w, h, score, class_index=0, anchor=-1):
    return Candidate(box=Rect.from_center(cx, cy, w, h), class_index=class_index, score=score, anchor=anchor)


class TestIou(unittest.TestCase):
    def test_identical(self) -> None:
        r = Rect(0, 0, 10, 10)
        self.assertEqual(iou(r, r), 1.0)

    def test_disjoint_and_touching(self) -> None:
        self.assertEqual(iou(Rect(0, 0, 10, 10), Rect(20, 20, 5, 5)), 0.0)
        self.assertEqual(iou(Rect(0, 0, 10, 10), Rect(10, 0, 10, 10)), 0.0)

    def test_degenerate_area(self) -> None:
        self.assertEqual(iou(Rect(0, 0, 0, 10), Rect(0, 0, 10, 10)), 0.0)
        self.assertEqual(iou(Rect(0, 0, 10, 10), Rect(0, 0, 10, -1)), 0.0)

    def test_partial_overlap(self) -> None:
        # intersection 50, union 150
        self.assertAlmostEqual(iou(Rect(0, 0, 10, 10), Rect(5, 0, 10, 10)), 1 / 3)


class TestSuppress(unittest.TestCase):
    def test_iou_at_threshold_is_dropped(self) -> None:
        # B (9x5) sits inside A (10x10): IoU = 45 / 100 = 0.45
        a = cand(5, 5, 10, 10, 0.9)
        b = cand(4.5, 2.5, 9, 5, 0.8)
        self.assertEqual(suppress([a, b], 0.45), [a])
        self.assertEqual(suppress([a, b], 0.46), [a, b])

    def test_iou_on_candidate_boxes_matches_suppression(self) -> None:
        a = cand(5, 5, 10, 10, 0.9)
        b = cand(4.5, 2.5, 9, 5, 0.8)
        c = cand(12, 5, 10, 10, 0.7)
        self.assertEqual(iou(a.box, b.box), 0.45)
        self.assertAlmostEqual(iou(a.box, c.box), 0.3 / 1.7)
        for threshold in (0.15, 0.2, 0.45):
            kept = suppress([a, c], threshold)
            self.assertEqual(c in kept, iou(a.box, c.box) < threshold)

    def test_heavy_overlap_keeps_higher_score(self) -> None:
        low = cand(105, 100, 100, 100, 0.7)
        high = cand(100, 100, 100, 100, 0.9)
        self.assertEqual(suppress([low, high], 0.45), [high])

    def test_class_agnostic_by_default(self) -> None:
        person = cand(100, 100, 100, 100, 0.9, class_index=0)
        dog = cand(102, 100, 100, 100, 0.8, class_index=16)
        self.assertEqual(suppress([person, dog], 0.45), [person])
        self.assertEqual(suppress([person, dog], 0.45, class_agnostic=False), [person, dog])

    def test_output_is_descending_subset(self) -> None:
        items = [
            cand(50, 50, 20, 20, 0.4, anchor=0),
            cand(300, 300, 20, 20, 0.95, anchor=1),
            cand(52, 50, 20, 20, 0.6, anchor=2),
            cand(500, 100, 30, 30, 0.7, anchor=3),
        ]
        out = suppress(items, 0.45)
        self.assertEqual([c.anchor for c in out], [1, 3, 2])
        scores = [c.score for c in out]
        self.assertEqual(scores, sorted(scores, reverse=True))
        self.assertTrue(all(c in items for c in out))

    def test_equal_scores_keep_input_order(self) -> None:
        items = [cand(100 * i + 50, 50, 20, 20, 0.5, anchor=i) for i in range(5)]
        self.assertEqual([c.anchor for c in suppress(items, 0.45)], [0, 1, 2, 3, 4])

    def test_idempotent(self) -> None:
        items = [cand(40 + 7 * i, 60 + 3 * (i % 4), 30, 30, 0.3 + 0.05 * i, anchor=i) for i in range(12)]
        once = suppress(items, 0.45)
        self.assertEqual(suppress(once, 0.45), once)

    def test_max_detections(self) -> None:
        items = [cand(100 * i + 50, 50, 20, 20, 0.9 - 0.1 * i, anchor=i) for i in range(5)]
        self.assertEqual([c.anchor for c in suppress(items, 0.45, max_detections=2)], [0, 1])

    def test_empty(self) -> None:
        self.assertEqual(suppress([], 0.45), [])
        self.assertEqual(suppress(iter(()), 0.45), [])


if __name__ == "__main__":
    unittest.main()
