import unittest

import numpy as np

from yolo_overlay.config import DetectionConfig, DetectionConfigSnapshot
from yolo_overlay.errors import ShapeMismatch
from yolo_overlay.geometry import GeometryContext
from yolo_overlay.nms import iou
from yolo_overlay.pipeline import DetectionPipeline


def make_tensor(anchors, num_classes):
    t = np.zeros((1, 4 + num_classes, len(anchors)), dtype=np.float32)
    for i, (cx, cy, w, h, scores) in enumerate(anchors):
        t[0, 0:4, i] = [cx, cy, w, h]
        t[0, 4:, i] = scores
    return t


def one_hot(num_classes, index, score):
    scores = [0.0] * num_classes
    scores[index] = score
    return scores


# Square 640 display: model pixels map 1:1 to display pixels.
IDENTITY = GeometryContext(dest_width=640, dest_height=640)


class TestDetectionPipeline(unittest.TestCase):
    def setUp(self) -> None:
        self.pipeline = DetectionPipeline()
        self.cfg = DetectionConfig()

    def test_overlapping_same_class_keeps_one(self) -> None:
        t = make_tensor(
            [
                (200, 200, 100, 100, one_hot(80, 2, 0.80)),
                (203, 201, 100, 100, one_hot(80, 2, 0.92)),
            ],
            80,
        )
        dets = self.pipeline.run(t, 80, self.cfg, IDENTITY)
        self.assertEqual(len(dets), 1)
        self.assertEqual(dets[0].label, "car")
        self.assertEqual(dets[0].class_index, 2)
        self.assertAlmostEqual(dets[0].confidence, 0.92, places=6)
        self.assertAlmostEqual(dets[0].box.x, 153.0, places=4)
        self.assertAlmostEqual(dets[0].box.y, 151.0, places=4)

    def test_labels_and_order(self) -> None:
        t = make_tensor(
            [
                (100, 100, 50, 50, one_hot(80, 0, 0.5)),
                (400, 400, 60, 60, one_hot(80, 79, 0.9)),
                (100, 500, 40, 40, one_hot(80, 16, 0.7)),
            ],
            80,
        )
        dets = self.pipeline.run(t, 80, self.cfg, IDENTITY)
        self.assertEqual([d.label for d in dets], ["toothbrush", "dog", "person"])
        confidences = [d.confidence for d in dets]
        self.assertEqual(confidences, sorted(confidences, reverse=True))

    def test_custom_label_lookup(self) -> None:
        pipeline = DetectionPipeline(labels=lambda i: f"class-{i}")
        t = make_tensor([(100, 100, 50, 50, [0.1, 0.8])], 2)
        (det,) = pipeline.run(t, 2, self.cfg, IDENTITY)
        self.assertEqual(det.label, "class-1")

    def test_empty_result_is_not_an_error(self) -> None:
        t = make_tensor([(100, 100, 50, 50, [0.1] * 80)] * 8, 80)
        self.assertEqual(self.pipeline.run(t, 80, self.cfg, IDENTITY), [])

    def test_deterministic(self) -> None:
        rng = np.random.default_rng(3)
        n, c = 300, 10
        t = np.zeros((1, 4 + c, n), dtype=np.float32)
        t[0, 0:2] = rng.uniform(0, 640, size=(2, n))
        t[0, 2:4] = rng.uniform(5, 200, size=(2, n))
        t[0, 4:] = rng.uniform(0, 1, size=(c, n))
        ctx = GeometryContext(dest_width=390, dest_height=844)
        first = self.pipeline.run(t, c, self.cfg, ctx)
        second = self.pipeline.run(t, c, self.cfg, ctx)
        self.assertTrue(first)
        self.assertEqual(first, second)

    def test_outputs_respect_thresholds(self) -> None:
        rng = np.random.default_rng(11)
        n, c = 400, 5
        t = np.zeros((1, 4 + c, n), dtype=np.float32)
        t[0, 0:2] = rng.uniform(0, 640, size=(2, n))
        t[0, 2:4] = rng.uniform(0, 300, size=(2, n))
        t[0, 4:] = rng.uniform(0, 1, size=(c, n))
        cfg = DetectionConfig(confidence_threshold=0.5, iou_threshold=0.3, min_box_size=15, max_box_size=250)

        dets = self.pipeline.run(t, c, cfg, IDENTITY)
        self.assertTrue(dets)
        for d in dets:
            self.assertGreater(d.confidence, 0.5)
            self.assertTrue(15 <= d.box.width <= 250)
            self.assertTrue(15 <= d.box.height <= 250)
        for i, a in enumerate(dets):
            for b in dets[i + 1:]:
                self.assertLess(iou(a.box, b.box), 0.3)

    def test_fewer_channels_than_declared_classes(self) -> None:
        t = make_tensor([(100, 100, 50, 50, [0.9, 0.1, 0.1])], 3)
        with self.assertRaises(ShapeMismatch):
            self.pipeline.run(t, 80, self.cfg, IDENTITY)

    def test_more_channels_than_declared_classes(self) -> None:
        t = make_tensor([(100, 100, 50, 50, [0.9, 0.1, 0.1])], 3)
        with self.assertLogs("yolo_overlay.pipeline", level="WARNING"):
            self.assertEqual(self.pipeline.run(t, 2, self.cfg, IDENTITY), [])

    def test_config_changes_apply_to_next_run(self) -> None:
        t = make_tensor([(100, 100, 50, 50, [0.6, 0.1])], 2)
        cfg = DetectionConfig()
        self.assertEqual(len(self.pipeline.run(t, 2, cfg, IDENTITY)), 1)
        cfg.confidence_threshold = 0.7
        self.assertEqual(self.pipeline.run(t, 2, cfg, IDENTITY), [])
        self.assertEqual(len(self.pipeline.run(t, 2, DetectionConfigSnapshot(0.5, 0.45, 10.0, 600.0), IDENTITY)), 1)


if __name__ == "__main__":
    unittest.main()
