import argparse
import logging

import cv2

from yolo_overlay import (
    DetectionConfig,
    LabelTable,
    draw_detections,
    load_detection_config,
    load_detector,
    setup_logging,
)

logger = logging.getLogger("overlay_video")


def _build_config(args: argparse.Namespace) -> DetectionConfig:
    cfg = load_detection_config(args.config) if args.config else DetectionConfig()
    if args.conf is not None:
        cfg.confidence_threshold = args.conf
    if args.iou is not None:
        cfg.iou_threshold = args.iou
    if args.min_size is not None:
        cfg.min_box_size = args.min_size
    if args.max_size is not None:
        cfg.max_box_size = args.max_size
    return cfg.validate()


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a YOLO model and draw the decoded detections.")
    src = parser.add_mutually_exclusive_group()
    src.add_argument("--image", default=None, help="Path to an input image.")
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (e.g., 0).")
    parser.add_argument("--model", default="Models/yolo11n.onnx", help="Path to an ONNX YOLO export.")
    parser.add_argument("--metadata", default=None, help="Class metadata yaml (names mapping). Defaults to COCO.")
    parser.add_argument("--imgsz", type=int, default=None, help="Model input size (defaults to the model's).")
    parser.add_argument("--config", default=None, help="Detection config JSON (thresholds and box sizes).")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS.")
    parser.add_argument("--min-size", type=float, default=None, help="Minimum box side in model pixels.")
    parser.add_argument("--max-size", type=float, default=None, help="Maximum box side in model pixels.")
    parser.add_argument("--fit", choices=["crop", "letterbox"], default="letterbox", help="How frames are squared.")
    parser.add_argument("--axis", choices=["xy", "yx-flipped"], default="xy", help="Box channel order of the export.")
    parser.add_argument("--interval", type=float, default=0.1, help="Minimum seconds between processed frames.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--show", action="store_true", help="Show a window with the overlay.")
    parser.add_argument("--out", default=None, help="Optional output path (image or video) to save the overlay.")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = no limit).")
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    args = parser.parse_args()

    setup_logging(args.log_level)

    if args.imgsz is not None and args.imgsz < 32:
        raise ValueError("--imgsz must be >= 32")
    if args.max_frames < 0:
        raise ValueError("--max-frames must be >= 0")

    labels = LabelTable.from_metadata(args.metadata) if args.metadata else LabelTable.coco()
    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    detector = load_detector(
        args.model,
        labels=labels,
        config=_build_config(args),
        model_dimension=args.imgsz,
        fit_policy=args.fit,
        axis_convention=args.axis,
        min_interval=0.0 if args.image else args.interval,
        onnx_providers=onnx_providers,
    )

    if args.image is not None:
        img = cv2.imread(args.image)
        if img is None:
            raise FileNotFoundError(f"Could not read image at path: {args.image}")

        detections = detector.detect(img) or []
        vis = draw_detections(img, detections)
        if args.out:
            ok = cv2.imwrite(args.out, vis)
            if not ok:
                raise RuntimeError(f"Failed to write output image: {args.out}")

        if args.show:
            cv2.imshow("detections", vis)
            cv2.waitKey(0)
            cv2.destroyAllWindows()

        for det in detections:
            logger.info("%s %.2f %s", det.label, det.confidence, det.box)
        return 0

    if args.video is not None:
        cap = cv2.VideoCapture(args.video)
        if not cap.isOpened():
            raise FileNotFoundError(f"Could not open video: {args.video}")
    else:
        cam_index = 0 if args.webcam is None else int(args.webcam)
        cap = cv2.VideoCapture(cam_index)
        if not cap.isOpened():
            raise RuntimeError(f"Could not open webcam index: {cam_index}")

    writer = None
    detections = []
    processed = 0

    try:
        while True:
            ok, frame = cap.read()
            if not ok or frame is None:
                break

            # Throttled frames keep showing the last result.
            result = detector.detect(frame)
            if result is not None:
                detections = result
                processed += 1
            vis = draw_detections(frame, detections)

            if args.out and writer is None:
                fps = cap.get(cv2.CAP_PROP_FPS)
                if fps is None or fps <= 0:
                    fps = 30.0
                h, w = vis.shape[:2]
                fourcc = cv2.VideoWriter_fourcc(*"mp4v")
                writer = cv2.VideoWriter(args.out, fourcc, fps, (w, h))
                if not writer.isOpened():
                    raise RuntimeError(f"Failed to open video writer: {args.out}")

            if writer is not None:
                writer.write(vis)

            if args.show:
                cv2.imshow("detections", vis)
                key = cv2.waitKey(1) & 0xFF
                if key in (27, ord("q")):
                    break

            if args.max_frames and processed >= args.max_frames:
                break

    finally:
        cap.release()
        if writer is not None:
            writer.release()
        if args.show:
            cv2.destroyAllWindows()

    logger.info("Processed %d frames", processed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
