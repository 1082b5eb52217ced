"""
Command line scanner: runs the skin scan pipeline over a video file or camera.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

import argparse
import json
import logging
import sys
from typing import Iterator

import cv2
import numpy as np

from skinscan.config import ScanConfig, DEFAULT_CONFIG
from skinscan.core.models import FrameFeedback, SkinMetrics
from skinscan.core.refinement import MetricsRefiner
from skinscan.core.scan_session import ScanPipeline
from skinscan.core.temporal_accumulator import ReductionStrategy
from skinscan.utils.exceptions import CaptureError, MetricsError, SkinScanError
from skinscan.utils.image_utils import bgr_to_rgba, resize_frame
from skinscan.utils.logging_setup import setup_logging


logger = logging.getLogger("skinscan.main")


def read_frames(source: str, max_dimension: int = 1280) -> Iterator[np.ndarray]:
    """
    Yield RGBA frames from a video file path or a camera index.

    Raises:
        CaptureError: If the source cannot be opened
    """
    capture = cv2.VideoCapture(int(source) if source.isdigit() else source)
    if not capture.isOpened():
        raise CaptureError(f"Cannot open video source: {source}")

    try:
        while True:
            ok, image = capture.read()
            if not ok:
                break
            frame, _ = resize_frame(bgr_to_rgba(image), max_dimension)
            yield frame
    finally:
        capture.release()


def load_history(path: str | None) -> list[SkinMetrics]:
    """Read earlier scans (a JSON list of metric records) for the refinement step."""
    if not path:
        return []
    with open(path, "r") as f:
        records = json.load(f)
    if not isinstance(records, list):
        raise MetricsError(f"History file must hold a list of records: {path}")
    return [SkinMetrics.from_dict(record) for record in records]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scan skin condition from a video of a face.")
    parser.add_argument("source", help="Video file path or camera index")
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in ReductionStrategy],
        default=ReductionStrategy.TRIMMED_MEAN.value,
        help="How per-frame measurements are combined",
    )
    parser.add_argument("--config", help="JSON file with configuration overrides")
    parser.add_argument("--refine", action="store_true", help="Send the result for remote refinement")
    parser.add_argument("--history", help="JSON file with earlier scan records")
    parser.add_argument("--output", help="Write the JSON report to this file")
    parser.add_argument("--snapshot", help="Write the final JPEG snapshot to this file")
    parser.add_argument("--log-dir", help="Also write logs to this directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every frame")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_dir, logging.DEBUG if args.verbose else logging.INFO)

    config = ScanConfig.load(args.config) if args.config else DEFAULT_CONFIG
    refiner = MetricsRefiner(config) if args.refine else None
    pipeline = ScanPipeline(config, ReductionStrategy(args.strategy), refiner=refiner)

    last_instruction = None

    def report(feedback: FrameFeedback) -> None:
        nonlocal last_instruction
        if feedback.instruction != last_instruction:
            logger.info(f"[{feedback.progress:5.1f}%] {feedback.instruction}")
            last_instruction = feedback.instruction

    try:
        history = load_history(args.history)
        result = pipeline.run(read_frames(args.source), on_feedback=report, history=history)
    except KeyboardInterrupt:
        pipeline.cancel()
        print("\n[INFO] Scan cancelled by user", file=sys.stderr)
        return 1
    except (CaptureError, OSError, ValueError) as e:
        logger.error(f"{e}")
        return 1
    except SkinScanError as e:
        logger.error(f"Scan failed: {e}")
        return 1

    if result is None:
        logger.error("No usable frames: keep your face centred and well lit")
        return 2

    report_json = json.dumps(result.to_dict(), indent=2)
    if args.output:
        with open(args.output, "w") as f:
            f.write(report_json)
        logger.info(f"Report written to {os.path.abspath(args.output)}")
    else:
        print(report_json)

    if args.snapshot and result.image:
        with open(args.snapshot, "wb") as f:
            f.write(result.image)

    return 0


if __name__ == "__main__":
    sys.exit(main())
