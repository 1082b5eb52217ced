"""
Scan session lifecycle and the per-frame capture pipeline.

Frames are processed strictly one at a time: locate face, validate, extract,
aggregate, buffer. When progress reaches 100 the buffer is reduced to the
final measurement. The buffer belongs to a single session; starting a new
session or cancelling discards it.
"""

import logging
import time
from collections import deque
from typing import Callable, Iterable, Sequence

import numpy as np

from skinscan.config import ScanConfig, DEFAULT_CONFIG
from skinscan.core.face_locator import detect_face_bounds, face_regions
from skinscan.core.frame_aggregator import aggregate
from skinscan.core.frame_validator import validate_frame
from skinscan.core.metric_extractor import MetricExtractor
from skinscan.core.models import (
    FaceBounds,
    FrameFeedback,
    FrameSample,
    ScanResult,
    SkinMetrics,
)
from skinscan.core.refinement import MetricsRefiner
from skinscan.core.temporal_accumulator import ReductionStrategy, TemporalAccumulator
from skinscan.utils.exceptions import SkinScanError
from skinscan.utils.image_utils import encode_frame_to_bytes, preprocess_for_ai


logger = logging.getLogger(__name__)


class ScanSession:
    """Bounded buffer of per-frame measurements for one scanning attempt."""

    def __init__(
        self,
        config: ScanConfig | None = None,
        strategy: ReductionStrategy = ReductionStrategy.TRIMMED_MEAN,
    ):
        self.config = config or DEFAULT_CONFIG
        self.accumulator = TemporalAccumulator(strategy, self.config)
        self._buffer: deque[FrameSample] = deque(maxlen=self.config.max_buffer_frames)
        self._progress = 0.0
        self._active = False

    def start(self) -> None:
        self._buffer.clear()
        self._progress = 0.0
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def is_complete(self) -> bool:
        return self._progress >= 100.0

    @property
    def samples(self) -> tuple[FrameSample, ...]:
        return tuple(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)

    def append(self, metrics: SkinMetrics, confidence: float = 1.0) -> None:
        if not self._active:
            raise SkinScanError("Cannot append to an inactive scan session")
        self._buffer.append(FrameSample(metrics=metrics, confidence=float(np.clip(confidence, 0.0, 1.0))))
        self._progress = min(100.0, self._progress + self.config.progress_step)

    def reduce(self) -> SkinMetrics | None:
        return self.accumulator.reduce(list(self._buffer))

    def finalize(self) -> SkinMetrics | None:
        """Reduce the buffer, then discard it."""
        metrics = self.reduce()
        self.discard()
        return metrics

    def discard(self) -> None:
        self._buffer.clear()
        self._active = False


class ScanPipeline:
    """
    Drive a scan session from a sequence of frames.

    Usage:
        pipeline = ScanPipeline()
        pipeline.start()
        for frame in frames:
            feedback = pipeline.process_frame(frame)
            if pipeline.session.is_complete:
                break
        result = pipeline.finish()
    """

    def __init__(
        self,
        config: ScanConfig | None = None,
        strategy: ReductionStrategy = ReductionStrategy.TRIMMED_MEAN,
        extractor: MetricExtractor | None = None,
        refiner: MetricsRefiner | None = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.session = ScanSession(self.config, strategy)
        self.extractor = extractor or MetricExtractor(self.config)
        self.refiner = refiner
        self.previous_bounds: FaceBounds | None = None
        self._last_frame: np.ndarray | None = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> None:
        self.session.start()
        self.previous_bounds = None
        self._last_frame = None
        self._cancelled = False
        logger.info(f"Scan session started ({self.session.accumulator.strategy.value})")

    def cancel(self) -> None:
        """Stop accepting frames and drop everything collected so far."""
        self._cancelled = True
        dropped = len(self.session)
        self.session.discard()
        self._last_frame = None
        logger.info(f"Scan session cancelled, discarded {dropped} samples")

    def process_frame(self, frame: np.ndarray) -> FrameFeedback:
        """
        Run one frame through the pipeline.

        Args:
            frame: RGB or RGBA frame

        Returns:
            FrameFeedback for the view layer
        """
        if not self.session.active:
            raise SkinScanError("No active scan session; call start() first")

        start_time = time.time()
        bounds = detect_face_bounds(frame, self.config)
        check = validate_frame(frame, bounds, self.previous_bounds, self.config)

        if check.is_good:
            regions = face_regions(bounds, frame.shape[1], frame.shape[0], self.config)
            raw = self.extractor.extract(frame, regions)
            metrics = aggregate(raw, config=self.config)
            self.session.append(metrics, check.confidence)
            self.previous_bounds = bounds
            self._last_frame = frame
            logger.debug(
                f"Frame accepted: {check.status.value} conf={check.confidence:.2f} "
                f"overall={metrics.overall_score} ({(time.time() - start_time) * 1000:.1f} ms)"
            )
        else:
            logger.debug(f"Frame rejected: {check.message}")

        return FrameFeedback(
            status=check.status,
            message=check.message,
            instruction=check.instruction,
            face_bounds=bounds,
            progress=self.session.progress,
            accepted=check.is_good,
        )

    def finish(self, history: Sequence[SkinMetrics] | None = None) -> ScanResult | None:
        """
        Reduce the session and prepare the hand-off.

        Args:
            history: Earlier scans for the refinement step, oldest first

        Returns:
            ScanResult, or None when no frame was accepted
        """
        frames_used = len(self.session)
        metrics = self.session.finalize()
        if metrics is None or self._last_frame is None:
            logger.info("Scan finished without usable frames")
            return None

        snapshot = preprocess_for_ai(self._last_frame)
        image = encode_frame_to_bytes(snapshot, "JPEG", self.config.snapshot_quality)
        self._last_frame = None

        refined = False
        if self.refiner is not None:
            metrics, refined = self.refiner.refine(image, metrics, history)

        logger.info(f"Scan finished: {frames_used} frames, overall score {metrics.overall_score}")
        return ScanResult(metrics=metrics, frames_used=frames_used, refined=refined, image=image)

    def run(
        self,
        frames: Iterable[np.ndarray],
        on_feedback: Callable[[FrameFeedback], None] | None = None,
        history: Sequence[SkinMetrics] | None = None,
    ) -> ScanResult | None:
        """
        Process frames until the scan completes, the source ends, or cancel() is called.

        An exhausted source finishes the scan with whatever was collected.
        A cancelled scan returns None.
        """
        self.start()
        for frame in frames:
            if self._cancelled:
                break
            feedback = self.process_frame(frame)
            if on_feedback is not None:
                on_feedback(feedback)
            if self.session.is_complete:
                break

        if self._cancelled:
            return None
        return self.finish(history)
