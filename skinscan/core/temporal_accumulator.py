"""
Reduction of a scan's per-frame measurements to one robust record.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Sequence

import numpy as np

from skinscan.config import ScanConfig, DEFAULT_CONFIG
from skinscan.core.models import SCORE_KEYS, FrameSample, SkinMetrics


logger = logging.getLogger(__name__)


class ReductionStrategy(Enum):
    """How the session buffer is collapsed."""
    TRIMMED_MEAN = "trimmed_mean"  # Drop top/bottom fraction per metric, then average
    CONFIDENCE_WEIGHTED = "confidence_weighted"  # Weight each frame by its validator confidence


def trimmed_mean(values: Sequence[float], fraction: float) -> float:
    """Mean after discarding floor(n * fraction) values from each end."""
    ordered = np.sort(np.asarray(values, dtype=np.float64))
    cut = int(len(ordered) * fraction)
    if cut > 0:
        ordered = ordered[cut:len(ordered) - cut]
    return float(ordered.mean())


def weighted_mean(values: Sequence[float], weights: Sequence[float]) -> float:
    """Weighted mean; plain mean when the weights sum to zero."""
    v = np.asarray(values, dtype=np.float64)
    w = np.asarray(weights, dtype=np.float64)
    total = float(w.sum())
    if total <= 0:
        return float(v.mean())
    return float((v * w).sum() / total)


class TemporalAccumulator:
    """Collapse buffered FrameSamples into a single SkinMetrics."""

    def __init__(
        self,
        strategy: ReductionStrategy = ReductionStrategy.TRIMMED_MEAN,
        config: ScanConfig | None = None,
    ):
        self.strategy = strategy
        self.config = config or DEFAULT_CONFIG

    def reduce(self, samples: Sequence[FrameSample | SkinMetrics]) -> SkinMetrics | None:
        """
        Reduce a buffer of samples.

        Args:
            samples: FrameSamples (or bare SkinMetrics, weighted 1.0) in capture order

        Returns:
            SkinMetrics stamped with the reduction instant, or None for an empty buffer
        """
        if not samples:
            logger.info("Empty scan buffer, nothing to reduce")
            return None

        buffer = [s if isinstance(s, FrameSample) else FrameSample(metrics=s) for s in samples]
        now = datetime.now()

        if self.strategy == ReductionStrategy.TRIMMED_MEAN:
            if len(buffer) < self.config.min_trim_samples:
                # Too few samples to trim without losing all data
                latest = buffer[-1].metrics
                return self._build({key: getattr(latest, key) for key in SCORE_KEYS}, latest.skin_age, now)

            reduced = {
                key: trimmed_mean([getattr(s.metrics, key) for s in buffer], self.config.trim_fraction)
                for key in SCORE_KEYS
            }
            ages = [s.metrics.skin_age for s in buffer if s.metrics.skin_age is not None]
            skin_age = trimmed_mean(ages, self.config.trim_fraction) if ages else None
        else:
            weights = [max(0.0, s.confidence) for s in buffer]
            reduced = {
                key: weighted_mean([getattr(s.metrics, key) for s in buffer], weights)
                for key in SCORE_KEYS
            }
            aged = [(s.metrics.skin_age, w) for s, w in zip(buffer, weights) if s.metrics.skin_age is not None]
            skin_age = weighted_mean([a for a, _ in aged], [w for _, w in aged]) if aged else None

        logger.debug(f"Reduced {len(buffer)} samples with {self.strategy.value}")
        return self._build(reduced, skin_age, now)

    @staticmethod
    def _build(values: dict[str, float], skin_age: float | None, timestamp: datetime) -> SkinMetrics:
        scores = {key: int(round(value)) for key, value in values.items()}
        return SkinMetrics(
            timestamp=timestamp,
            skin_age=int(round(skin_age)) if skin_age is not None else None,
            **scores,
        )
