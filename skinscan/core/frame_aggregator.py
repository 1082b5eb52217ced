"""
Single-frame aggregation of raw scores into a SkinMetrics record.
"""

from datetime import datetime

import numpy as np

from skinscan.config import ScanConfig, DEFAULT_CONFIG
from skinscan.core.models import METRIC_KEYS, SkinMetrics
from skinscan.utils.exceptions import MetricsError


def normalize_score(raw: float, config: ScanConfig = DEFAULT_CONFIG) -> int:
    """Clamp to [floor, ceiling] and round to an integer score."""
    value = float(raw)
    if np.isnan(value):
        return config.score_floor
    return int(round(min(config.score_ceiling, max(config.score_floor, value))))


def overall_score(raw_scores: dict[str, float], config: ScanConfig = DEFAULT_CONFIG) -> float:
    """Fixed weighted combination; acne and texture dominate the headline number."""
    unknown = [key for key in config.overall_weights if key not in raw_scores]
    if unknown:
        raise MetricsError(f"Overall weights reference unknown metrics: {unknown}")
    return sum(raw_scores[key] * weight for key, weight in config.overall_weights.items())


def aggregate(
    raw_scores: dict[str, float],
    timestamp: datetime | None = None,
    config: ScanConfig = DEFAULT_CONFIG,
) -> SkinMetrics:
    """
    Build the SkinMetrics record for one frame.

    Args:
        raw_scores: Raw score per metric key, as returned by MetricExtractor
        timestamp: Capture instant, defaults to now
        config: Scan configuration

    Returns:
        SkinMetrics with every score normalised. Refinement-only fields are left unset.
    """
    missing = [key for key in METRIC_KEYS if key not in raw_scores]
    if missing:
        raise MetricsError(f"Missing raw scores: {missing}")

    scores = {key: normalize_score(raw_scores[key], config) for key in METRIC_KEYS}

    return SkinMetrics(
        overall_score=normalize_score(overall_score(raw_scores, config), config),
        timestamp=timestamp or datetime.now(),
        **scores,
    )
