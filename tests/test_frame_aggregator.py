from datetime import datetime

import pytest

from skinscan.config import ScanConfig
from skinscan.core.frame_aggregator import aggregate, normalize_score, overall_score
from skinscan.core.models import METRIC_KEYS
from skinscan.utils.exceptions import MetricsError


def raw(value=80.0, **overrides):
    scores = {key: value for key in METRIC_KEYS}
    scores.update(overrides)
    return scores


def test_uniform_scores_pass_through():
    metrics = aggregate(raw(80.0))
    assert metrics.overall_score == 80
    assert all(getattr(metrics, key) == 80 for key in METRIC_KEYS)


def test_refinement_fields_unset():
    metrics = aggregate(raw())
    assert metrics.skin_age is None
    assert metrics.analysis_summary is None
    assert metrics.observations is None


@pytest.mark.parametrize("value, expected", [
    (150.0, 99),
    (99.4, 99),
    (-20.0, 10),
    (9.6, 10),
    (55.5, 56),
    (72.49, 72),
    (float("nan"), 10),
])
def test_normalize_score(value, expected):
    assert normalize_score(value) == expected


def test_overall_weights():
    # Only acne carries weight here
    scores = raw(0.0, acne_active=100.0)
    assert overall_score(scores) == pytest.approx(25.0)
    assert aggregate(scores).overall_score == 25


def test_overall_uses_raw_values():
    # Unclamped inputs feed the weighted sum before the final clamp
    scores = raw(100.0)
    assert aggregate(scores).overall_score == 99
    assert aggregate(scores).acne_active == 99


def test_custom_weights():
    config = ScanConfig(overall_weights={"redness": 1.0})
    assert aggregate(raw(50.0, redness=70.0), config=config).overall_score == 70


def test_timestamp():
    stamp = datetime(2024, 5, 1, 9, 30)
    assert aggregate(raw(), timestamp=stamp).timestamp == stamp
    assert aggregate(raw()).timestamp is not None


def test_missing_key_raises():
    scores = raw()
    del scores["hydration"]
    with pytest.raises(MetricsError, match="hydration"):
        aggregate(scores)


def test_unknown_weight_key_raises_metrics_error():
    config = ScanConfig(overall_weights={"acne": 1.0})
    with pytest.raises(MetricsError, match="acne"):
        aggregate(raw(), config=config)
