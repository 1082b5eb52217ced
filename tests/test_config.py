import json

import pytest

from skinscan.config import COLORS, DEFAULT_CONFIG, ScanConfig


def test_defaults_are_valid():
    assert DEFAULT_CONFIG.validate()
    assert sum(DEFAULT_CONFIG.overall_weights.values()) == pytest.approx(1.0)


def test_invalid_weights_rejected():
    assert not ScanConfig(overall_weights={"acne_active": 0.5}).validate()


def test_invalid_ratios_rejected():
    assert not ScanConfig(min_face_ratio=0.9).validate()
    assert not ScanConfig(trim_fraction=0.5).validate()


def test_weights_not_shared_between_instances():
    config = ScanConfig()
    config.overall_weights["acne_active"] = 0.0
    assert ScanConfig().overall_weights["acne_active"] == 0.25


def test_load_overrides(tmp_path):
    path = tmp_path / "scan.json"
    path.write_text(json.dumps({"trim_fraction": 0.1, "progress_step": 3.0, "unknown_key": 1}))

    config = ScanConfig.load(str(path))
    assert config.trim_fraction == 0.1
    assert config.progress_step == 3.0
    assert config.sample_stride == 20


def test_load_falls_back_to_defaults(tmp_path):
    assert ScanConfig.load(str(tmp_path / "missing.json")) == ScanConfig()

    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    assert ScanConfig.load(str(broken)) == ScanConfig()

    invalid = tmp_path / "invalid.json"
    invalid.write_text(json.dumps({"score_floor": 120}))
    assert ScanConfig.load(str(invalid)) == ScanConfig()


def test_to_dict():
    data = ScanConfig().to_dict()
    assert data["sample_stride"] == 20
    assert data["overall_weights"]["texture"] == 0.20


def test_colors_are_rgb():
    assert all(len(c) == 3 for c in COLORS.values())


def test_unknown_weight_keys_rejected():
    assert not ScanConfig(overall_weights={"acne": 1.0}).validate()
    assert not ScanConfig(overall_weights=[("acne_active", 1.0)]).validate()
    assert not ScanConfig(overall_weights={"acne_active": "1.0"}).validate()


def test_load_rejects_unknown_weight_keys(tmp_path):
    path = tmp_path / "weights.json"
    path.write_text(json.dumps({"overall_weights": {"acne": 1.0}}))
    assert ScanConfig.load(str(path)) == ScanConfig()


def test_invalid_values_raise_value_error():
    config = ScanConfig(sample_stride=0)
    assert not config.validate()
    with pytest.raises(ValueError, match="sample_stride"):
        config._check()
