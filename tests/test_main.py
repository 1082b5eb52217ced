import json
from unittest.mock import patch

import pytest

from skinscan import main as cli
from skinscan.core.models import ScanResult
from skinscan.utils.exceptions import CaptureError, MetricsError


def test_parse_args_defaults():
    args = cli.parse_args(["clip.mp4"])
    assert args.source == "clip.mp4"
    assert args.strategy == "trimmed_mean"
    assert not args.refine


def test_parse_args_rejects_unknown_strategy():
    with pytest.raises(SystemExit):
        cli.parse_args(["0", "--strategy", "median"])


def test_read_frames_unopenable_source(tmp_path):
    with pytest.raises(CaptureError):
        next(cli.read_frames(str(tmp_path / "missing.mp4")))


def test_load_history(tmp_path, make_metrics):
    path = tmp_path / "history.json"
    path.write_text(json.dumps([make_metrics(70).to_dict(), make_metrics(75).to_dict()]))

    history = cli.load_history(str(path))
    assert [h.overall_score for h in history] == [70, 75]
    assert history[0] == make_metrics(70)
    assert cli.load_history(None) == []


def test_main_missing_source(tmp_path):
    assert cli.main([str(tmp_path / "missing.mp4")]) == 1


def test_main_no_usable_frames(solid_frame):
    frames = [solid_frame(64, 48, (0, 0, 255))] * 3
    with patch.object(cli, "read_frames", return_value=iter(frames)):
        assert cli.main(["clip.mp4"]) == 2


def test_main_writes_report_and_snapshot(tmp_path, face_frame):
    output = tmp_path / "report.json"
    snapshot = tmp_path / "scan.jpg"
    frames = [face_frame(spots=True)] * 6

    with patch.object(cli, "read_frames", return_value=iter(frames)):
        code = cli.main(["clip.mp4", "--output", str(output), "--snapshot", str(snapshot)])

    assert code == 0
    report = json.loads(output.read_text())
    assert report["frames_used"] == 6
    assert report["refined"] is False
    assert "acneActive" in report["metrics"]
    assert snapshot.read_bytes().startswith(b"\xff\xd8")


def test_main_prints_report(capsys, make_metrics):
    result = ScanResult(metrics=make_metrics(80), frames_used=4)
    with patch.object(cli.ScanPipeline, "run", return_value=result), \
            patch.object(cli, "read_frames", return_value=iter([])):
        assert cli.main(["clip.mp4"]) == 0
    assert json.loads(capsys.readouterr().out)["metrics"]["overallScore"] == 80


@pytest.mark.parametrize("records", [
    [{"overallScore": 80}],
    ["not a record"],
    {"overallScore": 80},
])
def test_load_history_rejects_malformed_records(tmp_path, records):
    path = tmp_path / "history.json"
    path.write_text(json.dumps(records))
    with pytest.raises(MetricsError):
        cli.load_history(str(path))


def test_main_malformed_history(tmp_path, make_metrics):
    record = make_metrics(70).to_dict()
    del record["acneScars"]
    path = tmp_path / "history.json"
    path.write_text(json.dumps([record]))

    assert cli.main([str(tmp_path / "missing.mp4"), "--history", str(path)]) == 1
