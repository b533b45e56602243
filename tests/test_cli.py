from __future__ import annotations

import json
from pathlib import Path

import pytest

from astrotiming.cli import build_parser, main


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ASTROTIMING_CONFIG", str(tmp_path / "missing.yaml"))


@pytest.fixture()
def chart_file(tmp_path: Path) -> Path:
    path = tmp_path / "chart.json"
    path.write_text(
        json.dumps(
            {
                "reference": "1990-06-15T12:00:00+00:00",
                "bodies": {
                    "SUN": {"longitude": 0.0, "speed": 0.98},
                    "MOON": {"longitude": 180.0, "speed": 13.2},
                    "MARS": 270.0,
                    "ASC": 100.0,
                },
            }
        ),
        encoding="utf-8",
    )
    return path


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_aspects_command(chart_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["aspects", str(chart_file)]) == 0
    payload = json.loads(capsys.readouterr().out)
    types = sorted(hit["type"] for hit in payload["aspects"])
    assert "opposition" in types
    assert types.count("square") >= 2


def test_patterns_command(chart_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["patterns", str(chart_file)]) == 0
    payload = json.loads(capsys.readouterr().out)
    kinds = [c["kind"] for c in payload["configurations"]]
    assert "t_square" in kinds


def test_position_command(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["position", "SUN", "moon", "--at", "2000-01-01T12:00:00"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert [p["name"] for p in payload["positions"]] == ["SUN", "MOON"]
    assert payload["positions"][0]["longitude"] == pytest.approx(280.38, abs=0.05)


def test_timing_command(chart_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    argv = ["timing", str(chart_file), "--start", "2020-01-01", "--end", "2020-01-05"]
    assert main([*argv, "--category", "personal"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["event_category"] == "personal"
    assert "windows" not in payload
    assert len(payload["peak_durations"]) == len(payload["peak_periods"])
    assert main([*argv, "--include-windows", "--step-days", "2"]) == 0
    full = json.loads(capsys.readouterr().out)
    assert {w["date"][:10] for w in full["windows"]} <= {"2020-01-01", "2020-01-03", "2020-01-05"}


def test_output_file(chart_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    target = tmp_path / "out.json"
    assert main(["--output", str(target), "aspects", str(chart_file)]) == 0
    assert "aspects" in json.loads(target.read_text(encoding="utf-8"))
    assert str(target) in capsys.readouterr().out


def test_validation_errors_exit_with_status_two(
    chart_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["timing", str(chart_file), "--start", "1980-01-01", "--end", "1980-02-01"])
    assert code == 2
    error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert error["error"] == "validation_error"
    assert "1990-06-15" not in json.dumps(error)


def test_unknown_body_and_missing_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["position", "CHIRON", "--at", "2000-01-01"]) == 2
    assert "unsupported_body" in capsys.readouterr().err
    assert main(["aspects", str(tmp_path / "nope.json")]) == 2


def test_bad_settings_file(chart_file: Path, tmp_path: Path) -> None:
    config = tmp_path / "bad.yaml"
    config.write_text("timing:\n  step_days: -1\n", encoding="utf-8")
    assert main(["--config", str(config), "aspects", str(chart_file)]) == 2
