from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

import numpy as np

from geoxform.cli.main import main

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"
UTM_CHAIN = EXAMPLES / "utm31n_km.yaml"


def _run(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "geoxform.cli", *args],
        capture_output=True,
        text=True,
        check=False,
    )


def test_cli_help() -> None:
    out = subprocess.check_output([sys.executable, "-m", "geoxform.cli", "--help"]).decode()
    assert "apply" in out and "validate" in out and "inspect" in out


def test_cli_apply_help() -> None:
    result = _run("apply", "--help")
    assert result.returncode == 0
    assert "--config" in result.stdout
    assert "--input" in result.stdout
    assert "--output" in result.stdout


def test_cli_missing_command() -> None:
    result = _run()
    assert result.returncode != 0


def test_cli_validate_and_apply(tmp_path: Path) -> None:
    subprocess.check_call([sys.executable, "-m", "geoxform.cli", "validate", "-c", str(UTM_CHAIN)])

    out = tmp_path / "out" / "points.csv"
    subprocess.check_call(
        [
            sys.executable,
            "-m",
            "geoxform.cli",
            "apply",
            "-c",
            str(UTM_CHAIN),
            "-i",
            str(EXAMPLES / "points_lonlat.csv"),
            "-o",
            str(out),
        ]
    )
    result = np.loadtxt(out, delimiter=",", ndmin=2)
    assert result.shape == (3, 2)
    # Second point lies on the central meridian
    assert abs(result[1, 0] - 500.0) < 1e-6
    assert abs(result[1, 1] - 4982.9504) < 1e-3


def test_apply_to_stdout(tmp_path: Path, capsys) -> None:
    points = tmp_path / "in.csv"
    points.write_text("# lon,lat\n3.0,0.0\n")
    assert main(["apply", "-c", str(UTM_CHAIN), "-i", str(points)]) == 0
    row = capsys.readouterr().out.strip().split(",")
    assert float(row[0]) == 500.0
    assert float(row[1]) == 0.0


def test_apply_reports_failed_points(tmp_path: Path, capsys) -> None:
    points = tmp_path / "in.csv"
    points.write_text("3.0,45.0\n3.0,95.0\n")
    out = tmp_path / "out.csv"
    assert main(["apply", "-c", str(UTM_CHAIN), "-i", str(points), "-o", str(out)]) == 3
    assert "1 point(s) failed" in capsys.readouterr().err
    result = np.loadtxt(out, delimiter=",", ndmin=2)
    assert np.isfinite(result[0]).all()
    assert np.isnan(result[1]).all()


def test_apply_wrong_columns(tmp_path: Path, capsys) -> None:
    points = tmp_path / "in.csv"
    points.write_text("1.0,2.0,3.0\n")
    assert main(["apply", "-c", str(UTM_CHAIN), "-i", str(points)]) == 1
    assert "expected 2" in capsys.readouterr().err


def test_inspect(capsys) -> None:
    assert main(["inspect", "-c", str(EXAMPLES / "mercator_with_height.yaml")]) == 0
    out = capsys.readouterr().out
    assert "Chain Summary:" in out
    assert "World Mercator 3D" in out
    assert 'PASSTHROUGH_MT[0,1,PARAM_MT["Mercator_1SP"' in out


def test_validate_failure_and_missing_config(tmp_path: Path, capsys) -> None:
    assert main(["validate", "-c", str(UTM_CHAIN), "--tolerance", "0"]) == 1
    assert "FAIL" in capsys.readouterr().out

    assert main(["validate", "-c", str(tmp_path / "missing.yaml")]) == 2


def test_self_check_flag(capsys) -> None:
    assert main(["--self-check", "--log-level", "ERROR", "validate", "-c", str(UTM_CHAIN)]) == 0
    assert "All validation cases passed" in capsys.readouterr().out


def test_log_file_gets_json_lines(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "run.jsonl"
    args = ["--log-level", "DEBUG", "--log-file", str(log_path), "inspect", "-c", str(UTM_CHAIN)]
    assert main(args) == 0
    records = [json.loads(line) for line in log_path.read_text().splitlines()]
    created = [r for r in records if r["message"] == "Created projection"]
    assert created and created[0]["data"] == {"kind": "Transverse_Mercator"}
    assert all(r["name"].startswith("geoxform") for r in records)
