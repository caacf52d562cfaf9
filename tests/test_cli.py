"""CLI smoke tests for the focus fitter."""

from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

import numpy as np

from focus_fit.cli import main


def _write_scan(tmp_path: Path) -> Path:
    x = np.linspace(-20.0, 20.0, 31)
    y = 150.0 * np.exp(-((x - 3.5) ** 2) / (2 * 6.0**2)) + 0.0
    payload = {
        "points": np.column_stack([x, y]).tolist(),
        "metadata": {"axis": "Z", "units": "um"},
    }
    path = tmp_path / "focus_scan.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_cli_fit_gaussian_json(tmp_path):
    scan = _write_scan(tmp_path)

    result = subprocess.run(
        [
            sys.executable,
            "-m",
            "focus_fit",
            "--log-level",
            "warning",
            "fit",
            "--input",
            str(scan),
            "--function",
            "gaussian",
            "--json",
        ],
        check=True,
        capture_output=True,
        text=True,
    )

    payload = json.loads(result.stdout)
    assert abs(payload["max_x"] - 3.5) < 1e-3
    assert abs(payload["params"]["sigma"] - 6.0) < 1e-2
    assert payload["metadata"]["axis"] == "Z"
    assert len(payload["fitted"]["x"]) == 31


def test_cli_fit_export_json(tmp_path):
    scan = _write_scan(tmp_path)
    out = tmp_path / "out" / "result.json"

    subprocess.run(
        [
            sys.executable,
            "-m",
            "focus_fit",
            "fit",
            "--input",
            str(scan),
            "--function",
            "pol3",
            "--export-json",
            str(out),
        ],
        check=True,
        capture_output=True,
        text=True,
    )

    payload = json.loads(out.read_text())
    assert set(payload["params"]) == {"c0", "c1", "c2"}
    assert -20.0 <= payload["max_x"] <= 20.0


def test_cli_report_text(tmp_path, capsys):
    scan = _write_scan(tmp_path)

    code = main(["fit", "--input", str(scan), "--guess", "100", "0", "5"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Function: Gaussian" in out
    assert "Maximum at x" in out


def test_cli_fit_failure_exit_code(tmp_path):
    path = tmp_path / "ramp.json"
    path.write_text(json.dumps({"x": [0, 1, 2, 3], "y": [0, 1, 2, 3]}), encoding="utf-8")

    result = subprocess.run(
        [
            sys.executable,
            "-m",
            "focus_fit",
            "fit",
            "--input",
            str(path),
            "--function",
            "pol2",
        ],
        capture_output=True,
        text=True,
    )

    assert result.returncode == 1
    assert "no sign change" in result.stderr
