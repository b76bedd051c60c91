"""Smoke tests for example scripts.

These tests ensure that the example scripts can be run as standalone
programs without raising exceptions.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

# Determine the repo root
ROOT = Path(__file__).resolve().parents[1]


def test_streaming_optimization_demo_runs() -> None:
    """Test that examples/streaming_optimization_demo.py runs successfully."""
    script = ROOT / "examples" / "streaming_optimization_demo.py"
    assert script.exists(), f"Example script not found: {script}"

    result = subprocess.run(
        [sys.executable, str(script)],
        capture_output=True,
        text=True,
        check=False,
        timeout=60,
    )

    assert result.returncode == 0, (
        f"Example script failed with return code {result.returncode}.\n"
        f"STDOUT:\n{result.stdout}\n"
        f"STDERR:\n{result.stderr}"
    )

    assert "Run cancelled after 5 events" in result.stdout
    assert "Best multi-start result" in result.stdout
