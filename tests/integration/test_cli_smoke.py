import os
import subprocess
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]


def _env_without_credentials() -> dict[str, str]:
    return {key: value for key, value in os.environ.items() if not key.startswith("AC_")}


@pytest.mark.integration
def test_cli_runs_end_to_end_with_stub_backend() -> None:
    proc = subprocess.run(
        [sys.executable, "-m", "notarizer.main", "--backend", "stub", "--poll-interval", "0.01", "a.zip", "b.dmg"],
        capture_output=True,
        text=True,
        check=False,
        cwd=REPO_ROOT,
        env=_env_without_credentials(),
    )

    assert proc.returncode == 0, proc.stderr
    assert "Notarization complete!" in proc.stdout


@pytest.mark.integration
def test_cli_dry_run_without_credentials_exits_with_usage_error() -> None:
    proc = subprocess.run(
        [sys.executable, "-m", "notarizer.main", "--dry-run-startup", "a.zip"],
        capture_output=True,
        text=True,
        check=False,
        cwd=REPO_ROOT,
        env=_env_without_credentials(),
    )

    assert proc.returncode == 2
    assert "no authorization info given" in proc.stderr


@pytest.mark.integration
def test_cli_json_logs_carry_run_id() -> None:
    proc = subprocess.run(
        [
            sys.executable,
            "-m",
            "notarizer.main",
            "--backend",
            "stub",
            "--poll-interval",
            "0.01",
            "--log-level",
            "INFO",
            "--log-json",
            "a.zip",
        ],
        capture_output=True,
        text=True,
        check=False,
        cwd=REPO_ROOT,
        env=_env_without_credentials(),
    )

    assert proc.returncode == 0, proc.stderr
    assert '"run_id": "run_' in proc.stderr
