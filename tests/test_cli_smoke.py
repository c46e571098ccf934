import subprocess
import sys


def test_cli_help() -> None:
    cp = subprocess.run(
        [sys.executable, "-m", "bwapairstats", "--help"],
        check=True,
        capture_output=True,
        text=True,
    )
    assert "BWAPairStats" in cp.stdout or "bwapairstats" in cp.stdout.lower()
