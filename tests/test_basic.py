from __future__ import annotations

import subprocess
import sys

import charmref


def test_version_is_a_string() -> None:
    assert isinstance(charmref.__version__, str)
    assert charmref.__version__


def test_cli_version_flag() -> None:
    proc = subprocess.run(
        [sys.executable, "-m", "charmref", "--version"],
        check=False,
        text=True,
        capture_output=True,
    )
    assert proc.returncode == 0
    assert proc.stdout.startswith("charmref ")


def test_module_invocation_parses_reference() -> None:
    proc = subprocess.run(
        [sys.executable, "-m", "charmref", "parse", "--config", "/nonexistent/charmref.toml", "foo"],
        check=False,
        text=True,
        capture_output=True,
    )
    # An explicit config path that does not exist is a configuration error.
    assert proc.returncode == 2
    assert "charmref.toml" in proc.stderr
