from __future__ import annotations

"""
End-to-End (E2E) CLI Tests.

Verifies the command line behavior: argument handling, exit codes and
rendered output. Runs that need a tracer call main() in-process with the
engine patched to use a fake tracer; the remaining checks invoke the module
in a subprocess.
"""

import functools
import json
import os
import subprocess
import sys
from pathlib import Path
from typing import Generator, List
from unittest.mock import patch

import pytest

from conftest import FakeTracer, ProjectFixture

from ndepe.core.pipeline.engine import node_dep_emit
from ndepe.domain.errors import TraceError
from ndepe.infra.logging import shutdown_logging
from ndepe.interface.cli.app import main

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SRC_DIR = PROJECT_ROOT / "src"


def run_cli(args: List[str], cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    """
    Execute 'python -m ndepe' in a separate process with 'src' on PYTHONPATH.
    """
    env = os.environ.copy()
    env["PYTHONPATH"] = str(SRC_DIR) + os.pathsep + env.get("PYTHONPATH", "")

    return subprocess.run(
        [sys.executable, "-m", "ndepe"] + args,
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
        encoding="utf-8",
    )


@pytest.fixture(autouse=True)
def reset_logging(capsys) -> Generator[None, None, None]:
    """Detach CLI log handlers while the captured streams are still open."""
    yield
    shutdown_logging()


@pytest.fixture
def traced_project(project: ProjectFixture) -> FakeTracer:
    dep = project.add_package("dep", "1.0.0")
    return FakeTracer({project.entry: [], dep / "index.js": [project.entry]})

# -----------------------------------------------------------------------------
# IN-PROCESS RUNS
# -----------------------------------------------------------------------------

def test_cli_human_summary(project: ProjectFixture, traced_project: FakeTracer, capsys) -> None:
    """TC-01: Verify a successful run prints the summary and exits 0."""
    engine = functools.partial(node_dep_emit, trace_files=traced_project)
    with patch("ndepe.interface.cli.app.node_dep_emit", side_effect=engine):
        code = main(["--app-dir", str(project.app_dir), "--source-dir", "dist"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Emit completed." in out
    assert "Packages: 1" in out
    assert (project.output_store / "dep" / "index.js").exists()


def test_cli_json_output(project: ProjectFixture, traced_project: FakeTracer, capsys) -> None:
    """TC-02: Verify --json prints the serialized result."""
    engine = functools.partial(node_dep_emit, trace_files=traced_project)
    with patch("ndepe.interface.cli.app.node_dep_emit", side_effect=engine):
        code = main(["-a", str(project.app_dir), "-s", str(project.source_dir), "--json"])

    data = json.loads(capsys.readouterr().out)
    assert code == 0
    assert data["ok"] is True
    assert data["manifest"]["dependencies"] == {"dep": "1.0.0"}
    assert data["layouts"]["dep"]["versions"] == ["1.0.0"]


def test_cli_fatal_error_exit_code(project: ProjectFixture, capsys) -> None:
    """TC-03: Verify emit errors are rendered and exit with 1."""
    with patch("ndepe.interface.cli.app.node_dep_emit", side_effect=TraceError("nft crashed")):
        code = main(["-a", str(project.app_dir), "-s", "dist"])

    assert code == 1
    assert "nft crashed" in capsys.readouterr().err


def test_cli_interrupt_exit_code(project: ProjectFixture) -> None:
    """TC-04: Verify Ctrl+C maps to exit code 130."""
    with patch("ndepe.interface.cli.app.node_dep_emit", side_effect=KeyboardInterrupt):
        assert main(["-a", str(project.app_dir), "-s", "dist"]) == 130

# -----------------------------------------------------------------------------
# SUBPROCESS RUNS
# -----------------------------------------------------------------------------

def test_cli_dump_config(project: ProjectFixture) -> None:
    """TC-05: Verify --dump-config prints the normalized configuration."""
    result = run_cli(["-a", str(project.app_dir), "-s", "dist", "--workers", "3", "--dump-config"])

    assert result.returncode == 0, result.stderr
    cfg = json.loads(result.stdout)
    assert cfg["source_dir"] == str(project.source_dir)
    assert cfg["max_workers"] == 3
    assert cfg["cache_dir"] == str(project.app_dir / ".ndepe-cache")


def test_cli_invalid_directory(tmp_path: Path) -> None:
    """TC-06: Verify a missing app directory exits with 2."""
    result = run_cli(["-a", str(tmp_path / "missing"), "-s", "dist"])

    assert result.returncode == 2
    assert "not a directory" in result.stderr
