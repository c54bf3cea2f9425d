from __future__ import annotations

"""
Unit tests for the Package Link Stage.
"""

import os
from pathlib import Path
from unittest.mock import patch

from ndepe.core.pipeline.linker import (
    SKIP_ALREADY_LINKED,
    consumer_link_path,
    isolated_package_path,
    link_package,
)
from ndepe.domain.emit_models import STATUS_FAILED, STATUS_OK, STATUS_SKIPPED
from ndepe.domain.trace_models import PackageRef


def _installed(project_dir: Path, rel: str) -> Path:
    target = project_dir / "node_modules" / rel
    target.mkdir(parents=True)
    (target / "index.js").write_text("x", encoding="utf-8")
    return target


def test_layout_paths() -> None:
    """TC-01: Verify isolated and consumer slot paths for both consumer shapes."""
    assert isolated_package_path("dep", "2.0.0") == ".ndepe/dep@2.0.0/node_modules/dep"
    assert isolated_package_path("@s/dep", "1.0.0") == ".ndepe/@s/dep@1.0.0/node_modules/@s/dep"

    consumer = PackageRef("other", "1.0.0")
    assert consumer_link_path(consumer, "dep", consumer_is_conflicted=False) == "other/node_modules/dep"
    assert consumer_link_path(consumer, "dep", consumer_is_conflicted=True) == (
        ".ndepe/other@1.0.0/node_modules/dep"
    )


def test_link_uses_relative_target(tmp_path: Path) -> None:
    """TC-02: Verify the link resolves to the source through a relative path."""
    source = _installed(tmp_path, ".ndepe/dep@2.0.0/node_modules/dep")
    (tmp_path / "node_modules" / "other").mkdir()

    outcome = link_package(".ndepe/dep@2.0.0/node_modules/dep", "other/node_modules/dep", str(tmp_path))

    link = tmp_path / "node_modules" / "other" / "node_modules" / "dep"
    assert outcome.status == STATUS_OK
    assert os.path.islink(link)
    assert not os.path.isabs(os.readlink(link))
    assert os.path.realpath(link) == os.path.realpath(source)
    assert (link / "index.js").read_text(encoding="utf-8") == "x"


def test_existing_link_is_kept(tmp_path: Path) -> None:
    """TC-03: Verify a second link to the same slot is skipped and the first target stays."""
    first = _installed(tmp_path, ".ndepe/dep@1.0.0/node_modules/dep")
    _installed(tmp_path, ".ndepe/dep@2.0.0/node_modules/dep")

    assert link_package(".ndepe/dep@1.0.0/node_modules/dep", "dep", str(tmp_path)).ok
    second = link_package(".ndepe/dep@2.0.0/node_modules/dep", "dep", str(tmp_path))

    assert second.status == STATUS_SKIPPED
    assert second.reason == SKIP_ALREADY_LINKED
    assert os.path.realpath(tmp_path / "node_modules" / "dep") == os.path.realpath(first)


def test_link_failure_is_reported_not_raised(tmp_path: Path) -> None:
    """TC-04: Verify permission problems produce a failed outcome."""
    _installed(tmp_path, "dep")
    with patch("ndepe.core.pipeline.linker.os.symlink", side_effect=PermissionError("denied")):
        outcome = link_package("dep", "other/node_modules/dep", str(tmp_path))

    assert outcome.status == STATUS_FAILED
    assert outcome.subject == "other/node_modules/dep"
    assert "denied" in outcome.reason
