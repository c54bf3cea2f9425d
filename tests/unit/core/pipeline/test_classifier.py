from __future__ import annotations

"""
Unit tests for the Path Classification Stage.

Verifies store path parsing, every skip reason, manifest-based attribution
of files outside node_modules and the direct-dependency flag.
"""

import os
from unittest.mock import patch

from conftest import ProjectFixture

from ndepe.core.pipeline.classifier import (
    SKIP_IGNORED,
    SKIP_MISSING_FILE,
    SKIP_NO_MANIFEST,
    SKIP_NO_PACKAGE_NAME,
    SKIP_OUTSIDE_SEARCH_ROOT,
    SKIP_PROJECT_SOURCE,
    ClassifierContext,
    classify_file,
    classify_trace,
    parse_store_path,
)
from ndepe.core.pipeline.validator import validate_config
from ndepe.core.services.manifest import ManifestReader
from ndepe.domain.emit_models import STATUS_FAILED, STATUS_OK, STATUS_SKIPPED
from ndepe.domain.trace_models import TraceReason


def _ctx(project: ProjectFixture, **extra) -> ClassifierContext:
    cfg, _ = validate_config(project.config(**extra))
    return ClassifierContext.from_config(cfg)

# -----------------------------------------------------------------------------
# STORE PATH PARSING
# -----------------------------------------------------------------------------

def test_parse_plain_and_scoped_packages() -> None:
    """TC-01: Verify names, roots and sub paths for plain and scoped packages."""
    plain = parse_store_path("/app/node_modules/dep/lib/index.js")
    assert plain is not None
    assert plain.name == "dep"
    assert plain.root == os.path.normpath("/app/node_modules/dep")
    assert plain.sub_path == "lib/index.js"

    scoped = parse_store_path("/app/node_modules/@scope/pkg/index.js")
    assert scoped is not None
    assert scoped.name == "@scope/pkg"
    assert scoped.sub_path == "index.js"


def test_parse_uses_innermost_store_segment() -> None:
    """TC-02: Verify nested installs resolve to the package that holds the file."""
    nested = parse_store_path("/app/node_modules/other/node_modules/dep/index.js")
    assert nested is not None
    assert nested.name == "dep"
    assert nested.root == os.path.normpath("/app/node_modules/other/node_modules/dep")

    pnpm = parse_store_path("/app/node_modules/.pnpm/dep@1.0.0/node_modules/dep/index.js")
    assert pnpm is not None
    assert pnpm.name == "dep"


def test_parse_rejects_non_store_paths() -> None:
    """TC-03: Verify paths without a file below a package yield None."""
    assert parse_store_path("/app/src/index.js") is None
    assert parse_store_path("/app/node_modules/@scope/index.js") is None
    assert parse_store_path("/app/node_modules/dep/") is None

# -----------------------------------------------------------------------------
# CLASSIFICATION
# -----------------------------------------------------------------------------

def test_store_file_attributed_with_direct_flag(project: ProjectFixture) -> None:
    """TC-04: Verify a dependency required by an entry is a direct dependency."""
    dep = project.add_package("dep", "1.0.0")
    ctx = _ctx(project)

    outcome = classify_file(
        str(dep / "index.js"), TraceReason(parents=(str(project.entry),)), ctx, ManifestReader()
    )
    assert outcome.status == STATUS_OK
    traced = outcome.value
    assert traced.package_name == "dep"
    assert traced.package_install_root == str(dep)
    assert traced.is_direct_dependency is True
    assert traced.package_version is None


def test_transitive_file_is_not_direct(project: ProjectFixture) -> None:
    """TC-05: Verify a file required only by another package is not direct."""
    dep = project.add_package("dep", "1.0.0")
    other = project.add_package("other", "1.0.0")
    outcome = classify_file(
        str(dep / "index.js"), TraceReason(parents=(str(other / "index.js"),)), _ctx(project), ManifestReader()
    )
    assert outcome.ok
    assert outcome.value.is_direct_dependency is False


def test_skip_reasons(project: ProjectFixture) -> None:
    """TC-06: Verify ignored, project and stale records are skipped with a reason."""
    ctx = _ctx(project)
    reader = ManifestReader()
    lib = project.app_dir / "lib" / "util.js"
    lib.parent.mkdir()
    lib.write_text("", encoding="utf-8")

    assert classify_file("/anything.js", TraceReason(ignored=True), ctx, reader).reason == SKIP_IGNORED
    assert classify_file(str(project.entry), TraceReason(), ctx, reader).reason == SKIP_PROJECT_SOURCE
    assert classify_file(str(lib), TraceReason(), ctx, reader).reason == SKIP_PROJECT_SOURCE

    missing = project.app_dir / "node_modules" / "gone" / "index.js"
    outcome = classify_file(str(missing), TraceReason(), ctx, reader)
    assert outcome.status == STATUS_SKIPPED
    assert outcome.reason == SKIP_MISSING_FILE


def test_workspace_file_attributed_by_manifest(project: ProjectFixture) -> None:
    """TC-07: Verify a linked package outside node_modules is attributed via its package.json."""
    workspace = project.app_dir.parent / "packages" / "shared"
    (workspace / "src").mkdir(parents=True)
    (workspace / "package.json").write_text('{"name": "@demo/shared", "version": "0.3.0"}', encoding="utf-8")
    (workspace / "src" / "index.js").write_text("", encoding="utf-8")

    outcome = classify_file(str(workspace / "src" / "index.js"), TraceReason(), _ctx(project), ManifestReader())
    assert outcome.ok
    assert outcome.value.package_name == "@demo/shared"
    assert outcome.value.package_install_root == str(workspace)
    assert outcome.value.sub_path == "src/index.js"


def test_manifest_attribution_failures(project: ProjectFixture) -> None:
    """TC-08: Verify missing, nameless and out-of-bound manifests skip the file."""
    outside = project.app_dir.parent / "loose"
    outside.mkdir()
    (outside / "a.js").write_text("", encoding="utf-8")

    # No package.json between the file and the search root
    assert classify_file(
        str(outside / "a.js"), TraceReason(), _ctx(project, search_depth=1), ManifestReader()
    ).reason == SKIP_NO_MANIFEST

    # Search root below the file
    assert classify_file(
        str(outside / "a.js"), TraceReason(), _ctx(project, search_depth=0), ManifestReader()
    ).reason == SKIP_OUTSIDE_SEARCH_ROOT

    (outside / "package.json").write_text('{"version": "1.0.0"}', encoding="utf-8")
    assert classify_file(
        str(outside / "a.js"), TraceReason(), _ctx(project, search_depth=1), ManifestReader()
    ).reason == SKIP_NO_PACKAGE_NAME


def test_classify_trace_merges_duplicate_real_paths(project: ProjectFixture) -> None:
    """TC-09: Verify two tracer paths to one real file merge parents and direct flags."""
    dep = project.add_package("dep", "1.0.0")
    other = project.add_package("other", "1.0.0")
    alias = project.app_dir / "node_modules" / "dep-alias"
    alias.symlink_to(dep, target_is_directory=True)

    graph = {
        str(alias / "index.js"): TraceReason(parents=(str(other / "index.js"),)),
        str(dep / "index.js"): TraceReason(parents=(str(project.entry),)),
    }
    traced, outcomes = classify_trace(graph, _ctx(project), ManifestReader(), max_workers=2)

    assert [o.status for o in outcomes] == [STATUS_OK, STATUS_OK]
    merged = traced[str(dep / "index.js")]
    assert merged.parents == (str(other / "index.js"), str(project.entry))
    assert merged.is_direct_dependency is True


def test_classify_file_reports_os_errors(project: ProjectFixture) -> None:
    """TC-10: Verify unexpected filesystem errors become failed outcomes."""
    dep = project.add_package("dep", "1.0.0")
    with patch("ndepe.core.pipeline.classifier.is_file", side_effect=PermissionError("denied")):
        outcome = classify_file(str(dep / "index.js"), TraceReason(), _ctx(project), ManifestReader())
    assert outcome.status == STATUS_FAILED
    assert "denied" in outcome.reason
