from __future__ import annotations

"""
Unit tests for the Package Materialization Stage.
"""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import ProjectFixture

from ndepe.core.pipeline.materializer import apply_publish_exports, write_package
from ndepe.domain.errors import MaterializationError
from ndepe.domain.trace_models import PackageVersionEntry, TracedPackage


def _package(pkg_dir: Path, name: str, version: str, rel_files, manifest=None) -> TracedPackage:
    entry = PackageVersionEntry(
        manifest=manifest or {"name": name, "version": version},
        install_root=str(pkg_dir),
        files=[str(pkg_dir / rel) for rel in rel_files],
    )
    return TracedPackage(name=name, versions={version: entry})


def test_publish_exports_override() -> None:
    """TC-01: Verify publishConfig.exports replaces exports without mutating the input."""
    manifest = {
        "name": "dep",
        "exports": "./src/index.ts",
        "publishConfig": {"exports": {".": "./dist/index.js"}},
    }
    out = apply_publish_exports(manifest)
    assert out["exports"] == {".": "./dist/index.js"}
    assert manifest["exports"] == "./src/index.ts"

    assert apply_publish_exports({"name": "x", "exports": "./a.js"})["exports"] == "./a.js"
    assert "exports" not in apply_publish_exports({"name": "x", "publishConfig": {"access": "public"}})


def test_write_package_preserves_sub_paths(project: ProjectFixture, tmp_path: Path) -> None:
    """TC-02: Verify files keep their location relative to the install root."""
    dep = project.add_package("@scope/dep", "1.0.0", files={"index.js": "a", "lib/util.js": "b"})
    package = _package(dep, "@scope/dep", "1.0.0", ["index.js", "lib/util.js"])
    out = tmp_path / "out"

    copied = write_package(package, "1.0.0", str(out))

    root = out / "node_modules" / "@scope" / "dep"
    assert copied == 2
    assert (root / "index.js").read_text(encoding="utf-8") == "a"
    assert (root / "lib" / "util.js").read_text(encoding="utf-8") == "b"
    written = (root / "package.json").read_text(encoding="utf-8")
    assert written == json.dumps({"name": "@scope/dep", "version": "1.0.0"}, indent=2)


def test_write_package_to_isolated_path(project: ProjectFixture, tmp_path: Path) -> None:
    """TC-03: Verify an explicit destination path is honored and the manifest rewritten."""
    manifest = {"name": "dep", "version": "2.0.0", "exports": "./src.js", "publishConfig": {"exports": "./dist.js"}}
    dep = project.add_package("dep", "2.0.0", manifest=manifest)
    package = _package(dep, "dep", "2.0.0", ["index.js", "package.json"], manifest=manifest)
    out = tmp_path / "out"

    write_package(package, "2.0.0", str(out), ".ndepe/dep@2.0.0/node_modules/dep")

    root = out / "node_modules" / ".ndepe" / "dep@2.0.0" / "node_modules" / "dep"
    assert (root / "index.js").exists()
    assert json.loads((root / "package.json").read_text(encoding="utf-8"))["exports"] == "./dist.js"


def test_write_package_is_repeatable(project: ProjectFixture, tmp_path: Path) -> None:
    """TC-04: Verify a second write overwrites in place."""
    dep = project.add_package("dep", "1.0.0")
    package = _package(dep, "dep", "1.0.0", ["index.js"])
    out = tmp_path / "out"

    write_package(package, "1.0.0", str(out))
    write_package(package, "1.0.0", str(out))

    files = sorted(os.listdir(out / "node_modules" / "dep"))
    assert files == ["index.js", "package.json"]


def test_copy_failure_raises_materialization_error(project: ProjectFixture, tmp_path: Path) -> None:
    """TC-05: Verify write failures abort with the failing destination."""
    dep = project.add_package("dep", "1.0.0")
    package = _package(dep, "dep", "1.0.0", ["index.js"])

    with patch("ndepe.core.pipeline.materializer.shutil.copyfile", side_effect=OSError("disk full")):
        with pytest.raises(MaterializationError) as exc:
            write_package(package, "1.0.0", str(tmp_path / "out"))

    assert exc.value.path is not None
    assert exc.value.path.endswith("index.js")
    assert "disk full" in str(exc.value)


def test_write_package_merges_copies_from_two_roots(project: ProjectFixture, tmp_path: Path) -> None:
    """TC-06: Verify files from a second install of the same version land at their own sub path."""
    dep_a = project.add_package("dep", "1.0.0", parent_dir=project.add_package("a", "1.0.0"))
    dep_b = project.add_package("dep", "1.0.0", files={"lib/x.js": "x"}, parent_dir=project.add_package("b", "1.0.0"))
    entry = PackageVersionEntry(manifest={"name": "dep", "version": "1.0.0"}, install_root=str(dep_a))
    entry.add_file(str(dep_a / "index.js"), "index.js")
    entry.add_file(str(dep_b / "lib" / "x.js"), "lib/x.js")
    out = tmp_path / "out"

    copied = write_package(TracedPackage(name="dep", versions={"1.0.0": entry}), "1.0.0", str(out))

    root = out / "node_modules" / "dep"
    assert copied == 2
    assert (root / "index.js").exists()
    assert (root / "lib" / "x.js").read_text(encoding="utf-8") == "x"
