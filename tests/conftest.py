from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. A builder for throwaway Node.js projects (app dir, build output dir and
   an installed node_modules tree).
3. A fake tracer callable that replays a fixed dependency graph.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)


# -----------------------------------------------------------------------------
# Project Builder
# -----------------------------------------------------------------------------
def write_json_file(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


class ProjectFixture:
    """
    On-disk project used by pipeline tests.

    Layout:
    <root>/app
      package.json          {"name": "demo", "version": "1.2.3"}
      node_modules/...      packages added with add_package()
      dist/                 source (output) directory
        main.js
    """

    def __init__(self, root: Path) -> None:
        self.app_dir = root / "app"
        self.source_dir = self.app_dir / "dist"
        self.source_dir.mkdir(parents=True)
        write_json_file(self.app_dir / "package.json", {"name": "demo", "version": "1.2.3"})
        self.entry = self.source_dir / "main.js"
        self.entry.write_text("require('dep');\n", encoding="utf-8")

    @property
    def output_store(self) -> Path:
        return self.source_dir / "node_modules"

    def add_package(
            self,
            name: str,
            version: str,
            files: Optional[Dict[str, str]] = None,
            parent_dir: Optional[Path] = None,
            manifest: Union[Dict[str, Any], str, None] = None,
    ) -> Path:
        """
        Install a package under <parent_dir or app_dir>/node_modules.

        A string manifest is written verbatim (use it for broken JSON).
        """
        pkg_dir = (parent_dir or self.app_dir) / "node_modules"
        pkg_dir = pkg_dir.joinpath(*name.split("/"))
        pkg_dir.mkdir(parents=True, exist_ok=True)

        data = {"name": name, "version": version} if manifest is None else manifest
        if isinstance(data, str):
            (pkg_dir / "package.json").write_text(data, encoding="utf-8")
        else:
            write_json_file(pkg_dir / "package.json", data)

        for rel, content in (files or {"index.js": f"module.exports = '{name}@{version}';\n"}).items():
            target = pkg_dir / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return pkg_dir

    def config(self, **extra: Any) -> Dict[str, Any]:
        cfg: Dict[str, Any] = {"app_dir": str(self.app_dir), "source_dir": str(self.source_dir)}
        cfg.update(extra)
        return cfg


class FakeTracer:
    """
    Tracer stand-in returning a fixed graph of absolute paths.

    Args:
        edges: file -> files that require it.
        ignored: Files reported with the ignored flag.
    """

    def __init__(self, edges: Dict[Union[str, Path], Iterable[Union[str, Path]]], ignored: Iterable[str] = ()) -> None:
        self.edges = {str(k): [str(p) for p in v] for k, v in edges.items()}
        self.ignored = {str(p) for p in ignored}
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, entry_files, *, base, process_cwd, cache, trace_options):
        self.calls.append({
            "entry_files": list(entry_files),
            "base": base,
            "process_cwd": process_cwd,
            "cache": cache,
            "trace_options": trace_options,
        })
        return {
            path: {"parents": list(parents), "ignored": path in self.ignored}
            for path, parents in self.edges.items()
        }


def snapshot_tree(root: Path) -> Dict[str, Any]:
    """Map every entry below root to its bytes (files) or link target (symlinks)."""
    out: Dict[str, Any] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            full = os.path.join(dirpath, name)
            rel = os.path.relpath(full, root).replace(os.sep, "/")
            if os.path.islink(full):
                out[rel] = ("link", os.readlink(full))
            elif os.path.isfile(full):
                with open(full, "rb") as f:
                    out[rel] = ("file", f.read())
    return out


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def project(tmp_path: Path) -> ProjectFixture:
    """Fresh project rooted at the (symlink-resolved) temporary directory."""
    return ProjectFixture(Path(os.path.realpath(tmp_path)))


@pytest.fixture
def mock_config_dict(project: ProjectFixture) -> Dict[str, Any]:
    """
    Return a complete configuration dictionary pointing at the fixture project.

    Reflects the structure defined in 'ndepe.domain.config'.
    """
    return {
        # Project layout
        "app_dir": str(project.app_dir),
        "source_dir": str(project.source_dir),
        "include_entries": [],

        # Tracing
        "trace_base": "/",
        "trace_options": {},
        "node_binary": "node",
        "search_depth": 6,

        # Tracer caches
        "cache_dir": ".ndepe-cache",
        "analysis_cache": False,
        "file_cache": False,
        "symlink_cache": False,

        # Execution
        "max_workers": 4,
    }
