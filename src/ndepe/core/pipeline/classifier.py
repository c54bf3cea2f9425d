from __future__ import annotations

"""
Path Classification Stage.

Turns every record of the trace graph into either a TracedFile attributed to
its owning package or a skip reason:

1. Ignored records and the project's own files are dropped.
2. Stale records (no longer a regular file) are dropped.
3. Files inside a node_modules tree are attributed by parsing the path.
4. Other files (workspace packages, linked sources) are attributed to the
   nearest package.json, provided it lies within the search boundary.
5. The direct-dependency flag is derived from the resolved parents.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from ndepe.core.services.manifest import ManifestReader
from ndepe.domain.constants import MANIFEST_FILE_NAME, STORE_DIR_NAME
from ndepe.domain.emit_models import StepOutcome, failed_outcome, ok_outcome, skipped_outcome
from ndepe.domain.trace_models import PackageIdentity, TracedFile, TraceReason
from ndepe.infra.fs import climb, find_up, is_file, is_sub_path, resolve_traced_path

logger = logging.getLogger(__name__)

SKIP_IGNORED = "ignored"
SKIP_PROJECT_SOURCE = "project-source"
SKIP_MISSING_FILE = "missing-file"
SKIP_OUTSIDE_SEARCH_ROOT = "outside-search-root"
SKIP_NO_MANIFEST = "no-manifest"
SKIP_UNREADABLE_MANIFEST = "unreadable-manifest"
SKIP_NO_PACKAGE_NAME = "no-package-name"

_STORE_MARKER = f"/{STORE_DIR_NAME}/"


@dataclass(frozen=True)
class ClassifierContext:
    """
    Directories that drive classification.

    Attributes:
        app_dir: Project root.
        source_dir: Output/source root; its files are never packaged.
        store_dir: The project's managed node_modules directory.
        search_root: Upper boundary for package.json discovery.
        base: Base the tracer's paths are relative to.
    """
    app_dir: str
    source_dir: str
    store_dir: str
    search_root: str
    base: str = "/"

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "ClassifierContext":
        app_dir = os.path.realpath(cfg["app_dir"])
        return cls(
            app_dir=app_dir,
            source_dir=os.path.realpath(cfg["source_dir"]),
            store_dir=os.path.join(app_dir, STORE_DIR_NAME),
            search_root=climb(app_dir, int(cfg["search_depth"])),
            base=cfg.get("trace_base") or "/",
        )

    def is_project_file(self, path: str) -> bool:
        """Inside the project but outside its dependency store."""
        return is_sub_path(self.app_dir, path) and not is_sub_path(self.store_dir, path)


# ==============================================================================
# PUBLIC API
# ==============================================================================

def parse_store_path(path: str) -> Optional[PackageIdentity]:
    """
    Parse a path inside a node_modules tree into its package identity.

    The innermost node_modules segment wins, so nested and pnpm-style
    installs resolve to the package that physically holds the file.

    Args:
        path: Absolute file path.

    Returns:
        Optional[PackageIdentity]: None when the path holds no store segment
                                   or no file below the package directory.
    """
    norm = path.replace("\\", "/")
    idx = norm.rfind(_STORE_MARKER)
    if idx < 0:
        return None

    parts = norm[idx + len(_STORE_MARKER):].split("/")
    if parts[0].startswith("@"):
        if len(parts) < 3 or not parts[1]:
            return None
        name, rest = f"{parts[0]}/{parts[1]}", parts[2:]
    else:
        name, rest = parts[0], parts[1:]

    sub_path = "/".join(p for p in rest if p)
    if not name or not sub_path:
        return None

    root = os.path.normpath(norm[:idx] + _STORE_MARKER + name)
    return PackageIdentity(root=root, name=name, sub_path=sub_path)


def classify_file(
        raw_path: str,
        reason: TraceReason,
        ctx: ClassifierContext,
        manifests: ManifestReader,
) -> StepOutcome:
    """
    Classify one trace record.

    Args:
        raw_path: Path as reported by the tracer.
        reason: The record's parents and ignored flag.
        ctx: Classification directories.
        manifests: Shared manifest reader.

    Returns:
        StepOutcome: 'ok' with a TracedFile value, or 'skipped'/'failed' with a reason.
    """
    if reason.ignored:
        return skipped_outcome(raw_path, SKIP_IGNORED)

    try:
        file_path = resolve_traced_path(ctx.base, raw_path)

        if is_sub_path(ctx.source_dir, file_path) or ctx.is_project_file(file_path):
            return skipped_outcome(file_path, SKIP_PROJECT_SOURCE)

        if not is_file(file_path):
            return skipped_outcome(file_path, SKIP_MISSING_FILE)

        identity = parse_store_path(file_path)
        if identity is None:
            identity_or_reason = _identity_from_manifest(file_path, ctx, manifests)
            if isinstance(identity_or_reason, str):
                return skipped_outcome(file_path, identity_or_reason)
            identity = identity_or_reason

        parents = tuple(resolve_traced_path(ctx.base, p) for p in reason.parents)

    except OSError as e:
        logger.warning(f"Cannot classify {raw_path}: {e}")
        return failed_outcome(raw_path, str(e))

    traced = TracedFile(
        path=file_path,
        parents=parents,
        is_direct_dependency=any(ctx.is_project_file(p) for p in parents),
        package_name=identity.name,
        package_install_root=identity.root,
        sub_path=identity.sub_path,
    )
    return ok_outcome(file_path, traced)


def classify_trace(
        graph: Dict[str, TraceReason],
        ctx: ClassifierContext,
        manifests: ManifestReader,
        max_workers: int = 8,
) -> Tuple[Dict[str, TracedFile], List[StepOutcome]]:
    """
    Classify the whole trace graph concurrently.

    Records that resolve to the same real path are merged: parents are
    concatenated (first occurrence order) and the direct flags are OR-ed.

    Args:
        graph: Normalized trace graph.
        ctx: Classification directories.
        manifests: Shared manifest reader.
        max_workers: Thread pool width.

    Returns:
        Tuple[Dict[str, TracedFile], List[StepOutcome]]:
            Classified files keyed by real path (trace order) and every outcome.
    """
    items = list(graph.items())
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="Classifier") as executor:
        outcomes = list(executor.map(lambda kv: classify_file(kv[0], kv[1], ctx, manifests), items))

    traced_files: Dict[str, TracedFile] = {}
    for outcome in outcomes:
        if not outcome.ok:
            logger.debug(f"Skip {outcome.subject}: {outcome.reason}")
            continue
        traced: TracedFile = outcome.value
        existing = traced_files.get(traced.path)
        if existing is None:
            traced_files[traced.path] = traced
            continue
        merged_parents = tuple(dict.fromkeys(existing.parents + traced.parents))
        traced_files[traced.path] = replace(
            existing,
            parents=merged_parents,
            is_direct_dependency=existing.is_direct_dependency or traced.is_direct_dependency,
        )

    logger.info(f"Classified {len(traced_files)} dependency files out of {len(items)} traced.")
    return traced_files, outcomes


# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

def _identity_from_manifest(
        file_path: str,
        ctx: ClassifierContext,
        manifests: ManifestReader,
) -> PackageIdentity | str:
    """Attribute a file outside any store to its nearest package.json, or return a skip reason."""
    if not is_sub_path(ctx.search_root, file_path):
        return SKIP_OUTSIDE_SEARCH_ROOT

    manifest_path = find_up(MANIFEST_FILE_NAME, os.path.dirname(file_path), stop_dir=ctx.search_root)
    if manifest_path is None:
        return SKIP_NO_MANIFEST

    package_dir = os.path.dirname(manifest_path)
    manifest = manifests.read(package_dir)
    if manifest is None:
        return SKIP_UNREADABLE_MANIFEST

    name = manifest.get("name")
    if not isinstance(name, str) or not name.strip():
        return SKIP_NO_PACKAGE_NAME

    sub_path = os.path.relpath(file_path, package_dir).replace(os.sep, "/")
    return PackageIdentity(root=package_dir, name=name.strip(), sub_path=sub_path)
