from __future__ import annotations

"""
Production Manifest Synthesis.

Builds the package.json written next to the emitted node_modules: the
project's identity with a '-prod' suffix and one dependency per package,
pinned to the version that owns the top-level slot.
"""

import logging
from typing import Any, Callable, Dict, Optional

from ndepe.core.services.manifest import manifest_version
from ndepe.domain.constants import (
    DEFAULT_PROJECT_NAME,
    MANIFEST_FILE_NAME,
    PROD_NAME_SUFFIX,
)
from ndepe.domain.emit_models import PackageLayout
from ndepe.infra.fs import find_up, read_json

logger = logging.getLogger(__name__)

ModifyPackageJson = Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]


def read_project_manifest(app_dir: str) -> Dict[str, Any]:
    """
    Locate and read the project's package.json, searching upward from app_dir.

    Returns:
        Dict[str, Any]: The manifest, or an empty dict when none is readable.
    """
    path = find_up(MANIFEST_FILE_NAME, app_dir)
    if path is None:
        logger.warning(f"No {MANIFEST_FILE_NAME} found above {app_dir}; using defaults.")
        return {}
    try:
        return read_json(path)
    except (OSError, ValueError) as e:
        logger.warning(f"Unreadable project manifest {path}: {e}")
        return {}


def synthesize_manifest(
        project_manifest: Dict[str, Any],
        layouts: Dict[str, PackageLayout],
        modify_package_json: Optional[ModifyPackageJson] = None,
) -> Dict[str, Any]:
    """
    Build the production manifest.

    Args:
        project_manifest: The project's own package.json (may be empty).
        layouts: Placement of every emitted package.
        modify_package_json: Optional hook; a non-None return replaces the manifest.

    Returns:
        Dict[str, Any]: The manifest to write.
    """
    name = project_manifest.get("name")
    if not isinstance(name, str) or not name.strip():
        name = DEFAULT_PROJECT_NAME

    manifest: Dict[str, Any] = {
        "name": f"{name.strip()}{PROD_NAME_SUFFIX}",
        "version": manifest_version(project_manifest),
        "private": True,
        "dependencies": {
            pkg: layouts[pkg].canonical_version for pkg in sorted(layouts)
        },
    }

    if modify_package_json is not None:
        modified = modify_package_json(manifest)
        if modified is not None:
            manifest = modified

    return manifest
