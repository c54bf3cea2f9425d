from __future__ import annotations

"""
Package Materialization Stage.

Copies the files of one package version into the output node_modules tree
and writes its manifest next to them. Writes are idempotent (files are
overwritten) but not transactional: a failure leaves the files copied so far
in place and aborts the run, which is then safe to repeat.
"""

import logging
import os
import shutil
from typing import Any, Dict, Optional

from ndepe.domain.constants import MANIFEST_FILE_NAME, STORE_DIR_NAME
from ndepe.domain.errors import MaterializationError
from ndepe.domain.trace_models import TracedPackage
from ndepe.infra.fs import write_json

logger = logging.getLogger(__name__)


def apply_publish_exports(manifest: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of the manifest whose 'exports' comes from 'publishConfig.exports'.

    The input is left untouched; manifests without a published export map are
    copied as they are.
    """
    out = dict(manifest)
    publish_config = manifest.get("publishConfig")
    if isinstance(publish_config, dict) and publish_config.get("exports"):
        out["exports"] = publish_config["exports"]
    return out


def package_destination(project_dir: str, package_path: str) -> str:
    """Absolute directory of a store-relative package path ('a/b' style)."""
    return os.path.join(project_dir, STORE_DIR_NAME, *package_path.split("/"))


def write_package(
        package: TracedPackage,
        version: str,
        project_dir: str,
        package_path: Optional[str] = None,
) -> int:
    """
    Materialize one package version.

    Args:
        package: Package holding the version.
        version: Version to write.
        project_dir: Output root; files go below <project_dir>/node_modules.
        package_path: Store-relative destination; defaults to the package name.

    Returns:
        int: Number of files copied.

    Raises:
        MaterializationError: A file copy or the manifest write failed.
    """
    entry = package.versions[version]
    dest_root = package_destination(project_dir, package_path or package.name)

    copied = 0
    for src in entry.files:
        sub_path = entry.sub_path_of(src)
        if sub_path.startswith(".."):
            logger.warning(f"{src} is outside its package directory; not copied")
            continue

        dest = os.path.join(dest_root, *sub_path.split("/"))
        try:
            os.makedirs(os.path.dirname(dest), exist_ok=True)
            shutil.copyfile(src, dest)
        except OSError as e:
            raise MaterializationError(f"Cannot copy {src} to {dest}: {e}", dest) from e
        copied += 1

    manifest_path = os.path.join(dest_root, MANIFEST_FILE_NAME)
    try:
        write_json(manifest_path, apply_publish_exports(entry.manifest))
    except OSError as e:
        raise MaterializationError(f"Cannot write {manifest_path}: {e}", manifest_path) from e

    logger.debug(f"Wrote {package.name}@{version} ({copied} files) to {dest_root}")
    return copied
