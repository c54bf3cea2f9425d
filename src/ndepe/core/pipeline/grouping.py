from __future__ import annotations

"""
Package Grouping Stage.

Folds classified files into name -> version -> PackageVersionEntry. The
version of a file is the version declared by the manifest of its install
root; unreadable manifests are replaced by a '0.0.0' stand-in so grouping
never fails outright.
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Optional, Tuple

from ndepe.core.services.manifest import ManifestReader, manifest_version
from ndepe.domain.trace_models import PackageVersionEntry, TracedFile, TracedPackage
from ndepe.infra.fs import is_sub_path, read_dir_recursive

logger = logging.getLogger(__name__)

CopyWholePackage = Callable[[str, Dict[str, Any]], bool]


def group_packages(
        traced_files: Dict[str, TracedFile],
        manifests: ManifestReader,
        copy_whole_package: Optional[CopyWholePackage] = None,
) -> Tuple[Dict[str, TracedPackage], Dict[str, TracedFile]]:
    """
    Build the package/version accumulator from classified files.

    A file joins its version's file list only when it physically lies under
    its own install root and the entry's manifest still declares the file's
    version. Copies of one version installed in several places therefore
    accumulate into a single entry. When copy_whole_package approves a
    (name, manifest) pair, the version's list is expanded once to every file
    under the first copy's install root.

    Args:
        traced_files: Classified files keyed by real path, in trace order.
        manifests: Shared manifest reader.
        copy_whole_package: Optional whole-package copy policy.

    Returns:
        Tuple[Dict[str, TracedPackage], Dict[str, TracedFile]]:
            Packages in discovery order, and the files with package_version set.
    """
    packages: Dict[str, TracedPackage] = {}
    attributed: Dict[str, TracedFile] = {}
    whole_copy: Dict[Tuple[str, str], bool] = {}

    for traced in traced_files.values():
        name = traced.package_name
        manifest = manifests.read_or_stand_in(traced.package_install_root, name)
        version = manifest_version(manifest)

        package = packages.get(name)
        if package is None:
            package = TracedPackage(name=name)
            packages[name] = package

        entry = package.versions.get(version)
        if entry is None:
            entry = PackageVersionEntry(manifest=manifest, install_root=traced.package_install_root)
            package.versions[version] = entry

        traced = replace(traced, package_version=version)
        attributed[traced.path] = traced

        if not is_sub_path(traced.package_install_root, traced.path) or manifest_version(entry.manifest) != version:
            logger.debug(f"{traced.path} not merged into {name}@{version}")
            continue

        if traced.is_direct_dependency:
            entry.is_direct_dependency = True

        key = (name, version)
        if key not in whole_copy:
            whole_copy[key] = bool(copy_whole_package and copy_whole_package(name, entry.manifest))
            if whole_copy[key]:
                _expand_whole_package(entry, name, version)

        entry.add_file(traced.path, traced.sub_path)

    conflicted = sum(1 for p in packages.values() if p.is_conflicted)
    logger.info(f"Grouped files into {len(packages)} packages ({conflicted} with multiple versions).")
    return packages, attributed


def _expand_whole_package(entry: PackageVersionEntry, name: str, version: str) -> None:
    """Add every file under the install root to the entry."""
    for path in read_dir_recursive(entry.install_root):
        entry.add_file(path)
    logger.debug(f"Whole-package copy of {name}@{version}: {len(entry.files)} files")
