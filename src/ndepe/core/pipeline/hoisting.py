from __future__ import annotations

"""
Version Resolution & Hoisting Stage.

For every package decides the order in which its versions are placed. The
first version is canonical: it owns the top-level node_modules/<name> slot.
For packages with several versions, each version also records which other
packages consume it, so the link stage can wire consumers to it.

Ordering of two versions A and B of one package:
1. A direct dependency sorts before a non-direct one.
2. Otherwise a version without consumers sorts first.
3. Otherwise the higher (loose semver) version sorts first.
"""

import functools
import logging
from typing import Callable, Dict, List

import nodesemver

from ndepe.domain.emit_models import PackageLayout
from ndepe.domain.trace_models import PackageRef, TracedFile, TracedPackage

logger = logging.getLogger(__name__)


def find_package_parents(
        package: TracedPackage,
        version: str,
        traced_files: Dict[str, TracedFile],
) -> List[PackageRef]:
    """
    List the packages whose files require a file of the given version.

    Parents that are not part of a traced package (entry files, project
    sources) are ignored, as are parents belonging to the same package name:
    a version cannot be linked into a slot its own sibling version occupies.

    Args:
        package: The conflicted package.
        version: Version to inspect.
        traced_files: Files with package_version set, keyed by real path.

    Returns:
        List[PackageRef]: Unique consumers in discovery order.
    """
    refs: Dict[PackageRef, None] = {}
    for path in package.versions[version].files:
        traced = traced_files.get(path)
        # Whole-package copies list files the tracer never reached
        if traced is None:
            continue
        for parent_path in traced.parents:
            parent = traced_files.get(parent_path)
            if parent is None or parent.package_version is None:
                continue
            if parent.package_name == package.name:
                continue
            refs.setdefault(PackageRef(parent.package_name, parent.package_version), None)
    return list(refs)


def semver_lt(v1: str, v2: str) -> bool:
    """Loose semver 'less than'; unparseable versions compare as plain strings."""
    try:
        return bool(nodesemver.lt(v1, v2, True))
    except (ValueError, TypeError):
        logger.debug(f"Non-semver versions '{v1}' / '{v2}', comparing as strings")
        return v1 < v2


def version_comparator(
        package: TracedPackage,
        parents: Dict[str, List[PackageRef]],
) -> Callable[[str, str], int]:
    """Build the cmp-style hoisting comparator for one package."""

    def _compare(v1: str, v2: str) -> int:
        direct1 = package.versions[v1].is_direct_dependency
        direct2 = package.versions[v2].is_direct_dependency

        if direct1 and not direct2:
            return -1
        if not direct1 and direct2:
            return 1
        if not parents[v1]:
            return -1
        if not parents[v2]:
            return 1
        return 1 if semver_lt(v1, v2) else -1

    return _compare


def order_versions(
        package: TracedPackage,
        parents: Dict[str, List[PackageRef]],
) -> List[str]:
    """Sort a package's versions by hoisting priority (canonical first)."""
    comparator = version_comparator(package, parents)
    return sorted(package.versions, key=functools.cmp_to_key(comparator))


def resolve_layout(
        packages: Dict[str, TracedPackage],
        traced_files: Dict[str, TracedFile],
) -> Dict[str, PackageLayout]:
    """
    Compute the placement of every package.

    Args:
        packages: Grouped packages.
        traced_files: Files with package_version set.

    Returns:
        Dict[str, PackageLayout]: Layout per package name, in discovery order.
    """
    layouts: Dict[str, PackageLayout] = {}
    for name, package in packages.items():
        if not package.is_conflicted:
            layouts[name] = PackageLayout(name=name, versions=list(package.versions))
            continue

        parents = {
            version: find_package_parents(package, version, traced_files)
            for version in package.versions
        }
        ordered = order_versions(package, parents)
        layouts[name] = PackageLayout(name=name, versions=ordered, parents=parents)
        for version in ordered:
            consumers = ", ".join(str(p) for p in parents[version]) or "-"
            logger.debug(f"{name}@{version} consumers: {consumers}")
        logger.info(f"{name}: {len(ordered)} versions, canonical {ordered[0]}")
    return layouts
