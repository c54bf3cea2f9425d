from __future__ import annotations

"""
Package Link Stage.

Connects consumers to the installed copy of a package version with
directory symlinks that use relative targets, so the output tree can be
moved as a whole. On Windows, where creating symlinks may require extra
privileges, a directory junction is created instead.

All paths handled here are relative to <project_dir>/node_modules and use
'/' separators.
"""

import logging
import os

from ndepe.domain.constants import ISOLATED_DIR_NAME, STORE_DIR_NAME
from ndepe.domain.emit_models import StepOutcome, failed_outcome, ok_outcome, skipped_outcome
from ndepe.domain.trace_models import PackageRef
from ndepe.infra.fs import IS_WINDOWS

logger = logging.getLogger(__name__)

SKIP_ALREADY_LINKED = "already-linked"


# -----------------------------------------------------------------------------
# LAYOUT PATHS
# -----------------------------------------------------------------------------

def isolated_package_path(name: str, version: str) -> str:
    """Install location of a version that does not own the top-level slot."""
    return f"{ISOLATED_DIR_NAME}/{name}@{version}/{STORE_DIR_NAME}/{name}"


def consumer_link_path(consumer: PackageRef, package_name: str, consumer_is_conflicted: bool) -> str:
    """
    Slot where a consumer resolves package_name from.

    A consumer with several versions lives in its own isolated directory, so
    the slot is a sibling of it there; otherwise the slot is nested inside the
    consumer's top-level install.
    """
    if consumer_is_conflicted:
        return f"{ISOLATED_DIR_NAME}/{consumer}/{STORE_DIR_NAME}/{package_name}"
    return f"{consumer.name}/{STORE_DIR_NAME}/{package_name}"


# -----------------------------------------------------------------------------
# LINK CREATION
# -----------------------------------------------------------------------------

def link_package(source: str, destination: str, project_dir: str) -> StepOutcome:
    """
    Create a directory link at destination pointing at source.

    Existing symlinks at destination are left alone, whatever they point to,
    so the first link created for a slot wins and re-runs are no-ops.
    Failures are logged and reported, never raised.

    Args:
        source: Store-relative path of the installed package.
        destination: Store-relative path of the slot to create.
        project_dir: Output root.

    Returns:
        StepOutcome: 'ok', 'skipped' (already linked) or 'failed'.
    """
    store = os.path.join(project_dir, STORE_DIR_NAME)
    src = os.path.join(store, *source.split("/"))
    dest = os.path.join(store, *destination.split("/"))

    if os.path.islink(dest) or _same_directory(src, dest):
        return skipped_outcome(destination, SKIP_ALREADY_LINKED)

    try:
        os.makedirs(os.path.dirname(dest), exist_ok=True)
        _create_directory_link(src, dest)
    except OSError as e:
        logger.error(f"Cannot link {source} to {destination}: {e}")
        return failed_outcome(destination, str(e))

    logger.debug(f"Linked {destination} -> {source}")
    return ok_outcome(destination)


def _create_directory_link(src: str, dest: str) -> None:
    target = os.path.relpath(src, os.path.dirname(dest))
    try:
        os.symlink(target, dest, target_is_directory=True)
    except OSError:
        if not IS_WINDOWS or os.path.lexists(dest):
            raise
        import _winapi

        # Junctions need an absolute target
        _winapi.CreateJunction(os.path.abspath(src), dest)


def _same_directory(src: str, dest: str) -> bool:
    """True when dest already resolves to src (e.g. an existing junction)."""
    if not os.path.lexists(dest) or not os.path.isdir(dest):
        return False
    return os.path.realpath(dest) == os.path.realpath(src) and os.path.realpath(dest) != dest
