from __future__ import annotations

"""
Entry File Discovery.

Collects the JavaScript files of the source directory that seed the trace.
"""

import logging
from typing import Callable, List, Optional

from ndepe.domain.constants import ENTRY_EXTENSIONS, STORE_DIR_NAME
from ndepe.infra.fs import read_dir_recursive

logger = logging.getLogger(__name__)


def find_entry_files(
        source_dir: str,
        entry_filter: Optional[Callable[[str], bool]] = None,
) -> List[str]:
    """
    List the .js/.mjs/.cjs files under source_dir.

    The node_modules directories inside source_dir are never walked, so a
    re-run does not treat its own previous output as entries.

    Args:
        source_dir: Directory to scan.
        entry_filter: Optional predicate applied to every candidate path.

    Returns:
        List[str]: Absolute entry paths in sorted walk order.
    """
    files = read_dir_recursive(
        source_dir,
        file_filter=entry_filter,
        prune_dirs=(STORE_DIR_NAME,),
    )
    entries = [f for f in files if f.endswith(ENTRY_EXTENSIONS)]
    logger.debug(f"Discovered {len(entries)} entry files in {source_dir}")
    return entries
