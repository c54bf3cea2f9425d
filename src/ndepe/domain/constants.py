from __future__ import annotations

"""
Domain Constants.

Names of the on-disk layout produced by an emit run and of the files the
cache store persists.
"""

from typing import Dict, Tuple

# Managed dependency store directory name
STORE_DIR_NAME = "node_modules"

# Directory (inside the output store) that hosts isolated versions
ISOLATED_DIR_NAME = ".ndepe"

MANIFEST_FILE_NAME = "package.json"

# Version used when a package manifest cannot be read
FALLBACK_VERSION = "0.0.0"
DEFAULT_PROJECT_NAME = "ndepe-project"
PROD_NAME_SUFFIX = "-prod"

ENTRY_EXTENSIONS: Tuple[str, ...] = (".js", ".mjs", ".cjs")

DEFAULT_CACHE_DIR = ".ndepe-cache"

# Cache slot -> file name inside the cache directory
CACHE_FILE_NAMES: Dict[str, str] = {
    "analysis": "analysis-cache.json",
    "file": "file-cache.json",
    "symlink": "symlink-cache.json",
}

# Levels above the project root where manifest discovery stops
DEFAULT_SEARCH_DEPTH = 6
DEFAULT_MAX_WORKERS = 8
