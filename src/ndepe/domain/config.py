from __future__ import annotations

"""
Emit Configuration Defaults.

The run configuration is a plain dictionary so it can be merged from CLI
flags, JSON dumps or callers without a schema object. Callable hooks are not
part of it; they are passed to the engine as keyword arguments.
"""

import os
from typing import Any, Dict

from ndepe.domain.constants import (
    DEFAULT_CACHE_DIR,
    DEFAULT_MAX_WORKERS,
    DEFAULT_SEARCH_DEPTH,
)


def get_default_config() -> Dict[str, Any]:
    """
    Generate the default emit configuration.

    Returns:
        Dict[str, Any]: Default configuration values.
    """
    base = os.getcwd()
    return {
        # Project layout
        "app_dir": base,
        "source_dir": base,
        "include_entries": [],

        # Tracing
        "trace_base": "/",
        "trace_options": {},
        "node_binary": "node",
        "search_depth": DEFAULT_SEARCH_DEPTH,

        # Tracer caches
        "cache_dir": DEFAULT_CACHE_DIR,
        "analysis_cache": False,
        "file_cache": False,
        "symlink_cache": False,

        # Execution
        "max_workers": DEFAULT_MAX_WORKERS,
    }
