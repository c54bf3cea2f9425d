from __future__ import annotations

"""
CLI Argument Definition and Mapping.

Defines the command-line schema and translates the parsed namespace into
configuration overrides for the emit engine.
"""

import argparse
from typing import Any, Dict, List, Optional

# -----------------------------------------------------------------------------
# ARGUMENT DEFINITION
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """
    Construct the argument parser for the ndepe CLI.

    Returns:
        argparse.ArgumentParser: Configured parser instance.
    """
    p = argparse.ArgumentParser(
        prog="ndepe",
        description="Emit the production node_modules of a traced Node.js application.",
    )

    # --- Project Layout ---
    p.add_argument(
        "-a", "--app-dir",
        dest="app_dir",
        default=None,
        help="Project root holding package.json and the installed node_modules.",
    )
    p.add_argument(
        "-s", "--source-dir",
        dest="source_dir",
        default=None,
        help="Build output directory; entries are read and node_modules is written here.",
    )
    p.add_argument(
        "--include",
        dest="include_entries",
        default=None,
        help="Extra entry files (CSV), relative to the source directory.",
    )

    # --- Tracer Caches ---
    p.add_argument("--cache-dir", dest="cache_dir", default=None, help="Cache directory (relative to app dir).")
    p.add_argument("--analysis-cache", action="store_true", help="Persist the tracer's analysis cache.")
    p.add_argument("--file-cache", action="store_true", help="Persist the tracer's file cache.")
    p.add_argument("--symlink-cache", action="store_true", help="Persist the tracer's symlink cache.")

    # --- Runtime ---
    p.add_argument(
        "--search-depth",
        dest="search_depth",
        type=int,
        default=None,
        help="Levels above the app dir where package.json lookup stops.",
    )
    p.add_argument("--workers", dest="max_workers", type=int, default=None, help="Thread pool width.")
    p.add_argument("--node", dest="node_binary", default=None, help="Node.js executable used for tracing.")

    # --- Diagnostics ---
    p.add_argument("--dump-config", action="store_true", help="Print the effective configuration and exit.")
    p.add_argument("--debug", action="store_true", help="Elevate logging verbosity to DEBUG.")
    p.add_argument("--json", dest="json_output", action="store_true", help="Print the run result as JSON.")

    return p

# -----------------------------------------------------------------------------
# ARGUMENT MAPPING
# -----------------------------------------------------------------------------

def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Translate the argparse Namespace into configuration overrides.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Dict[str, Any]: Configuration overrides subset (None means 'not given').
    """
    overrides: Dict[str, Any] = {
        "app_dir": args.app_dir,
        "source_dir": args.source_dir,
        "cache_dir": args.cache_dir,
        "search_depth": args.search_depth,
        "max_workers": args.max_workers,
        "node_binary": args.node_binary,
    }

    if args.include_entries:
        overrides["include_entries"] = _split_csv(args.include_entries)

    if args.analysis_cache:
        overrides["analysis_cache"] = True
    if args.file_cache:
        overrides["file_cache"] = True
    if args.symlink_cache:
        overrides["symlink_cache"] = True

    return overrides

# -----------------------------------------------------------------------------
# HELPERS
# -----------------------------------------------------------------------------

def _split_csv(value: Optional[str]) -> Optional[List[str]]:
    """Convert a comma-separated string into a list of non-empty items."""
    if value is None:
        return None
    parts = [x.strip() for x in value.split(",")]
    return [x for x in parts if x]
