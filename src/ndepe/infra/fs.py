from __future__ import annotations

"""
FileSystem Infrastructure Layer.

Provides cross-platform path manipulation, containment checks, recursive
directory listing and upward manifest discovery. Acts as an abstraction over
the 'os' module to ensure uniform behavior across Windows and Unix-like systems.
"""

import json
import os
import stat
from typing import Any, Callable, Dict, List, Optional, Tuple

# -----------------------------------------------------------------------------
# GLOBAL CONSTANTS
# -----------------------------------------------------------------------------

IS_WINDOWS = os.name == "nt"

# -----------------------------------------------------------------------------
# PATH RESOLUTION API
# -----------------------------------------------------------------------------

def normalize_path(path: Optional[str], fallback: str) -> str:
    """
    Normalize a directory path string into an absolute filesystem path.

    Handles environment variable expansion ($VAR/%VAR%) and user home
    shortcuts (~/). Reverts to fallback if the input is empty or malformed.

    Args:
        path: Raw input path string.
        fallback: Default path to use if resolution fails.

    Returns:
        str: Normalized absolute path.
    """
    p = (path or "").strip()
    if not p:
        p = fallback
    try:
        p = os.path.expandvars(os.path.expanduser(p))
        return os.path.abspath(p)
    except Exception:
        return os.path.abspath(fallback)


def resolve_traced_path(base: str, path: str) -> str:
    """
    Resolve a tracer-reported path against the trace base and follow symlinks.

    Args:
        base: Base directory the tracer reports paths relative to.
        path: Raw path from the trace graph.

    Returns:
        str: Real, absolute path.
    """
    return os.path.realpath(os.path.join(base, path))


def is_sub_path(parent_path: str, child_path: str) -> bool:
    """
    Check whether child_path lies strictly inside parent_path.

    A path is not considered a sub path of itself.
    """
    if not parent_path or not child_path:
        return False
    try:
        relative = os.path.relpath(child_path, parent_path)
    except ValueError:
        # Different drives on Windows
        return False
    return bool(relative) and relative != "." and not relative.startswith("..")


def split_path_segments(path: str) -> List[str]:
    """Split a path on both separator styles, dropping empty segments."""
    return [s for s in path.replace("\\", "/").split("/") if s]


def climb(path: str, levels: int) -> str:
    """Return the ancestor of path that lies the given number of levels up."""
    out = os.path.abspath(path)
    for _ in range(max(0, levels)):
        out = os.path.dirname(out)
    return out

# -----------------------------------------------------------------------------
# FILESYSTEM QUERY API
# -----------------------------------------------------------------------------

def is_file(path: str) -> bool:
    """
    Check whether path refers to an existing regular file.

    Missing paths return False. Other stat failures propagate.
    """
    try:
        st = os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        return False
    return stat.S_ISREG(st.st_mode)


def read_dir_recursive(
        directory: str,
        file_filter: Optional[Callable[[str], bool]] = None,
        prune_dirs: Tuple[str, ...] = (),
) -> List[str]:
    """
    List every file below a directory in deterministic (sorted) walk order.

    Args:
        directory: Root directory to walk.
        file_filter: Optional predicate; files for which it returns False are dropped.
        prune_dirs: Directory names that are never descended into.

    Returns:
        List[str]: Absolute file paths.
    """
    files: List[str] = []
    root_abs = os.path.abspath(directory)

    for root, dirs, names in os.walk(root_abs):
        dirs[:] = sorted(d for d in dirs if d not in prune_dirs)
        for name in sorted(names):
            file_path = os.path.join(root, name)
            if file_filter and not file_filter(file_path):
                continue
            files.append(file_path)

    return files


def find_up(file_name: str, start_dir: str, stop_dir: Optional[str] = None) -> Optional[str]:
    """
    Search for a file by walking up from start_dir.

    The walk stops after inspecting stop_dir (when given) or the filesystem root.

    Args:
        file_name: Base name to look for (e.g. 'package.json').
        start_dir: Directory where the search begins.
        stop_dir: Optional last directory to inspect.

    Returns:
        Optional[str]: Absolute path of the first match, or None.
    """
    current = os.path.abspath(start_dir)
    stop = os.path.abspath(stop_dir) if stop_dir else None

    while True:
        candidate = os.path.join(current, file_name)
        if os.path.isfile(candidate):
            return candidate
        if stop and current == stop:
            return None
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def read_json(path: str) -> Dict[str, Any]:
    """
    Load a JSON object from disk.

    Raises:
        OSError: The file cannot be read.
        ValueError: The content is not a JSON object.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {path}, found {type(data).__name__}.")
    return data


def write_json(path: str, data: Any) -> None:
    """Write data as 2-space indented JSON, creating the parent directory."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(json.dumps(data, indent=2, ensure_ascii=False))


def safe_mkdir(path: str) -> Tuple[bool, Optional[str]]:
    """
    Attempt to recursively create a directory structure safely.

    Args:
        path: Target directory path.

    Returns:
        Tuple[bool, Optional[str]]: (Success flag, Error message if applicable).
    """
    try:
        os.makedirs(path, exist_ok=True)
        return True, None
    except OSError as e:
        return False, str(e)
