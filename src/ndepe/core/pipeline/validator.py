from __future__ import annotations

"""
Configuration Validation Service.

Gatekeeper for the emit engine: merges the caller's dictionary over the
defaults, coerces loosely typed values (CLI strings, JSON numbers) and turns
every path into an absolute one so later phases can compare paths directly.
"""

import logging
import os
from typing import Any, Dict, List, Tuple

from ndepe.domain.config import get_default_config
from ndepe.infra.fs import normalize_path

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def validate_config(
        config: Any,
        *,
        strict: bool = False,
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Validate and normalize an emit configuration.

    Args:
        config: Raw configuration data (usually a dictionary).
        strict: If True, raise on type mismatches instead of coercing.

    Returns:
        Tuple[Dict[str, Any], List[str]]: Normalized configuration and warnings.

    Raises:
        TypeError: In strict mode, when a field has the wrong type.
        ValueError: In strict mode, when a numeric field is out of range.
    """
    warnings: List[str] = []
    defaults = get_default_config()

    if not isinstance(config, dict):
        msg = f"Invalid config type: expected dict, received {type(config).__name__}."
        if strict:
            raise TypeError(msg)
        warnings.append(f"{msg} Using defaults.")
        logger.warning(msg)
        config = {}

    merged: Dict[str, Any] = dict(defaults)
    merged.update({k: v for k, v in config.items() if v is not None})

    for field in ("app_dir", "source_dir", "cache_dir", "trace_base", "node_binary"):
        merged[field] = _as_str(merged.get(field), defaults[field], field, warnings, strict)

    for field in ("analysis_cache", "file_cache", "symlink_cache"):
        merged[field] = _as_bool(merged.get(field), defaults[field], field, warnings, strict)

    merged["search_depth"] = _as_int(
        merged.get("search_depth"), defaults["search_depth"], 0, "search_depth", warnings, strict
    )
    merged["max_workers"] = _as_int(
        merged.get("max_workers"), defaults["max_workers"], 1, "max_workers", warnings, strict
    )

    merged["include_entries"] = _as_list_str(
        merged.get("include_entries"), [], "include_entries", warnings, strict
    )

    trace_options = merged.get("trace_options")
    if not isinstance(trace_options, dict):
        msg = f"Invalid field 'trace_options': expected dict, received {type(trace_options).__name__}."
        if strict:
            raise TypeError(msg)
        warnings.append(f"{msg} Using fallback.")
        trace_options = {}
    merged["trace_options"] = dict(trace_options)

    # Path normalization: everything downstream compares absolute paths
    cwd = os.getcwd()
    merged["app_dir"] = normalize_path(merged["app_dir"], cwd)
    merged["source_dir"] = normalize_path(
        os.path.join(merged["app_dir"], os.path.expanduser(merged["source_dir"])), merged["app_dir"]
    )
    merged["cache_dir"] = os.path.join(merged["app_dir"], os.path.expanduser(merged["cache_dir"]))
    merged["include_entries"] = [
        os.path.join(merged["source_dir"], os.path.expanduser(p))
        for p in merged["include_entries"]
    ]

    return merged, warnings


# -----------------------------------------------------------------------------
# PRIVATE HELPERS: TYPE COERCION
# -----------------------------------------------------------------------------

def _as_str(value: Any, fallback: str, field: str, warnings: List[str], strict: bool) -> str:
    """Validate and sanitize string inputs."""
    if value is None:
        return fallback
    if isinstance(value, str):
        v = value.strip()
        return v if v else fallback

    msg = f"Invalid field '{field}': expected str, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_bool(value: Any, fallback: bool, field: str, warnings: List[str], strict: bool) -> bool:
    """Coerce numbers and human-friendly strings into booleans."""
    if isinstance(value, bool):
        return value
    if value is None:
        return fallback

    if not strict:
        if isinstance(value, (int, float)) and value in (0, 1):
            warnings.append(f"Field '{field}' converted from number {value} to bool.")
            return bool(value)
        if isinstance(value, str):
            s = value.strip().lower()
            if s in ("true", "1", "yes", "y", "on"):
                warnings.append(f"Field '{field}' converted from '{value}' to True.")
                return True
            if s in ("false", "0", "no", "n", "off"):
                warnings.append(f"Field '{field}' converted from '{value}' to False.")
                return False

    msg = f"Invalid field '{field}': expected bool, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_int(
        value: Any,
        fallback: int,
        minimum: int,
        field: str,
        warnings: List[str],
        strict: bool,
) -> int:
    """Coerce integers (and numeric strings in lenient mode) with a lower bound."""
    result = None
    if isinstance(value, int) and not isinstance(value, bool):
        result = value
    elif isinstance(value, str) and not strict:
        try:
            result = int(value.strip())
            warnings.append(f"Field '{field}' converted from '{value}' to {result}.")
        except ValueError:
            result = None

    if result is None:
        msg = f"Invalid field '{field}': expected int, received {type(value).__name__}."
        if strict:
            raise TypeError(msg)
        warnings.append(f"{msg} Using fallback.")
        return fallback

    if result < minimum:
        msg = f"Field '{field}' must be >= {minimum}, received {result}."
        if strict:
            raise ValueError(msg)
        warnings.append(f"{msg} Using fallback.")
        return fallback

    return result


def _as_list_str(value: Any, fallback: List[str], field: str, warnings: List[str], strict: bool) -> List[str]:
    """Ensure input is a list of non-empty strings, accepting CSV strings."""
    if value is None:
        return list(fallback)

    if isinstance(value, str) and not strict:
        items = [x.strip() for x in value.split(",") if x.strip()]
        warnings.append(f"Field '{field}' converted from CSV string to list.")
        return items

    if isinstance(value, (list, tuple)):
        out: List[str] = []
        for i, item in enumerate(value):
            if isinstance(item, str) and item.strip():
                out.append(item.strip())
            elif not isinstance(item, str):
                msg = f"Invalid item in '{field}[{i}]': expected str."
                if strict:
                    raise TypeError(msg)
                warnings.append(f"{msg} Item discarded.")
        return out

    msg = f"Invalid field '{field}': expected list[str], received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return list(fallback)
