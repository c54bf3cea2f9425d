from __future__ import annotations

"""
Tracer Cache Persistence Service.

Persists the three caches the dependency tracer uses to speed up repeated
runs (analysis, file content, symlink resolution). Values may nest maps and
sets, which plain JSON cannot express, so every cache is written through an
explicit tagged encoding:

    {"__type__": "map", "entries": [[key, value], ...]}
    {"__type__": "set", "items": [member, ...]}

Only entries whose key points inside a node_modules tree are persisted; the
project's own files change too often for their analysis to be worth keeping.
The cache is advisory: unreadable or unwritable files are logged and ignored.
"""

import json
import logging
import os
from collections.abc import MutableSet
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple

from ndepe.domain.constants import CACHE_FILE_NAMES, STORE_DIR_NAME
from ndepe.domain.errors import CacheFormatError
from ndepe.infra.fs import split_path_segments

logger = logging.getLogger(__name__)

TYPE_TAG = "__type__"
MAP_TAG = "map"
SET_TAG = "set"


class CacheRecord(dict):
    """
    A plain JSON object nested inside a cache value.

    Kept distinct from map nodes so it is written back untagged; the tracer
    expects records such as analysis results to stay plain objects.
    """


class CacheSet(MutableSet):
    """
    An insertion-ordered set decoded from a cache document.

    The tracer's own sets keep their member order across a write/read cycle;
    only sets built on the Python side are sorted when encoded.
    """

    def __init__(self, members: Iterable[Any] = ()) -> None:
        self._members: Dict[Any, None] = dict.fromkeys(members)

    def __contains__(self, member: Any) -> bool:
        return member in self._members

    def __iter__(self) -> Iterator[Any]:
        return iter(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def add(self, member: Any) -> None:
        self._members[member] = None

    def discard(self, member: Any) -> None:
        self._members.pop(member, None)

    def __repr__(self) -> str:
        return f"CacheSet({list(self._members)!r})"


# ==============================================================================
# TAGGED ENCODING
# ==============================================================================

def encode_cache_value(value: Any) -> Any:
    """
    Convert a cache value into a JSON-compatible, self-describing structure.

    CacheRecords stay plain objects and other dicts become map nodes. Sets
    become set nodes: CacheSets keep their member order, Python sets are
    sorted when their members compare. Lists/tuples are encoded element-wise
    and scalars pass through.

    Args:
        value: Arbitrary cache value.

    Returns:
        Any: JSON-serializable structure.

    Raises:
        TypeError: The value contains an unsupported type.
    """
    if isinstance(value, CacheRecord):
        return {k: encode_cache_value(v) for k, v in value.items()}
    if isinstance(value, dict):
        return {
            TYPE_TAG: MAP_TAG,
            "entries": [[k, encode_cache_value(v)] for k, v in value.items()],
        }
    if isinstance(value, CacheSet):
        return {TYPE_TAG: SET_TAG, "items": [encode_cache_value(m) for m in value]}
    if isinstance(value, (set, frozenset)):
        return {TYPE_TAG: SET_TAG, "items": [encode_cache_value(m) for m in _ordered_members(value)]}
    if isinstance(value, (list, tuple)):
        return [encode_cache_value(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    raise TypeError(f"Unsupported cache value type: {type(value).__name__}")


def decode_cache_value(node: Any) -> Any:
    """
    Rebuild cache values from their tagged representation.

    Args:
        node: Structure produced by encode_cache_value (after a JSON round trip).

    Returns:
        Any: Dicts for map nodes, CacheSets for set nodes, CacheRecords for
             untagged objects, lists for arrays.

    Raises:
        CacheFormatError: A tagged node is malformed.
    """
    if isinstance(node, list):
        return [decode_cache_value(v) for v in node]
    if not isinstance(node, dict):
        return node

    tag = node.get(TYPE_TAG)
    if tag == MAP_TAG:
        entries = node.get("entries")
        if not isinstance(entries, list):
            raise CacheFormatError("Map node without an 'entries' list.")
        out: Dict[Any, Any] = {}
        for pair in entries:
            if not isinstance(pair, list) or len(pair) != 2:
                raise CacheFormatError(f"Malformed map entry: {pair!r}")
            out[_hashable(decode_cache_value(pair[0]))] = decode_cache_value(pair[1])
        return out
    if tag == SET_TAG:
        items = node.get("items")
        if not isinstance(items, list):
            raise CacheFormatError("Set node without an 'items' list.")
        return CacheSet(_hashable(decode_cache_value(m)) for m in items)
    if tag is not None:
        raise CacheFormatError(f"Unknown cache node type: {tag!r}")

    # Untagged objects only appear as values nested inside entries
    return CacheRecord((k, decode_cache_value(v)) for k, v in node.items())


def serialize_cache(cache: Dict[str, Any]) -> str:
    """Encode a top-level cache map as a JSON document."""
    return json.dumps(encode_cache_value(cache), ensure_ascii=False)


def deserialize_cache(data: str) -> Dict[str, Any]:
    """
    Decode a JSON document written by serialize_cache.

    Raises:
        CacheFormatError: The document is not a tagged map.
    """
    try:
        raw = json.loads(data)
    except ValueError as e:
        raise CacheFormatError(f"Invalid JSON: {e}") from e

    decoded = decode_cache_value(raw)
    if not isinstance(decoded, dict):
        raise CacheFormatError("Cache document is not a map.")
    return decoded


# ==============================================================================
# PERSISTENCE
# ==============================================================================

def is_persistable_key(key: Any) -> bool:
    """Keep only keys that reference a file inside a node_modules tree."""
    if not isinstance(key, str):
        return False
    segments = split_path_segments(key)
    # The store segment must be followed by something
    return STORE_DIR_NAME in segments[:-1]


def load_cache(file_path: str, enabled: bool) -> Optional[Dict[str, Any]]:
    """
    Load a cache file.

    Args:
        file_path: Cache document location.
        enabled: Whether this cache kind is active.

    Returns:
        Optional[Dict[str, Any]]: The decoded cache, or None when disabled,
                                  missing or unreadable.
    """
    if not enabled or not os.path.isfile(file_path):
        return None

    logger.debug(f"Loading cache: {file_path}")
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return deserialize_cache(f.read())
    except (OSError, CacheFormatError) as e:
        logger.warning(f"Ignoring unreadable cache '{os.path.basename(file_path)}': {e}")
        return None


def write_cache(file_path: str, cache: Dict[str, Any]) -> bool:
    """
    Persist the store-scoped part of a cache.

    Args:
        file_path: Cache document location.
        cache: Full cache map as left by the tracer.

    Returns:
        bool: True when the file was written.
    """
    kept = {k: v for k, v in cache.items() if is_persistable_key(k)}
    try:
        payload = serialize_cache(kept)
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(payload)
    except (OSError, TypeError) as e:
        logger.warning(f"Failed to write cache '{os.path.basename(file_path)}': {e}")
        return False

    logger.info(f"Wrote {os.path.basename(file_path)} ({len(kept)} entries)")
    return True


# ==============================================================================
# CACHE BUNDLE
# ==============================================================================

@dataclass
class CacheOptions:
    """
    Which tracer caches are active and where they live.

    Attributes:
        cache_dir: Absolute cache directory.
        analysis_cache: Persist the module analysis cache.
        file_cache: Persist the file content cache.
        symlink_cache: Persist the symlink resolution cache.
    """
    cache_dir: str
    analysis_cache: bool = False
    file_cache: bool = False
    symlink_cache: bool = False

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "CacheOptions":
        return cls(
            cache_dir=cfg["cache_dir"],
            analysis_cache=bool(cfg.get("analysis_cache")),
            file_cache=bool(cfg.get("file_cache")),
            symlink_cache=bool(cfg.get("symlink_cache")),
        )

    def is_enabled(self, slot: str) -> bool:
        return bool(getattr(self, f"{slot}_cache"))

    @property
    def any_enabled(self) -> bool:
        return any(self.is_enabled(slot) for slot in CACHE_FILE_NAMES)

    def file_path(self, slot: str) -> str:
        return os.path.join(self.cache_dir, CACHE_FILE_NAMES[slot])


@dataclass
class CacheBundle:
    """
    The three cache slots handed to the tracer.

    A slot is None when that cache is disabled or nothing was loaded; the
    tracer may fill or replace any slot.
    """
    analysis: Optional[Dict[str, Any]] = None
    file: Optional[Dict[str, Any]] = None
    symlink: Optional[Dict[str, Any]] = None

    def slots(self) -> Iterator[Tuple[str, Optional[Dict[str, Any]]]]:
        for slot in CACHE_FILE_NAMES:
            yield slot, getattr(self, slot)


def load_cache_bundle(options: CacheOptions) -> CacheBundle:
    """Load every enabled cache kind from the cache directory."""
    bundle = CacheBundle()
    for slot in CACHE_FILE_NAMES:
        setattr(bundle, slot, load_cache(options.file_path(slot), options.is_enabled(slot)))
    return bundle


def save_cache_bundle(options: CacheOptions, bundle: CacheBundle) -> None:
    """
    Write every enabled, populated cache slot back to the cache directory.

    The directory is only created when at least one cache kind is enabled.
    """
    if not options.any_enabled:
        return

    try:
        os.makedirs(options.cache_dir, exist_ok=True)
    except OSError as e:
        logger.warning(f"Cannot create cache directory {options.cache_dir}: {e}")
        return

    for slot, cache in bundle.slots():
        if cache is not None and options.is_enabled(slot):
            write_cache(options.file_path(slot), cache)


# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

def _ordered_members(members: Any) -> list:
    """Sort set members when they are mutually comparable, for stable output."""
    try:
        return sorted(members)
    except TypeError:
        return list(members)


def _hashable(value: Any) -> Any:
    """Lists decoded from JSON cannot be dict keys or set members; freeze them."""
    if isinstance(value, list):
        return tuple(_hashable(v) for v in value)
    if isinstance(value, (dict, set, CacheSet)):
        raise CacheFormatError(f"Unhashable cache key or set member: {value!r}")
    return value
