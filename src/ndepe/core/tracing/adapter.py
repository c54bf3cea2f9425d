from __future__ import annotations

"""
Trace Adapter.

Wraps a tracer callable with the cache lifecycle (load before, save after)
and normalizes whatever graph it returns into {path: TraceReason}.

A tracer is any callable accepting:

    tracer(entry_files, *, base, process_cwd, cache, trace_options)

and returning a mapping from file path to either a TraceReason or a mapping
with 'parents' (any iterable of paths) and 'ignored' keys. It may fill or
replace the slots of the CacheBundle it receives.
"""

import functools
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from ndepe.core.services.cache import CacheOptions, load_cache_bundle, save_cache_bundle
from ndepe.core.tracing.node_bridge import trace_with_node
from ndepe.domain.errors import TraceError
from ndepe.domain.trace_models import TraceReason

logger = logging.getLogger(__name__)

TraceFunction = Callable[..., Mapping[str, Any]]


def trace_project(
        entry_files: List[str],
        *,
        source_dir: str,
        base: str,
        cache_options: CacheOptions,
        trace_options: Optional[Dict[str, Any]] = None,
        trace_files: Optional[TraceFunction] = None,
        node_binary: str = "node",
) -> Dict[str, TraceReason]:
    """
    Run the tracer over the entry files and return the normalized graph.

    Args:
        entry_files: Absolute entry file paths.
        source_dir: Working directory of the traced application.
        base: Base directory the tracer reports paths relative to.
        cache_options: Which caches to load and persist.
        trace_options: Extra options passed through to the tracer.
        trace_files: Tracer override; defaults to the node bridge.
        node_binary: Node executable for the default tracer.

    Returns:
        Dict[str, TraceReason]: Trace graph keyed by raw tracer path.

    Raises:
        TraceError: The tracer failed or returned a malformed graph.
    """
    tracer = trace_files or functools.partial(trace_with_node, node_binary=node_binary)
    bundle = load_cache_bundle(cache_options)

    logger.info(f"Tracing {len(entry_files)} entry files...")
    raw = tracer(
        entry_files,
        base=base,
        process_cwd=source_dir,
        cache=bundle,
        trace_options=dict(trace_options or {}),
    )
    graph = normalize_trace_graph(raw)
    logger.info(f"Trace finished: {len(graph)} files reached.")

    save_cache_bundle(cache_options, bundle)
    return graph


def normalize_trace_graph(raw: Any) -> Dict[str, TraceReason]:
    """
    Convert a raw tracer result into {path: TraceReason}.

    Parent collections given as sets are sorted so downstream order does not
    depend on hash iteration.

    Raises:
        TraceError: The graph or one of its records has an unexpected shape.
    """
    if not isinstance(raw, Mapping):
        raise TraceError(f"Tracer returned {type(raw).__name__}, expected a mapping.")

    graph: Dict[str, TraceReason] = {}
    for path, reason in raw.items():
        if isinstance(reason, TraceReason):
            graph[str(path)] = reason
            continue
        if not isinstance(reason, Mapping):
            raise TraceError(f"Malformed trace record for {path}: {reason!r}")

        parents = reason.get("parents") or ()
        if isinstance(parents, (set, frozenset)):
            parents = sorted(parents)
        elif isinstance(parents, str):
            raise TraceError(f"Malformed parents for {path}: expected a collection of paths.")

        graph[str(path)] = TraceReason(
            parents=tuple(str(p) for p in parents),
            ignored=bool(reason.get("ignored", False)),
        )
    return graph
