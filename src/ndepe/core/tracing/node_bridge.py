from __future__ import annotations

"""
Node File Trace Bridge.

Default tracer implementation. Runs a small script under `node` that loads
@vercel/nft from the project's own dependencies, traces the entry files and
reports, for every file it reached, the files that required it.

The request and response travel as JSON over stdin/stdout. Cache slots cross
the process boundary in the same tagged map/set encoding the cache store
persists, so Maps and Sets survive in both directions.
"""

import json
import logging
import subprocess
from typing import Any, Dict, List, Optional

from ndepe.core.services.cache import CacheBundle, decode_cache_value, encode_cache_value
from ndepe.domain.errors import CacheFormatError, TraceError

logger = logging.getLogger(__name__)

# Python slot name -> key of the nft `cache` option
NFT_CACHE_KEYS: Dict[str, str] = {
    "analysis": "analysisCache",
    "file": "fileCache",
    "symlink": "symlinkCache",
}

BRIDGE_SCRIPT = r"""
const path = require("path");
const { createRequire } = require("module");

const TYPE_TAG = "__type__";

function revive(key, value) {
  if (value && typeof value === "object" && !Array.isArray(value)) {
    if (value[TYPE_TAG] === "map") return new Map(value.entries);
    if (value[TYPE_TAG] === "set") return new Set(value.items);
  }
  return value;
}

function replace(key, value) {
  if (value instanceof Map) return { [TYPE_TAG]: "map", entries: Array.from(value.entries()) };
  if (value instanceof Set) return { [TYPE_TAG]: "set", items: Array.from(value) };
  return value;
}

async function settle(map) {
  const out = new Map();
  for (const [key, value] of map) out.set(key, await value);
  return out;
}

async function main() {
  const chunks = [];
  for await (const chunk of process.stdin) chunks.push(chunk);
  const request = JSON.parse(Buffer.concat(chunks).toString("utf8"), revive);

  const requireFromProject = createRequire(path.join(request.processCwd, "__ndepe_bridge__.js"));
  const { nodeFileTrace } = requireFromProject("@vercel/nft");

  const cache = {};
  for (const [slot, value] of Object.entries(request.cache || {})) {
    if (value) cache[slot] = value;
  }

  const result = await nodeFileTrace(request.entryFiles, {
    base: request.base,
    processCwd: request.processCwd,
    cache,
    ...(request.traceOptions || {}),
  });

  const reasons = {};
  for (const [file, reason] of result.reasons) {
    reasons[file] = { parents: Array.from(reason.parents || []), ignored: Boolean(reason.ignored) };
  }

  const settled = {};
  for (const slot of request.cacheSlots) {
    if (cache[slot] instanceof Map) settled[slot] = await settle(cache[slot]);
  }

  process.stdout.write(JSON.stringify({ reasons, cache: settled }, replace));
}

main().catch((err) => {
  process.stderr.write(String((err && err.stack) || err) + "\n");
  process.exit(1);
});
"""


def trace_with_node(
        entry_files: List[str],
        *,
        base: str,
        process_cwd: str,
        cache: CacheBundle,
        trace_options: Optional[Dict[str, Any]] = None,
        node_binary: str = "node",
) -> Dict[str, Any]:
    """
    Trace entry files with @vercel/nft in a node subprocess.

    Cache slots of the bundle are sent to the tracer and replaced in place by
    the caches it returns.

    Args:
        entry_files: Absolute entry file paths.
        base: Base directory nft reports paths relative to.
        process_cwd: Working directory of the traced application.
        cache: Cache bundle, updated in place.
        trace_options: Extra nft options (must be JSON-serializable).
        node_binary: Node executable.

    Returns:
        Dict[str, Any]: Raw trace graph {path: {"parents": [...], "ignored": bool}}.

    Raises:
        TraceError: Node cannot be started, exits with an error or prints invalid output.
    """
    request = {
        "entryFiles": list(entry_files),
        "base": base,
        "processCwd": process_cwd,
        "traceOptions": trace_options or {},
        "cacheSlots": list(NFT_CACHE_KEYS.values()),
        "cache": {
            NFT_CACHE_KEYS[slot]: encode_cache_value(value) if value is not None else None
            for slot, value in cache.slots()
        },
    }

    try:
        payload = json.dumps(request)
    except TypeError as e:
        raise TraceError(f"Trace options are not JSON-serializable: {e}") from e

    logger.debug(f"Starting node tracer ({node_binary}) for {len(entry_files)} entries")
    try:
        proc = subprocess.run(
            [node_binary, "-e", BRIDGE_SCRIPT],
            input=payload,
            capture_output=True,
            text=True,
            encoding="utf-8",
            cwd=process_cwd,
            check=False,
        )
    except OSError as e:
        raise TraceError(f"Cannot start node tracer '{node_binary}': {e}") from e

    if proc.returncode != 0:
        detail = (proc.stderr or "").strip().splitlines()
        tail = "\n".join(detail[-10:])
        raise TraceError(f"Node tracer exited with code {proc.returncode}:\n{tail}")

    try:
        response = json.loads(proc.stdout)
        reasons = response["reasons"]
        returned_cache = response.get("cache") or {}
        for slot, key in NFT_CACHE_KEYS.items():
            if key in returned_cache:
                setattr(cache, slot, decode_cache_value(returned_cache[key]))
    except (ValueError, KeyError, TypeError, CacheFormatError) as e:
        raise TraceError(f"Malformed tracer output: {e}") from e

    if not isinstance(reasons, dict):
        raise TraceError("Malformed tracer output: 'reasons' is not an object.")
    return reasons
