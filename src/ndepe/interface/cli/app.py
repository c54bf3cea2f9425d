from __future__ import annotations

"""
Command Line Interface (CLI) Application Controller.

Orchestrates the CLI lifecycle: logging bootstrap, merging of CLI overrides
over the defaults, emit execution and result rendering.
"""

import json
import os
import sys
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from ndepe.core.pipeline.engine import node_dep_emit
from ndepe.core.pipeline.validator import validate_config
from ndepe.domain.config import get_default_config
from ndepe.domain.emit_models import EmitResult, create_error_result
from ndepe.domain.errors import EmitError
from ndepe.infra.logging import LoggingConfig, configure_logging, get_logger
from ndepe.interface.cli import args as cli_args

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# ENTRYPOINT ORCHESTRATOR
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """
    Execute the CLI workflow.

    Args:
        argv: Optional list of command line arguments. Defaults to sys.argv.

    Returns:
        int: 0 on success, 1 on a fatal run error, 2 on invalid input
             directories, 130 when interrupted.
    """
    parser = cli_args.build_parser()
    args = parser.parse_args(argv)

    log_level = "DEBUG" if args.debug else "INFO"
    configure_logging(LoggingConfig(level=log_level, console=True, log_file=None))

    overrides = cli_args.args_to_overrides(args)
    raw_conf = _merge_config(get_default_config(), overrides)

    clean_conf, warnings = validate_config(raw_conf, strict=False)
    for w in warnings:
        logger.warning(f"Configuration Constraint: {w}")

    if args.dump_config:
        print(json.dumps(clean_conf, ensure_ascii=False, indent=2))
        return 0

    for field in ("app_dir", "source_dir"):
        path = clean_conf[field]
        if not os.path.isdir(path):
            msg = f"{field} is not a directory: {path}"
            logger.error(msg)
            print(f"ERROR: {msg}", file=sys.stderr)
            return 2

    logger.info(f"Emitting dependencies of {clean_conf['app_dir']} into {clean_conf['source_dir']}")
    try:
        result = node_dep_emit(clean_conf)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        print("Interrupted.", file=sys.stderr)
        return 130
    except EmitError as e:
        logger.critical(f"Emit failed: {e}", exc_info=True)
        result = create_error_result(str(e), clean_conf)

    if args.json_output:
        print(json.dumps(asdict(result), ensure_ascii=False, indent=2, default=str))
    else:
        _print_human_summary(result)

    return 0 if result.ok else 1

# -----------------------------------------------------------------------------
# CONFIGURATION MERGING
# -----------------------------------------------------------------------------

def _merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow-merge known, non-None overrides into the base configuration."""
    out = dict(base)
    for k, v in overrides.items():
        if k in base and v is not None:
            out[k] = v
    return out

# -----------------------------------------------------------------------------
# VIEW RENDERING (HUMAN READABLE)
# -----------------------------------------------------------------------------

def _print_human_summary(result: EmitResult) -> None:
    """Print the run result as a short terminal report."""
    if not result.ok:
        print(f"ERROR: {result.error}", file=sys.stderr)
        return

    summary = result.summary
    print("Emit completed.")
    print(f"Output: {os.path.dirname(result.manifest_path)}")

    labels = {
        "entries": "Entry files",
        "packages": "Packages",
        "files_classified": "Dependency files",
        "files_skipped": "Trace records skipped",
        "links_created": "Links created",
        "links_existing": "Links already present",
        "link_failures": "Link failures",
    }
    for key, label in labels.items():
        print(f"{label}: {summary.get(key, 0)}")

    conflicted = summary.get("conflicted_packages") or []
    if conflicted:
        print("\nPackages with multiple versions:")
        for name in conflicted:
            layout = result.layouts[name]
            print(f"  - {name}: {', '.join(layout.versions)} (top-level {layout.canonical_version})")

    failures = result.report.failures
    if failures:
        print("\nUnresolved links:")
        for failure in failures:
            print(f"  - {failure.subject}: {failure.reason}")

# -----------------------------------------------------------------------------
# CLI ENTRYPOINT
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
