from __future__ import annotations

"""
Core emit pipeline.

This module coordinates the whole dependency emission:
1. Validates configuration and prepares the output node_modules directory.
2. Discovers entry files and traces them.
3. Classifies every traced file (parallel).
4. Groups files into packages and versions.
5. Resolves the hoisting layout of packages with several versions.
6. Writes single-version packages into their top-level slots (parallel).
7. Writes multi-version packages into isolated directories and links them
   to the top-level slot and to their consumers (parallel per package).
8. Writes the production package.json.

Per-file and per-link problems are collected in the run report; problems
that make the output unusable (output directory, tracer, file writes) are
raised as EmitError subclasses.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from ndepe.core.pipeline.classifier import ClassifierContext, classify_trace
from ndepe.core.pipeline.grouping import CopyWholePackage, group_packages
from ndepe.core.pipeline.hoisting import resolve_layout
from ndepe.core.pipeline.linker import consumer_link_path, isolated_package_path, link_package
from ndepe.core.pipeline.manifest import ModifyPackageJson, read_project_manifest, synthesize_manifest
from ndepe.core.pipeline.materializer import write_package
from ndepe.core.pipeline.validator import validate_config
from ndepe.core.services.cache import CacheOptions
from ndepe.core.services.manifest import ManifestReader
from ndepe.core.tracing.adapter import TraceFunction, trace_project
from ndepe.core.tracing.entries import find_entry_files
from ndepe.domain.constants import MANIFEST_FILE_NAME, STORE_DIR_NAME
from ndepe.domain.emit_models import (
    EmitReport,
    EmitResult,
    PackageLayout,
    StepOutcome,
    create_success_result,
)
from ndepe.domain.errors import EmitError, MaterializationError
from ndepe.domain.trace_models import TracedPackage
from ndepe.infra.fs import safe_mkdir, write_json

logger = logging.getLogger(__name__)


def node_dep_emit(
        config: Optional[Dict[str, Any]],
        *,
        trace_files: Optional[TraceFunction] = None,
        entry_filter: Optional[Callable[[str], bool]] = None,
        modify_package_json: Optional[ModifyPackageJson] = None,
        copy_whole_package: Optional[CopyWholePackage] = None,
) -> EmitResult:
    """
    Emit the production node_modules of a project into its source directory.

    Args:
        config: The configuration dictionary (raw or partial).
        trace_files: Tracer override; defaults to @vercel/nft through node.
        entry_filter: Predicate selecting which discovered files seed the trace.
        modify_package_json: Hook applied to the synthesized package.json.
        copy_whole_package: Policy deciding which packages are copied in full.

    Returns:
        EmitResult: Layout, manifest and per-phase report of the run.

    Raises:
        EmitError: The output directory cannot be created.
        TraceError: The tracer failed.
        MaterializationError: A package file or manifest could not be written.
    """
    logger.info("Emit started.")

    # -------------------------------------------------------------------------
    # 1) Config & Output Preparation
    # -------------------------------------------------------------------------
    cfg, warnings = validate_config(config, strict=False)
    for warning in warnings:
        logger.warning(f"Configuration Warning: {warning}")

    app_dir = cfg["app_dir"]
    source_dir = cfg["source_dir"]
    if os.path.realpath(app_dir) == os.path.realpath(source_dir):
        logger.warning("source_dir equals app_dir: every file below it counts as project source.")

    store_dir = os.path.join(source_dir, STORE_DIR_NAME)
    created, error = safe_mkdir(store_dir)
    if not created:
        raise EmitError(f"Failed to create output directory {store_dir}: {error}")

    report = EmitReport()

    # -------------------------------------------------------------------------
    # 2) Entry Discovery & Trace
    # -------------------------------------------------------------------------
    entry_files = find_entry_files(source_dir, entry_filter)
    known = set(entry_files)
    entry_files.extend(p for p in cfg["include_entries"] if p not in known)
    if not entry_files:
        logger.warning(f"No entry files found in {source_dir}.")

    graph = trace_project(
        entry_files,
        source_dir=source_dir,
        base=cfg["trace_base"],
        cache_options=CacheOptions.from_config(cfg),
        trace_options=cfg["trace_options"],
        trace_files=trace_files,
        node_binary=cfg["node_binary"],
    )

    # -------------------------------------------------------------------------
    # 3) Classification, Grouping & Layout
    # -------------------------------------------------------------------------
    manifests = ManifestReader()
    traced_files, outcomes = classify_trace(
        graph, ClassifierContext.from_config(cfg), manifests, cfg["max_workers"]
    )
    for outcome in outcomes:
        report.record("classify", outcome)

    packages, attributed = group_packages(traced_files, manifests, copy_whole_package)
    layouts = resolve_layout(packages, attributed)

    # -------------------------------------------------------------------------
    # 4) Materialization & Linking
    # -------------------------------------------------------------------------
    simple = [layout for layout in layouts.values() if not layout.is_conflicted]
    conflicted = [layout for layout in layouts.values() if layout.is_conflicted]

    logger.info(f"Writing {len(simple)} packages...")
    with ThreadPoolExecutor(max_workers=cfg["max_workers"], thread_name_prefix="Writer") as executor:
        futures = [
            executor.submit(write_package, packages[layout.name], layout.canonical_version, source_dir)
            for layout in simple
        ]
        for future in futures:
            future.result()

    if conflicted:
        logger.info(f"Isolating {len(conflicted)} packages with multiple versions...")
    with ThreadPoolExecutor(max_workers=cfg["max_workers"], thread_name_prefix="Isolator") as executor:
        futures = [
            executor.submit(_emit_conflicted, packages[layout.name], layout, layouts, source_dir)
            for layout in conflicted
        ]
        for future in futures:
            for outcome in future.result():
                report.record("link", outcome)

    # -------------------------------------------------------------------------
    # 5) Production Manifest
    # -------------------------------------------------------------------------
    manifest = synthesize_manifest(read_project_manifest(app_dir), layouts, modify_package_json)
    manifest_path = os.path.join(source_dir, MANIFEST_FILE_NAME)
    try:
        write_json(manifest_path, manifest)
    except OSError as e:
        raise MaterializationError(f"Cannot write {manifest_path}: {e}", manifest_path) from e

    result = create_success_result(cfg, entry_files, manifest_path, manifest, layouts, report)
    for failure in report.failures:
        logger.warning(f"Unresolved link {failure.subject}: {failure.reason}")
    logger.info(
        f"Emit finished: {result.summary['packages']} packages, "
        f"{result.summary['links_created']} links created, "
        f"{result.summary['link_failures']} link failures."
    )
    return result


def _emit_conflicted(
        package: TracedPackage,
        layout: PackageLayout,
        layouts: Dict[str, PackageLayout],
        project_dir: str,
) -> List[StepOutcome]:
    """Write every version in hoisting order, then link it to the top-level slot and its consumers."""
    outcomes: List[StepOutcome] = []
    for version in layout.versions:
        isolated = isolated_package_path(package.name, version)
        write_package(package, version, project_dir, isolated)

        # Only the first version gets the slot; later attempts report already-linked
        outcomes.append(link_package(isolated, package.name, project_dir))

        for consumer in layout.parents.get(version, []):
            consumer_layout = layouts.get(consumer.name)
            consumer_conflicted = consumer_layout is not None and consumer_layout.is_conflicted
            destination = consumer_link_path(consumer, package.name, consumer_conflicted)
            outcomes.append(link_package(isolated, destination, project_dir))
    return outcomes
