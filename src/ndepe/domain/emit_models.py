from __future__ import annotations

"""
Emit Domain Data Models.

Defines the tagged per-item outcome used by every fan-out phase, the layout
chosen for each package and the result object returned by an emit run.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ndepe.domain.trace_models import PackageRef

# -----------------------------------------------------------------------------
# PER-ITEM OUTCOMES
# -----------------------------------------------------------------------------

STATUS_OK = "ok"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class StepOutcome:
    """
    Result of one classification, copy or link operation.

    Attributes:
        status: One of 'ok', 'skipped', 'failed'.
        subject: Path or identifier the operation was about.
        reason: Skip reason or error description.
        value: Payload produced on success (e.g. a TracedFile).
    """
    status: str
    subject: str
    reason: str = ""
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


def ok_outcome(subject: str, value: Any = None) -> StepOutcome:
    return StepOutcome(STATUS_OK, subject, "", value)


def skipped_outcome(subject: str, reason: str) -> StepOutcome:
    return StepOutcome(STATUS_SKIPPED, subject, reason)


def failed_outcome(subject: str, reason: str) -> StepOutcome:
    return StepOutcome(STATUS_FAILED, subject, reason)


# -----------------------------------------------------------------------------
# LAYOUT
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class PackageLayout:
    """
    Placement decision for one package.

    Attributes:
        name: Package name.
        versions: Versions in hoisting order; the first is canonical.
        parents: For conflicted packages, the consuming packages of each version.
    """
    name: str
    versions: List[str]
    parents: Dict[str, List[PackageRef]] = field(default_factory=dict)

    @property
    def canonical_version(self) -> str:
        return self.versions[0]

    @property
    def is_conflicted(self) -> bool:
        return len(self.versions) > 1


# -----------------------------------------------------------------------------
# RUN REPORT
# -----------------------------------------------------------------------------

@dataclass
class EmitReport:
    """
    Mutable collector filled phase by phase during a run.

    Only non-ok outcomes are retained; ok outcomes are counted.
    """
    counters: Dict[str, Dict[str, int]] = field(default_factory=dict)
    issues: List[StepOutcome] = field(default_factory=list)

    def record(self, phase: str, outcome: StepOutcome) -> None:
        phase_counts = self.counters.setdefault(
            phase, {STATUS_OK: 0, STATUS_SKIPPED: 0, STATUS_FAILED: 0}
        )
        phase_counts[outcome.status] = phase_counts.get(outcome.status, 0) + 1
        if not outcome.ok:
            self.issues.append(outcome)

    def count(self, phase: str, status: str) -> int:
        return self.counters.get(phase, {}).get(status, 0)

    @property
    def failures(self) -> List[StepOutcome]:
        return [o for o in self.issues if o.status == STATUS_FAILED]


@dataclass(frozen=True)
class EmitResult:
    """
    Outcome of a complete emit run.

    Attributes:
        ok: The run finished (individual link failures do not clear this flag).
        error: Fatal error description when ok is False.
        app_dir: Project root.
        source_dir: Output root.
        entry_files: Entry files handed to the tracer.
        manifest_path: Path of the synthesized package.json.
        manifest: The manifest as written.
        layouts: Placement decision per package name.
        report: Per-phase counters and non-ok outcomes.
        summary: Flat statistics for rendering.
    """
    ok: bool
    error: str
    app_dir: str
    source_dir: str
    entry_files: List[str] = field(default_factory=list)
    manifest_path: str = ""
    manifest: Dict[str, Any] = field(default_factory=dict)
    layouts: Dict[str, PackageLayout] = field(default_factory=dict)
    report: EmitReport = field(default_factory=EmitReport)
    summary: Dict[str, Any] = field(default_factory=dict)


def create_error_result(
        error: str,
        cfg: Dict[str, Any],
        report: Optional[EmitReport] = None,
) -> EmitResult:
    """
    Create a failed emit result.

    Args:
        error: Fatal error description.
        cfg: Configuration used during the failed run.
        report: Whatever was collected before the failure.

    Returns:
        EmitResult: An error result.
    """
    return EmitResult(
        ok=False,
        error=error,
        app_dir=cfg.get("app_dir", ""),
        source_dir=cfg.get("source_dir", ""),
        report=report or EmitReport(),
    )


def create_success_result(
        cfg: Dict[str, Any],
        entry_files: List[str],
        manifest_path: str,
        manifest: Dict[str, Any],
        layouts: Dict[str, PackageLayout],
        report: EmitReport,
) -> EmitResult:
    """
    Create a successful emit result and derive its summary statistics.

    Args:
        cfg: Final configuration used during execution.
        entry_files: Entry files handed to the tracer.
        manifest_path: Path of the synthesized package.json.
        manifest: The manifest as written.
        layouts: Placement decision per package.
        report: Collected outcomes.

    Returns:
        EmitResult: A success result.
    """
    conflicted = sorted(name for name, layout in layouts.items() if layout.is_conflicted)
    summary = {
        "entries": len(entry_files),
        "packages": len(layouts),
        "conflicted_packages": conflicted,
        "files_classified": report.count("classify", STATUS_OK),
        "files_skipped": report.count("classify", STATUS_SKIPPED),
        "links_created": report.count("link", STATUS_OK),
        "links_existing": report.count("link", STATUS_SKIPPED),
        "link_failures": report.count("link", STATUS_FAILED),
    }
    return EmitResult(
        ok=True,
        error="",
        app_dir=cfg.get("app_dir", ""),
        source_dir=cfg.get("source_dir", ""),
        entry_files=list(entry_files),
        manifest_path=manifest_path,
        manifest=manifest,
        layouts=layouts,
        report=report,
        summary=summary,
    )
