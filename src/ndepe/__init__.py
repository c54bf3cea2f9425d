from __future__ import annotations

from .core.pipeline.engine import node_dep_emit
from .domain.emit_models import EmitResult
from .domain.errors import EmitError, MaterializationError, TraceError

__version__ = "0.1.0"

__all__ = [
    "node_dep_emit",
    "EmitResult",
    "EmitError",
    "MaterializationError",
    "TraceError",
]
