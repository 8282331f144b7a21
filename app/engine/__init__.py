from .calculator import (
    compute_breakdown,
    compute_override,
    calculated_total,
    format_cents,
    CalculationError,
    InvalidAmount,
)
from .reconciler import (
    apply_event,
    build_failure_message,
    format_exception_message,
    resolve_final_status_label,
)

__all__ = [
    "compute_breakdown",
    "compute_override",
    "calculated_total",
    "format_cents",
    "CalculationError",
    "InvalidAmount",
    "apply_event",
    "build_failure_message",
    "format_exception_message",
    "resolve_final_status_label",
]
