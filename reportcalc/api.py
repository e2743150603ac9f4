"""
Thin, stable API for the report form layer.

Contracts (do not change signatures during form work):
  - resolve_correction_factor(celsius, policy) -> float
  - convert_fahrenheit_to_celsius(f) -> int / convert_celsius_to_fahrenheit(c) -> int
  - apply_correction(raw_value, factor) -> str
  - evaluate_ratio_test(primary, secondary, measured) -> dict
  - apply_edit(state, path, value) -> ReportState

Every lookup requires an explicit policy: "clamp" or "interpolate".
Malformed operator input never raises; wiring defects (unknown paths,
unknown policies) raise ValueError subclasses.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Union
import logging

from . import analysis as A
from . import formulas as F
from . import graph as G
from .calibration import Policy
from .graph import FieldPathError, FieldRef, new_report_state
from .schemas import ReportState

__all__ = [
    "FieldPathError",
    "Policy",
    "ReportState",
    "apply_correction",
    "apply_edit",
    "convert_celsius_to_fahrenheit",
    "convert_fahrenheit_to_celsius",
    "evaluate_insulation",
    "evaluate_ratio_test",
    "load_report_state",
    "new_report_state",
    "recalculate",
    "resolve_correction_factor",
]

logger = logging.getLogger(__name__)


def resolve_correction_factor(celsius: float, policy: Policy) -> float:
    """Temperature correction factor for a °C reading under the given policy."""
    return F.resolve_correction_factor(celsius, policy)


def convert_fahrenheit_to_celsius(f: float) -> int:
    return F.fahrenheit_to_celsius(f)


def convert_celsius_to_fahrenheit(c: float) -> int:
    return F.celsius_to_fahrenheit(c)


def apply_correction(raw_value: str, factor: float) -> str:
    """Corrected reading to two decimals, "" for blank/non-numeric input."""
    return F.apply_correction(raw_value, factor)


def evaluate_ratio_test(primary: str, secondary: str, measured: str) -> Dict[str, str]:
    """Turns ratio row: calculated_ratio, percent_deviation and outcome (Pass/Fail/Blank)."""
    ev = A.evaluate_ratio_test(primary, secondary, measured)
    return {
        "calculated_ratio": ev.calculated_ratio,
        "percent_deviation": ev.percent_deviation,
        "outcome": ev.outcome.value,
    }


def evaluate_insulation(readings: Mapping[str, str], factor: float) -> Dict[str, Any]:
    """Corrected ½/1/10-minute readings with DA and PI."""
    return A.evaluate_insulation(readings, factor).model_dump()


def apply_edit(state: ReportState, path: Union[str, FieldRef], value: Any) -> ReportState:
    """Apply one form edit; returns a new snapshot with every dependent recomputed."""
    try:
        return G.apply_edit(state, path, value)
    except FieldPathError:
        raise
    except Exception:
        logger.exception("apply_edit failed for %s", path)
        raise


def recalculate(state: ReportState) -> ReportState:
    """Full recompute of derived fields (idempotent)."""
    return G.recalculate(state)


def load_report_state(data: Union[str, bytes, Mapping[str, Any]]) -> ReportState:
    """Validate a persisted snapshot (JSON text or dict) without re-deriving it."""
    if isinstance(data, (str, bytes)):
        return ReportState.model_validate_json(data)
    return ReportState.model_validate(data)
