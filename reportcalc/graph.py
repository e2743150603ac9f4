"""
Field recalculation graph: applies one form edit and recomputes its dependents.

Every edit works on a deep copy and returns a new, fully consistent
ReportState; callers holding an older snapshot never see it change.

String paths from the form layer are parsed once into typed field
references. DEPENDENCIES states which derived outputs each kind of input
drives; _STEPS holds the code that recomputes each output.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union

from . import analysis as A
from . import calibration as CAL
from . import formulas as F
from .calibration import Policy
from .schemas import (
    INTERVALS,
    InsulationResistanceRow,
    MeasuredField,
    RatioTestRow,
    ReportState,
    ResistanceUnit,
    TemperatureReading,
)

logger = logging.getLogger(__name__)


class FieldPathError(ValueError):
    """Unknown, read-only or out-of-range field path (a wiring defect in the caller)."""
    pass


# --- Typed field references ---

@dataclass(frozen=True)
class TemperatureField:
    name: str  # fahrenheit | celsius | humidity

    def __str__(self) -> str:
        return f"temperature.{self.name}"


@dataclass(frozen=True)
class ReadingField:
    row: int
    interval: str  # half_minute | one_minute | ten_minute
    name: str  # raw_value | unit

    def __str__(self) -> str:
        return f"insulation[{self.row}].readings.{self.interval}.{self.name}"


@dataclass(frozen=True)
class InsulationLabelField:
    row: int
    name: str  # winding | test_voltage

    def __str__(self) -> str:
        return f"insulation[{self.row}].{self.name}"


@dataclass(frozen=True)
class RatioInputField:
    row: int
    name: str  # primary_reference | secondary_reference | measured_ratio

    def __str__(self) -> str:
        return f"ratio_tests[{self.row}].{self.name}"


FieldRef = Union[TemperatureField, ReadingField, InsulationLabelField, RatioInputField]

_PATTERNS: Tuple[Tuple[re.Pattern, Callable[..., FieldRef]], ...] = (
    (re.compile(r"temperature\.(fahrenheit|celsius|humidity)"),
     lambda name: TemperatureField(name)),
    (re.compile(r"insulation\[(\d+)\]\.readings\.(half_minute|one_minute|ten_minute)\.(raw_value|unit)"),
     lambda row, interval, name: ReadingField(int(row), interval, name)),
    (re.compile(r"insulation\[(\d+)\]\.(winding|test_voltage)"),
     lambda row, name: InsulationLabelField(int(row), name)),
    (re.compile(r"ratio_tests\[(\d+)\]\.(primary_reference|secondary_reference|measured_ratio)"),
     lambda row, name: RatioInputField(int(row), name)),
)

# Fields only the engine writes (or fixed at creation)
_READ_ONLY = {
    "correction_factor", "corrected_value", "calculated_ratio", "percent_deviation", "outcome",
    "dielectric_absorption", "polarization_index", "dielectric_absorption_acceptable",
    "polarization_index_acceptable", "policy", "report_type",
}


def parse_field_path(path: str) -> FieldRef:
    """Parse a form field path into a typed reference. Raises FieldPathError."""
    for pattern, build in _PATTERNS:
        m = pattern.fullmatch(path)
        if m:
            return build(*m.groups())
    leaf = re.split(r"[.\]]", path)[-1]
    if leaf in _READ_ONLY:
        raise FieldPathError(f"{path!r} is derived or fixed and cannot be edited")
    raise FieldPathError(f"unknown field path {path!r}")


# --- Dependency table: edited input -> derived outputs, in recompute order ---

DEPENDENCIES: Dict[str, Tuple[str, ...]] = {
    "fahrenheit": ("celsius", "correction_factor", "all_insulation", "acceptability"),
    "celsius": ("fahrenheit", "correction_factor", "all_insulation", "acceptability"),
    "humidity": (),
    "raw_value": ("row_insulation", "acceptability"),
    "unit": (),
    "winding": (),
    "test_voltage": (),
    "primary_reference": ("ratio_row",),
    "secondary_reference": ("ratio_row",),
    "measured_ratio": ("ratio_row",),
}


def _recompute_insulation_row(row: InsulationResistanceRow, factor: float) -> None:
    ev = A.evaluate_insulation({k: f.raw_value for k, f in row.readings.items()}, factor)
    for k, value in ev.corrected.items():
        row.readings[k].corrected_value = value
    row.dielectric_absorption = ev.dielectric_absorption
    row.polarization_index = ev.polarization_index


def _recompute_ratio_row(row: RatioTestRow) -> None:
    ev = A.evaluate_ratio_test(row.primary_reference, row.secondary_reference, row.measured_ratio)
    row.calculated_ratio = ev.calculated_ratio
    row.percent_deviation = ev.percent_deviation
    row.outcome = ev.outcome


def _step_celsius(state: ReportState, ref: FieldRef) -> None:
    state.temperature.celsius = F.fahrenheit_to_celsius(state.temperature.fahrenheit)


def _step_fahrenheit(state: ReportState, ref: FieldRef) -> None:
    state.temperature.fahrenheit = F.celsius_to_fahrenheit(state.temperature.celsius)


def _step_correction_factor(state: ReportState, ref: FieldRef) -> None:
    state.temperature.correction_factor = F.resolve_correction_factor(state.temperature.celsius, state.policy)


def _step_all_insulation(state: ReportState, ref: FieldRef) -> None:
    for row in state.insulation:
        _recompute_insulation_row(row, state.temperature.correction_factor)


def _step_row_insulation(state: ReportState, ref: FieldRef) -> None:
    _recompute_insulation_row(state.insulation[ref.row], state.temperature.correction_factor)  # type: ignore[union-attr]


def _step_acceptability(state: ReportState, ref: FieldRef) -> None:
    state.dielectric_absorption_acceptable = A.ratios_acceptable(r.dielectric_absorption for r in state.insulation)
    state.polarization_index_acceptable = A.ratios_acceptable(r.polarization_index for r in state.insulation)


def _step_ratio_row(state: ReportState, ref: FieldRef) -> None:
    _recompute_ratio_row(state.ratio_tests[ref.row])  # type: ignore[union-attr]


_STEPS: Dict[str, Callable[[ReportState, FieldRef], None]] = {
    "celsius": _step_celsius,
    "fahrenheit": _step_fahrenheit,
    "correction_factor": _step_correction_factor,
    "all_insulation": _step_all_insulation,
    "row_insulation": _step_row_insulation,
    "acceptability": _step_acceptability,
    "ratio_row": _step_ratio_row,
}


def _check_row(ref: FieldRef, rows: list) -> None:
    if not 0 <= ref.row < len(rows):  # type: ignore[union-attr]
        raise FieldPathError(f"{ref} is out of range ({len(rows)} rows)")


def _write(state: ReportState, ref: FieldRef, value: Any) -> bool:
    """Store the edited value; False when operator input was not usable."""
    if isinstance(ref, TemperatureField):
        x = F.parse_number(value)
        if x is None:
            return False
        if ref.name == "humidity":
            state.temperature.humidity = x
            return True
        degrees = F.round_half_away(x)
        convert = F.celsius_to_fahrenheit if ref.name == "celsius" else F.fahrenheit_to_celsius
        try:
            convert(degrees)
        except OverflowError:
            # finite, but its paired unit is beyond float range
            return False
        setattr(state.temperature, ref.name, degrees)
        return True
    if isinstance(ref, ReadingField):
        _check_row(ref, state.insulation)
        field = state.insulation[ref.row].readings[ref.interval]
        if ref.name == "unit":
            field.unit = ResistanceUnit(value)
        else:
            field.raw_value = _text(value)
        return True
    if isinstance(ref, InsulationLabelField):
        _check_row(ref, state.insulation)
        setattr(state.insulation[ref.row], ref.name, _text(value))
        return True
    _check_row(ref, state.ratio_tests)
    setattr(state.ratio_tests[ref.row], ref.name, _text(value))
    return True


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def apply_edit(state: ReportState, path: Union[str, FieldRef], value: Any) -> ReportState:
    """Apply one form edit and return the recomputed snapshot.

    Temperature edits re-derive the paired unit, the correction factor and
    every corrected reading; reading and ratio edits recompute only their own
    row. Unusable temperature input (blank, non-numeric) leaves the stored
    reading as it was.
    """
    ref = parse_field_path(path) if isinstance(path, str) else path
    new = state.model_copy(deep=True)
    if not _write(new, ref, value):
        logger.debug("ignored non-numeric input %r for %s", value, ref)
        return new
    for step in DEPENDENCIES[ref.name]:
        _STEPS[step](new, ref)
    logger.debug("applied %s=%r (%d dependents)", ref, value, len(DEPENDENCIES[ref.name]))
    return new


def recalculate(state: ReportState) -> ReportState:
    """Recompute every derived field from the stored inputs (e.g. before saving).

    The stored Celsius value is authoritative for the correction factor.
    Idempotent: a consistent snapshot comes back unchanged.
    """
    new = state.model_copy(deep=True)
    _step_correction_factor(new, None)  # type: ignore[arg-type]
    _step_all_insulation(new, None)  # type: ignore[arg-type]
    _step_acceptability(new, None)  # type: ignore[arg-type]
    for row in new.ratio_tests:
        _recompute_ratio_row(row)
    return new


def new_report_state(
    *,
    report_type: str,
    policy: Optional[Policy] = None,
    fahrenheit: int = CAL.DEFAULT_FAHRENHEIT,
    humidity: float = CAL.DEFAULT_HUMIDITY,
    windings: Iterable[str] = CAL.DEFAULT_WINDINGS,
    ratio_rows: int = CAL.DEFAULT_RATIO_ROWS,
    unit: ResistanceUnit = ResistanceUnit.MEGA_OHM,
) -> ReportState:
    """Fresh, fully derived state for a newly opened report.

    The policy comes from the report type's declaration unless given here.
    """
    policy = CAL.check_policy(policy) if policy is not None else CAL.policy_for(report_type)
    fahrenheit = F.round_half_away(fahrenheit)
    celsius = F.fahrenheit_to_celsius(fahrenheit)
    state = ReportState(
        report_type=report_type,
        policy=policy,
        temperature=TemperatureReading(
            fahrenheit=fahrenheit,
            celsius=celsius,
            correction_factor=F.resolve_correction_factor(celsius, policy),
            humidity=humidity,
        ),
        insulation=[
            InsulationResistanceRow(
                winding=w,
                readings={k: MeasuredField(unit=unit) for k in INTERVALS},
            )
            for w in windings
        ],
        ratio_tests=[RatioTestRow() for _ in range(ratio_rows)],
    )
    return recalculate(state)
