"""
Derived pass/fail evaluations for report rows (backend-only, no rendering).
Uses formulas and centralized calibration constants; never raises on
operator input.
"""
import math
from typing import Dict, Iterable, Mapping, Optional

from . import formulas as F
from .calibration import (
    DEVIATION_DECIMALS,
    INSULATION_RATIO_MIN,
    RATIO_DECIMALS,
    RATIO_PASS_LIMIT_PCT,
)
from .schemas import INTERVALS, InsulationEvaluation, Outcome, RatioEvaluation


def classify_deviation(deviation_pct: float) -> Outcome:
    """Pass inside the open band (-limit, +limit), Fail on or beyond it."""
    if -RATIO_PASS_LIMIT_PCT < deviation_pct < RATIO_PASS_LIMIT_PCT:
        return Outcome.PASS
    return Outcome.FAIL


def evaluate_ratio_test(primary: str, secondary: str, measured: str) -> RatioEvaluation:
    """Turns ratio (TTR) row evaluation.

    calculated = primary / secondary           (4 decimals)
    deviation  = (calculated - measured) / calculated * 100   (2 decimals)

    The outcome is classified from the displayed (formatted) deviation so the
    printed number and the verdict can never disagree.
    """
    p = F.parse_number(primary)
    s = F.parse_number(secondary)
    if p is None or s is None or s == 0:
        return RatioEvaluation()
    calc = p / s
    if not math.isfinite(calc):
        return RatioEvaluation()
    calculated_ratio = F.format_fixed(calc, RATIO_DECIMALS)

    m = F.parse_number(measured)
    if m is None or calc == 0:
        return RatioEvaluation(calculated_ratio=calculated_ratio)
    dev = (calc - m) / calc * 100
    if not math.isfinite(dev):
        return RatioEvaluation(calculated_ratio=calculated_ratio)
    percent_deviation = F.format_fixed(dev, DEVIATION_DECIMALS)
    return RatioEvaluation(
        calculated_ratio=calculated_ratio,
        percent_deviation=percent_deviation,
        outcome=classify_deviation(float(percent_deviation)),
    )


def evaluate_insulation(readings: Mapping[str, str], factor: float) -> InsulationEvaluation:
    """Correct ½/1/10-minute readings and derive DA and PI from the corrected values.

    DA = R(1 min) / R(½ min), PI = R(10 min) / R(1 min).
    Missing intervals count as blank readings.
    """
    corrected: Dict[str, str] = {k: F.apply_correction(readings.get(k, ""), factor) for k in INTERVALS}
    return InsulationEvaluation(
        corrected=corrected,
        dielectric_absorption=F.ratio_of(corrected["one_minute"], corrected["half_minute"]),
        polarization_index=F.ratio_of(corrected["ten_minute"], corrected["one_minute"]),
    )


def ratios_acceptable(values: Iterable[str]) -> Optional[bool]:
    """Acceptability of a set of DA or PI ratios.

    None while no ratio is numeric yet; otherwise True when every numeric
    ratio exceeds the minimum.
    """
    nums = [x for x in (F.parse_number(v) for v in values) if x is not None]
    if not nums:
        return None
    return all(x > INSULATION_RATIO_MIN for x in nums)
