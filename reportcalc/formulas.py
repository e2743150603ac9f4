import math
import re
from decimal import Context, Decimal, ROUND_HALF_UP
from typing import Dict, Optional, Tuple, Union

from . import calibration as CAL
from .anchors import TCF_TABLE
from .calibration import Policy

Number = Union[int, float]

# wide enough for any finite float at the places we format to
_FIXED = Context(prec=400, rounding=ROUND_HALF_UP)
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

# =============================
# Numeric parsing and fixed-point formatting
# =============================

def parse_number(value: object) -> Optional[float]:
    """
    Strict decimal parse of operator input.
    Args:
        value: str, int or float (anything else is not a number)
    Returns:
        float, or None when blank, non-numeric, NaN or infinite
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            x = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        s = value.strip()
        if not _DECIMAL_RE.fullmatch(s):
            return None
        x = float(s)
    else:
        return None
    if not math.isfinite(x):
        return None
    return x

def round_half_away(x: float) -> int:
    """
    Round to the nearest integer, ties away from zero (2.5 → 3, -2.5 → -3).
    Args:
        x: finite float
    Returns:
        int
    """
    return int(_FIXED.quantize(Decimal(x), Decimal(1)))

def format_fixed(x: float, places: int) -> str:
    """
    Format to a fixed number of decimals, ties away from zero on the exact
    binary value (report/export compatibility).
    Args:
        x: finite float
        places: decimal places (>= 0)
    Returns:
        str, e.g. format_fixed(15, 2) == "15.00"
    """
    # -0.0 + 0.0 is 0.0: negative zero prints unsigned
    return str(_FIXED.quantize(Decimal(x + 0.0), Decimal(1).scaleb(-places)))

# =============================
# Temperature conversion (whole degrees, lossy)
# =============================

def fahrenheit_to_celsius(f: Number) -> int:
    """
    °F → whole °C: round((f - 32) * 5/9).
    Converting back with celsius_to_fahrenheit may not return f
    (69 °F → 21 °C → 70 °F); the forms accept this.
    """
    return round_half_away((f - 32) * 5 / 9)

def celsius_to_fahrenheit(c: Number) -> int:
    """°C → whole °F: round(c * 9/5 + 32)."""
    return round_half_away(c * 9 / 5 + 32)

# =============================
# Correction table
# =============================

class CorrectionTable:
    """Immutable integer °C → multiplier table.

    The constructor enforces the chart's shape: contiguous whole degrees,
    non-decreasing multipliers, and 1.0 at the reference temperature.
    """

    __slots__ = ("_entries", "_by_celsius")

    def __init__(self, entries) -> None:
        rows: Tuple[Tuple[int, float], ...] = tuple((int(c), float(m)) for c, m in entries)
        if not rows:
            raise ValueError("correction table is empty")
        for (c0, m0), (c1, m1) in zip(rows, rows[1:]):
            if c1 != c0 + 1:
                raise ValueError(f"correction table not contiguous at {c0} -> {c1}")
            if m1 < m0:
                raise ValueError(f"correction table decreases at {c1} °C")
        if any(m <= 0 or not math.isfinite(m) for _, m in rows):
            raise ValueError("correction multipliers must be finite and > 0")
        by_celsius = dict(rows)
        if by_celsius.get(CAL.REFERENCE_CELSIUS) != 1.0:
            raise ValueError(f"multiplier at {CAL.REFERENCE_CELSIUS} °C must be 1.0")
        object.__setattr__(self, "_entries", rows)
        object.__setattr__(self, "_by_celsius", by_celsius)

    def __setattr__(self, name, value):
        raise AttributeError("CorrectionTable is immutable")

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Tuple[Tuple[int, float], ...]:
        return self._entries

    @property
    def min_celsius(self) -> int:
        return self._entries[0][0]

    @property
    def max_celsius(self) -> int:
        return self._entries[-1][0]

    def lookup(self, celsius: int) -> Optional[float]:
        """Exact multiplier for a whole °C value, None when absent."""
        return self._by_celsius.get(celsius)

    def neighbours(self, celsius: float) -> Tuple[Tuple[int, float], Tuple[int, float]]:
        """Nearest entries strictly below and above a fractional in-range °C value."""
        lo = math.floor(celsius)
        hi = lo + 1
        return (lo, self._by_celsius[lo]), (hi, self._by_celsius[hi])

    def as_dict(self) -> Dict[int, float]:
        return dict(self._by_celsius)


DEFAULT_TABLE = CorrectionTable(TCF_TABLE)

# =============================
# Correction factor resolution
# =============================

def _resolve_clamp(celsius: float, table: CorrectionTable) -> float:
    if not math.isfinite(celsius):
        return CAL.DEFAULT_FACTOR
    m = table.lookup(round_half_away(celsius))
    return CAL.DEFAULT_FACTOR if m is None else m

def _resolve_interpolate(celsius: float, table: CorrectionTable) -> float:
    if math.isnan(celsius):
        return CAL.DEFAULT_FACTOR
    if celsius <= table.min_celsius:
        return table.entries[0][1]
    if celsius >= table.max_celsius:
        return table.entries[-1][1]
    if float(celsius).is_integer():
        return table.lookup(int(celsius))  # type: ignore[return-value]
    (c_lo, m_lo), (c_hi, m_hi) = table.neighbours(celsius)
    return m_lo + (celsius - c_lo) * (m_hi - m_lo) / (c_hi - c_lo)

def resolve_correction_factor(celsius: Number, policy: Policy, table: CorrectionTable = DEFAULT_TABLE) -> float:
    """
    Temperature correction factor (TCF) for a °C reading.
    policy="clamp":       round to whole °C, exact lookup, 1.0 when off-table
    policy="interpolate": exact entry if present, else linear between the
                          neighbouring entries; off-table → nearest edge value
    Args:
        celsius: temperature [°C]
        policy: "clamp" or "interpolate" (no default; each report declares one)
        table: correction table (defaults to the 20 °C reference chart)
    Returns:
        float: finite, positive multiplier
    """
    CAL.check_policy(policy)
    try:
        c = float(celsius)
    except OverflowError:
        # integers beyond float range resolve like ±inf
        c = math.inf if celsius > 0 else -math.inf
    if policy == "clamp":
        return _resolve_clamp(c, table)
    return _resolve_interpolate(c, table)

# =============================
# Corrected readings
# =============================

def apply_correction(raw_value: object, factor: float) -> str:
    """
    Temperature-corrected reading: raw * factor, two decimals.
    Args:
        raw_value: operator-entered text (may be blank or non-numeric)
        factor: correction factor
    Returns:
        str: e.g. "15.00"; "" when raw_value is not a number
    """
    x = parse_number(raw_value)
    if x is None:
        return ""
    corrected = x * factor
    if not math.isfinite(corrected):
        return ""
    return format_fixed(corrected, CAL.CORRECTED_DECIMALS)

def ratio_of(numerator: object, denominator: object, places: int = CAL.INSULATION_RATIO_DECIMALS) -> str:
    """
    Fixed-point ratio of two numeric strings (DA/PI style).
    Returns "" if either side is not a number or the denominator is 0.
    """
    n = parse_number(numerator)
    d = parse_number(denominator)
    if n is None or d is None or d == 0:
        return ""
    r = n / d
    return format_fixed(r, places) if math.isfinite(r) else ""
