"""
Centralized correction and tolerance constants for the report engine.

Values are sourced from anchors.ANCHORS to keep a single definition. Update
anchors.py deliberately when a standard changes and adjust golden tests.
"""
from typing import Dict, Literal

from .anchors import ANCHORS

Policy = Literal["clamp", "interpolate"]
POLICIES = ("clamp", "interpolate")

# --- Correction table reference ---
# TCF is 1.0 at the reference temperature
REFERENCE_CELSIUS: int = int(ANCHORS["REFERENCE_CELSIUS"])  # [°C]
# Returned by the clamp policy for temperatures outside the table
DEFAULT_FACTOR: float = float(ANCHORS["DEFAULT_FACTOR"])

# --- Turns ratio (TTR) acceptance ---
# Pass when -limit < deviation < +limit, deviation in percent
RATIO_PASS_LIMIT_PCT: float = float(ANCHORS["RATIO_PASS_LIMIT_PCT"])

# --- Insulation resistance DA / PI acceptance ---
INSULATION_RATIO_MIN: float = float(ANCHORS["INSULATION_RATIO_MIN"])

# --- Fixed-point output formats ---
CORRECTED_DECIMALS: int = int(ANCHORS["CORRECTED_DECIMALS"])
RATIO_DECIMALS: int = int(ANCHORS["RATIO_DECIMALS"])
DEVIATION_DECIMALS: int = int(ANCHORS["DEVIATION_DECIMALS"])
INSULATION_RATIO_DECIMALS: int = int(ANCHORS["INSULATION_RATIO_DECIMALS"])

# --- Defaults for a freshly opened report ---
DEFAULT_FAHRENHEIT: int = int(ANCHORS["DEFAULT_FAHRENHEIT"])
DEFAULT_HUMIDITY: float = float(ANCHORS["DEFAULT_HUMIDITY"])
DEFAULT_WINDINGS = ("Primary to Ground", "Secondary to Ground", "Primary to Secondary")
DEFAULT_RATIO_ROWS: int = 1

# --- Lookup policy declared by each report form ---
# Forms disagree on which lookup is correct for the test standard. Every
# report type states its policy here instead of inheriting a default.
REPORT_POLICIES: Dict[str, Policy] = {
    "voltage-potential-transformer-mts": "interpolate",
    "low-voltage-cable-ats": "interpolate",
    "low-voltage-cable-mts": "interpolate",
    "low-voltage-cable-12-sets": "interpolate",
    "low-voltage-switch": "interpolate",
    "medium-voltage-switch-oil": "interpolate",
    "medium-voltage-vlf": "interpolate",
    "current-transformer-ats": "clamp",
    "current-transformer-mts": "clamp",
    "automatic-transfer-switch-ats": "clamp",
    "medium-voltage-motor-starter-mts": "clamp",
    "panelboard": "clamp",
}


def policy_for(report_type: str) -> Policy:
    """Return the lookup policy declared for a report type.

    Raises ValueError for report types that declare none; callers must then
    pass a policy explicitly.
    """
    try:
        return REPORT_POLICIES[report_type]
    except KeyError:
        raise ValueError(f"report type {report_type!r} declares no correction policy") from None


def check_policy(policy: str) -> Policy:
    """Validate a policy name (programmer error when unknown)."""
    if policy not in POLICIES:
        raise ValueError("policy must be 'clamp' or 'interpolate'")
    return policy  # type: ignore[return-value]
