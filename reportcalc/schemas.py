from __future__ import annotations
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .calibration import Policy

# Common helpers
Positive = Annotated[float, Field(gt=0)]


class ResistanceUnit(str, Enum):
    MICRO_OHM = "µΩ"
    MILLI_OHM = "mΩ"
    OHM = "Ω"
    KILO_OHM = "kΩ"
    MEGA_OHM = "MΩ"
    GIGA_OHM = "GΩ"
    TERA_OHM = "TΩ"


class Outcome(str, Enum):
    PASS = "Pass"
    FAIL = "Fail"
    # set by the form layer for rows not tested; never produced by evaluation
    NOT_APPLICABLE = "NotApplicable"
    BLANK = "Blank"


Interval = Literal["half_minute", "one_minute", "ten_minute"]
INTERVALS: tuple = ("half_minute", "one_minute", "ten_minute")


class TemperatureReading(BaseModel):
    model_config = ConfigDict(extra="forbid")
    fahrenheit: int
    celsius: int
    correction_factor: Positive
    humidity: float = 0.0


class MeasuredField(BaseModel):
    model_config = ConfigDict(extra="forbid")
    raw_value: str = ""
    unit: ResistanceUnit = ResistanceUnit.MEGA_OHM
    corrected_value: str = ""


class InsulationResistanceRow(BaseModel):
    model_config = ConfigDict(extra="forbid")
    winding: str
    test_voltage: str = ""
    readings: Dict[Interval, MeasuredField] = Field(
        default_factory=lambda: {k: MeasuredField() for k in INTERVALS}
    )
    dielectric_absorption: str = ""
    polarization_index: str = ""

    @model_validator(mode="after")
    def _all_intervals(self) -> "InsulationResistanceRow":
        for k in INTERVALS:
            self.readings.setdefault(k, MeasuredField())
        return self


class RatioTestRow(BaseModel):
    model_config = ConfigDict(extra="forbid")
    primary_reference: str = ""
    secondary_reference: str = ""
    measured_ratio: str = ""
    calculated_ratio: str = ""
    percent_deviation: str = ""
    outcome: Outcome = Outcome.BLANK


class RatioEvaluation(BaseModel):
    model_config = ConfigDict(frozen=True)
    calculated_ratio: str = ""
    percent_deviation: str = ""
    outcome: Outcome = Outcome.BLANK


class InsulationEvaluation(BaseModel):
    model_config = ConfigDict(frozen=True)
    corrected: Dict[Interval, str]
    dielectric_absorption: str = ""
    polarization_index: str = ""


class ReportState(BaseModel):
    """Everything the engine derives for one open report.

    Serialized wholesale (derived fields included) by the persistence layer.
    """
    model_config = ConfigDict(extra="forbid")
    report_type: str
    policy: Policy
    temperature: TemperatureReading
    insulation: List[InsulationResistanceRow] = Field(default_factory=list)
    ratio_tests: List[RatioTestRow] = Field(default_factory=list)
    # None until some row has a numeric ratio
    dielectric_absorption_acceptable: Optional[bool] = None
    polarization_index_acceptable: Optional[bool] = None
