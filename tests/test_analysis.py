import pytest

from reportcalc import analysis as A
from reportcalc import calibration as CAL
from reportcalc.schemas import Outcome


def test_zero_secondary_is_blank():
    ev = A.evaluate_ratio_test("120", "0", "1")
    assert ev.calculated_ratio == ""
    assert ev.percent_deviation == ""
    assert ev.outcome is Outcome.BLANK


def test_exact_ratio_passes():
    ev = A.evaluate_ratio_test("120", "10", "12")
    assert (ev.calculated_ratio, ev.percent_deviation, ev.outcome) == ("12.0000", "0.00", Outcome.PASS)


def test_five_percent_off_fails():
    ev = A.evaluate_ratio_test("120", "10", "11.4")
    assert ev.calculated_ratio == "12.0000"
    assert ev.percent_deviation == "5.00"
    assert ev.outcome is Outcome.FAIL


@pytest.mark.parametrize("measured, deviation, outcome", [
    ("99.5", "0.50", Outcome.PASS),
    ("100.5", "-0.50", Outcome.PASS),
    ("99.49", "0.51", Outcome.FAIL),
    ("100.51", "-0.51", Outcome.FAIL),
    ("90", "10.00", Outcome.FAIL),
])
def test_tolerance_band(measured, deviation, outcome):
    ev = A.evaluate_ratio_test("1000", "10", measured)
    assert ev.calculated_ratio == "100.0000"
    assert ev.percent_deviation == deviation
    assert ev.outcome is outcome


@pytest.mark.parametrize("d, outcome", [
    (0.0, Outcome.PASS),
    (0.5009, Outcome.PASS),
    (-0.5009, Outcome.PASS),
    (CAL.RATIO_PASS_LIMIT_PCT, Outcome.FAIL),
    (-CAL.RATIO_PASS_LIMIT_PCT, Outcome.FAIL),
    (3.0, Outcome.FAIL),
])
def test_classify_deviation(d, outcome):
    assert A.classify_deviation(d) is outcome


@pytest.mark.parametrize("primary, secondary", [("", "10"), ("abc", "10"), ("120", ""), ("120", "x")])
def test_unparseable_references_are_blank(primary, secondary):
    ev = A.evaluate_ratio_test(primary, secondary, "12")
    assert ev.calculated_ratio == ""
    assert ev.outcome is Outcome.BLANK


def test_missing_measurement_keeps_calculated_ratio():
    ev = A.evaluate_ratio_test("480", "120", "")
    assert ev.calculated_ratio == "4.0000"
    assert ev.percent_deviation == ""
    assert ev.outcome is Outcome.BLANK


def test_zero_primary_cannot_give_deviation():
    ev = A.evaluate_ratio_test("0", "10", "1")
    assert ev.calculated_ratio == "0.0000"
    assert ev.percent_deviation == ""
    assert ev.outcome is Outcome.BLANK


def test_insulation_uses_corrected_values():
    ev = A.evaluate_insulation({"half_minute": "100", "one_minute": "150", "ten_minute": "300"}, 1.05)
    assert ev.corrected == {"half_minute": "105.00", "one_minute": "157.50", "ten_minute": "315.00"}
    assert ev.dielectric_absorption == "1.50"
    assert ev.polarization_index == "2.00"


def test_insulation_partial_readings():
    ev = A.evaluate_insulation({"half_minute": "100", "one_minute": "120"}, 1.0)
    assert ev.corrected["ten_minute"] == ""
    assert ev.dielectric_absorption == "1.20"
    assert ev.polarization_index == ""


@pytest.mark.parametrize("values, ok", [
    (["1.50", "", "2.00"], True),
    (["", "", ""], None),
    ([], None),
    (["1.50", "0.90"], False),
    (["1.00"], False),
    (["1.01"], True),
])
def test_ratios_acceptable(values, ok):
    assert A.ratios_acceptable(values) is ok
