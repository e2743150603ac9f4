import json

import pytest

from reportcalc import api


def test_ratio_payload_uses_plain_strings():
    out = api.evaluate_ratio_test("480", "120", "3.99")
    assert out == {"calculated_ratio": "4.0000", "percent_deviation": "0.25", "outcome": "Pass"}
    assert api.evaluate_ratio_test("480", "120", "3.9")["outcome"] == "Fail"
    assert api.evaluate_ratio_test("480", "", "3.9") == {
        "calculated_ratio": "", "percent_deviation": "", "outcome": "Blank"}


def test_insulation_payload():
    out = api.evaluate_insulation({"half_minute": "10", "one_minute": "20"}, 1.0)
    assert out["corrected"] == {"half_minute": "10.00", "one_minute": "20.00", "ten_minute": ""}
    assert (out["dielectric_absorption"], out["polarization_index"]) == ("2.00", "")


def test_conversion_and_lookup_wrappers():
    assert api.convert_fahrenheit_to_celsius(212) == 100
    assert api.convert_celsius_to_fahrenheit(100) == 212
    assert api.resolve_correction_factor(20, "clamp") == 1.0
    assert api.resolve_correction_factor(21.5, "interpolate") == pytest.approx(1.075)
    assert api.apply_correction("abc", 1.2) == ""
    with pytest.raises(ValueError):
        api.resolve_correction_factor(20, "nearest")


def test_apply_edit_passes_path_errors_through():
    s = api.new_report_state(report_type="current-transformer-ats")
    with pytest.raises(api.FieldPathError):
        api.apply_edit(s, "temperature.dewpoint", "1")


def test_bad_unit_is_logged_and_reraised(caplog):
    s = api.new_report_state(report_type="current-transformer-ats")
    with pytest.raises(ValueError):
        api.apply_edit(s, "insulation[0].readings.half_minute.unit", "ohms")
    assert "apply_edit failed" in caplog.text


def test_load_report_state_accepts_text_and_mappings():
    s = api.apply_edit(api.new_report_state(report_type="low-voltage-switch"), "temperature.celsius", 30)
    from_text = api.load_report_state(s.model_dump_json())
    from_dict = api.load_report_state(json.loads(s.model_dump_json()))
    assert from_text.model_dump() == from_dict.model_dump() == s.model_dump()
    assert from_text.temperature.correction_factor == 1.58


def test_load_report_state_rejects_unknown_keys():
    data = json.loads(api.new_report_state(report_type="panelboard").model_dump_json())
    data["notes"] = "x"
    with pytest.raises(ValueError):
        api.load_report_state(data)


def test_recalculate_repairs_stale_derived_fields():
    s = api.new_report_state(report_type="panelboard")
    s = api.apply_edit(s, "insulation[0].readings.one_minute.raw_value", "50")
    stale = s.model_copy(deep=True)
    stale.insulation[0].readings["one_minute"].corrected_value = "999.00"
    stale.temperature.correction_factor = 3.0
    fixed = api.recalculate(stale)
    assert fixed.model_dump() == s.model_dump()
