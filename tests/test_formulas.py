import pytest

from reportcalc import formulas as F
from reportcalc.anchors import TCF_TABLE
from reportcalc.formulas import CorrectionTable, DEFAULT_TABLE


# --- Correction table ---

def test_table_covers_every_whole_degree():
    assert len(DEFAULT_TABLE) == 135
    assert DEFAULT_TABLE.min_celsius == -24
    assert DEFAULT_TABLE.max_celsius == 110
    assert [c for c, _ in DEFAULT_TABLE.entries] == list(range(-24, 111))


def test_table_reference_point_and_monotonicity():
    assert DEFAULT_TABLE.lookup(20) == 1.0
    ms = [m for _, m in DEFAULT_TABLE.entries]
    assert all(b >= a for a, b in zip(ms, ms[1:]))


def test_table_lookup_absent_keys():
    assert DEFAULT_TABLE.lookup(-25) is None
    assert DEFAULT_TABLE.lookup(111) is None


def test_table_is_immutable():
    with pytest.raises(AttributeError):
        DEFAULT_TABLE._entries = ()
    d = DEFAULT_TABLE.as_dict()
    d[20] = 5.0
    assert DEFAULT_TABLE.lookup(20) == 1.0


@pytest.mark.parametrize("entries", [
    [],
    [(19, 0.962), (21, 1.05)],            # gap
    [(19, 1.2), (20, 1.0)],               # decreasing
    [(0, 0.4), (1, 0.42)],                # no 1.0 at the reference point
    [(19, 0.0), (20, 1.0)],               # non-positive
])
def test_malformed_table_rejected(entries):
    with pytest.raises(ValueError):
        CorrectionTable(entries)


def test_anchor_table_matches_runtime_table():
    assert DEFAULT_TABLE.as_dict() == dict(TCF_TABLE)


# --- Temperature conversion ---

@pytest.mark.parametrize("f, c", [(68, 20), (212, 100), (32, 0), (-40, -40), (69, 21), (76, 24), (-13, -25)])
def test_fahrenheit_to_celsius(f, c):
    assert F.fahrenheit_to_celsius(f) == c


@pytest.mark.parametrize("c, f", [(20, 68), (100, 212), (0, 32), (-40, -40), (21, 70), (24, 75)])
def test_celsius_to_fahrenheit(c, f):
    assert F.celsius_to_fahrenheit(c) == f


def test_round_trip_is_lossy():
    # 69 °F -> 21 °C -> 70 °F; accepted, not corrected
    assert F.celsius_to_fahrenheit(F.fahrenheit_to_celsius(69)) == 70


@pytest.mark.parametrize("x, n", [(2.5, 3), (-2.5, -3), (0.49, 0), (-0.5, -1), (20.5555, 21)])
def test_round_half_away(x, n):
    assert F.round_half_away(x) == n


# --- Correction factor resolution ---

@pytest.mark.parametrize("c", range(-24, 111))
def test_policies_agree_on_table_entries(c):
    assert F.resolve_correction_factor(c, "clamp") == F.resolve_correction_factor(c, "interpolate")


@pytest.mark.parametrize("policy", ["clamp", "interpolate"])
def test_reference_point_is_unity(policy):
    assert F.resolve_correction_factor(20, policy) == 1.0


def test_out_of_range():
    assert F.resolve_correction_factor(200, "clamp") == 1.0
    assert F.resolve_correction_factor(-60, "clamp") == 1.0
    assert F.resolve_correction_factor(200, "interpolate") == F.resolve_correction_factor(110, "interpolate") == 63.2
    assert F.resolve_correction_factor(-60, "interpolate") == 0.054


def test_clamp_rounds_fractional_input():
    assert F.resolve_correction_factor(21.4, "clamp") == 1.05
    assert F.resolve_correction_factor(21.5, "clamp") == 1.1
    assert F.resolve_correction_factor(110.4, "clamp") == 63.2
    assert F.resolve_correction_factor(110.5, "clamp") == 1.0


def test_interpolate_between_neighbours():
    assert F.resolve_correction_factor(21.5, "interpolate") == pytest.approx(1.075)
    assert F.resolve_correction_factor(-23.75, "interpolate") == pytest.approx(0.054 + 0.25 * 0.014)
    assert F.resolve_correction_factor(109.9, "interpolate") == pytest.approx(60.64 + 0.9 * 2.56)


def test_interpolate_is_monotone():
    cs = [x / 4 for x in range(-30 * 4, 120 * 4)]
    ms = [F.resolve_correction_factor(c, "interpolate") for c in cs]
    assert all(b >= a for a, b in zip(ms, ms[1:]))


def test_non_finite_temperatures():
    nan, inf = float("nan"), float("inf")
    assert F.resolve_correction_factor(nan, "clamp") == 1.0
    assert F.resolve_correction_factor(nan, "interpolate") == 1.0
    assert F.resolve_correction_factor(inf, "clamp") == 1.0
    assert F.resolve_correction_factor(inf, "interpolate") == 63.2
    assert F.resolve_correction_factor(-inf, "interpolate") == 0.054


@pytest.mark.parametrize("big", [10 ** 400, -(10 ** 400)])
def test_integers_beyond_float_range(big):
    edge = 63.2 if big > 0 else 0.054
    assert F.resolve_correction_factor(big, "clamp") == 1.0
    assert F.resolve_correction_factor(big, "interpolate") == edge


def test_unknown_policy_fails_fast():
    with pytest.raises(ValueError, match="policy"):
        F.resolve_correction_factor(20, "nearest")


# --- Parsing, formatting, correction ---

@pytest.mark.parametrize("raw, expected", [
    ("10", 10.0), (" 12.5 ", 12.5), ("-3", -3.0), (".5", 0.5), ("1e3", 1000.0), (7, 7.0),
    ("", None), ("   ", None), ("abc", None), ("> 2000", None), ("1_000", None),
    ("12abc", None), ("nan", None), ("inf", None), ("1e999", None), (None, None), (True, None),
])
def test_parse_number(raw, expected):
    assert F.parse_number(raw) == expected


@pytest.mark.parametrize("x, places, text", [
    (15, 2, "15.00"), (0.125, 2, "0.13"), (-0.125, 2, "-0.13"), (1.005, 2, "1.00"),
    (12, 4, "12.0000"), (1 / 3, 4, "0.3333"), (1e20, 2, "100000000000000000000.00"),
])
def test_format_fixed(x, places, text):
    assert F.format_fixed(x, places) == text


@pytest.mark.parametrize("factor", [0.054, 1.0, 1.5, 63.2])
def test_apply_correction_blank_input(factor):
    assert F.apply_correction("", factor) == ""
    assert F.apply_correction("   ", factor) == ""
    assert F.apply_correction("abc", factor) == ""


def test_apply_correction():
    assert F.apply_correction("10", 1.5) == "15.00"
    assert F.apply_correction("2000", 1.05) == "2100.00"
    assert F.apply_correction("1e308", 63.2) == ""


def test_negative_zero_prints_unsigned():
    assert F.format_fixed(-0.0, 2) == "0.00"
    assert F.apply_correction("-0", 1.5) == "0.00"
    assert F.format_fixed(-0.001, 2) == "-0.00"


def test_ratio_of():
    assert F.ratio_of("150.00", "100.00") == "1.50"
    assert F.ratio_of("150", "0") == ""
    assert F.ratio_of("", "100") == ""
