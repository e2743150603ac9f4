"""
Frozen anchor set for the temperature correction table and tolerance constants.

The TCF table is the insulation-resistance correction chart carried by the
field test report forms: one multiplier per whole degree Celsius from -24 to
110, referenced to 20 °C (multiplier 1.0). Tests assert no drift relative to
these values. Update this file deliberately, together with golden tests.
"""

# (celsius, multiplier) pairs, ascending by celsius
TCF_TABLE: tuple[tuple[int, float], ...] = (
    (-24, 0.054), (-23, 0.068), (-22, 0.082), (-21, 0.096), (-20, 0.11),
    (-19, 0.124), (-18, 0.138), (-17, 0.152), (-16, 0.166), (-15, 0.18),
    (-14, 0.194), (-13, 0.208), (-12, 0.222), (-11, 0.236), (-10, 0.25),
    (-9, 0.264), (-8, 0.278), (-7, 0.292), (-6, 0.306), (-5, 0.32),
    (-4, 0.336), (-3, 0.352), (-2, 0.368), (-1, 0.384), (0, 0.4),
    (1, 0.42), (2, 0.44), (3, 0.46), (4, 0.48), (5, 0.5),
    (6, 0.526), (7, 0.552), (8, 0.578), (9, 0.604), (10, 0.63),
    (11, 0.666), (12, 0.702), (13, 0.738), (14, 0.774), (15, 0.81),
    (16, 0.848), (17, 0.886), (18, 0.924), (19, 0.962), (20, 1.0),
    (21, 1.05), (22, 1.1), (23, 1.15), (24, 1.2), (25, 1.25),
    (26, 1.316), (27, 1.382), (28, 1.448), (29, 1.514), (30, 1.58),
    (31, 1.664), (32, 1.748), (33, 1.832), (34, 1.872), (35, 2.0),
    (36, 2.1), (37, 2.2), (38, 2.3), (39, 2.4), (40, 2.5),
    (41, 2.628), (42, 2.756), (43, 2.884), (44, 3.012), (45, 3.15),
    (46, 3.316), (47, 3.482), (48, 3.648), (49, 3.814), (50, 3.98),
    (51, 4.184), (52, 4.388), (53, 4.592), (54, 4.796), (55, 5.0),
    (56, 5.26), (57, 5.52), (58, 5.78), (59, 6.04), (60, 6.3),
    (61, 6.62), (62, 6.94), (63, 7.26), (64, 7.58), (65, 7.9),
    (66, 8.32), (67, 8.74), (68, 9.16), (69, 9.58), (70, 10.0),
    (71, 10.52), (72, 11.04), (73, 11.56), (74, 12.08), (75, 12.6),
    (76, 13.24), (77, 13.88), (78, 14.52), (79, 15.16), (80, 15.8),
    (81, 16.64), (82, 17.48), (83, 18.32), (84, 19.16), (85, 20.0),
    (86, 21.04), (87, 22.08), (88, 23.12), (89, 24.16), (90, 25.2),
    (91, 26.45), (92, 27.7), (93, 28.95), (94, 30.2), (95, 31.6),
    (96, 33.28), (97, 34.96), (98, 36.64), (99, 38.32), (100, 40.0),
    (101, 42.08), (102, 44.16), (103, 46.24), (104, 48.32), (105, 50.4),
    (106, 52.96), (107, 55.52), (108, 58.08), (109, 60.64), (110, 63.2),
)

ANCHORS: dict[str, float | int | str] = {
    # Correction table reference point
    "REFERENCE_CELSIUS": 20,     # °C, multiplier == 1.0
    "DEFAULT_FACTOR": 1.0,       # clamp policy fallback for off-table temperatures

    # Turns ratio acceptance band (± percent deviation, exclusive)
    "RATIO_PASS_LIMIT_PCT": 0.501,

    # Insulation DA / PI acceptance (ratio must exceed)
    "INSULATION_RATIO_MIN": 1.0,

    # Output formatting
    "CORRECTED_DECIMALS": 2,
    "RATIO_DECIMALS": 4,
    "DEVIATION_DECIMALS": 2,
    "INSULATION_RATIO_DECIMALS": 2,

    # Report defaults when a form is opened
    "DEFAULT_FAHRENHEIT": 68,
    "DEFAULT_HUMIDITY": 0.0,
}

# Origins (free-text for docs)
ORIGINS: dict[str, str] = {
    "TCF_TABLE": "Insulation resistance correction chart, 20 °C reference (VT/CT/cable MTS forms)",
    "RATIO_PASS_LIMIT_PCT": "TTR acceptance ±0.5 %; forms compare against 0.501 to admit a displayed 0.50",
    "INSULATION_RATIO_MIN": "DA and PI acceptable when every computed ratio is above 1.0",
    "DEFAULT_FAHRENHEIT": "68 °F = 20 °C, so a fresh report starts at TCF 1.0",
}
