import math

import pytest

from board_backend.units import LENGTH_UNITS_MM, parse_length


def test_numbers_are_millimetres():
    assert parse_length(10) == 10.0
    assert parse_length(1.4) == 1.4
    assert parse_length(-3) == -3.0


@pytest.mark.parametrize("raw, expected", [
    ("10mm", 10.0),
    ("10 mm", 10.0),
    ("2.5", 2.5),
    ("1cm", 10.0),
    ("0.062in", 1.5748),
    ("100mil", 2.54),
    ("1e3um", 1.0),
    ("1µm", 0.001),
    ("1μm", 0.001),
    ("-.5mm", -0.5),
    ("1.6MM", 1.6),
])
def test_unit_strings(raw, expected):
    assert parse_length(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", ["", "mm", "ten mm", "10 parsecs", "1e", "1,5mm"])
def test_unparsable_strings_rejected(raw):
    with pytest.raises(ValueError):
        parse_length(raw)


@pytest.mark.parametrize("raw", [True, None, [1], {"value": 1}, math.inf, math.nan, "1e999mm"])
def test_non_lengths_rejected(raw):
    with pytest.raises(ValueError):
        parse_length(raw)


def test_unit_table_is_millimetre_based():
    assert LENGTH_UNITS_MM["mm"] == 1.0
    assert LENGTH_UNITS_MM["in"] == pytest.approx(25.4)
    assert LENGTH_UNITS_MM["mil"] * 1000 == pytest.approx(LENGTH_UNITS_MM["in"])
