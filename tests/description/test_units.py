"""Tests for units of measure."""

import pytest

from spine_wps.description.units import DEFAULT_UNITS, UnitRegistry


class TestDefaultUnits:
    def test_scale_conversion(self):
        assert DEFAULT_UNITS.convert(1.5, "km", "m") == 1500.0
        assert DEFAULT_UNITS.convert(2, "min", "s") == 120.0

    def test_offset_conversion(self):
        assert DEFAULT_UNITS.convert(0.0, "C", "K") == pytest.approx(273.15)
        assert DEFAULT_UNITS.convert(212.0, "F", "C") == pytest.approx(100.0)

    def test_not_convertible_across_bases(self):
        assert not DEFAULT_UNITS.convertible("m", "s")
        with pytest.raises(ValueError):
            DEFAULT_UNITS.convert(1.0, "m", "s")

    def test_same_unit_is_identity(self):
        assert DEFAULT_UNITS.convert(7, "furlong", "furlong") == 7

    def test_unknown_unit_not_convertible(self):
        assert not DEFAULT_UNITS.convertible("furlong", "m")


class TestUnitRegistry:
    def test_register_custom_unit(self):
        units = UnitRegistry()
        units.register("m")
        units.register("furlong", "m", 201.168)
        assert units.convert(1, "furlong", "m") == pytest.approx(201.168)
        assert units.get("furlong").base == "m"

    def test_zero_factor_rejected(self):
        with pytest.raises(ValueError):
            UnitRegistry().register("bad", "m", 0)
