"""Tests for allowed-value domains and ranges."""

import pytest

from spine_wps.description.domains import (
    AllowedValues,
    AnyValue,
    LiteralDataDomain,
    RangeClosure,
    ValueRange,
)
from spine_wps.description.literal import LiteralType


class TestValueRange:
    def test_closed_includes_bounds(self):
        r = ValueRange(0, 10)
        assert r.contains(0)
        assert r.contains(10)
        assert not r.contains(10.5)
        assert not r.contains(-0.1)

    @pytest.mark.parametrize("closure,at_min,at_max", [
        (RangeClosure.OPEN, False, False),
        (RangeClosure.OPEN_CLOSED, False, True),
        (RangeClosure.CLOSED_OPEN, True, False),
    ])
    def test_closures(self, closure, at_min, at_max):
        r = ValueRange(0, 10, closure=closure)
        assert r.contains(0) is at_min
        assert r.contains(10) is at_max
        assert r.contains(5)

    def test_half_open_ranges(self):
        assert ValueRange(minimum=0).contains(1e12)
        assert ValueRange(maximum=0).contains(-1e12)

    def test_spacing_anchored_at_minimum(self):
        r = ValueRange(1, 10, spacing=3)
        assert r.contains(4)
        assert r.contains(7)
        assert not r.contains(5)

    def test_spacing_tolerates_float_error(self):
        r = ValueRange(0, 1, spacing=0.1)
        assert r.contains(0.1 + 0.2)
        assert not r.contains(0.35)

    def test_spacing_anchored_at_maximum_without_minimum(self):
        r = ValueRange(maximum=10, spacing=4)
        assert r.contains(2)
        assert not r.contains(0)

    def test_describe(self):
        assert ValueRange(0, 1, closure=RangeClosure.CLOSED_OPEN).describe() == "[0, 1)"
        assert ValueRange(None, 5, spacing=0.5).describe() == "[-inf, 5] step 0.5"

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    @pytest.mark.parametrize("spacing", [None, 0.5])
    def test_non_finite_values_outside_every_range(self, value, spacing):
        assert not ValueRange(0, 10, spacing=spacing).contains(value)
        assert not ValueRange(spacing=spacing).contains(value)

    def test_spacing_overflow_is_not_contained(self):
        assert not ValueRange(-1e308, spacing=1e-10).contains(1e308)


class TestAllowedValues:
    def test_enumerated_values_coerced(self):
        allowed = AllowedValues(values=("1", "2"))
        assert allowed.contains(2, LiteralType.INTEGER)
        assert not allowed.contains(3, LiteralType.INTEGER)

    def test_ranges_only_for_numeric_types(self):
        allowed = AllowedValues(ranges=(ValueRange(0, 10),))
        assert allowed.contains(5.0, LiteralType.DOUBLE)
        assert not allowed.contains("5", LiteralType.STRING)

    def test_values_and_ranges(self):
        allowed = AllowedValues(values=(-1,), ranges=(ValueRange(0, 10),))
        assert allowed.contains(-1.0, LiteralType.DOUBLE)
        assert allowed.contains(3.0, LiteralType.DOUBLE)
        assert not allowed.contains(-2.0, LiteralType.DOUBLE)

    def test_describe(self):
        assert AllowedValues(values=("a", "b")).describe() == "one of 'a', 'b'"


class TestLiteralDataDomain:
    def test_any_value(self):
        domain = LiteralDataDomain(AnyValue(), LiteralType.STRING)
        assert domain.contains("anything")

    def test_describe_with_uom(self):
        domain = LiteralDataDomain(AllowedValues(ranges=(ValueRange(0, 60),)), LiteralType.DOUBLE, uom="min")
        assert domain.describe() == "double: one of [0, 60] (min)"
