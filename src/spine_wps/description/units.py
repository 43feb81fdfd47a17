"""Units of measure and declared convertibility.

A unit is convertible to another when both are registered against the
same base unit.  Conversions are linear: ``base = value * factor +
offset``, which covers scale units (metres, feet) and offset units
(Celsius, Fahrenheit) alike.

Examples:
    >>> DEFAULT_UNITS.convert(1.0, "km", "m")
    1000.0
    >>> DEFAULT_UNITS.convertible("m", "s")
    False

Tags:
    spine-wps, description, units, uom

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class Unit:
    """A unit expressed relative to its base unit."""

    symbol: str
    base: str
    factor: float = 1.0
    offset: float = 0.0

    def to_base(self, value: float) -> float:
        return value * self.factor + self.offset

    def from_base(self, value: float) -> float:
        return (value - self.offset) / self.factor


class UnitRegistry:
    """Symbol -> ``Unit`` table, safe to extend from any thread."""

    def __init__(self) -> None:
        self._units: dict[str, Unit] = {}
        self._lock = threading.Lock()

    def register(self, symbol: str, base: str | None = None, factor: float = 1.0, offset: float = 0.0) -> Unit:
        if factor == 0:
            raise ValueError(f"unit {symbol} needs a non-zero factor")
        unit = Unit(symbol=symbol, base=base or symbol, factor=factor, offset=offset)
        with self._lock:
            self._units[symbol] = unit
        return unit

    def get(self, symbol: str) -> Unit | None:
        return self._units.get(symbol)

    def convertible(self, source: str, target: str) -> bool:
        if source == target:
            return True
        a, b = self._units.get(source), self._units.get(target)
        return a is not None and b is not None and a.base == b.base

    def convert(self, value: float, source: str, target: str) -> float:
        """Convert ``value`` from ``source`` to ``target``.

        Raises:
            ValueError: the units are not convertible
        """
        if source == target:
            return value
        if not self.convertible(source, target):
            raise ValueError(f"cannot convert {source} to {target}")
        return self._units[target].from_base(self._units[source].to_base(value))


def _standard_units() -> UnitRegistry:
    units = UnitRegistry()
    # length
    units.register("m")
    units.register("km", "m", 1000.0)
    units.register("cm", "m", 0.01)
    units.register("mm", "m", 0.001)
    units.register("ft", "m", 0.3048)
    units.register("mi", "m", 1609.344)
    # time
    units.register("s")
    units.register("min", "s", 60.0)
    units.register("h", "s", 3600.0)
    # angle
    units.register("rad")
    units.register("deg", "rad", 0.017453292519943295)
    # temperature
    units.register("K")
    units.register("C", "K", 1.0, 273.15)
    units.register("F", "K", 5.0 / 9.0, 255.3722222222222)
    return units


DEFAULT_UNITS = _standard_units()


__all__ = ["Unit", "UnitRegistry", "DEFAULT_UNITS"]
