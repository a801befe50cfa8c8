"""
Unit conversion table for PyVeg.

The published regressions are fit in customary forestry units (inches,
feet, acres, years, Mg/ha). Models run in SI (meters, seconds, kg/m^2).
Every unit tag maps to the SI unit it converts into (its dimension) and a
scale factor, so that ``si_value = value * factor``.

Usage:
    >>> from pyveg.units import to_si, from_si
    >>> dbh = to_si(6.0, 'in')             # meters
    >>> biomass = from_si(22.35, 'Mg/ha')  # 223.5 Mg/ha
"""
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, NamedTuple, Optional

from .exceptions import InvalidParameterError, MissingUnitError, UnitMismatchError, UnknownUnitError

__all__ = [
    'SECONDS_PER_YEAR',
    'METERS_PER_INCH',
    'METERS_PER_FOOT',
    'SQUARE_METERS_PER_ACRE',
    'KG_M2_PER_MG_HA',
    'DIMENSIONLESS',
    'UnitDefinition',
    'UnitScale',
    'Quantity',
    'UNIT_SCALE',
    'to_si',
    'from_si',
    'as_si',
]


# Julian year, the time base of both published models
SECONDS_PER_YEAR = 3.15576e7
METERS_PER_INCH = 0.0254
METERS_PER_FOOT = 0.3048
SQUARE_METERS_PER_ACRE = 4046.86
# 1 Mg/ha = 1000 kg / 10000 m^2
KG_M2_PER_MG_HA = 0.1

DIMENSIONLESS = '1'


@dataclass(frozen=True)
class UnitDefinition:
    """A unit tag and its conversion into SI.

    Attributes:
        name: Unit tag as written in configuration and overrides
        dimension: SI unit tag the value converts into
        factor: Multiplier taking a value in this unit to SI
    """
    name: str
    dimension: str
    factor: float


class Quantity(NamedTuple):
    """A value tagged with its unit."""
    value: float
    unit: str


_DEFINITIONS = (
    # Dimensionless
    UnitDefinition('1', '1', 1.0),
    # Length
    UnitDefinition('m', 'm', 1.0),
    UnitDefinition('cm', 'm', 0.01),
    UnitDefinition('in', 'm', METERS_PER_INCH),
    UnitDefinition('inch', 'm', METERS_PER_INCH),
    UnitDefinition('ft', 'm', METERS_PER_FOOT),
    UnitDefinition('foot', 'm', METERS_PER_FOOT),
    UnitDefinition('100ft', 'm', 100.0 * METERS_PER_FOOT),
    # Area
    UnitDefinition('m^2', 'm^2', 1.0),
    UnitDefinition('in^2', 'm^2', METERS_PER_INCH ** 2),
    UnitDefinition('ft^2', 'm^2', METERS_PER_FOOT ** 2),
    UnitDefinition('acre', 'm^2', SQUARE_METERS_PER_ACRE),
    UnitDefinition('ha', 'm^2', 1.0e4),
    # Time
    UnitDefinition('s', 's', 1.0),
    UnitDefinition('day', 's', 86400.0),
    UnitDefinition('yr', 's', SECONDS_PER_YEAR),
    UnitDefinition('year', 's', SECONDS_PER_YEAR),
    UnitDefinition('s^0.5', 's^0.5', 1.0),
    UnitDefinition('sqrt(yr)', 's^0.5', math.sqrt(SECONDS_PER_YEAR)),
    # Rates
    UnitDefinition('1/s', '1/s', 1.0),
    UnitDefinition('1/yr', '1/s', 1.0 / SECONDS_PER_YEAR),
    UnitDefinition('m/s', 'm/s', 1.0),
    UnitDefinition('ft/yr', 'm/s', METERS_PER_FOOT / SECONDS_PER_YEAR),
    UnitDefinition('m^2/s', 'm^2/s', 1.0),
    UnitDefinition('in^2/yr', 'm^2/s', METERS_PER_INCH ** 2 / SECONDS_PER_YEAR),
    # Biomass density and productivity
    UnitDefinition('kg/m^2', 'kg/m^2', 1.0),
    UnitDefinition('Mg/ha', 'kg/m^2', KG_M2_PER_MG_HA),
    UnitDefinition('kg/m^2/s', 'kg/m^2/s', 1.0),
    UnitDefinition('Mg/ha/yr', 'kg/m^2/s', KG_M2_PER_MG_HA / SECONDS_PER_YEAR),
    # Stem density
    UnitDefinition('1/m^2', '1/m^2', 1.0),
    UnitDefinition('1/ha', '1/m^2', 1.0e-4),
    UnitDefinition('1/acre', '1/m^2', 1.0 / SQUARE_METERS_PER_ACRE),
)


class UnitScale(Mapping):
    """Immutable table of unit tags and their SI scale factors.

    Behaves as a read-only mapping from unit tag to factor. The table is
    built once and never mutated.
    """

    def __init__(self, definitions: Iterable[UnitDefinition]):
        self._units = MappingProxyType({d.name: d for d in definitions})

    def __getitem__(self, unit: str) -> float:
        return self.definition(unit).factor

    def __iter__(self) -> Iterator[str]:
        return iter(self._units)

    def __len__(self) -> int:
        return len(self._units)

    def definition(self, unit: str, symbol: Optional[str] = None) -> UnitDefinition:
        """Look up a unit definition.

        Raises:
            UnknownUnitError: If the tag is not in the table
        """
        try:
            return self._units[unit]
        except (KeyError, TypeError):
            raise UnknownUnitError(unit, symbol) from None

    def dimension(self, unit: str) -> str:
        """Return the SI unit tag a unit converts into."""
        return self.definition(unit).dimension

    def is_compatible(self, unit: str, dimension: str) -> bool:
        """Check whether a unit converts into the given SI dimension."""
        return unit in self._units and self._units[unit].dimension == dimension

    def to_si(self, value: float, unit: str) -> float:
        """Convert a value in ``unit`` to SI."""
        return value * self.definition(unit).factor

    def from_si(self, value: float, unit: str) -> float:
        """Convert an SI value to ``unit``."""
        return value / self.definition(unit).factor

    def convert(self, value: float, from_unit: str, to_unit: str) -> float:
        """Convert between two units of the same dimension.

        Raises:
            UnitMismatchError: If the two units have different dimensions
        """
        source = self.definition(from_unit)
        target = self.definition(to_unit)
        if source.dimension != target.dimension:
            raise UnitMismatchError(str(value), target.name, source.name)
        return value * source.factor / target.factor


UNIT_SCALE = UnitScale(_DEFINITIONS)


def to_si(value: float, unit: str) -> float:
    """Convert a value in a customary or SI unit to SI."""
    return UNIT_SCALE.to_si(value, unit)


def from_si(value: float, unit: str) -> float:
    """Convert an SI value to the given unit."""
    return UNIT_SCALE.from_si(value, unit)


def as_si(value, dimension: str, symbol: str) -> float:
    """Resolve a user-supplied value to SI for a symbol of known dimension.

    Accepts a ``Quantity``, a ``(value, unit)`` pair, or a bare number. A
    bare number is only accepted when the symbol is dimensionless.

    Args:
        value: The supplied value
        dimension: SI unit the symbol is declared in
        symbol: Symbol name, used in error messages

    Returns:
        The value in SI

    Raises:
        MissingUnitError: Bare number given for a dimensional symbol
        UnknownUnitError: Unit tag not in the table
        UnitMismatchError: Unit tag of the wrong dimension
        InvalidParameterError: Magnitude is not a finite real number
    """
    if isinstance(value, (tuple, list)):
        if len(value) != 2:
            raise MissingUnitError(symbol, dimension)
        magnitude, unit = value
    else:
        if dimension != DIMENSIONLESS:
            raise MissingUnitError(symbol, dimension)
        magnitude, unit = value, DIMENSIONLESS

    definition = UNIT_SCALE.definition(unit, symbol)
    if definition.dimension != dimension:
        raise UnitMismatchError(symbol, dimension, unit)
    try:
        magnitude = float(magnitude)
    except (TypeError, ValueError):
        raise InvalidParameterError(symbol, magnitude, "must be a real number") from None
    if not math.isfinite(magnitude):
        raise InvalidParameterError(symbol, magnitude, "must be finite")
    return magnitude * definition.factor
