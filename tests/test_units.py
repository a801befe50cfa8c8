"""
Tests for the unit table and SI conversion.
"""
import math

import pytest

from pyveg.exceptions import (
    InvalidParameterError,
    MissingUnitError,
    UnitMismatchError,
    UnknownUnitError,
)
from pyveg.units import (
    SECONDS_PER_YEAR,
    UNIT_SCALE,
    Quantity,
    UnitScale,
    as_si,
    from_si,
    to_si,
)


# =============================================================================
# Parametrized Test Data
# =============================================================================

SI_FACTOR_CASES = [
    pytest.param('yr', 3.15576e7, id="year"),
    pytest.param('in', 0.0254, id="inch"),
    pytest.param('ft', 0.3048, id="foot"),
    pytest.param('100ft', 30.48, id="hundred_feet"),
    pytest.param('acre', 4046.86, id="acre"),
    pytest.param('Mg/ha', 0.1, id="megagram_per_hectare"),
    pytest.param('in^2', 0.0254 ** 2, id="square_inch"),
    pytest.param('1/acre', 1.0 / 4046.86, id="stems_per_acre"),
    pytest.param('Mg/ha/yr', 0.1 / 3.15576e7, id="productivity"),
    pytest.param('1', 1.0, id="dimensionless"),
]


class TestUnitScale:
    """Tests for the UnitScale table."""

    @pytest.mark.parametrize("unit,factor", SI_FACTOR_CASES)
    def test_si_factor(self, unit, factor):
        """Each tag scales to SI by its published factor."""
        assert UNIT_SCALE[unit] == pytest.approx(factor, rel=1e-12)

    def test_sqrt_year_factor(self):
        """sqrt(yr) is the square root of the year length in seconds."""
        assert UNIT_SCALE['sqrt(yr)'] == pytest.approx(math.sqrt(SECONDS_PER_YEAR))

    def test_table_is_read_only(self):
        """The table cannot be modified after construction."""
        with pytest.raises(TypeError):
            UNIT_SCALE['yr'] = 1.0
        with pytest.raises(TypeError):
            UNIT_SCALE._units['yr'] = None

    def test_is_a_mapping(self):
        """UnitScale behaves as a read-only mapping."""
        assert isinstance(UNIT_SCALE, UnitScale)
        assert 'Mg/ha' in UNIT_SCALE
        assert len(UNIT_SCALE) == len(list(UNIT_SCALE))

    def test_unknown_unit(self):
        """Unknown tags raise UnknownUnitError naming the tag."""
        with pytest.raises(UnknownUnitError, match="furlong"):
            UNIT_SCALE.definition('furlong')

    def test_dimension(self):
        """Customary tags report their SI dimension."""
        assert UNIT_SCALE.dimension('ft') == 'm'
        assert UNIT_SCALE.dimension('Mg/ha/yr') == 'kg/m^2/s'
        assert UNIT_SCALE.is_compatible('in', 'm')
        assert not UNIT_SCALE.is_compatible('in', 's')


class TestConversion:
    """Tests for conversion helpers."""

    def test_to_and_from_si(self):
        """Module-level helpers agree with the table."""
        assert to_si(7.45, 'Mg/ha/yr') == pytest.approx(7.45 * 0.1 / SECONDS_PER_YEAR)
        assert from_si(0.3048, 'ft') == pytest.approx(1.0)

    def test_convert_between_compatible_units(self):
        """Feet convert to inches."""
        assert UNIT_SCALE.convert(1.0, 'ft', 'in') == pytest.approx(12.0)

    def test_convert_between_incompatible_units(self):
        """Converting across dimensions is rejected."""
        with pytest.raises(UnitMismatchError):
            UNIT_SCALE.convert(1.0, 'ft', 'yr')


class TestAsSi:
    """Tests for resolving user values against a declared dimension."""

    def test_quantity(self):
        assert as_si(Quantity(60.0, 'ft'), 'm', 'HT') == pytest.approx(18.288)

    def test_pair(self):
        assert as_si((5.0, 'Mg/ha'), 'kg/m^2', 'B') == pytest.approx(0.5)

    def test_list_pair(self):
        """YAML scenario files write overrides as lists."""
        assert as_si([400, 'yr'], 's', 'max_age') == pytest.approx(400 * SECONDS_PER_YEAR)

    def test_bare_number_dimensionless(self):
        assert as_si(100.0, '1', 'CCF') == 100.0

    def test_bare_number_dimensional(self):
        """A bare number for a dimensional symbol must carry a unit."""
        with pytest.raises(MissingUnitError, match="HT"):
            as_si(60.0, 'm', 'HT')

    def test_wrong_dimension(self):
        """A length given for a biomass symbol is a mismatch."""
        with pytest.raises(UnitMismatchError) as exc_info:
            as_si((5.0, 'ft'), 'kg/m^2', 'B')
        assert exc_info.value.symbol == 'B'

    def test_unknown_unit_names_symbol(self):
        with pytest.raises(UnknownUnitError, match="D_wood"):
            as_si((1.0, 'tons'), 'kg/m^2', 'D_wood')

    @pytest.mark.parametrize("value,dimension,symbol", [
        pytest.param((math.nan, 'Mg/ha'), 'kg/m^2', 'B_other', id="nan_magnitude"),
        pytest.param((math.inf, 'yr'), 's', 'max_age', id="infinite_magnitude"),
        pytest.param(math.nan, '1', 'CCF', id="bare_nan"),
    ])
    def test_non_finite_magnitude(self, value, dimension, symbol):
        with pytest.raises(InvalidParameterError, match=symbol):
            as_si(value, dimension, symbol)

    @pytest.mark.parametrize("value,dimension,symbol", [
        pytest.param('dense', '1', 'CCF', id="bare_string"),
        pytest.param(('tall', 'ft'), 'm', 'HT', id="string_in_pair"),
        pytest.param((None, 'Mg/ha'), 'kg/m^2', 'B', id="none_in_pair"),
    ])
    def test_non_numeric_magnitude(self, value, dimension, symbol):
        with pytest.raises(InvalidParameterError, match="must be a real number"):
            as_si(value, dimension, symbol)
