"""
LANDIS single-cohort biomass model.

Implements the biomass module of Scheller and Mladenoff (2004) for one
species-age cohort: growth (ANPP), biomass- and age-related mortality,
and decomposition of dead woody biomass.

Equations (evaluated in this order):
    cohort_age = age_init + t
    B_MAX      = ANPP_MAX * 30 yr                                     (Eq. 2)
    B_POT      = max(B, min(B_MAX, B_MAX_site - B_other))             (Eq. 3)
    B_AP       = B / B_POT
    B_PM       = B_POT / B_MAX
    ANPP_ACT   = ANPP_MAX * (e * B_AP * exp(-B_AP)) * B_PM            (Eq. 4)
    M_BIO      = ANPP_MAX * y0 / (y0 + (1 - y0) * exp(-(r/y0) * B_AP)) * B_PM   (Eq. 5)
    M_AGE      = (B / 1 yr) * exp((cohort_age / max_age) * d) / exp(d)          (Eq. 6)
    M_total    = M_BIO + M_AGE

    dB/dt      = ANPP_ACT - M_total                                   (Eq. 1)
    dD_wood/dt = M_total - k * D_wood                                 (Eq. 7)

The paper works in Mg/ha and years; the model runs in kg/m^2 and seconds.

Source: Scheller, R.M. and Mladenoff, D.J. (2004). Ecological Modelling
180: 211-229. doi:10.1016/j.ecolmodel.2004.01.022
"""
import math
from typing import Dict, Mapping, Sequence

import numpy as np

from .exceptions import validate_non_negative, validate_positive
from .model_base import EquationModel, SymbolSpec
from .units import SECONDS_PER_YEAR

__all__ = [
    'CohortBiomassModel',
    'B_MAX_RATIO',
    'growth_shape',
    'biomass_mortality_fraction',
    'age_mortality_fraction',
]

# Ratio of maximum biomass to maximum ANPP (Eq. 2): 30 years
B_MAX_RATIO = 30.0 * SECONDS_PER_YEAR


def growth_shape(b_ap: float) -> float:
    """Peaked growth multiplier e * B_AP * exp(-B_AP).

    Equals 1 exactly at B_AP = 1 and is about 0.8244 at B_AP = 0.5.
    """
    return math.e * b_ap * math.exp(-b_ap)


def biomass_mortality_fraction(b_ap: float, r: float, y0: float) -> float:
    """Logistic biomass-related mortality as a fraction of ANPP_MAX.

    The exponent uses r divided by y0 (Eq. 5), so the fraction is y0 at
    B_AP = 0 and about 0.968 at B_AP = 1 for r = 0.08, y0 = 0.01.
    """
    return y0 / (y0 + (1.0 - y0) * math.exp(-(r / y0) * b_ap))


def age_mortality_fraction(age: float, max_age: float, d: float) -> float:
    """Fraction of living biomass lost per year to senescence.

    Normalized so the fraction is exactly 1 at ``age == max_age``.
    """
    return math.exp((age / max_age) * d) / math.exp(d)


class CohortBiomassModel(EquationModel):
    """Single-cohort biomass ODE (LANDIS biomass module).

    States are living aboveground biomass ``B`` and dead woody biomass
    ``D_wood``. Species presets (ANPP_MAX, longevity) come from
    cfg/cohort_biomass.yaml.
    """

    MODEL_ID = 'CohortBiomass'
    COEFFICIENT_FILE = 'cohort_biomass.yaml'
    COEFFICIENT_KEY = 'species_coefficients'
    DEFAULT_SPECIES = 'ACSA'
    FALLBACK_PARAMETERS = {
        'ACSA': {
            'common_name': 'sugar maple',
            'ANPP_MAX': 7.45,
            'max_age': 400.0,
        },
    }

    STATES = (
        SymbolSpec('B', 5.0, 'Mg/ha', 'Aboveground living biomass of cohort'),
        SymbolSpec('D_wood', 0.0, 'Mg/ha', 'Dead woody biomass'),
    )
    PARAMETERS = (
        SymbolSpec('ANPP_MAX', 7.45, 'Mg/ha/yr', 'Maximum ANPP for species'),
        SymbolSpec('max_age', 400.0, 'yr', 'Maximum species longevity'),
        SymbolSpec('r', 0.08, '1', 'Mortality rate growth parameter'),
        SymbolSpec('y0', 0.01, '1', 'Initial mortality rate, rescaled 0-1'),
        SymbolSpec('d', 10.0, '1', 'Age-related mortality shape parameter'),
        SymbolSpec('k', 0.03, '1/yr', 'Dead biomass decomposition rate'),
        SymbolSpec('B_MAX_site', 500.0, 'Mg/ha', 'Maximum site biomass over all cohorts'),
        SymbolSpec('B_other', 0.0, 'Mg/ha', 'Biomass of all other cohorts at the site'),
        SymbolSpec('age_init', 10.0, 'yr', 'Cohort age at the start of the run'),
    )
    ALGEBRAIC = (
        ('cohort_age', 's'),
        ('B_MAX', 'kg/m^2'),
        ('B_POT', 'kg/m^2'),
        ('B_AP', '1'),
        ('B_PM', '1'),
        ('ANPP_ACT', 'kg/m^2/s'),
        ('M_BIO', 'kg/m^2/s'),
        ('M_AGE', 'kg/m^2/s'),
        ('M_total', 'kg/m^2/s'),
    )

    def algebraic(self, t: float, y: Sequence[float], p: Mapping[str, float]) -> Dict[str, float]:
        B = y[0]
        anpp_max = p['ANPP_MAX']

        cohort_age = p['age_init'] + t
        B_MAX = anpp_max * B_MAX_RATIO
        # Floor at B first: a cohort's growing space never drops below its own biomass
        B_POT = max(B, min(B_MAX, p['B_MAX_site'] - p['B_other']))
        B_AP = B / B_POT
        B_PM = B_POT / B_MAX
        ANPP_ACT = anpp_max * growth_shape(B_AP) * B_PM
        M_BIO = anpp_max * biomass_mortality_fraction(B_AP, p['r'], p['y0']) * B_PM
        M_AGE = (B / SECONDS_PER_YEAR) * age_mortality_fraction(cohort_age, p['max_age'], p['d'])
        M_total = M_BIO + M_AGE

        return {
            'cohort_age': cohort_age,
            'B_MAX': B_MAX,
            'B_POT': B_POT,
            'B_AP': B_AP,
            'B_PM': B_PM,
            'ANPP_ACT': ANPP_ACT,
            'M_BIO': M_BIO,
            'M_AGE': M_AGE,
            'M_total': M_total,
        }

    def drift(self, t: float, y: Sequence[float], p: Mapping[str, float]) -> np.ndarray:
        q = self.algebraic(t, y, p)
        return np.array([
            q['ANPP_ACT'] - q['M_total'],
            q['M_total'] - p['k'] * y[1],
        ])

    def validate_state(self, state: Mapping[str, float], parameters: Mapping[str, float]) -> None:
        validate_positive(state['B'], 'B')
        validate_non_negative(state['D_wood'], 'D_wood')
        validate_positive(parameters['ANPP_MAX'], 'ANPP_MAX')
        validate_positive(parameters['max_age'], 'max_age')
        validate_positive(parameters['y0'], 'y0')
