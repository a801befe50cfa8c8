"""
Prognosis individual-tree growth model (Stage 1973).

A stochastic single-tree model for lodgepole pine predicting periodic
change in diameter, height, crown base and survival. The diameter growth
equation predicts basal area increment (DDS) from tree size, site
quality, stand density, competitive position and crown development.
Growth variability is multiplicative noise on DDS, carried as a single
Brownian term on the squared-diameter state.

Equations (evaluated in this order):
    DBH                  = sqrt(Dsq)
    CR                   = max(CR_min, (HT - HCB) / HT)
    mean_DBH_in          = mean_DBH / 1 in
    DDS_rate             = BKR * in^2/yr * exp(b0 + b_SI*ln(SI/ft) + b_EL*EL/100ft
                           + b_CCF*ln(CCF) + b_CR*ln(CR) + b_DBH*ln(DBH/in) + b_PCT*PCT)
    DG                   = max(DG_min, sqrt((DBH/in)^2 + DDS*yr/in^2) - DBH/in)
    HTGF_rate            = ft/yr * exp(c1 + c2*ln(DG + 0.05) + c3*ln(DBH/in) + c4*ln(HT/ft))
    crown_recession_rate = HTGF_rate * (0.2 if CCF < 125 else 0.61)
    mortality_rate       = max(0, 1/yr * (a0 + a1*m + a2*m^2) * (0.25 + 1.5*(1 - PCT/100)))

    d(Dsq)     = DDS_rate dt + sigma_growth * |DDS_rate| dW
    d(HT)      = HTGF_rate dt
    d(HCB)     = crown_recession_rate dt
    d(N_trees) = -mortality_rate * N_trees dt

sigma_growth is pre-scaled by sqrt(seconds per year), so its default of
0.3 sqrt(yr) gives a relative standard deviation of 0.3 in basal area
increment over one year.

Source: Stage, A.R. (1973). Prognosis model for stand development.
USDA Forest Service Research Paper INT-137.
"""
import math
from typing import Dict, Mapping, Sequence

import numpy as np

from .exceptions import InvalidParameterError, validate_positive, validate_range
from .model_base import EquationModel, SymbolSpec
from .units import METERS_PER_FOOT, METERS_PER_INCH, SECONDS_PER_YEAR

__all__ = ['TreeGrowthModel']

ONE_INCH_SQ = METERS_PER_INCH ** 2
HUNDRED_FEET = 100.0 * METERS_PER_FOOT


class TreeGrowthModel(EquationModel):
    """Single-tree Prognosis growth SDE.

    Coefficients for the DDS regression, crown recession and the numeric
    floors are loaded from cfg/tree_growth.yaml.

    Attributes:
        dds: DDS regression coefficients (b0, b_SI, b_EL, b_CCF, b_CR, b_DBH, b_PCT)
        crown_recession: low/high recession fractions and the CCF threshold
        floors: CR_min, DG_min and DG_offset
    """

    MODEL_ID = 'TreeGrowth'
    COEFFICIENT_FILE = 'tree_growth.yaml'
    COEFFICIENT_KEY = 'species_coefficients'
    DEFAULT_SPECIES = 'LP'
    NOISE_TERMS = 1
    FALLBACK_PARAMETERS = {
        'LP': {
            'common_name': 'lodgepole pine',
            'dds': {
                'b0': -1.66955,
                'b_SI': 0.4143,
                'b_EL': -0.004388,
                'b_CCF': -0.3781,
                'b_CR': 0.4879,
                'b_DBH': 0.9948,
                'b_PCT': 0.006141,
            },
            'crown_recession': {
                'low_fraction': 0.2,
                'high_fraction': 0.61,
                'ccf_threshold': 125.0,
            },
            'floors': {
                'CR_min': 0.01,
                'DG_min': 0.001,
                'DG_offset': 0.05,
            },
        },
    }

    STATES = (
        SymbolSpec('Dsq', 36.0, 'in^2', 'Squared diameter at breast height'),
        SymbolSpec('HT', 60.0, 'ft', 'Total tree height'),
        SymbolSpec('HCB', 40.0, 'ft', 'Height to crown base'),
        SymbolSpec('N_trees', 500.0, '1/acre', 'Tree density'),
    )
    PARAMETERS = (
        SymbolSpec('SI', 80.0, 'ft', 'Site index'),
        SymbolSpec('EL', 43.0, '100ft', 'Elevation above sea level'),
        SymbolSpec('CCF', 100.0, '1', 'Crown competition factor'),
        SymbolSpec('PCT', 50.0, '1', 'Percentile in basal area distribution (0-100)'),
        SymbolSpec('RMSQD', 7.0, 'in', 'Diameter of tree of mean basal area'),
        SymbolSpec('BKR', 1.0, '1', 'Bark ratio (dob/dib)^2'),
        SymbolSpec('c1_ht', 0.0, '1', 'Height increment intercept'),
        SymbolSpec('c2_ht', 0.5, '1', 'Height increment coefficient on ln(DG + 0.05)'),
        SymbolSpec('c3_ht', -0.1, '1', 'Height increment coefficient on ln(DBH)'),
        SymbolSpec('c4_ht', 0.2, '1', 'Height increment coefficient on ln(HT)'),
        SymbolSpec('mort_a0', 0.0536, '1', 'Mortality intercept, annual rate'),
        SymbolSpec('mort_a1', -0.0088, '1', 'Mortality coefficient on mean DBH in inches'),
        SymbolSpec('mort_a2', 0.000415, '1', 'Mortality coefficient on mean DBH squared'),
        SymbolSpec('mean_DBH', 7.0, 'in', 'Stand mean DBH for mortality'),
        SymbolSpec('sigma_growth', 0.3, 'sqrt(yr)', 'Scaled std dev of growth noise'),
    )
    ALGEBRAIC = (
        ('DBH', 'm'),
        ('CR', '1'),
        ('mean_DBH_in', '1'),
        ('DDS_rate', 'm^2/s'),
        ('DG', '1'),
        ('HTGF_rate', 'm/s'),
        ('crown_recession_rate', 'm/s'),
        ('mortality_rate', '1/s'),
    )

    def __init__(self, species_code: str = None):
        super().__init__(species_code)
        fallback = self.FALLBACK_PARAMETERS[self.DEFAULT_SPECIES]
        self.dds = dict(self.coefficients.get('dds', fallback['dds']))
        self.crown_recession = dict(
            self.coefficients.get('crown_recession', fallback['crown_recession'])
        )
        self.floors = dict(self.coefficients.get('floors', fallback['floors']))

    def algebraic(self, t: float, y: Sequence[float], p: Mapping[str, float]) -> Dict[str, float]:
        Dsq, HT, HCB = y[0], y[1], y[2]
        b = self.dds
        floors = self.floors

        DBH = math.sqrt(Dsq)
        # Floored so ln(CR) stays finite
        CR = max(floors['CR_min'], (HT - HCB) / HT)
        mean_DBH_in = p['mean_DBH'] / METERS_PER_INCH
        dbh_in = DBH / METERS_PER_INCH

        DDS_rate = (p['BKR'] * ONE_INCH_SQ / SECONDS_PER_YEAR) * math.exp(
            b['b0']
            + b['b_SI'] * math.log(p['SI'] / METERS_PER_FOOT)
            + b['b_EL'] * (p['EL'] / HUNDRED_FEET)
            + b['b_CCF'] * math.log(p['CCF'])
            + b['b_CR'] * math.log(CR)
            + b['b_DBH'] * math.log(dbh_in)
            + b['b_PCT'] * p['PCT']
        )

        # Exact diameter increment in inches from one year of basal area increment
        DG = max(
            floors['DG_min'],
            math.sqrt(dbh_in ** 2 + DDS_rate * SECONDS_PER_YEAR / ONE_INCH_SQ) - dbh_in,
        )

        HTGF_rate = (METERS_PER_FOOT / SECONDS_PER_YEAR) * math.exp(
            p['c1_ht']
            + p['c2_ht'] * math.log(DG + floors['DG_offset'])
            + p['c3_ht'] * math.log(dbh_in)
            + p['c4_ht'] * math.log(HT / METERS_PER_FOOT)
        )

        recession = self.crown_recession
        if p['CCF'] < recession['ccf_threshold']:
            crown_recession_rate = recession['low_fraction'] * HTGF_rate
        else:
            crown_recession_rate = recession['high_fraction'] * HTGF_rate

        mortality_rate = max(
            0.0,
            (1.0 / SECONDS_PER_YEAR)
            * (p['mort_a0'] + p['mort_a1'] * mean_DBH_in + p['mort_a2'] * mean_DBH_in * mean_DBH_in)
            * (0.25 + 1.5 * (1.0 - p['PCT'] / 100.0)),
        )

        return {
            'DBH': DBH,
            'CR': CR,
            'mean_DBH_in': mean_DBH_in,
            'DDS_rate': DDS_rate,
            'DG': DG,
            'HTGF_rate': HTGF_rate,
            'crown_recession_rate': crown_recession_rate,
            'mortality_rate': mortality_rate,
        }

    def drift(self, t: float, y: Sequence[float], p: Mapping[str, float]) -> np.ndarray:
        q = self.algebraic(t, y, p)
        return np.array([
            q['DDS_rate'],
            q['HTGF_rate'],
            q['crown_recession_rate'],
            -q['mortality_rate'] * y[3],
        ])

    def diffusion(self, t: float, y: Sequence[float], p: Mapping[str, float]) -> np.ndarray:
        q = self.algebraic(t, y, p)
        g = np.zeros((4, 1))
        g[0, 0] = p['sigma_growth'] * abs(q['DDS_rate'])
        return g

    def validate_state(self, state: Mapping[str, float], parameters: Mapping[str, float]) -> None:
        validate_positive(state['Dsq'], 'Dsq')
        validate_positive(state['HT'], 'HT')
        validate_positive(state['HCB'], 'HCB')
        validate_positive(state['N_trees'], 'N_trees')
        if math.sqrt(state['Dsq']) >= state['HT']:
            raise InvalidParameterError('Dsq', state['Dsq'], "DBH must be smaller than HT")
        if state['HCB'] >= state['HT']:
            raise InvalidParameterError('HCB', state['HCB'], "crown base must be below HT")

        validate_positive(parameters['SI'], 'SI')
        validate_positive(parameters['CCF'], 'CCF')
        validate_positive(parameters['BKR'], 'BKR')
        validate_positive(parameters['mean_DBH'], 'mean_DBH')
        validate_range(parameters['PCT'], 0.0, 100.0, 'PCT')
        if parameters['sigma_growth'] < 0:
            raise InvalidParameterError(
                'sigma_growth', parameters['sigma_growth'], "must be non-negative"
            )
