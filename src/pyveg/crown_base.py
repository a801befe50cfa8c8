"""
Height to crown base (HCB) prediction for lodgepole pine (Stage 1973, p. 16).

A static regression used to set initial crown dimensions when field
crown measurements are not available:

    HCB = -29.26 + 0.61*HT + 9.178*ln(CCF) - 0.222*EL - 5.80*DBH/RMSQD + HAB

with heights in feet, elevation in hundreds of feet and diameters in
inches. HAB is a habitat type adjustment in feet.
"""
import math
from typing import TYPE_CHECKING, Dict, Mapping, Optional, Sequence

from .exceptions import ConfigurationError, SpeciesNotFoundError, validate_positive
from .logging_config import get_logger
from .model_base import EquationModel, SymbolSpec
from .units import METERS_PER_FOOT, METERS_PER_INCH

if TYPE_CHECKING:
    from .scenario import Problem

__all__ = [
    'CrownBaseEstimator',
    'HABITAT_ADJUSTMENTS',
    'estimate_initial_crown_base',
]

logger = get_logger(__name__)

HUNDRED_FEET = 100.0 * METERS_PER_FOOT

# Habitat type adjustments (feet) listed by Stage (1973)
HABITAT_ADJUSTMENTS = {
    'ABIES/XEROPHYLLUM': 0.0,
    'ABIES/VACCINIUM': -4.24,
    'ABIES/PACHISTIMA': -3.86,
    'PSEUDOTSUGA/CALAMAGROSTIS': -5.47,
}


class CrownBaseEstimator(EquationModel):
    """Static HCB regression; no state, one algebraic output ``HCB_pred``."""

    MODEL_ID = 'CrownBase'
    COEFFICIENT_FILE = 'crown_base.yaml'
    COEFFICIENT_KEY = 'species_coefficients'
    DEFAULT_SPECIES = 'LP'
    FALLBACK_PARAMETERS = {
        'LP': {
            'hcb': {
                'b0': -29.26,
                'b_HT': 0.61,
                'b_CCF': 9.178,
                'b_EL': -0.222,
                'b_DBH_RMSQD': -5.80,
            },
        },
    }

    STATES = ()
    PARAMETERS = (
        SymbolSpec('HT_input', 60.0, 'ft', 'Total tree height'),
        SymbolSpec('DBH_input', 6.0, 'in', 'Diameter at breast height'),
        SymbolSpec('CCF', 100.0, '1', 'Crown competition factor'),
        SymbolSpec('EL', 43.0, '100ft', 'Elevation above sea level'),
        SymbolSpec('RMSQD', 7.0, 'in', 'Diameter of tree of mean basal area'),
        SymbolSpec('HAB', 0.0, '1', 'Habitat type adjustment (feet-space)'),
    )
    ALGEBRAIC = (
        ('HCB_pred', 'm'),
    )

    def __init__(self, species_code: str = None):
        super().__init__(species_code)
        fallback = self.FALLBACK_PARAMETERS[self.DEFAULT_SPECIES]
        self.hcb = dict(self.coefficients.get('hcb', fallback['hcb']))

        habitats = self.raw_data.get('habitat_types')
        if habitats:
            self.habitat_adjustments = {
                code: float(entry['HAB']) for code, entry in habitats.items()
            }
        else:
            self.habitat_adjustments = dict(HABITAT_ADJUSTMENTS)

    def habitat_adjustment(self, habitat_type: str) -> float:
        """Look up the HAB adjustment for a habitat type code.

        Raises:
            SpeciesNotFoundError: If the habitat type is not configured
        """
        code = habitat_type.strip().upper()
        if code not in self.habitat_adjustments:
            raise SpeciesNotFoundError(habitat_type, self.habitat_adjustments)
        return self.habitat_adjustments[code]

    def algebraic(self, t: float, y: Sequence[float], p: Mapping[str, float]) -> Dict[str, float]:
        b = self.hcb
        HCB_pred = METERS_PER_FOOT * (
            b['b0']
            + b['b_HT'] * (p['HT_input'] / METERS_PER_FOOT)
            + b['b_CCF'] * math.log(p['CCF'])
            + b['b_EL'] * (p['EL'] / HUNDRED_FEET)
            + b['b_DBH_RMSQD'] * (p['DBH_input'] / METERS_PER_INCH) / (p['RMSQD'] / METERS_PER_INCH)
            + p['HAB']
        )
        return {'HCB_pred': HCB_pred}

    def predict(
        self,
        HT: float,
        DBH: float,
        CCF: float,
        EL: float,
        RMSQD: float,
        HAB: float = 0.0,
        habitat_type: Optional[str] = None,
    ) -> float:
        """Predict height to crown base.

        Args:
            HT: Total tree height (m)
            DBH: Diameter at breast height (m)
            CCF: Crown competition factor
            EL: Elevation (m)
            RMSQD: Diameter of tree of mean basal area (m)
            HAB: Habitat adjustment in feet-space; ignored when habitat_type is given
            habitat_type: Optional habitat type code (see HABITAT_ADJUSTMENTS)

        Returns:
            Predicted height to crown base (m)
        """
        if habitat_type is not None:
            HAB = self.habitat_adjustment(habitat_type)
        params = {
            'HT_input': HT,
            'DBH_input': DBH,
            'CCF': CCF,
            'EL': EL,
            'RMSQD': RMSQD,
            'HAB': HAB,
        }
        self.validate_state({}, params)
        return self.algebraic(0.0, (), params)['HCB_pred']

    def validate_state(self, state: Mapping[str, float], parameters: Mapping[str, float]) -> None:
        validate_positive(parameters['HT_input'], 'HT_input')
        validate_positive(parameters['DBH_input'], 'DBH_input')
        validate_positive(parameters['CCF'], 'CCF')
        validate_positive(parameters['RMSQD'], 'RMSQD')


def estimate_initial_crown_base(
    tree_problem: 'Problem',
    habitat_type: Optional[str] = None,
    estimator: Optional[CrownBaseEstimator] = None,
) -> 'Problem':
    """Derive a tree growth problem whose initial HCB comes from the regression.

    Tree height, diameter and the stand descriptors are read from the
    given problem; the original problem is left untouched.

    Args:
        tree_problem: A TreeGrowth problem
        habitat_type: Optional habitat type code for the HAB adjustment
        estimator: Estimator to use; a default one is created if omitted

    Returns:
        A new Problem with ``HCB`` replaced

    Raises:
        ConfigurationError: If the problem is not a TreeGrowth problem
        InvalidParameterError: If the predicted crown base is not inside the tree
    """
    if tree_problem.model.MODEL_ID != 'TreeGrowth':
        raise ConfigurationError(
            f"Crown base estimation needs a TreeGrowth problem, got '{tree_problem.model.MODEL_ID}'"
        )
    if estimator is None:
        estimator = CrownBaseEstimator()

    hcb = estimator.predict(
        HT=tree_problem['HT'],
        DBH=math.sqrt(tree_problem['Dsq']),
        CCF=tree_problem['CCF'],
        EL=tree_problem['EL'],
        RMSQD=tree_problem['RMSQD'],
        habitat_type=habitat_type,
    )
    logger.debug("Estimated initial crown base %.4f m (habitat=%s)", hcb, habitat_type)
    return tree_problem.derive({'HCB': (hcb, 'm')})
