"""
PyVeg: forest stand dynamics simulation for Python

Equation models for stand development with a small dynamical-systems
core:

- CohortBiomassModel: LANDIS single-cohort biomass ODE (Scheller and Mladenoff 2004)
- TreeGrowthModel: Prognosis single-tree growth SDE (Stage 1973)
- CrownBaseEstimator: Prognosis height-to-crown-base regression

Quick Start:
    >>> from pyveg import Problem, solve
    >>> problem = Problem.create('CohortBiomass', (0, 200), time_unit='yr')
    >>> solution = solve(problem)
    >>> solution.sample(100 * 3.15576e7)['B']
"""

# =============================================================================
# Package Metadata
# =============================================================================
__version__ = "0.1.0"
__author__ = "PyVeg Development Team"

# =============================================================================
# Models
# =============================================================================
from .model_base import EquationModel, ParameterizedModel, Schema, SymbolSpec
from .cohort_biomass import CohortBiomassModel
from .tree_growth import TreeGrowthModel
from .crown_base import (
    CrownBaseEstimator,
    HABITAT_ADJUSTMENTS,
    estimate_initial_crown_base,
)

# =============================================================================
# Scenarios and Solving
# =============================================================================
from .scenario import (
    MODEL_REGISTRY,
    Problem,
    ScenarioBuilder,
    create_model,
    load_scenario,
)
from .integrators import AdaptiveConfig, EulerMaruyamaConfig, solve
from .solution import ReturnCode, Solution
from .ensemble import EnsembleResult, SweepResult, run_ensemble, run_sweep

# =============================================================================
# Units
# =============================================================================
from .units import (
    SECONDS_PER_YEAR,
    UNIT_SCALE,
    Quantity,
    UnitScale,
    as_si,
    from_si,
    to_si,
)

# =============================================================================
# Configuration and Logging
# =============================================================================
from .config_loader import ConfigLoader, get_config_loader, load_config_file
from .logging_config import setup_logging, get_logger

# =============================================================================
# Exceptions
# =============================================================================
from .exceptions import (
    VegetationError,
    ConfigurationError,
    UnknownUnitError,
    UnitMismatchError,
    MissingUnitError,
    UnknownSymbolError,
    InvalidTimeSpanError,
    SpeciesNotFoundError,
    ParameterError,
    InvalidParameterError,
    ConfigFileNotFoundError,
    InvalidDataError,
    SimulationError,
    SolutionQueryError,
)

# =============================================================================
# Public API Definition
# =============================================================================
__all__ = [
    # Metadata
    "__version__",

    # Models
    "EquationModel",
    "ParameterizedModel",
    "Schema",
    "SymbolSpec",
    "CohortBiomassModel",
    "TreeGrowthModel",
    "CrownBaseEstimator",
    "HABITAT_ADJUSTMENTS",
    "estimate_initial_crown_base",

    # Scenarios and solving
    "MODEL_REGISTRY",
    "Problem",
    "ScenarioBuilder",
    "create_model",
    "load_scenario",
    "AdaptiveConfig",
    "EulerMaruyamaConfig",
    "solve",
    "ReturnCode",
    "Solution",
    "EnsembleResult",
    "SweepResult",
    "run_ensemble",
    "run_sweep",

    # Units
    "SECONDS_PER_YEAR",
    "UNIT_SCALE",
    "Quantity",
    "UnitScale",
    "as_si",
    "from_si",
    "to_si",

    # Configuration and logging
    "ConfigLoader",
    "get_config_loader",
    "load_config_file",
    "setup_logging",
    "get_logger",

    # Exceptions
    "VegetationError",
    "ConfigurationError",
    "UnknownUnitError",
    "UnitMismatchError",
    "MissingUnitError",
    "UnknownSymbolError",
    "InvalidTimeSpanError",
    "SpeciesNotFoundError",
    "ParameterError",
    "InvalidParameterError",
    "ConfigFileNotFoundError",
    "InvalidDataError",
    "SimulationError",
    "SolutionQueryError",
]
