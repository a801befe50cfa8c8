"""
Shared pytest fixtures for PyVeg tests.

This module provides commonly used models, problems and solved runs so
the long-horizon simulations are solved once per test session.
"""
import pytest

from pyveg import (
    AdaptiveConfig,
    CohortBiomassModel,
    CrownBaseEstimator,
    EulerMaruyamaConfig,
    Problem,
    TreeGrowthModel,
    solve,
)
from pyveg.config_loader import get_config_loader


# =============================================================================
# Unit Constants
# =============================================================================

YEAR = 3.15576e7        # seconds per year
INCH = 0.0254           # meters per inch
FOOT = 0.3048           # meters per foot
MG_HA = 0.1             # kg/m^2 per Mg/ha


# =============================================================================
# Configuration Cache
# =============================================================================

@pytest.fixture(autouse=True)
def fresh_config_cache():
    """Clear the coefficient cache around every test."""
    get_config_loader().clear_coefficient_cache()
    yield
    get_config_loader().clear_coefficient_cache()


# =============================================================================
# Models
# =============================================================================

@pytest.fixture
def cohort_model():
    """Sugar maple (ACSA) cohort biomass model."""
    return CohortBiomassModel()


@pytest.fixture
def tree_model():
    """Lodgepole pine single-tree growth model."""
    return TreeGrowthModel()


@pytest.fixture
def crown_base_estimator():
    """Lodgepole pine crown base regression."""
    return CrownBaseEstimator()


# =============================================================================
# Problems and Method Configurations
# =============================================================================

@pytest.fixture
def deterministic_em():
    """Euler-Maruyama at a tenth of a year; with zero noise this is explicit Euler."""
    return EulerMaruyamaConfig(step=(0.1, 'yr'), seed=1)


def _deterministic_tree_problem(years, initial_overrides=None, **parameter_overrides):
    overrides = {"sigma_growth": (0.0, "sqrt(yr)")}
    overrides.update(parameter_overrides)
    return Problem.create(
        "TreeGrowth", (0, years),
        initial_overrides=initial_overrides,
        parameter_overrides=overrides,
        time_unit="yr",
    )


@pytest.fixture
def make_tree_problem():
    """Factory for tree growth problems with growth noise switched off.

    Call as make_tree_problem(years, initial_overrides=None, **parameter_overrides)
    with overrides given as (value, unit) pairs.
    """
    return _deterministic_tree_problem


@pytest.fixture
def short_cohort_problem():
    """Default ACSA cohort over one second, for checking the algebraic chain."""
    return Problem.create('CohortBiomass', (0.0, 1.0))


# =============================================================================
# Solved Runs (session scoped)
# =============================================================================

@pytest.fixture(scope="session")
def acsa_200yr_solution():
    """Default sugar maple cohort solved over 200 years."""
    problem = Problem.create('CohortBiomass', (0, 200), time_unit='yr')
    return solve(problem, AdaptiveConfig())


@pytest.fixture(scope="session")
def tree_50yr_solution():
    """Deterministic default tree solved over 50 years."""
    problem = _deterministic_tree_problem(50)
    return solve(problem, EulerMaruyamaConfig(step=YEAR / 10, seed=1))
