"""
Tests for stochastic ensembles and parameter sweeps.
"""
import logging
import math

import numpy as np
import pandas as pd
import pytest

from pyveg import (
    EnsembleResult,
    EulerMaruyamaConfig,
    Problem,
    SweepResult,
    run_ensemble,
    run_sweep,
    solve,
)
from pyveg.exceptions import ConfigurationError, SimulationError, UnknownSymbolError

YEAR = 3.15576e7
INCH = 0.0254


@pytest.fixture(scope="module")
def tree_problem():
    """Stochastic default tree over 20 years."""
    return Problem.create('TreeGrowth', (0, 20), time_unit='yr')


@pytest.fixture(scope="module")
def tree_ensemble(tree_problem):
    return run_ensemble(tree_problem, seeds=range(1, 11), step=(0.1, 'yr'), max_workers=4)


class TestRunEnsemble:
    """Tests for seeded Euler-Maruyama ensembles."""

    def test_result_type(self, tree_ensemble):
        assert isinstance(tree_ensemble, EnsembleResult)
        assert len(tree_ensemble) == 10
        assert tree_ensemble.seeds == list(range(1, 11))
        assert not tree_ensemble.failures

    def test_members_match_single_runs(self, tree_problem, tree_ensemble):
        """Thread scheduling does not change results or their order."""
        for seed, solution in zip((1, 5, 10), (tree_ensemble.solutions[i] for i in (0, 4, 9))):
            single = solve(tree_problem, EulerMaruyamaConfig(step=(0.1, 'yr'), seed=seed))
            np.testing.assert_array_equal(solution.y, single.y)

    def test_repeatable(self, tree_problem, tree_ensemble):
        again = run_ensemble(tree_problem, seeds=range(1, 11), step=(0.1, 'yr'), max_workers=2)
        np.testing.assert_array_equal(again.values('Dsq'), tree_ensemble.values('Dsq'))

    def test_aggregates(self, tree_ensemble):
        values = tree_ensemble.values('DBH')
        assert values.shape == (10, len(tree_ensemble.t))
        np.testing.assert_allclose(tree_ensemble.mean('DBH'), values.mean(axis=0))
        assert np.all(tree_ensemble.std('DBH')[1:] > 0)
        assert np.ptp(values[:, 0]) == 0.0
        assert tree_ensemble.std('DBH')[0] == pytest.approx(0.0, abs=1e-12)
        assert tree_ensemble.final('N_trees').shape == (10,)

    def test_mean_near_deterministic(self, tree_ensemble):
        deterministic = solve(
            Problem.create(
                'TreeGrowth', (0, 20),
                parameter_overrides={'sigma_growth': (0.0, 'sqrt(yr)')},
                time_unit='yr',
            ),
            EulerMaruyamaConfig(step=(0.1, 'yr'), seed=0),
        )
        det_dbh = math.sqrt(deterministic.final_state['Dsq']) / INCH
        mean_dbh = tree_ensemble.final('DBH').mean() / INCH
        assert abs(mean_dbh - det_dbh) < 1.0

    def test_to_dataframe(self, tree_ensemble):
        frame = tree_ensemble.to_dataframe('HT')
        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == list(range(1, 11))
        assert frame.index.name == 'time'
        assert frame.shape == (len(tree_ensemble.t), 10)

    def test_requires_seeds(self, tree_problem):
        with pytest.raises(ConfigurationError):
            run_ensemble(tree_problem, seeds=[], step=(0.1, 'yr'))

    def test_rejects_repeated_seeds(self, tree_problem):
        with pytest.raises(ConfigurationError, match="distinct"):
            run_ensemble(tree_problem, seeds=[1, 2, 2], step=(0.1, 'yr'))


class TestFailedMembers:
    """Aggregation skips failed members."""

    @pytest.fixture
    def wild_problem(self):
        """Noise large enough to drive diameter negative in some members."""
        return Problem.create(
            'TreeGrowth', (0, 30),
            parameter_overrides={'sigma_growth': (60.0, 'sqrt(yr)')},
            time_unit='yr',
        )

    def test_failures_reported(self, wild_problem, caplog):
        with caplog.at_level(logging.WARNING, logger='pyveg'):
            result = run_ensemble(wild_problem, seeds=range(20), step=(1.0, 'yr'))
        assert len(result) == 20
        assert len(result.failures) + len(result.successful) == 20
        if result.failures:
            assert "excluded from aggregates" in caplog.text
            assert all(not s.success for _, s in result.failures)
        if result.successful:
            assert result.values('Dsq').shape[0] == len(result.successful)

    def test_no_successful_members(self):
        result = EnsembleResult(None, [], [])
        with pytest.raises(SimulationError):
            result.mean('B')


class TestRunSweep:
    """Tests for one-parameter sweeps."""

    @pytest.fixture(scope="class")
    def competition_sweep(self):
        base = Problem.create('CohortBiomass', (0, 100), time_unit='yr')
        values = [(b, 'Mg/ha') for b in (0, 300, 400, 450)]
        return run_sweep(base, 'B_other', values, max_workers=2)

    def test_result_type(self, competition_sweep):
        assert isinstance(competition_sweep, SweepResult)
        assert len(competition_sweep) == 4
        assert competition_sweep.symbol == 'B_other'

    def test_problems_follow_values(self, competition_sweep):
        b_other = [p['B_other'] for p in competition_sweep.problems]
        assert b_other == pytest.approx([0.0, 30.0, 40.0, 45.0])

    def test_more_competition_less_biomass(self, competition_sweep):
        final = competition_sweep.final('B')
        assert np.all(np.isfinite(final))
        assert np.all(np.diff(final) < 0)

    def test_to_dataframe(self, competition_sweep):
        frame = competition_sweep.to_dataframe(['B', 'D_wood'])
        assert list(frame.columns) == ['B_other', 'status', 'B', 'D_wood']
        assert (frame['status'] == 'SUCCESS').all()

    def test_unknown_symbol(self):
        base = Problem.create('CohortBiomass', (0, 10), time_unit='yr')
        with pytest.raises(UnknownSymbolError):
            run_sweep(base, 'LAI', [1.0, 2.0])

    def test_stochastic_sweep(self):
        base = Problem.create(
            'TreeGrowth', (0, 10),
            parameter_overrides={'sigma_growth': (0.0, 'sqrt(yr)')},
            time_unit='yr',
        )
        result = run_sweep(
            base, 'SI', [(50, 'ft'), (100, 'ft')],
            method_config=EulerMaruyamaConfig(step=(0.1, 'yr'), seed=0),
        )
        small, large = result.final('Dsq')
        assert large > small
