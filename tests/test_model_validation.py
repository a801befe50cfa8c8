"""
Model validation tests for PyVeg.
Tests against published values from Stage (1973).

The height increment coefficients are calibrated estimates, so height
growth is held to the published record while diameter growth is only
checked to within a factor of the published values. A single tree run at
PCT = 50 grows in diameter about twice as fast as the Figure 1B record.
"""
import math
from pathlib import Path

import numpy as np
import pytest
import yaml

from pyveg import EulerMaruyamaConfig, Problem, solve

YEAR = 3.15576e7
INCH = 0.0254
FOOT = 0.3048


@pytest.fixture(scope="module")
def expected():
    """Published reference values."""
    expected_file = Path(__file__).parent / 'expected_values.yaml'
    with open(expected_file, 'r') as f:
        return yaml.safe_load(f)


@pytest.fixture(scope="module")
def figure_1b(expected):
    return expected['stage_1973_figure_1b']


@pytest.fixture(scope="module")
def figure_1b_record(figure_1b):
    """Modelled DBH (in) and HT (ft) at the published record years."""
    initial = figure_1b['initial']
    ht0 = initial['HT_ft']
    problem = Problem.create(
        'TreeGrowth', (0, figure_1b['years'][-1]),
        initial_overrides={
            'Dsq': (initial['DBH_in'] ** 2, 'in^2'),
            'HT': (ht0, 'ft'),
            'HCB': (ht0 * (1.0 - initial['CR']), 'ft'),
            'N_trees': (initial['N_trees_per_acre'], '1/acre'),
        },
        parameter_overrides={
            'sigma_growth': (0.0, 'sqrt(yr)'),
            'PCT': figure_1b['PCT'],
        },
        time_unit='yr',
    )
    solution = solve(problem, EulerMaruyamaConfig(step=YEAR / 10, seed=1))
    assert solution.success

    dbh, ht = [], []
    for year in figure_1b['years']:
        t = min(year * YEAR, solution.t_end)
        state = solution.sample(t)
        dbh.append(math.sqrt(state['Dsq']) / INCH)
        ht.append(state['HT'] / FOOT)
    return np.array(dbh), np.array(ht)


class TestStage1973Figure1B:
    """Deterministic projection of the Figure 1B sample tree."""

    def test_initial_values(self, figure_1b, figure_1b_record):
        dbh, ht = figure_1b_record
        tolerance = figure_1b['tolerances']['initial_abs']
        assert dbh[0] == pytest.approx(figure_1b['DBH_in'][0], abs=tolerance)
        assert ht[0] == pytest.approx(figure_1b['HT_ft'][0], abs=tolerance)

    def test_growth_direction(self, figure_1b_record):
        dbh, ht = figure_1b_record
        assert np.all(np.diff(dbh) > 0)
        assert np.all(np.diff(ht) > 0)

    @pytest.mark.parametrize("record", [1, 2, 3, 4], ids=["1980", "1990", "2000", "2020"])
    def test_height_growth_matches_record(self, figure_1b, figure_1b_record, record):
        _, ht = figure_1b_record
        paper_ht = figure_1b['HT_ft']
        tolerances = figure_1b['tolerances']

        growth_paper = paper_ht[record] - paper_ht[0]
        growth_model = ht[record] - ht[0]
        assert growth_model > 0
        if growth_paper > tolerances['min_paper_growth_ft']:
            relative_error = abs(growth_model - growth_paper) / growth_paper
            assert relative_error < tolerances['height_growth_rel'], (
                f"Height growth {growth_model:.1f} ft vs published {growth_paper:.1f} ft"
            )

    def test_diameter_growth_within_band(self, figure_1b, figure_1b_record):
        dbh, _ = figure_1b_record
        paper_dbh = figure_1b['DBH_in']
        low, high = figure_1b['tolerances']['dbh_growth_ratio']

        assert np.all(dbh[1:] - dbh[0] > 0)
        ratio = (dbh[-1] - dbh[0]) / (paper_dbh[-1] - paper_dbh[0])
        assert low < ratio < high, f"DBH growth ratio {ratio:.2f} outside ({low}, {high})"
