"""
Cohort and Single-Tree Growth Example

Demonstrates the PyVeg workflow end to end:
    1. Build a LANDIS cohort problem and solve it with the adaptive integrator
    2. Derive a competition scenario from it
    3. Load the Figure 1B lodgepole pine scenario, seed its crown base from
       the crown base regression and run a seeded stochastic ensemble

Prerequisites:
    - pip install -e ".[examples]"

Usage:
    python examples/cohort_and_tree_growth.py
"""
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pyveg import (
    Problem,
    estimate_initial_crown_base,
    from_si,
    load_scenario,
    run_ensemble,
    setup_logging,
    to_si,
)

console = Console()

SCENARIO_DIR = Path(__file__).parent / "scenarios"


def cohort_yield_table():
    """Sugar maple cohort alone and with 300 Mg/ha of neighbouring biomass."""
    console.print(Panel("[bold]LANDIS Cohort Biomass (sugar maple)[/bold]"))

    alone = Problem.create('CohortBiomass', (0, 200), time_unit='yr')
    crowded = alone.derive({'B_other': (300.0, 'Mg/ha')})
    solutions = [alone.solve(), crowded.solve()]

    table = Table(title="Living and dead woody biomass (Mg/ha)")
    table.add_column("Year", justify="center")
    table.add_column("B alone", justify="right")
    table.add_column("D_wood alone", justify="right")
    table.add_column("B crowded", justify="right")
    table.add_column("D_wood crowded", justify="right")

    for year in range(0, 201, 20):
        row = [str(year)]
        for solution in solutions:
            state = solution.sample(to_si(year, 'yr'))
            row.append(f"{from_si(state['B'], 'Mg/ha'):.1f}")
            row.append(f"{from_si(state['D_wood'], 'Mg/ha'):.1f}")
        table.add_row(*row)

    console.print(table)
    console.print()


def lodgepole_ensemble():
    """Seeded stochastic projections of the Figure 1B sample tree."""
    console.print(Panel("[bold]Stage Prognosis Ensemble (lodgepole pine)[/bold]"))

    problem = load_scenario(SCENARIO_DIR / "lodgepole_tree.yaml")
    problem = estimate_initial_crown_base(problem, habitat_type='ABIES/VACCINIUM')
    console.print(
        f"Initial crown base from regression: {from_si(problem['HCB'], 'ft'):.1f} ft"
    )

    ensemble = run_ensemble(problem, seeds=range(1, 21), step=(0.1, 'yr'))
    if ensemble.failures:
        console.print(f"[yellow]{len(ensemble.failures)} members failed[/yellow]")

    table = Table(title=f"{len(ensemble.successful)} members, growth noise 0.3 sqrt(yr)")
    table.add_column("Year", justify="center")
    table.add_column("DBH mean (in)", justify="right")
    table.add_column("DBH sd (in)", justify="right")
    table.add_column("HT mean (ft)", justify="right")
    table.add_column("Trees/acre", justify="right")

    t = ensemble.t
    dbh_mean = ensemble.mean('DBH')
    dbh_sd = ensemble.std('DBH')
    ht_mean = ensemble.mean('HT')
    n_mean = ensemble.mean('N_trees')
    for i in range(0, len(t), 50):
        table.add_row(
            f"{from_si(t[i], 'yr'):.0f}",
            f"{from_si(dbh_mean[i], 'in'):.2f}",
            f"{from_si(dbh_sd[i], 'in'):.2f}",
            f"{from_si(ht_mean[i], 'ft'):.1f}",
            f"{from_si(n_mean[i], '1/acre'):.0f}",
        )

    console.print(table)


if __name__ == "__main__":
    setup_logging('WARNING')
    cohort_yield_table()
    lodgepole_ensemble()
