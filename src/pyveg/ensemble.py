"""
Stochastic ensembles and parameter sweeps.

Each member is an independent Problem/Solution pair, so members run on a
thread pool with no coordination. Results are collected after every
member completes and are ordered by seed (or sweep value), never by
completion order. Aggregates use successful members only.
"""
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError, SimulationError
from .integrators import EulerMaruyamaConfig, MethodConfig, solve
from .logging_config import get_logger
from .scenario import Problem
from .solution import Solution

__all__ = [
    'EnsembleResult',
    'SweepResult',
    'run_ensemble',
    'run_sweep',
]

logger = get_logger(__name__)


class EnsembleResult:
    """Solutions of one Problem under several seeds.

    Attributes:
        problem: The shared Problem
        seeds: Seeds in the order given
        solutions: One Solution per seed, same order
    """

    def __init__(self, problem: Problem, seeds: Sequence[int], solutions: Sequence[Solution]):
        self.problem = problem
        self.seeds = list(seeds)
        self.solutions = list(solutions)
        self.successful = [s for s in self.solutions if s.success]
        excluded = len(self.solutions) - len(self.successful)
        if excluded:
            logger.warning(
                "%d of %d ensemble members failed and are excluded from aggregates",
                excluded, len(self.solutions),
            )

    @property
    def failures(self) -> List[Tuple[int, Solution]]:
        """(seed, solution) pairs of failed members."""
        return [(seed, s) for seed, s in zip(self.seeds, self.solutions) if not s.success]

    @property
    def t(self) -> np.ndarray:
        """Common sample times of the successful members."""
        self._require_members()
        return self.successful[0].t

    def _require_members(self) -> None:
        if not self.successful:
            raise SimulationError("No successful ensemble members to aggregate")

    def values(self, name: str) -> np.ndarray:
        """Array of shape (n_successful, n_times) for a state or algebraic quantity."""
        self._require_members()
        return np.vstack([s.observe(name) for s in self.successful])

    def mean(self, name: str) -> np.ndarray:
        return self.values(name).mean(axis=0)

    def std(self, name: str) -> np.ndarray:
        return self.values(name).std(axis=0)

    def final(self, name: str) -> np.ndarray:
        """Value at the end of the time span for each successful member."""
        return self.values(name)[:, -1]

    def to_dataframe(self, name: str) -> pd.DataFrame:
        """One column per successful seed, indexed by time (s)."""
        seeds = [seed for seed, s in zip(self.seeds, self.solutions) if s.success]
        frame = pd.DataFrame(self.values(name).T, columns=seeds, index=self.t)
        frame.index.name = 'time'
        return frame

    def __len__(self) -> int:
        return len(self.solutions)

    def __repr__(self) -> str:
        return (
            f"EnsembleResult(model='{self.problem.model_id}', members={len(self.solutions)}, "
            f"successful={len(self.successful)})"
        )


class SweepResult:
    """Solutions of Problems derived by varying one symbol.

    Attributes:
        symbol: The swept state or parameter
        values: Override values in the order given
        problems: Derived Problem per value
        solutions: Solution per value
    """

    def __init__(
        self,
        symbol: str,
        values: Sequence[Any],
        problems: Sequence[Problem],
        solutions: Sequence[Solution],
    ):
        self.symbol = symbol
        self.values = list(values)
        self.problems = list(problems)
        self.solutions = list(solutions)
        excluded = sum(1 for s in self.solutions if not s.success)
        if excluded:
            logger.warning(
                "%d of %d sweep members of '%s' failed", excluded, len(self.solutions), symbol,
            )

    def final(self, name: str) -> np.ndarray:
        """Final value of ``name`` per sweep member; NaN for failed members."""
        return np.array([
            s.observe(name)[-1] if s.success else np.nan for s in self.solutions
        ])

    def to_dataframe(self, names: Iterable[str]) -> pd.DataFrame:
        """Final values of ``names``, one row per swept value (SI)."""
        rows: List[Dict[str, Any]] = []
        for problem, solution in zip(self.problems, self.solutions):
            row = {self.symbol: problem[self.symbol], 'status': solution.status.name}
            for name in names:
                row[name] = solution.observe(name)[-1] if solution.success else np.nan
            rows.append(row)
        return pd.DataFrame(rows)

    def __len__(self) -> int:
        return len(self.solutions)

    def __repr__(self) -> str:
        return f"SweepResult(symbol='{self.symbol}', members={len(self.solutions)})"


def _run_all(jobs: Sequence[Tuple[Problem, Optional[MethodConfig]]],
             max_workers: Optional[int]) -> List[Solution]:
    results: List[Optional[Solution]] = [None] * len(jobs)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(solve, problem, config): i
            for i, (problem, config) in enumerate(jobs)
        }
        for future in as_completed(future_to_index):
            results[future_to_index[future]] = future.result()
    return results


def run_ensemble(
    problem: Problem,
    seeds: Iterable[int],
    step: Any,
    max_workers: Optional[int] = None,
) -> EnsembleResult:
    """Run one Euler-Maruyama realization per seed.

    Args:
        problem: Problem shared by every member
        seeds: Distinct non-negative integer seeds
        step: Step size in seconds or as a time Quantity
        max_workers: Thread pool size (defaults to the executor's choice)

    Raises:
        ConfigurationError: If no seeds are given or seeds repeat
    """
    seeds = list(seeds)
    if not seeds:
        raise ConfigurationError("An ensemble needs at least one seed")
    if len(set(seeds)) != len(seeds):
        raise ConfigurationError("Ensemble seeds must be distinct")

    configs = [EulerMaruyamaConfig(step, seed) for seed in seeds]
    logger.info("Running %d-member %s ensemble", len(seeds), problem.model_id)
    solutions = _run_all([(problem, config) for config in configs], max_workers)
    return EnsembleResult(problem, seeds, solutions)


def run_sweep(
    problem: Problem,
    symbol: str,
    values: Iterable[Any],
    method_config: Optional[MethodConfig] = None,
    max_workers: Optional[int] = None,
) -> SweepResult:
    """Solve one derived Problem per value of a state or parameter.

    Args:
        problem: Base Problem
        symbol: State or parameter to vary
        values: Override values, as accepted by ``Problem.derive``
        method_config: Method used for every member
        max_workers: Thread pool size

    Raises:
        ConfigurationError: If any derived Problem is invalid
    """
    values = list(values)
    problems = [problem.derive({symbol: value}) for value in values]
    logger.info("Sweeping %s over %d values of '%s'", problem.model_id, len(values), symbol)
    solutions = _run_all([(p, method_config) for p in problems], max_workers)
    return SweepResult(symbol, values, problems, solutions)
