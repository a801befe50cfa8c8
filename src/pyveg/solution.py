"""
Solution container returned by the integrators.

A Solution is read-only once the solve finishes. It stores the accepted
samples and answers continuous queries: dense output from the adaptive
solver, or linear interpolation between Euler-Maruyama steps.
"""
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .exceptions import SimulationError, SolutionQueryError, UnknownSymbolError
from .units import from_si

if TYPE_CHECKING:
    from .scenario import Problem

__all__ = ['ReturnCode', 'Solution']

# Relative slack on the query range so sample(t1) survives float round-off
_RANGE_TOLERANCE = 1e-12


class ReturnCode(Enum):
    """Outcome of a solve."""
    SUCCESS = 'Success'
    SOLVER_FAILURE = 'SolverFailure'
    NON_FINITE = 'NonFinite'
    EVALUATION_ERROR = 'EvaluationError'


class Solution:
    """Sampled trajectory of one Problem.

    Attributes:
        problem: The Problem that was solved
        t: Sample times (s), strictly increasing
        y: States at each sample, shape (n_times, n_states), SI
        status: ReturnCode of the run
        message: Solver or fault message
        method: Name of the integration method
    """

    def __init__(
        self,
        problem: 'Problem',
        t: Sequence[float],
        y: Sequence[Sequence[float]],
        status: ReturnCode = ReturnCode.SUCCESS,
        message: str = '',
        method: str = '',
        dense_output: Optional[Callable[[float], np.ndarray]] = None,
    ):
        self.problem = problem
        self.t = np.asarray(t, dtype=float)
        n_states = len(problem.model.state_names)
        self.y = np.asarray(y, dtype=float).reshape(len(self.t), n_states)
        self.status = status
        self.message = message
        self.method = method
        self._dense_output = dense_output
        self.t.setflags(write=False)
        self.y.setflags(write=False)

    @property
    def model(self):
        return self.problem.model

    @property
    def state_names(self) -> Tuple[str, ...]:
        return self.problem.model.state_names

    @property
    def success(self) -> bool:
        return self.status is ReturnCode.SUCCESS

    @property
    def t_start(self) -> float:
        return float(self.t[0])

    @property
    def t_end(self) -> float:
        """Time of the last stored sample (earlier than t1 for a failed run)."""
        return float(self.t[-1])

    def _state_dict(self, vector: Sequence[float]) -> Dict[str, float]:
        return {name: float(vector[i]) for i, name in enumerate(self.state_names)}

    @property
    def final_state(self) -> Dict[str, float]:
        """State at the end of the time span.

        Raises:
            SimulationError: If the run did not reach the end of its time span
        """
        if not self.success:
            raise SimulationError(
                f"{self.model.MODEL_ID} run failed with {self.status.value}: {self.message}; "
                f"use last_valid_state instead"
            )
        return self._state_dict(self.y[-1])

    @property
    def last_valid_state(self) -> Dict[str, float]:
        """Last finite state the integrator accepted."""
        return self._state_dict(self.y[-1])

    def _check_range(self, t: float) -> None:
        slack = _RANGE_TOLERANCE * max(1.0, abs(self.t_start), abs(self.t_end))
        if not (self.t_start - slack <= t <= self.t_end + slack):
            raise SolutionQueryError(t, self.t_start, self.t_end)

    def _interpolate(self, t: float) -> np.ndarray:
        t = min(max(t, self.t_start), self.t_end)
        if self._dense_output is not None:
            return np.asarray(self._dense_output(t), dtype=float)
        return np.array([np.interp(t, self.t, self.y[:, i]) for i in range(self.y.shape[1])])

    def sample(self, t: float) -> Dict[str, float]:
        """Interpolated state at an arbitrary time inside the solved range.

        Raises:
            SolutionQueryError: If t lies outside the stored samples
        """
        t = float(t)
        self._check_range(t)
        return self._state_dict(self._interpolate(t))

    def trajectory(self) -> List[Tuple[float, Dict[str, float]]]:
        """Stored samples as ordered (t, state) pairs."""
        return [(float(ti), self._state_dict(yi)) for ti, yi in zip(self.t, self.y)]

    def observe(self, name: str, t: Union[None, float, Sequence[float]] = None):
        """Value of a state, algebraic quantity or parameter.

        Args:
            name: Symbol to observe
            t: None for the stored sample times, a single time, or a
                sequence of times

        Returns:
            A float for a single time, otherwise a numpy array

        Raises:
            UnknownSymbolError: If the model has no such symbol
            SolutionQueryError: If a requested time is outside the solved range
        """
        model = self.model
        if name not in model.state_names and name not in model.algebraic_names \
                and name not in model.parameter_names:
            raise UnknownSymbolError(
                name, model.MODEL_ID,
                model.state_names + model.algebraic_names + model.parameter_names,
            )

        if t is not None and np.ndim(t) == 0:
            t = float(t)
            self._check_range(t)
            return self._observe_one(name, t, self._interpolate(t))

        if t is None:
            times, states = self.t, self.y
        else:
            times = np.asarray(t, dtype=float)
            for ti in times:
                self._check_range(ti)
            states = np.array([self._interpolate(ti) for ti in times]).reshape(len(times), -1)
        return np.array([self._observe_one(name, ti, yi) for ti, yi in zip(times, states)])

    def _observe_one(self, name: str, t: float, y: Sequence[float]) -> float:
        if name in self.problem.parameters:
            return float(self.problem.parameters[name])
        if name in self.state_names:
            return float(y[self.state_names.index(name)])
        return float(self.model.algebraic(t, y, self.problem.parameters)[name])

    def __getitem__(self, name: str) -> np.ndarray:
        return self.observe(name)

    def __len__(self) -> int:
        return len(self.t)

    def to_dataframe(self, include_algebraic: bool = False, time_unit: str = 's') -> pd.DataFrame:
        """Stored samples as a DataFrame in SI, with time in ``time_unit``.

        Args:
            include_algebraic: Add one column per algebraic quantity
            time_unit: Unit for the ``time`` column (e.g. 'yr')
        """
        data = {'time': [from_si(float(ti), time_unit) for ti in self.t]}
        for i, name in enumerate(self.state_names):
            data[name] = self.y[:, i]
        if include_algebraic:
            rows = [self.model.algebraic(float(ti), yi, self.problem.parameters)
                    for ti, yi in zip(self.t, self.y)]
            for name in self.model.algebraic_names:
                data[name] = [row[name] for row in rows]
        return pd.DataFrame(data)

    def __repr__(self) -> str:
        return (
            f"Solution(model='{self.model.MODEL_ID}', method='{self.method}', "
            f"status={self.status.name}, samples={len(self.t)}, "
            f"t=[{self.t_start:.6g}, {self.t_end:.6g}])"
        )
