"""
Integrators for PyVeg problems.

Two methods are available:

- ``AdaptiveConfig``: deterministic adaptive-step integration through
  ``scipy.integrate.solve_ivp`` with dense output.
- ``EulerMaruyamaConfig``: fixed-step Euler-Maruyama for stochastic
  models, driven by an explicitly seeded ``numpy.random.Generator``.

Numerical faults do not raise. ``solve`` returns a Solution whose
``status`` names the fault and whose samples end at the last valid state.
"""
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

import numpy as np
from scipy.integrate import solve_ivp

from .exceptions import ConfigurationError, InvalidParameterError
from .logging_config import get_logger, log_solver_summary
from .solution import ReturnCode, Solution
from .units import Quantity, as_si

if TYPE_CHECKING:
    from .scenario import Problem

__all__ = [
    'AdaptiveConfig',
    'EulerMaruyamaConfig',
    'solve',
    'ADAPTIVE_METHODS',
]

logger = get_logger(__name__)

ADAPTIVE_METHODS = ('RK45', 'RK23', 'DOP853', 'Radau', 'BDF', 'LSODA')

# Errors a model evaluator raises when driven outside its domain
_EVALUATION_ERRORS = (ValueError, ArithmeticError)


@dataclass(frozen=True)
class AdaptiveConfig:
    """Deterministic adaptive-step integration settings.

    Attributes:
        method: Any ``solve_ivp`` method name
        rtol: Relative tolerance
        atol: Absolute tolerance (SI state units)
        max_step: Largest allowed step (s)
    """
    method: str = 'RK45'
    rtol: float = 1e-6
    atol: float = 1e-9
    max_step: float = math.inf

    def __post_init__(self):
        if self.method not in ADAPTIVE_METHODS:
            raise ConfigurationError(
                f"Unknown adaptive method '{self.method}'. Available: {list(ADAPTIVE_METHODS)}"
            )
        for name in ('rtol', 'atol', 'max_step'):
            value = getattr(self, name)
            if not value > 0:
                raise InvalidParameterError(name, value, "must be positive")

    @property
    def name(self) -> str:
        return self.method


@dataclass(frozen=True)
class EulerMaruyamaConfig:
    """Fixed-step Euler-Maruyama settings.

    Attributes:
        step: Step size in seconds, or a time Quantity such as ``(0.1, 'yr')``
        seed: Non-negative integer seed; the only source of randomness
    """
    step: Union[float, Quantity]
    seed: int

    def __post_init__(self):
        step = self.step
        if isinstance(step, (tuple, list)):
            step = as_si(step, 's', 'step')
        step = float(step)
        if not (math.isfinite(step) and step > 0):
            raise InvalidParameterError('step', self.step, "must be a positive finite time")
        object.__setattr__(self, 'step', step)

        if isinstance(self.seed, bool) or not isinstance(self.seed, (int, np.integer)) \
                or self.seed < 0:
            raise InvalidParameterError('seed', self.seed, "must be a non-negative integer")

    @property
    def name(self) -> str:
        return 'EulerMaruyama'


MethodConfig = Union[AdaptiveConfig, EulerMaruyamaConfig]


def solve(problem: 'Problem', method_config: Optional[MethodConfig] = None) -> Solution:
    """Integrate a problem over its time span.

    Args:
        problem: Problem to solve
        method_config: AdaptiveConfig or EulerMaruyamaConfig. Defaults to
            AdaptiveConfig() for deterministic models; required for
            stochastic models.

    Returns:
        Solution carrying a ReturnCode

    Raises:
        ConfigurationError: Missing or unsupported method configuration
    """
    model = problem.model
    if method_config is None:
        if model.is_stochastic:
            raise ConfigurationError(
                f"{model.MODEL_ID} has stochastic terms; pass an EulerMaruyamaConfig "
                f"with an explicit step and seed"
            )
        method_config = AdaptiveConfig()

    if isinstance(method_config, EulerMaruyamaConfig):
        solution = _solve_euler_maruyama(problem, method_config)
    elif isinstance(method_config, AdaptiveConfig):
        if model.is_stochastic:
            logger.warning(
                "%s is stochastic; adaptive integration uses the drift only",
                model.MODEL_ID,
            )
        solution = _solve_adaptive(problem, method_config)
    else:
        raise ConfigurationError(
            f"Unsupported method configuration: {type(method_config).__name__}"
        )

    log_solver_summary(
        logger, model.MODEL_ID, method_config.name, solution.status.name,
        len(solution), solution.t_end,
    )
    return solution


def _stateless_solution(problem: 'Problem', method: str) -> Solution:
    t0, t1 = problem.time_span
    return Solution(problem, [t0, t1], np.empty((2, 0)), ReturnCode.SUCCESS,
                    "no state to integrate", method)


def _solve_adaptive(problem: 'Problem', config: AdaptiveConfig) -> Solution:
    model = problem.model
    params = problem.parameters
    t0, t1 = problem.time_span
    y0 = problem.state_vector()
    if not len(y0):
        return _stateless_solution(problem, config.name)

    # A bad initial derivative would never let the step controller settle
    try:
        f0 = np.asarray(model.drift(t0, y0, params), dtype=float)
    except _EVALUATION_ERRORS as e:
        return Solution(problem, [t0], [y0], ReturnCode.EVALUATION_ERROR,
                        f"drift evaluation failed at t={t0}: {e}", config.name)
    if not np.all(np.isfinite(f0)):
        return Solution(problem, [t0], [y0], ReturnCode.NON_FINITE,
                        f"non-finite drift at t={t0}", config.name)

    faults = []

    def rhs(t, y):
        # A failed evaluation returns NaN so the step is rejected and shrunk
        try:
            dy = np.asarray(model.drift(t, y, params), dtype=float)
        except _EVALUATION_ERRORS as e:
            faults.append((ReturnCode.EVALUATION_ERROR, f"drift evaluation failed at t={t}: {e}"))
            return np.full(len(y), np.nan)
        if not np.all(np.isfinite(dy)):
            faults.append((ReturnCode.NON_FINITE, f"non-finite drift at t={t}"))
        return dy

    result = solve_ivp(
        rhs, (t0, t1), y0,
        method=config.method,
        rtol=config.rtol,
        atol=config.atol,
        max_step=config.max_step,
        dense_output=True,
    )

    times = result.t
    states = result.y.T
    finite = np.all(np.isfinite(states), axis=1)
    if not np.all(finite):
        n_valid = int(np.argmin(finite))
        return Solution(problem, times[:n_valid], states[:n_valid], ReturnCode.NON_FINITE,
                        f"non-finite state at t={times[n_valid]}", config.name)

    if result.success:
        return Solution(problem, times, states, ReturnCode.SUCCESS, result.message,
                        config.name, dense_output=result.sol)

    status, message = (faults[-1] if faults else (ReturnCode.SOLVER_FAILURE, result.message))
    return Solution(problem, times, states, status, message, config.name)


def _solve_euler_maruyama(problem: 'Problem', config: EulerMaruyamaConfig) -> Solution:
    model = problem.model
    params = problem.parameters
    t0, t1 = problem.time_span
    y = problem.state_vector()
    if not len(y):
        return _stateless_solution(problem, config.name)

    h = config.step
    n_steps = max(1, int(math.ceil((t1 - t0) / h - 1e-9)))
    rng = np.random.default_rng(config.seed)

    times = [t0]
    states = [y.copy()]
    for i in range(n_steps):
        t = times[-1]
        # Last step is shortened to land on t1
        t_next = t1 if i == n_steps - 1 else t0 + (i + 1) * h
        dt = t_next - t

        try:
            f = np.asarray(model.drift(t, y, params), dtype=float)
            y_next = y + f * dt
            if model.NOISE_TERMS:
                g = np.asarray(model.diffusion(t, y, params), dtype=float)
                dW = math.sqrt(dt) * rng.standard_normal(model.NOISE_TERMS)
                y_next = y_next + g @ dW
        except _EVALUATION_ERRORS as e:
            return Solution(problem, times, states, ReturnCode.EVALUATION_ERROR,
                            f"evaluation failed at t={t}: {e}", config.name)

        if not np.all(np.isfinite(y_next)):
            return Solution(problem, times, states, ReturnCode.NON_FINITE,
                            f"non-finite state at t={t_next}", config.name)

        y = y_next
        times.append(t_next)
        states.append(y.copy())

    return Solution(problem, times, states, ReturnCode.SUCCESS,
                    f"{n_steps} fixed steps", config.name)
