"""
Scenario construction for PyVeg.

A Problem binds one model instance to a concrete initial state, concrete
parameter values and a time span, all in SI. Problems are immutable;
``derive`` builds an independent copy with selected entries replaced, so
sweeps and ensembles can start from one base configuration.

Overrides are written as ``(value, unit)`` pairs, e.g.
``{'B': (50, 'Mg/ha')}``. Bare numbers are accepted only for
dimensionless symbols.
"""
import math
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Type, Union

import numpy as np

from .cohort_biomass import CohortBiomassModel
from .config_loader import load_config_file
from .crown_base import CrownBaseEstimator
from .exceptions import (
    ConfigurationError,
    InvalidDataError,
    InvalidTimeSpanError,
    UnitMismatchError,
    UnknownSymbolError,
)
from .logging_config import get_logger, log_scenario_derivation
from .model_base import EquationModel
from .tree_growth import TreeGrowthModel
from .units import UNIT_SCALE, as_si

__all__ = [
    'MODEL_REGISTRY',
    'Problem',
    'ScenarioBuilder',
    'create_model',
    'load_scenario',
]

logger = get_logger(__name__)

MODEL_REGISTRY: Mapping[str, Type[EquationModel]] = MappingProxyType({
    CohortBiomassModel.MODEL_ID: CohortBiomassModel,
    TreeGrowthModel.MODEL_ID: TreeGrowthModel,
    CrownBaseEstimator.MODEL_ID: CrownBaseEstimator,
})

TimeSpan = Tuple[float, float]


def create_model(model_id: str, species: Optional[str] = None) -> EquationModel:
    """Instantiate a registered model.

    Args:
        model_id: One of the keys of MODEL_REGISTRY
        species: Optional species preset code

    Raises:
        ConfigurationError: If the model id is not registered
    """
    if model_id not in MODEL_REGISTRY:
        raise ConfigurationError(
            f"Unknown model '{model_id}'. Available: {list(MODEL_REGISTRY)}"
        )
    return MODEL_REGISTRY[model_id](species)


def _resolve_time_span(time_span: Sequence[float], time_unit: str) -> TimeSpan:
    if UNIT_SCALE.dimension(time_unit) != 's':
        raise UnitMismatchError('time_span', 's', time_unit)
    try:
        t0, t1 = (UNIT_SCALE.to_si(float(v), time_unit) for v in time_span)
    except (TypeError, ValueError):
        raise InvalidTimeSpanError(time_span, None) from None
    if not (math.isfinite(t0) and math.isfinite(t1) and t1 > t0):
        raise InvalidTimeSpanError(t0, t1)
    return (t0, t1)


@dataclass(frozen=True)
class Problem:
    """A runnable scenario: model, initial state, parameters and time span (SI).

    Use ScenarioBuilder or ``Problem.create`` rather than the constructor;
    they resolve units and check the model's invariants.
    """
    model: EquationModel
    initial_state: Mapping[str, float]
    parameters: Mapping[str, float]
    time_span: TimeSpan

    def __post_init__(self):
        object.__setattr__(self, 'initial_state', MappingProxyType(dict(self.initial_state)))
        object.__setattr__(self, 'parameters', MappingProxyType(dict(self.parameters)))
        object.__setattr__(self, 'time_span', (float(self.time_span[0]), float(self.time_span[1])))

    def __hash__(self):
        return hash((
            self.model,
            tuple(sorted(self.initial_state.items())),
            tuple(sorted(self.parameters.items())),
            self.time_span,
        ))

    @classmethod
    def create(
        cls,
        model_id: str,
        time_span: Sequence[float],
        initial_overrides: Optional[Mapping[str, Any]] = None,
        parameter_overrides: Optional[Mapping[str, Any]] = None,
        time_unit: str = 's',
        species: Optional[str] = None,
    ) -> 'Problem':
        """Build a Problem for a registered model id."""
        return ScenarioBuilder().build(
            model_id, time_span, initial_overrides, parameter_overrides,
            time_unit=time_unit, species=species,
        )

    def derive(
        self,
        overrides: Mapping[str, Any],
        time_span: Optional[Sequence[float]] = None,
        time_unit: str = 's',
    ) -> 'Problem':
        """New independent Problem with selected states or parameters replaced."""
        return ScenarioBuilder().derive(self, overrides, time_span, time_unit)

    @property
    def model_id(self) -> str:
        return self.model.MODEL_ID

    def __getitem__(self, name: str) -> float:
        if name in self.initial_state:
            return self.initial_state[name]
        if name in self.parameters:
            return self.parameters[name]
        raise UnknownSymbolError(
            name, self.model.MODEL_ID, self.model.state_names + self.model.parameter_names
        )

    def state_vector(self) -> np.ndarray:
        """Initial state as a fresh array ordered as the model's states."""
        return np.array([self.initial_state[name] for name in self.model.state_names], dtype=float)

    def evaluate(self, t: Optional[float] = None) -> Dict[str, float]:
        """States and algebraic quantities at the initial state.

        Args:
            t: Time passed to the evaluator; defaults to the start of the span
        """
        if t is None:
            t = self.time_span[0]
        return self.model.evaluate(t, self.state_vector(), self.parameters)

    def solve(self, method_config=None):
        """Shorthand for ``integrators.solve(self, method_config)``."""
        from .integrators import solve
        return solve(self, method_config)

    def __repr__(self) -> str:
        return (
            f"Problem(model='{self.model.MODEL_ID}', species='{self.model.species_code}', "
            f"time_span=({self.time_span[0]:.6g}, {self.time_span[1]:.6g}))"
        )


class ScenarioBuilder:
    """Builds and derives Problems with unit-checked overrides.

    Attributes:
        registry: Mapping of model id to model class
    """

    def __init__(self, registry: Optional[Mapping[str, Type[EquationModel]]] = None):
        self.registry = MODEL_REGISTRY if registry is None else registry

    def _resolve_model(self, model: Union[str, EquationModel], species: Optional[str]) -> EquationModel:
        if isinstance(model, EquationModel):
            if species is not None and species != model.species_code:
                raise ConfigurationError(
                    f"Species '{species}' given with a {model.MODEL_ID} instance "
                    f"already built for '{model.species_code}'"
                )
            return model
        if model not in self.registry:
            raise ConfigurationError(
                f"Unknown model '{model}'. Available: {list(self.registry)}"
            )
        return self.registry[model](species)

    @staticmethod
    def _apply(
        model: EquationModel,
        target: Dict[str, float],
        overrides: Mapping[str, Any],
        section: str,
    ) -> None:
        schema = model.state_schema if section == 'initial' else model.parameter_schema
        for name, value in overrides.items():
            if name not in schema:
                raise UnknownSymbolError(name, model.MODEL_ID, schema.names)
            target[name] = as_si(value, schema[name].dimension, name)

    def build(
        self,
        model: Union[str, EquationModel],
        time_span: Sequence[float],
        initial_overrides: Optional[Mapping[str, Any]] = None,
        parameter_overrides: Optional[Mapping[str, Any]] = None,
        time_unit: str = 's',
        species: Optional[str] = None,
    ) -> Problem:
        """Build a Problem from model defaults plus overrides.

        Args:
            model: Model id or model instance
            time_span: (t0, t1) in ``time_unit``
            initial_overrides: State overrides as (value, unit) pairs
            parameter_overrides: Parameter overrides as (value, unit) pairs
            time_unit: Unit of the time span values
            species: Species preset used when ``model`` is an id

        Raises:
            ConfigurationError: Unknown model, symbol or unit, unit mismatch,
                missing unit, invalid time span or violated invariant
        """
        model = self._resolve_model(model, species)
        span = _resolve_time_span(time_span, time_unit)

        initial = model.default_state()
        parameters = model.default_parameters()
        self._apply(model, initial, initial_overrides or {}, 'initial')
        self._apply(model, parameters, parameter_overrides or {}, 'parameters')
        model.validate_state(initial, parameters)

        logger.debug(
            "Built %s problem (%s) over %s s with %d initial and %d parameter overrides",
            model.MODEL_ID, model.species_code, span,
            len(initial_overrides or {}), len(parameter_overrides or {}),
        )
        return Problem(model, initial, parameters, span)

    def derive(
        self,
        problem: Problem,
        overrides: Mapping[str, Any],
        time_span: Optional[Sequence[float]] = None,
        time_unit: str = 's',
    ) -> Problem:
        """Copy a Problem, replacing named states or parameters.

        The source problem is never modified; all values are copied.

        Raises:
            UnknownSymbolError: If an override names no state or parameter
        """
        model = problem.model
        initial = dict(problem.initial_state)
        parameters = dict(problem.parameters)
        for name, value in overrides.items():
            spec = model.symbol(name)
            target = initial if name in model.state_schema else parameters
            target[name] = as_si(value, spec.dimension, name)

        span = problem.time_span if time_span is None else _resolve_time_span(time_span, time_unit)
        model.validate_state(initial, parameters)

        log_scenario_derivation(logger, model.MODEL_ID, overrides)
        return Problem(model, initial, parameters, span)


_SCENARIO_KEYS = ('model', 'species', 'time_span', 'time_unit', 'initial', 'parameters')


def load_scenario(path: Union[str, Path]) -> Problem:
    """Build a Problem from a YAML, TOML or JSON scenario file.

    Example (YAML)::

        model: CohortBiomass
        species: POTR
        time_span: [0, 200]
        time_unit: yr
        initial:
          B: [5, Mg/ha]
        parameters:
          B_other: [100, Mg/ha]

    Raises:
        ConfigFileNotFoundError: If the file does not exist
        InvalidDataError: If required keys are missing or unknown keys are present
        ConfigurationError: For any problem the builder rejects
    """
    data = load_config_file(path)
    unknown = sorted(set(data) - set(_SCENARIO_KEYS))
    if unknown:
        raise InvalidDataError(f"scenario file {path}", f"unknown keys {unknown}")
    for key in ('model', 'time_span'):
        if key not in data:
            raise InvalidDataError(f"scenario file {path}", f"missing required key '{key}'")
    for key in ('initial', 'parameters'):
        if not isinstance(data.get(key) or {}, Mapping):
            raise InvalidDataError(f"scenario file {path}", f"'{key}' must be a mapping")

    logger.info("Loading %s scenario from %s", data['model'], path)
    return ScenarioBuilder().build(
        data['model'],
        data['time_span'],
        data.get('initial') or {},
        data.get('parameters') or {},
        time_unit=data.get('time_unit', 's'),
        species=data.get('species'),
    )
