"""
Base classes for PyVeg equation models.

Provides common functionality for loading species-specific coefficients
from the packaged configuration files with caching and fallback support,
and the declared-symbol contract every model satisfies:

- ordered state and parameter schemas with unit tags and defaults
- an ordered evaluator for the algebraic (instantaneous) quantities
- drift and diffusion callbacks consumed by the integrators

Usage:
    class CohortBiomassModel(EquationModel):
        MODEL_ID = 'CohortBiomass'
        COEFFICIENT_FILE = 'cohort_biomass.yaml'
        FALLBACK_PARAMETERS = {'ACSA': {'ANPP_MAX': 7.45, 'max_age': 400.0}}
        DEFAULT_SPECIES = 'ACSA'
        STATES = (SymbolSpec('B', 5.0, 'Mg/ha'), ...)
        PARAMETERS = (...)
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple

import numpy as np

from .config_loader import load_coefficient_file
from .exceptions import ConfigFileNotFoundError, ConfigurationError, MissingUnitError, UnknownSymbolError
from .logging_config import get_logger
from .units import UNIT_SCALE

__all__ = [
    'SymbolSpec',
    'Schema',
    'ParameterizedModel',
    'EquationModel',
]

logger = get_logger(__name__)


@dataclass(frozen=True)
class SymbolSpec:
    """Declaration of a state variable or parameter.

    Attributes:
        name: Symbol name
        default: Default value, expressed in ``unit``
        unit: Unit tag the default is written in (its SI dimension is the
            symbol's declared unit)
        description: Human readable description
    """
    name: str
    default: float
    unit: Optional[str]
    description: str = ""

    @property
    def dimension(self) -> str:
        """SI unit the symbol is declared in."""
        return UNIT_SCALE.dimension(self.unit)

    @property
    def default_si(self) -> float:
        """Default value converted to SI."""
        return UNIT_SCALE.to_si(self.default, self.unit)


class Schema:
    """Ordered, immutable collection of symbol declarations."""

    def __init__(self, symbols: Iterable[SymbolSpec]):
        self._symbols: Tuple[SymbolSpec, ...] = tuple(symbols)
        self._index: Dict[str, int] = {}
        for i, spec in enumerate(self._symbols):
            if spec.name in self._index:
                raise ConfigurationError(f"Symbol '{spec.name}' is declared twice")
            self._index[spec.name] = i

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self._symbols)

    def index(self, name: str) -> int:
        return self._index[name]

    def defaults_si(self) -> Dict[str, float]:
        return {spec.name: spec.default_si for spec in self._symbols}

    def __getitem__(self, name: str) -> SymbolSpec:
        return self._symbols[self._index[name]]

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __iter__(self) -> Iterator[SymbolSpec]:
        return iter(self._symbols)

    def __len__(self) -> int:
        return len(self._symbols)

    def __repr__(self) -> str:
        return f"Schema({list(self.names)})"


class ParameterizedModel(ABC):
    """Base class for models with species-specific coefficients.

    Subclasses must define:
        COEFFICIENT_FILE: str - Name of the file in cfg/ containing coefficients
        COEFFICIENT_KEY: str - Key in the file containing per-species coefficients
        FALLBACK_PARAMETERS: dict - Fallback coefficients by species code

    Optional class attributes:
        DEFAULT_SPECIES: str - Default species code

    Attributes:
        species_code: The species code for this model instance
        coefficients: The loaded coefficients for the species
        raw_data: The complete raw data loaded from the coefficient file
    """

    # Subclasses must override these
    COEFFICIENT_FILE: str = None
    COEFFICIENT_KEY: str = 'species_coefficients'
    FALLBACK_PARAMETERS: Dict[str, Dict[str, Any]] = {}
    DEFAULT_SPECIES: str = None

    def __init__(self, species_code: str = None):
        """Initialize the model with species-specific parameters.

        Args:
            species_code: Species code. Defaults to DEFAULT_SPECIES if not provided.
        """
        if species_code is None:
            species_code = self.DEFAULT_SPECIES
        self.species_code = species_code
        self.coefficients: Dict[str, Any] = {}
        self.raw_data: Dict[str, Any] = {}
        self._load_parameters()

    def _get_coefficient_data(self) -> Dict[str, Any]:
        """Load coefficient data using the cached config loader.

        Returns:
            Dictionary containing the full coefficient file data,
            or empty dict if file not found.
        """
        if self.COEFFICIENT_FILE is None:
            raise NotImplementedError(
                f"{self.__class__.__name__} must define COEFFICIENT_FILE class attribute"
            )

        try:
            return load_coefficient_file(self.COEFFICIENT_FILE)
        except ConfigFileNotFoundError:
            logger.warning(
                "Coefficient file %s not found; using built-in fallback coefficients",
                self.COEFFICIENT_FILE,
            )
            return {}

    def _load_parameters(self) -> None:
        """Load species-specific parameters from configuration.

        This method:
        1. Loads the coefficient file data (cached)
        2. Extracts species-specific coefficients
        3. Falls back to the default species if the species is not found
        4. Falls back to FALLBACK_PARAMETERS if file loading fails
        """
        self.raw_data = self._get_coefficient_data()

        if self.raw_data:
            species_coeffs = self.raw_data.get(self.COEFFICIENT_KEY, {})

            if self.species_code in species_coeffs:
                self.coefficients = dict(species_coeffs[self.species_code])
            elif self.DEFAULT_SPECIES in species_coeffs:
                logger.warning(
                    "%s: species '%s' not configured, using '%s'",
                    self.__class__.__name__, self.species_code, self.DEFAULT_SPECIES,
                )
                self.coefficients = dict(species_coeffs[self.DEFAULT_SPECIES])
            else:
                self._load_fallback_parameters()
        else:
            self._load_fallback_parameters()

    def _load_fallback_parameters(self) -> None:
        """Load fallback parameters when the coefficient file is not available."""
        if self.species_code in self.FALLBACK_PARAMETERS:
            self.coefficients = self.FALLBACK_PARAMETERS[self.species_code].copy()
        elif self.DEFAULT_SPECIES in self.FALLBACK_PARAMETERS:
            self.coefficients = self.FALLBACK_PARAMETERS[self.DEFAULT_SPECIES].copy()
        else:
            self.coefficients = {}

    def get_species_coefficients(self) -> Dict[str, Any]:
        """Get a copy of the coefficients for this species."""
        return self.coefficients.copy()

    def get_coefficient(self, key: str, default: Any = None) -> Any:
        """Get a specific coefficient value.

        Args:
            key: Coefficient key to retrieve
            default: Default value if key not found

        Returns:
            Coefficient value or default
        """
        return self.coefficients.get(key, default)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(species_code='{self.species_code}')"


class EquationModel(ParameterizedModel):
    """A declared system of algebraic, differential and stochastic equations.

    Subclasses declare their symbols and implement ``algebraic`` and
    ``drift``. Stochastic models set ``NOISE_TERMS`` and override
    ``diffusion``. Preset coefficients whose key matches a declared
    parameter replace that parameter's default (in the declared unit).

    Models hold no per-run state, so one instance can back any number of
    problems and solves at once.
    """

    MODEL_ID: str = None
    STATES: Tuple[SymbolSpec, ...] = ()
    PARAMETERS: Tuple[SymbolSpec, ...] = ()
    # (name, SI unit) in evaluation order
    ALGEBRAIC: Tuple[Tuple[str, str], ...] = ()
    NOISE_TERMS: int = 0

    def __init__(self, species_code: str = None):
        super().__init__(species_code)
        self._check_declarations()
        parameters = []
        for spec in self.PARAMETERS:
            if spec.name in self.coefficients:
                spec = replace(spec, default=float(self.coefficients[spec.name]))
            parameters.append(spec)
        self.state_schema = Schema(self.STATES)
        self.parameter_schema = Schema(parameters)

    def _check_declarations(self) -> None:
        """Check that every declared symbol carries a known unit tag."""
        names = set()
        for spec in self.STATES + self.PARAMETERS:
            if not spec.unit:
                raise MissingUnitError(spec.name)
            UNIT_SCALE.definition(spec.unit, spec.name)
            if spec.name in names:
                raise ConfigurationError(
                    f"{self.MODEL_ID}: symbol '{spec.name}' declared as both state and parameter"
                )
            names.add(spec.name)

    @property
    def state_names(self) -> Tuple[str, ...]:
        return self.state_schema.names

    @property
    def parameter_names(self) -> Tuple[str, ...]:
        return self.parameter_schema.names

    @property
    def algebraic_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.ALGEBRAIC)

    @property
    def is_stochastic(self) -> bool:
        return self.NOISE_TERMS > 0

    def default_state(self) -> Dict[str, float]:
        """Default initial state in SI."""
        return self.state_schema.defaults_si()

    def default_parameters(self) -> Dict[str, float]:
        """Default parameter values in SI."""
        return self.parameter_schema.defaults_si()

    def symbol(self, name: str) -> SymbolSpec:
        """Look up a state or parameter declaration by name.

        Raises:
            UnknownSymbolError: If the model does not declare the symbol
        """
        if name in self.state_schema:
            return self.state_schema[name]
        if name in self.parameter_schema:
            return self.parameter_schema[name]
        raise UnknownSymbolError(
            name, self.MODEL_ID, self.state_names + self.parameter_names
        )

    @abstractmethod
    def algebraic(self, t: float, y: Sequence[float], p: Mapping[str, float]) -> Dict[str, float]:
        """Evaluate the algebraic quantities in declaration order.

        Args:
            t: Integration time (s)
            y: State vector ordered as ``state_names`` (SI)
            p: Parameter values by name (SI)

        Returns:
            Ordered mapping of algebraic quantity name to SI value
        """

    def drift(self, t: float, y: Sequence[float], p: Mapping[str, float]) -> np.ndarray:
        """Deterministic time derivative of the state vector."""
        return np.zeros(len(self.state_schema))

    def diffusion(self, t: float, y: Sequence[float], p: Mapping[str, float]) -> np.ndarray:
        """Noise loading matrix of shape (n_states, NOISE_TERMS)."""
        return np.zeros((len(self.state_schema), self.NOISE_TERMS))

    def evaluate(self, t: float, y: Sequence[float], p: Mapping[str, float]) -> Dict[str, float]:
        """States and algebraic quantities together, by name."""
        values = {name: float(y[i]) for i, name in enumerate(self.state_names)}
        values.update(self.algebraic(t, y, p))
        return values

    def validate_state(self, state: Mapping[str, float], parameters: Mapping[str, float]) -> None:
        """Check domain invariants of an initial state.

        Raises:
            InvalidParameterError: If an invariant is violated
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model_id='{self.MODEL_ID}', species_code='{self.species_code}')"
