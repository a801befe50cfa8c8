"""
Custom exceptions for PyVeg.
Provides domain-specific error handling with informative messages.

Configuration errors are raised while a Problem is being built and are
fatal. Numerical faults found during a solve are not raised; they are
reported on the returned Solution.
"""
from typing import Any, Iterable, Optional


class VegetationError(Exception):
    """Base exception for all PyVeg errors."""
    pass


class ConfigurationError(VegetationError):
    """Raised when there are configuration-related issues."""
    pass


class UnknownUnitError(ConfigurationError):
    """Raised when a unit tag is not in the unit table."""
    def __init__(self, unit: str, symbol: Optional[str] = None):
        self.unit = unit
        self.symbol = symbol
        message = f"Unknown unit '{unit}'"
        if symbol:
            message += f" for symbol '{symbol}'"
        super().__init__(message)


class UnitMismatchError(ConfigurationError):
    """Raised when a value's unit is not compatible with the declared unit."""
    def __init__(self, symbol: str, expected: str, got: str):
        self.symbol = symbol
        self.expected = expected
        self.got = got
        super().__init__(
            f"Unit mismatch for '{symbol}': declared in '{expected}', "
            f"got a value in '{got}'"
        )


class MissingUnitError(ConfigurationError):
    """Raised when a dimensional symbol is given without a unit tag."""
    def __init__(self, symbol: str, expected: Optional[str] = None):
        self.symbol = symbol
        self.expected = expected
        message = f"Missing unit tag for '{symbol}'"
        if expected:
            message += f" (declared in '{expected}'; pass a (value, unit) pair)"
        super().__init__(message)


class UnknownSymbolError(ConfigurationError):
    """Raised when an override names a symbol the model does not declare."""
    def __init__(self, symbol: str, model_id: str, available: Iterable[str] = ()):
        self.symbol = symbol
        self.model_id = model_id
        self.available = list(available)
        message = f"Unknown symbol '{symbol}' for model '{model_id}'"
        if self.available:
            message += f". Available: {self.available}"
        super().__init__(message)


class InvalidTimeSpanError(ConfigurationError):
    """Raised when a time span is empty, reversed or non-finite."""
    def __init__(self, t0: Any, t1: Any):
        self.t0 = t0
        self.t1 = t1
        super().__init__(
            f"Invalid time span ({t0}, {t1}): both ends must be finite and t1 > t0"
        )


class SpeciesNotFoundError(ConfigurationError):
    """Raised when a species or habitat code is not found in configuration."""
    def __init__(self, species_code: str, available: Iterable[str] = ()):
        self.species_code = species_code
        self.available = list(available)
        super().__init__(
            f"Species '{species_code}' not found in configuration. "
            f"Available codes: {self.available}"
        )


class ParameterError(ConfigurationError):
    """Raised when parameters are invalid or out of bounds."""
    pass


class InvalidParameterError(ParameterError):
    """Raised when a parameter value is invalid."""
    def __init__(self, param_name: str, value: Any, reason: str = ""):
        self.param_name = param_name
        self.value = value
        self.reason = reason
        message = f"Invalid value for parameter '{param_name}': {value}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class ConfigFileNotFoundError(ConfigurationError):
    """Raised when a required configuration file is not found."""
    def __init__(self, file_path: str, file_type: str = "file"):
        self.file_path = file_path
        self.file_type = file_type
        super().__init__(f"Required {file_type} not found: {file_path}")


class InvalidDataError(ConfigurationError):
    """Raised when configuration data is malformed or invalid."""
    def __init__(self, data_description: str, reason: str):
        self.data_description = data_description
        self.reason = reason
        super().__init__(f"Invalid {data_description}: {reason}")


class SimulationError(VegetationError):
    """Raised when a simulation result is used incorrectly."""
    pass


class SolutionQueryError(SimulationError):
    """Raised when a solution is queried outside its valid range."""
    def __init__(self, t: float, t_start: float, t_end: float):
        self.t = t
        self.t_start = t_start
        self.t_end = t_end
        super().__init__(
            f"Cannot sample solution at t={t}: valid range is [{t_start}, {t_end}]"
        )


# Validation utilities
def validate_positive(value: float, param_name: str) -> float:
    """Validate that a value is positive.

    Args:
        value: Value to validate
        param_name: Parameter name for error message

    Returns:
        The validated value

    Raises:
        InvalidParameterError: If value is not positive
    """
    if not value > 0:
        raise InvalidParameterError(param_name, value, "must be positive")
    return value


def validate_non_negative(value: float, param_name: str) -> float:
    """Validate that a value is zero or positive.

    Raises:
        InvalidParameterError: If value is negative or NaN
    """
    if not value >= 0:
        raise InvalidParameterError(param_name, value, "must be non-negative")
    return value


def validate_range(value: float, min_val: float, max_val: float, param_name: str) -> float:
    """Validate that a value is within a specific range.

    Args:
        value: Value to validate
        min_val: Minimum allowed value
        max_val: Maximum allowed value
        param_name: Parameter name for error message

    Returns:
        The validated value

    Raises:
        InvalidParameterError: If value is outside the range
    """
    if not min_val <= value <= max_val:
        raise InvalidParameterError(
            param_name, value,
            f"must be between {min_val} and {max_val}"
        )
    return value
