"""
Logging configuration for PyVeg.

Library modules obtain loggers through ``get_logger`` and never configure
handlers themselves. Applications call ``setup_logging`` once.
"""
import logging
import sys
from pathlib import Path
from typing import Mapping, Optional, Union

__all__ = [
    'setup_logging',
    'get_logger',
    'log_solver_summary',
    'log_scenario_derivation',
]

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

PACKAGE_LOGGER = 'pyveg'

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def setup_logging(
    log_level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Configure the package logger.

    Args:
        log_level: Logging level (e.g. logging.DEBUG or 'DEBUG')
        log_file: Optional path; when given, records are also written there
        fmt: Record format string

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(log_level)

    # Drop handlers from earlier calls so repeated setup does not duplicate output
    for handler in list(logger.handlers):
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(fmt)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module.

    Args:
        name: Usually ``__name__`` of the calling module

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_solver_summary(
    logger: logging.Logger,
    model_id: str,
    method: str,
    status: str,
    n_samples: int,
    t_end: float,
) -> None:
    """Log the outcome of a single solve.

    Successful runs are logged at info level, failed runs at warning level.
    """
    level = logging.INFO if status == 'SUCCESS' else logging.WARNING
    logger.log(
        level,
        "Solved %s with %s: status=%s, samples=%d, t_end=%.6g s",
        model_id, method, status, n_samples, t_end,
    )


def log_scenario_derivation(
    logger: logging.Logger,
    model_id: str,
    overrides: Mapping[str, object],
) -> None:
    """Log which symbols a derived scenario replaced."""
    if overrides:
        logger.debug("Derived %s scenario overriding %s", model_id, sorted(overrides))
    else:
        logger.debug("Derived %s scenario with no overrides", model_id)
