"""
Configuration loader for PyVeg.
Provides unified access to YAML, TOML, and JSON configuration files.

Supports:
- YAML (.yaml, .yml) - model coefficient files, scenario files
- TOML (.toml) - scenario files
- JSON (.json) - coefficient or scenario files

Coefficient files ship inside the package under ``cfg/`` and are cached
after the first load.
"""
import json
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .exceptions import ConfigFileNotFoundError, ConfigurationError, InvalidDataError
from .logging_config import get_logger

__all__ = [
    'ConfigLoader',
    'get_config_loader',
    'load_coefficient_file',
    'load_config_file',
]

logger = get_logger(__name__)

SUPPORTED_SUFFIXES = ('.yaml', '.yml', '.toml', '.json')


def load_config_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Load configuration from a YAML, TOML or JSON file.

    Args:
        file_path: Path to the configuration file

    Returns:
        Dictionary containing configuration data

    Raises:
        ConfigFileNotFoundError: If file doesn't exist
        ConfigurationError: If file format is not supported
        InvalidDataError: If parsing fails or the file is empty
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise ConfigFileNotFoundError(str(file_path), "configuration file")

    suffix = file_path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ConfigurationError(
            f"Unsupported configuration file format: {suffix}. "
            f"Supported formats: {', '.join(SUPPORTED_SUFFIXES)}"
        )

    try:
        if suffix in ('.yaml', '.yml'):
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        elif suffix == '.toml':
            with open(file_path, 'rb') as f:
                data = tomllib.load(f)
        else:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
    except yaml.YAMLError as e:
        raise InvalidDataError("YAML configuration", f"parsing error: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise InvalidDataError("TOML configuration", f"parsing error: {e}") from e
    except json.JSONDecodeError as e:
        raise InvalidDataError("JSON configuration", f"parsing error: {e}") from e

    if data is None:
        raise InvalidDataError(str(file_path), "file is empty or contains only comments")
    if not isinstance(data, dict):
        raise InvalidDataError(str(file_path), "top level must be a mapping")
    return data


class ConfigLoader:
    """Loads and caches coefficient files from the cfg/ directory.

    Attributes:
        cfg_dir: Path to the configuration directory
    """

    def __init__(self, cfg_dir: Optional[Path] = None):
        """Initialize the configuration loader.

        Args:
            cfg_dir: Path to the configuration directory. Defaults to the
                cfg/ directory inside the package.
        """
        if cfg_dir is None:
            cfg_dir = Path(__file__).parent / 'cfg'
        self.cfg_dir = Path(cfg_dir)

        # Cache for coefficient files (loaded once, reused)
        self._coefficient_cache: Dict[str, Dict[str, Any]] = {}

    def load_coefficient_file(self, filename: str) -> Dict[str, Any]:
        """Load a coefficient file with caching.

        Args:
            filename: Name of the file relative to cfg_dir
                (e.g., 'cohort_biomass.yaml')

        Returns:
            Dictionary containing coefficient data

        Raises:
            ConfigFileNotFoundError: If the file doesn't exist
            InvalidDataError: If the file cannot be parsed
        """
        if filename not in self._coefficient_cache:
            file_path = self.cfg_dir / filename
            logger.debug("Loading coefficient file %s", file_path)
            self._coefficient_cache[filename] = load_config_file(file_path)
        return self._coefficient_cache[filename]

    def clear_coefficient_cache(self) -> None:
        """Clear the coefficient file cache.

        Useful for testing or when configuration files may have changed.
        """
        self._coefficient_cache.clear()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(cfg_dir='{self.cfg_dir}')"


# Global configuration loader instance
_config_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """Get the shared configuration loader for the package cfg/ directory."""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def load_coefficient_file(filename: str) -> Dict[str, Any]:
    """Convenience function to load a packaged coefficient file with caching.

    Args:
        filename: Name of the coefficient file (e.g., 'tree_growth.yaml')

    Returns:
        Dictionary containing coefficient data
    """
    return get_config_loader().load_coefficient_file(filename)
