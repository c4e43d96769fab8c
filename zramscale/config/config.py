# zramscale/config/config.py

import copy
import logging
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Mapping, Optional, Tuple

from zramscale.abstractions.types.zram_types import MIB, DeviceSettings, SizingPolicy
from zramscale.core.errors import ConfigError
from . import defaults

logger = logging.getLogger(__name__)


class Config:
    """Configuration manager with YAML and environment override support.

    Precedence, lowest first: built-in defaults, the YAML file, environment
    variables.
    """

    def __init__(self,
                 config_file: Optional[Path] = None,
                 environ: Optional[Mapping[str, str]] = None,
                 search_paths=None):
        self.settings = self.load_defaults()
        self.config_file: Optional[Path] = None

        if config_file is not None:
            config_file = Path(config_file)
            if not config_file.is_file():
                raise ConfigError(f"Config file not found: {config_file}")
        else:
            config_file = self._find_config_file(search_paths)

        if config_file is not None:
            self._load_yaml_config(config_file)
            self.config_file = config_file
            logger.debug(f"Loaded configuration from {config_file}")
        else:
            logger.debug("No config.yml found - using defaults only")

        self._apply_env_overrides(os.environ if environ is None else environ)

    def _find_config_file(self, search_paths=None) -> Optional[Path]:
        """Find config.yml with multiple fallback locations."""
        locations = defaults.CONFIG_SEARCH_PATHS if search_paths is None else search_paths
        for location in locations:
            location = Path(location)
            if location.exists() and location.is_file():
                return location
        return None

    def load_defaults(self) -> Dict[str, Any]:
        """Load default configuration settings."""
        return {
            'zram': copy.deepcopy(defaults.ZRAM),
            'sizing': copy.deepcopy(defaults.SIZING),
            'scaling': copy.deepcopy(defaults.SCALING),
            'system': copy.deepcopy(defaults.SYSTEM),
            'paths': copy.deepcopy(defaults.PATHS),
            'logging': copy.deepcopy(defaults.LOGGING),
            'benchmark': copy.deepcopy(defaults.BENCHMARK),
        }

    def _load_yaml_config(self, config_file: Path):
        """Load and merge configuration from a YAML file."""
        try:
            with open(config_file, 'r') as file:
                yaml_config = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read {config_file}: {e}") from e

        if yaml_config is None:
            return
        if not isinstance(yaml_config, dict):
            raise ConfigError(f"{config_file} must contain a mapping at the top level")
        self._deep_merge(self.settings, yaml_config)

    def _deep_merge(self, base: dict, override: dict):
        """Deep merge override into base dictionary."""
        for key, value in override.items():
            if isinstance(value, dict) and key in base and isinstance(base[key], dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _apply_env_overrides(self, environ: Mapping[str, str]):
        for env_name, key in defaults.ENV_OVERRIDES.items():
            raw = environ.get(env_name)
            if raw is None or raw == '':
                continue
            try:
                # YAML scalars give the same typing as the config file
                value = yaml.safe_load(raw)
            except yaml.YAMLError:
                value = raw
            self.set(key, value)
            logger.debug(f"{env_name} overrides {key}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        keys = key.split(".")
        value = self.settings

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation."""
        keys = key.split(".")
        target = self.settings
        for k in keys[:-1]:
            target = target.setdefault(k, {})
        target[keys[-1]] = value

    # Section accessors
    @property
    def zram(self) -> Dict[str, Any]:
        return self.settings['zram']

    @property
    def sizing(self) -> Dict[str, Any]:
        return self.settings['sizing']

    @property
    def scaling(self) -> Dict[str, Any]:
        return self.settings['scaling']

    @property
    def system(self) -> Dict[str, Any]:
        return self.settings['system']

    @property
    def paths(self) -> Dict[str, Any]:
        return self.settings['paths']

    @property
    def benchmark(self) -> Dict[str, Any]:
        return self.settings['benchmark']

    @property
    def check_interval(self) -> float:
        value = self._number('scaling.check_interval')
        if value <= 0:
            raise ConfigError(f"scaling.check_interval must be positive, got {value}")
        return float(value)

    def sizing_policy(self) -> SizingPolicy:
        """Build and validate the sizing policy."""
        low_bytes, low_pct = parse_threshold(
            self.get('scaling.memory_low_threshold'), 'scaling.memory_low_threshold')
        safe_bytes, safe_pct = parse_threshold(
            self.get('scaling.memory_safe_threshold'), 'scaling.memory_safe_threshold')

        kwargs = dict(
            small_ratio=self._int('sizing.ratio_small'),
            medium_ratio=self._int('sizing.ratio_medium'),
            large_ratio=self._int('sizing.ratio_large'),
            dynamic_scaling_enabled=self._bool('scaling.enabled'),
            minimum_capacity_bytes=self._int('sizing.minimum_size_mb') * MIB,
            low_pressure_threshold_percent=low_pct,
            safe_pressure_threshold_percent=safe_pct,
        )
        if low_bytes is not None:
            kwargs['low_pressure_threshold_bytes'] = low_bytes
        if safe_bytes is not None:
            kwargs['safe_pressure_threshold_bytes'] = safe_bytes
        return SizingPolicy(**kwargs)

    def device_settings(self) -> DeviceSettings:
        """Build and validate per-device settings."""
        swappiness = self.get('system.swappiness')
        algorithm = self.get('zram.compression_algorithm')
        return DeviceSettings(
            device_count=self._int('zram.devices'),
            compression_algorithm=str(algorithm) if algorithm is not None else '',
            priority=self._int('zram.priority'),
            swappiness=None if swappiness is None else self._int('system.swappiness'),
        )

    def _int(self, key: str) -> int:
        value = self.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lstrip('-').isdigit():
            return int(value.strip())
        raise ConfigError(f"{key} must be an integer, got {value!r}")

    def _number(self, key: str) -> float:
        value = self.get(key)
        try:
            if isinstance(value, bool):
                raise ValueError
            return float(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{key} must be a number, got {value!r}")

    def _bool(self, key: str) -> bool:
        value = self.get(key)
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in ('true', 'yes', 'on', '1'):
            return True
        if text in ('false', 'no', 'off', '0'):
            return False
        raise ConfigError(f"{key} must be a boolean, got {value!r}")


def parse_threshold(value: Any, key: str) -> Tuple[Optional[int], Optional[float]]:
    """Parse a threshold given in MiB or as a percentage of RAM ("10%").

    Returns:
        (bytes, None) for MiB values, (None, percent) for percentages
    """
    if isinstance(value, bool) or value is None:
        raise ConfigError(f"{key} must be MiB or a percentage, got {value!r}")

    if isinstance(value, str):
        text = value.strip()
        if text.endswith('%'):
            try:
                return None, float(text[:-1])
            except ValueError:
                raise ConfigError(f"{key}: invalid percentage {value!r}")
        try:
            value = float(text)
        except ValueError:
            raise ConfigError(f"{key} must be MiB or a percentage, got {value!r}")

    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {value}")
    return int(value * MIB), None
