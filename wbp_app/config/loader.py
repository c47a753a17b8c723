"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from ..errors import ConfigurationError
from ..logging.config import get_logger
from .defaults import (
    AppConfig,
    ChannelParams,
    GateParams,
    LoggingParams,
    StoreParams,
    ViewParams,
    get_default_config,
)
from .validation import ConfigValidator

logger = get_logger(__name__)

SETTINGS_FILE = "settings.yaml"


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: AppConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_settings(self) -> dict[str, Any]:
        """Load settings file overrides, empty when the file is absent."""
        settings_file = self.config_dir / SETTINGS_FILE

        if not settings_file.exists():
            return {}

        try:
            with open(settings_file) as f:
                settings = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Could not parse {settings_file}: {e}") from e

        if settings is None:
            return {}
        if not isinstance(settings, dict):
            raise ConfigurationError(
                f"{settings_file} must contain a mapping of sections, "
                f"got {type(settings).__name__}"
            )

        return settings

    def merge_config(
        self,
        overrides: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Explicit overrides (highest priority)
        2. Settings file
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        config = self._deep_merge(config, self.load_settings())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def build_config(self, overrides: Optional[dict[str, Any]] = None) -> AppConfig:
        """Merge, validate and convert configuration to typed parameters."""
        config = self.merge_config(overrides)

        errors = ConfigValidator.validate_config(config)
        if errors:
            for error in errors:
                logger.error(
                    "Invalid configuration value",
                    field=error.field,
                    message=error.message,
                    value=error.value
                )
            raise ConfigurationError(
                f"Configuration has {len(errors)} invalid value(s)",
                errors=errors
            )

        gate = dict(config["gate"])
        gate["gate_set"] = tuple(gate["gate_set"])

        try:
            return AppConfig(
                gate=GateParams(**gate),
                view=ViewParams(**config["view"]),
                channel=ChannelParams(**config["channel"]),
                store=StoreParams(**config["store"]),
                logging=LoggingParams(**config["logging"]),
            )
        except TypeError as e:
            # Unknown keys in the settings file
            raise ConfigurationError(f"Unrecognised configuration field: {e}") from e

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name, _field in obj.__dataclass_fields__.items():
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                elif isinstance(value, tuple):
                    result[field_name] = list(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
