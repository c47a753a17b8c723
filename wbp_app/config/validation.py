"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

STORE_BACKENDS = ("sqlite", "memory")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_gate_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate grant timing and gate set."""
        errors = []

        for field in ("grant_duration_ms", "reconciliation_period_ms"):
            if field in params and not _is_positive_int(params[field]):
                errors.append(ValidationError(
                    field=field,
                    message="Must be a positive integer (milliseconds)",
                    value=params[field]
                ))

        if "gate_set" in params:
            value = params["gate_set"]
            if (not isinstance(value, (list, tuple))
                    or not all(isinstance(item, str) and item.strip() for item in value)):
                errors.append(ValidationError(
                    field="gate_set",
                    message="Must be a list of non-empty resource identifiers",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_view_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate front-end view parameters."""
        errors = []

        if "countdown_interval_ms" in params and not _is_positive_int(params["countdown_interval_ms"]):
            errors.append(ValidationError(
                field="countdown_interval_ms",
                message="Must be a positive integer (milliseconds)",
                value=params["countdown_interval_ms"]
            ))

        return errors

    @staticmethod
    def validate_channel_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate message channel parameters."""
        errors = []

        if "request_timeout_ms" in params and not _is_positive_int(params["request_timeout_ms"]):
            errors.append(ValidationError(
                field="request_timeout_ms",
                message="Must be a positive integer (milliseconds)",
                value=params["request_timeout_ms"]
            ))

        return errors

    @staticmethod
    def validate_store_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate persistent store parameters."""
        errors = []

        if "backend" in params and params["backend"] not in STORE_BACKENDS:
            errors.append(ValidationError(
                field="backend",
                message=f"Must be one of {', '.join(STORE_BACKENDS)}",
                value=params["backend"]
            ))

        if "path" in params:
            value = params["path"]
            if not isinstance(value, str) or not value:
                errors.append(ValidationError(
                    field="path",
                    message="Must be a non-empty path",
                    value=value
                ))

        if "watch_interval_ms" in params and not _is_positive_int(params["watch_interval_ms"]):
            errors.append(ValidationError(
                field="watch_interval_ms",
                message="Must be a positive integer (milliseconds)",
                value=params["watch_interval_ms"]
            ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
                errors.append(ValidationError(
                    field="level",
                    message=f"Must be one of {', '.join(LOG_LEVELS)}",
                    value=value
                ))

        if "format_json" in params and not isinstance(params["format_json"], bool):
            errors.append(ValidationError(
                field="format_json",
                message="Must be a boolean",
                value=params["format_json"]
            ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        if not isinstance(config, dict):
            return [ValidationError(
                field="config",
                message="Configuration must be a mapping of sections",
                value=config
            )]

        errors = []

        sections = {
            "gate": ConfigValidator.validate_gate_params,
            "view": ConfigValidator.validate_view_params,
            "channel": ConfigValidator.validate_channel_params,
            "store": ConfigValidator.validate_store_params,
            "logging": ConfigValidator.validate_logging_params,
        }

        for section, validate in sections.items():
            if section not in config:
                continue

            params = config[section]
            if not isinstance(params, dict):
                errors.append(ValidationError(
                    field=section,
                    message="Section must be a mapping of parameters",
                    value=params
                ))
                continue

            errors.extend(validate(params))

        return errors
