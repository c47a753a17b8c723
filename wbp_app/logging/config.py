"""
Centralized logging configuration for the Work Before Play controller.

This module provides standardized logging configuration using structlog
for all components. All logging throughout the system should use this
configuration to ensure consistent formatting and structured logging.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"  # structlog will handle formatting
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_gating_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for gate enforcement decisions.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structlog logger bound to the gating subsystem
    """
    return structlog.get_logger(name, subsystem="gating", audit_trail=True)


def get_state_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for unlock state transitions.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structlog logger bound to the state machine subsystem
    """
    return structlog.get_logger(name, subsystem="state_machine", audit_trail=True)


def log_gate_decision(
    logger: FilteringBoundLogger,
    active: bool,
    gate_count: int,
    reason: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a gate enforcement decision with standardized format.

    Args:
        logger: Structlog logger instance
        active: Whether an unlock grant is active (gates open)
        gate_count: Number of gated resources affected
        reason: What prompted the decision
        context: Additional context data
    """
    bound_logger = logger.bind(
        gate_result="OPEN" if active else "BLOCKED",
        gate_count=gate_count,
        reason=reason,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if active:
        bound_logger.info("Grant active - gated resources open")
    else:
        bound_logger.info("Blocking gated resources")


def log_state_transition(
    logger: FilteringBoundLogger,
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a state transition with standardized format.

    Args:
        logger: Structlog logger instance
        from_state: Current state
        to_state: Target state
        trigger: What triggered the transition
        context: Additional context data
    """
    bound_logger = logger.bind(
        from_state=from_state,
        to_state=to_state,
        trigger=trigger,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("State transition")
