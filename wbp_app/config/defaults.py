"""Default configuration parameters for the unlock controller."""

from dataclasses import dataclass


DEFAULT_GATE_SET = (
    "youtube.com",
    "reddit.com",
    "twitch.tv",
    "instagram.com",
)


@dataclass(frozen=True)
class GateParams:
    """Grant timing and the static set of gated resources."""
    grant_duration_ms: int = 30 * 60 * 1000          # Unlock window after a finished task
    reconciliation_period_ms: int = 60 * 1000        # Sweep period bounding Locked staleness
    gate_set: tuple[str, ...] = DEFAULT_GATE_SET     # Domains subject to gating


@dataclass(frozen=True)
class ViewParams:
    """Front-end view parameters."""
    countdown_interval_ms: int = 1000                # Countdown poll period while unlocked


@dataclass(frozen=True)
class ChannelParams:
    """Message channel parameters."""
    request_timeout_ms: int = 5000


@dataclass(frozen=True)
class StoreParams:
    """Persistent store parameters."""
    backend: str = "sqlite"                          # sqlite or memory
    path: str = "wbp_state.db"
    watch_interval_ms: int = 500                     # Cross-process change polling


@dataclass(frozen=True)
class LoggingParams:
    """Logging parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    gate: GateParams
    view: ViewParams
    channel: ChannelParams
    store: StoreParams
    logging: LoggingParams


def get_default_config() -> AppConfig:
    """Get the default configuration instance."""
    return AppConfig(
        gate=GateParams(),
        view=ViewParams(),
        channel=ChannelParams(),
        store=StoreParams(),
        logging=LoggingParams(),
    )
