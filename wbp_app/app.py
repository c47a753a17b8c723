"""
Application wiring.

Builds the store, channel, background controller and views from an
``AppConfig``. Views and the controller share only the store and the
channel.
"""

from typing import Optional

import structlog

from .background import BackgroundController, GateEnforcer
from .channel.transport import LocalMessageChannel
from .config.defaults import AppConfig, StoreParams, get_default_config
from .frontend import FrontEndView
from .persistence.base import KeyValueStore
from .persistence.memory_store import InMemoryStore
from .persistence.sqlite_store import SqliteStore
from .utils.time import Clock

logger = structlog.get_logger(__name__)


def create_store(params: StoreParams) -> KeyValueStore:
    """Instantiate the configured store backend."""
    if params.backend == "memory":
        return InMemoryStore()
    if params.backend == "sqlite":
        return SqliteStore(params.path)
    raise ValueError(f"Unknown store backend: {params.backend}")


class GateApplication:
    """Owns the background controller and hands out views."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        store: Optional[KeyValueStore] = None,
        enforcer: Optional[GateEnforcer] = None,
        clock: Optional[Clock] = None
    ):
        self.config = config or get_default_config()
        self.store = store or create_store(self.config.store)
        self.channel = LocalMessageChannel(self.config.channel.request_timeout_ms)
        self.clock = clock
        self.background = BackgroundController(
            self.store,
            self.channel,
            self.config.gate,
            enforcer=enforcer,
            clock=clock,
        )

    async def start(self) -> None:
        if isinstance(self.store, SqliteStore):
            self.store.start_watching(self.config.store.watch_interval_ms)
        await self.background.start()
        logger.info("Gate application started", store_backend=type(self.store).__name__)

    async def stop(self) -> None:
        await self.background.stop()
        if isinstance(self.store, SqliteStore):
            await self.store.stop_watching()
        logger.info("Gate application stopped")

    def create_view(self) -> FrontEndView:
        """New view bound to the shared store and channel; call ``open()`` on it."""
        return FrontEndView(
            self.store,
            self.channel,
            self.config.view,
            gate_params=self.config.gate,
            clock=self.clock,
        )
