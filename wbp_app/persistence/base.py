"""Store contract shared by the background controller and front-end views."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StorageChange:
    """Old and new value of one key in a change notification."""
    old_value: Any = None
    new_value: Any = None


ChangeListener = Callable[[dict[str, StorageChange]], Union[None, Awaitable[None]]]


class KeyValueStore(ABC):
    """
    Async key-value store with change notification.

    Notifications are fan-out and at-least-once; listeners may see the same
    change twice and must re-read the store rather than trust the payload.
    """

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    @abstractmethod
    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """
        Read keys from the store.

        Args:
            keys: Keys to read

        Returns:
            Mapping of the keys that are present to their values

        Raises:
            StoreUnavailableError: If the backend cannot be read
        """

    @abstractmethod
    async def set(self, items: dict[str, Any]) -> None:
        """
        Write keys to the store and notify listeners of changed keys.

        Raises:
            StoreUnavailableError: If the backend cannot be written; the
                write must be assumed not to have happened
        """

    async def get_value(self, key: str, default: Optional[Any] = None) -> Any:
        """Read a single key."""
        result = await self.get([key])
        return result.get(key, default)

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Subscribe to change notifications.

        Args:
            listener: Sync or async callable receiving ``{key: StorageChange}``

        Returns:
            Callable that removes the subscription
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def _notify(self, changes: dict[str, StorageChange]) -> None:
        """Deliver changes to every listener; one failing listener does not stop the rest."""
        if not changes:
            return

        for listener in list(self._listeners):
            try:
                result = listener(changes)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(
                    "Store change listener failed",
                    listener=getattr(listener, "__name__", repr(listener)),
                    keys=sorted(changes),
                    error=str(e)
                )
