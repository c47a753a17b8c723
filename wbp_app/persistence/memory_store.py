"""In-process store used for tests and single-process runs."""

import copy
from typing import Any, Iterable, Optional

import structlog

from .base import KeyValueStore, StorageChange

logger = structlog.get_logger(__name__)


class InMemoryStore(KeyValueStore):
    """Dictionary-backed store with the same get/set/on_change contract."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        super().__init__()
        self._data: dict[str, Any] = dict(initial or {})
        self.write_count = 0

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return {
            key: copy.deepcopy(self._data[key])
            for key in keys
            if key in self._data
        }

    async def set(self, items: dict[str, Any]) -> None:
        changes: dict[str, StorageChange] = {}

        for key, value in items.items():
            old_value = self._data.get(key)
            present = key in self._data
            self._data[key] = copy.deepcopy(value)
            if not present or old_value != value:
                changes[key] = StorageChange(old_value=old_value, new_value=value)

        self.write_count += 1
        logger.debug("Store updated", keys=sorted(items), changed=sorted(changes))

        await self._notify(changes)

    def snapshot(self) -> dict[str, Any]:
        """Copy of the current contents."""
        return copy.deepcopy(self._data)
