from __future__ import annotations

import threading
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel

from workledger.app.stores.base import Stores

M = TypeVar("M", bound=BaseModel)


class InMemoryRepository(Generic[M]):
    """
    Thread-safe dict-backed repository keyed by the model's ``id``.

    Every read and write deep-copies, so callers can never mutate stored
    state by holding on to a returned instance.
    """

    def __init__(self) -> None:
        self._items: Dict[str, M] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[M]:
        with self._lock:
            item = self._items.get(key)
            return item.model_copy(deep=True) if item is not None else None

    def list(self) -> List[M]:
        with self._lock:
            return [item.model_copy(deep=True) for item in self._items.values()]

    def save(self, item: M) -> M:
        stored = item.model_copy(deep=True)
        with self._lock:
            self._items[stored.id] = stored  # type: ignore[attr-defined]
        return stored.model_copy(deep=True)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


def memory_stores() -> Stores:
    return Stores(
        templates=InMemoryRepository(),
        layouts=InMemoryRepository(),
        contracts=InMemoryRepository(),
        assignments=InMemoryRepository(),
        layout_assignments=InMemoryRepository(),
        entries=InMemoryRepository(),
    )
