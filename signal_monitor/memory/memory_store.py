"""
Generic file-backed JSON store.

Each store maps to a single JSON file holding an array of items of one
pydantic model. The whole collection is loaded on construction and the whole
file is rewritten on every mutation. One process owns a store file; there is
no locking.

Load and save failures are logged and swallowed. Callers that need to know
about them can register an error listener, which receives a
PersistenceError; a listener that raises makes the failure fatal for the
mutating call.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Generic, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel

from ..errors import PersistenceError

T = TypeVar("T", bound=BaseModel)

Predicate = Callable[[T], bool]
ErrorListener = Callable[[PersistenceError], None]


class MemoryStore(Generic[T]):
    """CRUD over a homogeneous collection persisted as one JSON array."""

    def __init__(
        self,
        file_path: Union[str, Path],
        model: Type[T],
        logger: Optional[logging.Logger] = None,
    ):
        self.file_path = Path(file_path)
        self.model = model
        self.logger = logger or logging.getLogger(__name__)
        self.last_error: Optional[PersistenceError] = None
        self._listeners: List[ErrorListener] = []
        self._data: List[T] = self._load()

    # =========================================================================
    # Persistence
    # =========================================================================

    def add_error_listener(self, listener: ErrorListener) -> None:
        """Register a callable notified of every load/save failure"""
        self._listeners.append(listener)

    def _load(self) -> List[T]:
        if not self.file_path.exists():
            return []
        try:
            raw = json.loads(self.file_path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                self.logger.warning("Memory file %s is not a JSON array; starting empty", self.file_path)
                return []
            return [self.model.model_validate(item) for item in raw]
        except Exception as e:
            self.logger.warning("Failed to load memory from %s: %s", self.file_path, e)
            self._report(PersistenceError(str(e), str(self.file_path), "load"))
            return []

    def _save(self) -> None:
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            payload = [item.model_dump(mode="json") for item in self._data]
            tmp_path = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.file_path)
            self.last_error = None
        except Exception as e:
            self.logger.error("Failed to save memory to %s: %s", self.file_path, e)
            self._report(PersistenceError(str(e), str(self.file_path), "save"))

    def _report(self, error: PersistenceError) -> None:
        self.last_error = error
        for listener in self._listeners:
            listener(error)

    # =========================================================================
    # Reads (return copies)
    # =========================================================================

    def get_all(self) -> List[T]:
        return [item.model_copy(deep=True) for item in self._data]

    def find(self, predicate: Predicate) -> Optional[T]:
        for item in self._data:
            if predicate(item):
                return item.model_copy(deep=True)
        return None

    def filter(self, predicate: Predicate) -> List[T]:
        return [item.model_copy(deep=True) for item in self._data if predicate(item)]

    def query(
        self,
        filter: Optional[Predicate] = None,
        sort_key: Optional[Callable[[T], Any]] = None,
        reverse: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[T]:
        """Filter, then sort, then skip `offset`, then take `limit`"""
        results = [item for item in self._data if filter is None or filter(item)]
        if sort_key is not None:
            results.sort(key=sort_key, reverse=reverse)
        if offset:
            results = results[offset:]
        if limit:
            results = results[:limit]
        return [item.model_copy(deep=True) for item in results]

    @property
    def size(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        return len(self._data)

    # =========================================================================
    # Mutations (persist immediately)
    # =========================================================================

    def append(self, item: T) -> None:
        self._data.append(item.model_copy(deep=True))
        self._save()

    def upsert(
        self,
        match: Predicate,
        update: Callable[[T], T],
        default: T,
    ) -> T:
        """
        Replace the first matching item with update(copy_of_item), or insert
        `default` when nothing matches. Returns the stored item.
        """
        for index, item in enumerate(self._data):
            if match(item):
                updated = update(item.model_copy(deep=True))
                self._data[index] = updated
                self._save()
                return updated.model_copy(deep=True)

        stored = default.model_copy(deep=True)
        self._data.append(stored)
        self._save()
        return stored.model_copy(deep=True)

    def remove(self, predicate: Predicate) -> int:
        before = len(self._data)
        self._data = [item for item in self._data if not predicate(item)]
        removed = before - len(self._data)
        if removed > 0:
            self._save()
        return removed

    def clear(self) -> None:
        self._data = []
        self._save()

    def reload(self) -> None:
        self._data = self._load()
