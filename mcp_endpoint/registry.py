"""Append-only registries for tools, prompts and resources."""
from typing import Callable, Dict, Generic, Iterator, List, Optional, TypeVar
import logging
import threading

from .utils.errors import DuplicateEntryError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Registry(Generic[T]):
    """Insertion-ordered collection of entries keyed by name or URI.

    Mutation replaces the internal dict under a lock; readers use whatever
    snapshot is current and never take the lock.
    """

    def __init__(self, kind: str, key: Callable[[T], str]):
        self.kind = kind
        self._key = key
        self._entries: Dict[str, T] = {}
        self._lock = threading.Lock()

    def add(self, entry: T) -> T:
        key = self._key(entry)
        with self._lock:
            if key in self._entries:
                raise DuplicateEntryError(f"{self.kind} {key!r} is already registered")
            self._entries = {**self._entries, key: entry}
        logger.info(f"Registered {self.kind}: {key}")
        return entry

    def extend(self, entries) -> None:
        for entry in entries:
            self.add(entry)

    def get(self, key: Optional[str]) -> Optional[T]:
        if not isinstance(key, str):
            return None
        return self._entries.get(key)

    def values(self) -> List[T]:
        return list(self._entries.values())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Registry({self.kind!r}, {list(self._entries)!r})"
