from collections.abc import MutableMapping
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class InMemoryKeyValueDatabase(Generic[K, V]):
    """
    Simple in-memory key/value database.

    Keys are namespaced strings such as "carer:<id>" or "document:<id>";
    `scan()` returns every value under a namespace prefix.
    """

    def __init__(self) -> None:
        self._store: MutableMapping[K, V] = {}

    def put(self, key: K, value: V) -> None:
        self._store[key] = value

    def get(self, key: K) -> V | None:
        return self._store.get(key)

    def delete(self, key: K) -> V | None:
        return self._store.pop(key, None)

    def scan(self, prefix: str) -> list[V]:
        return [
            value
            for key, value in self._store.items()
            if isinstance(key, str) and key.startswith(prefix)
        ]

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
