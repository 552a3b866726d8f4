from __future__ import annotations

from typing import MutableMapping, Optional, Protocol


class KeyValueStore(Protocol):
    """Side channel holding login state (cookies, local storage)."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class DictStore:
    """In-memory store; stands in for browser local storage."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class MappingStore:
    """Adapter over any mutable mapping, e.g. ``flask.session``.

    The mapping is looked up lazily so a request-bound proxy works.
    """

    def __init__(self, mapping_factory):
        self._mapping_factory = mapping_factory

    def _mapping(self) -> MutableMapping:
        return self._mapping_factory()

    def get(self, key: str) -> Optional[str]:
        value = self._mapping().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        self._mapping()[key] = str(value)

    def delete(self, key: str) -> None:
        self._mapping().pop(key, None)
