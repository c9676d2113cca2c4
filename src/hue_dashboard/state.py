"""Application state and the shared persisted-configuration cell."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Generic, TypeVar

from hue_dashboard.hue_json import BridgeConfig

T = TypeVar("T")


@dataclass(frozen=True)
class UserData:
    """Per-user dashboard preferences."""

    hidden_groups: frozenset[str] = frozenset()
    scenes: tuple[str, ...] = ()


DEFAULT_USER_DATA = UserData()

# No authentication, every browser shares one set of preferences
DEFAULT_USER_ID = "default"


@dataclass(frozen=True)
class PersistConfig:
    """Persisted configuration: bridge pairing plus user preferences by user ID."""

    bridge_ip: str = ""
    bridge_user_id: str = ""
    user_data: Mapping[str, UserData] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Read-only view over a private copy, so snapshots cannot be changed in place
        object.__setattr__(self, "user_data", MappingProxyType(dict(self.user_data)))

    def get_user_data(self, user_id: str) -> UserData:
        return self.user_data.get(user_id, DEFAULT_USER_DATA)

    def with_user_data(self, user_id: str, data: UserData) -> PersistConfig:
        return replace(self, user_data={**self.user_data, user_id: data})


@dataclass
class AppState:
    """State of one running application session."""

    pc: PersistConfig
    bc: BridgeConfig

    def with_persist_config(self, pc: PersistConfig) -> AppState:
        return replace(self, pc=pc)

    def with_bridge_config(self, bc: BridgeConfig) -> AppState:
        return replace(self, bc=bc)


class ConfigCell(Generic[T]):
    """Mutex-guarded cell holding an immutable value.

    ``read()`` returns a snapshot. Several reads, or a read followed by an
    update, compose atomically inside ``transaction()``.
    """

    def __init__(self, value: T) -> None:
        self._value = value
        self._lock = threading.RLock()

    def read(self) -> T:
        with self._lock:
            return self._value

    def write(self, value: T) -> None:
        with self._lock:
            self._value = value

    def modify(self, fn: Callable[[T], T]) -> T:
        """Atomically replace the value with ``fn(old)`` and return the new value."""
        with self._lock:
            self._value = fn(self._value)
            return self._value

    @contextmanager
    def transaction(self) -> Iterator[ConfigCell[T]]:
        with self._lock:
            yield self
