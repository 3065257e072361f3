from __future__ import annotations

from threading import Lock
from typing import Protocol

import numpy as np

from .types import as_descriptor


class CredentialStore(Protocol):
    def get(self, user_id: str) -> np.ndarray | None: ...

    def put(self, user_id: str, descriptor: np.ndarray) -> None: ...

    def remove(self, user_id: str) -> bool: ...

    def items(self) -> list[tuple[str, np.ndarray]]: ...


class InMemoryCredentialStore:
    def __init__(self) -> None:
        self._lock = Lock()
        self._descriptors: dict[str, np.ndarray] = {}

    def get(self, user_id: str) -> np.ndarray | None:
        with self._lock:
            return self._descriptors.get(user_id)

    def put(self, user_id: str, descriptor: np.ndarray) -> None:
        vector = as_descriptor(descriptor)
        with self._lock:
            self._descriptors[user_id] = vector

    def remove(self, user_id: str) -> bool:
        with self._lock:
            return self._descriptors.pop(user_id, None) is not None

    def items(self) -> list[tuple[str, np.ndarray]]:
        with self._lock:
            return list(self._descriptors.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._descriptors)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._descriptors
