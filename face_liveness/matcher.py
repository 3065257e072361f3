from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from .config import MATCH_THRESHOLD, Settings
from .exceptions import DimensionMismatchError


@dataclass
class MatchResult:
    user_id: str | None
    distance: float
    matched: bool


def _as_vector(descriptor: Sequence[float] | np.ndarray) -> np.ndarray:
    return np.asarray(descriptor, dtype=np.float64).reshape(-1)


def distance(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    va = _as_vector(a)
    vb = _as_vector(b)
    if va.shape != vb.shape:
        raise DimensionMismatchError(
            f"Cannot compare descriptors of length {va.shape[0]} and {vb.shape[0]}."
        )
    return float(np.linalg.norm(va - vb))


def matches(
    a: Sequence[float] | np.ndarray,
    b: Sequence[float] | np.ndarray,
    threshold: float = MATCH_THRESHOLD,
) -> bool:
    return distance(a, b) < threshold


class DescriptorMatcher:
    def __init__(self, threshold: float = MATCH_THRESHOLD):
        if threshold <= 0:
            raise ValueError("Match threshold must be positive.")
        self.threshold = threshold

    @classmethod
    def from_settings(cls, settings: Settings) -> "DescriptorMatcher":
        return cls(threshold=settings.match_threshold)

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        return distance(a, b)

    def matches(self, a: np.ndarray, b: np.ndarray) -> bool:
        return matches(a, b, self.threshold)

    def verify(self, candidate: np.ndarray, claimed: np.ndarray) -> MatchResult:
        dist = self.distance(candidate, claimed)
        return MatchResult(user_id=None, distance=dist, matched=dist < self.threshold)

    def find_duplicate(
        self,
        candidate: np.ndarray,
        existing: Iterable[tuple[str, np.ndarray]],
        exclude: str | None = None,
    ) -> MatchResult:
        # Linear scan; one biometric identity may back only one account.
        best = MatchResult(user_id=None, distance=float("inf"), matched=False)
        for user_id, stored in existing:
            if exclude is not None and user_id == exclude:
                continue
            dist = self.distance(candidate, stored)
            if dist < self.threshold:
                return MatchResult(user_id=user_id, distance=dist, matched=True)
            if dist < best.distance:
                best = MatchResult(user_id=None, distance=dist, matched=False)
        return best

    def closest(self, candidate: np.ndarray, existing: Iterable[tuple[str, np.ndarray]]) -> MatchResult:
        ids: list[str] = []
        vectors: list[np.ndarray] = []
        query = _as_vector(candidate)
        for user_id, stored in existing:
            vector = _as_vector(stored)
            if vector.shape != query.shape:
                raise DimensionMismatchError(
                    f"Stored descriptor for '{user_id}' has length {vector.shape[0]}, "
                    f"expected {query.shape[0]}."
                )
            ids.append(user_id)
            vectors.append(vector)

        if not vectors:
            return MatchResult(user_id=None, distance=float("inf"), matched=False)

        matrix = np.vstack(vectors)
        distances = np.linalg.norm(matrix - query, axis=1)
        idx = int(np.argmin(distances))
        best = float(distances[idx])
        if best < self.threshold:
            return MatchResult(user_id=ids[idx], distance=best, matched=True)
        return MatchResult(user_id=None, distance=best, matched=False)
