from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .config import Settings
from .credential_store import CredentialStore
from .exceptions import CredentialNotFoundError
from .logger import setup_logger
from .matcher import DescriptorMatcher
from .types import as_descriptor


@dataclass
class RegistrationResult:
    accepted: bool
    user_id: str
    duplicate_of: str | None = None
    distance: float | None = None


@dataclass
class VerificationResult:
    accepted: bool
    user_id: str | None
    distance: float


class FaceAuthService:
    def __init__(self, store: CredentialStore, matcher: DescriptorMatcher | None = None):
        self.store = store
        self.matcher = matcher or DescriptorMatcher()
        self.logger = setup_logger(self.__class__.__name__)

    @classmethod
    def from_settings(cls, store: CredentialStore, settings: Settings) -> "FaceAuthService":
        return cls(store=store, matcher=DescriptorMatcher.from_settings(settings))

    def register(self, user_id: str, descriptor: np.ndarray) -> RegistrationResult:
        user_id = user_id.strip()
        if not user_id:
            raise ValueError("user_id cannot be empty.")
        candidate = as_descriptor(descriptor)

        duplicate = self.matcher.find_duplicate(candidate, self.store.items(), exclude=user_id)
        if duplicate.matched:
            self.logger.warning(
                "Registration rejected for %s: face already registered to %s (distance %.3f)",
                user_id,
                duplicate.user_id,
                duplicate.distance,
            )
            return RegistrationResult(
                accepted=False,
                user_id=user_id,
                duplicate_of=duplicate.user_id,
                distance=duplicate.distance,
            )

        self.store.put(user_id, candidate)
        self.logger.info("Registered face descriptor for %s", user_id)
        return RegistrationResult(accepted=True, user_id=user_id)

    def verify(self, user_id: str, descriptor: np.ndarray) -> VerificationResult:
        claimed = self.store.get(user_id)
        if claimed is None:
            raise CredentialNotFoundError(f"No face descriptor registered for '{user_id}'.")

        result = self.matcher.verify(as_descriptor(descriptor), claimed)
        self.logger.info(
            "Verification for %s %s (distance %.3f)",
            user_id,
            "accepted" if result.matched else "rejected",
            result.distance,
        )
        return VerificationResult(accepted=result.matched, user_id=user_id, distance=result.distance)

    def recover(self, descriptor: np.ndarray) -> VerificationResult:
        result = self.matcher.closest(as_descriptor(descriptor), self.store.items())
        if result.matched:
            self.logger.info("Face recovery matched %s (distance %.3f)", result.user_id, result.distance)
        else:
            self.logger.info("Face recovery found no matching identity")
        return VerificationResult(accepted=result.matched, user_id=result.user_id, distance=result.distance)
