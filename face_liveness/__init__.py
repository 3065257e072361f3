from .auth_service import FaceAuthService, RegistrationResult, VerificationResult
from .camera import CameraStream, FrameSource
from .config import Settings, get_settings
from .credential_store import CredentialStore, InMemoryCredentialStore
from .detector import DlibLandmarkDetector, LandmarkDetector
from .exceptions import (
    CameraError,
    CredentialNotFoundError,
    DetectorUnavailableError,
    DimensionMismatchError,
    LandmarkError,
    LivenessError,
)
from .eye_state import EyeStateTracker, eye_aspect_ratio
from .head_movement import HeadMovementTracker
from .liveness import LivenessEvaluator
from .matcher import DescriptorMatcher, MatchResult, distance, matches
from .orchestrator import CaptureOrchestrator
from .types import (
    CaptureOutcome,
    CaptureStage,
    Direction,
    FacialLandmarks,
    FailureReason,
    LivenessResult,
    LivenessState,
    Point,
    as_descriptor,
)

__all__ = [
    "CameraError",
    "CameraStream",
    "CaptureOrchestrator",
    "CaptureOutcome",
    "CaptureStage",
    "CredentialNotFoundError",
    "CredentialStore",
    "DescriptorMatcher",
    "DetectorUnavailableError",
    "DimensionMismatchError",
    "Direction",
    "DlibLandmarkDetector",
    "EyeStateTracker",
    "FaceAuthService",
    "FacialLandmarks",
    "FailureReason",
    "FrameSource",
    "HeadMovementTracker",
    "InMemoryCredentialStore",
    "LandmarkDetector",
    "LandmarkError",
    "LivenessError",
    "LivenessEvaluator",
    "LivenessResult",
    "LivenessState",
    "MatchResult",
    "Point",
    "RegistrationResult",
    "Settings",
    "VerificationResult",
    "as_descriptor",
    "distance",
    "eye_aspect_ratio",
    "get_settings",
    "matches",
]
