from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent
LOG_DIR = BASE_DIR / "logs"

# Landmark / descriptor model
LANDMARK_COUNT = 68
DESCRIPTOR_DIM = 128

# Eye-state settings
EAR_OPEN_THRESHOLD = 0.22
EAR_CLOSED_THRESHOLD = 0.16
EAR_DEGENERATE = 0.3
BLINK_DEBOUNCE_SECONDS = 0.2
REQUIRED_BLINKS = 2

# Head-movement settings, in pixels of a 640x480 frame
MOVEMENT_X_THRESHOLD = 30.0
MOVEMENT_Y_THRESHOLD = 20.0
RECENT_POSITIONS = 10

# Capture settings
FRAME_INTERVAL_SECONDS = 0.2
SESSION_TIMEOUT_SECONDS = 60.0

# Matching settings
MATCH_THRESHOLD = 0.5


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LIVENESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    log_dir: Path = LOG_DIR

    camera_index: int = 0
    frame_width: int = 640
    frame_height: int = 480
    frame_fps: int = 30

    frame_interval_seconds: float = FRAME_INTERVAL_SECONDS
    session_timeout_seconds: float = SESSION_TIMEOUT_SECONDS

    ear_open_threshold: float = EAR_OPEN_THRESHOLD
    ear_closed_threshold: float = EAR_CLOSED_THRESHOLD
    blink_debounce_seconds: float = BLINK_DEBOUNCE_SECONDS
    required_blinks: int = REQUIRED_BLINKS

    movement_x_threshold: float = MOVEMENT_X_THRESHOLD
    movement_y_threshold: float = MOVEMENT_Y_THRESHOLD

    match_threshold: float = MATCH_THRESHOLD

    predictor_path: Path | None = None
    recognition_model_path: Path | None = None
    upsample_times: int = 0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
