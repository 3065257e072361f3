from __future__ import annotations

from typing import Protocol

import cv2
import numpy as np

from .camera_capture import open_camera_capture
from .config import Settings
from .exceptions import CameraError


class FrameSource(Protocol):
    def open(self) -> None: ...

    def read(self) -> np.ndarray: ...

    def close(self) -> None: ...


class CameraStream:
    def __init__(
        self,
        camera_index: int = 0,
        frame_width: int = 640,
        frame_height: int = 480,
        frame_fps: int = 30,
    ):
        self.camera_index = camera_index
        self.frame_width = frame_width
        self.frame_height = frame_height
        self.frame_fps = frame_fps
        self.cap = None
        self.backend_name: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "CameraStream":
        return cls(
            camera_index=settings.camera_index,
            frame_width=settings.frame_width,
            frame_height=settings.frame_height,
            frame_fps=settings.frame_fps,
        )

    def __enter__(self) -> "CameraStream":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self.cap is not None

    def open(self) -> None:
        if self.cap is not None:
            return
        self.cap, self.backend_name = open_camera_capture(self.camera_index)

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.frame_width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.frame_height)
        self.cap.set(cv2.CAP_PROP_FPS, self.frame_fps)

    def read(self) -> np.ndarray:
        if self.cap is None:
            raise CameraError("Camera stream is not initialized.")

        success, frame = self.cap.read()
        if not success or frame is None:
            raise CameraError("Failed to read frame from camera.")
        return frame

    def close(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None
