from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

import cv2
import numpy as np

from .config import LANDMARK_COUNT, Settings
from .exceptions import DetectorUnavailableError
from .logger import setup_logger
from .types import FacialLandmarks, as_descriptor

try:
    import dlib
except Exception:  # pragma: no cover - runtime dependency guard
    dlib = None


class LandmarkDetector(Protocol):
    async def detect_face(self, frame: np.ndarray) -> FacialLandmarks | None: ...

    async def extract_descriptor(self, frame: np.ndarray) -> np.ndarray | None: ...


class DlibLandmarkDetector:
    def __init__(
        self,
        predictor_path: Path | str | None,
        recognition_model_path: Path | str | None,
        upsample_times: int = 0,
        num_jitters: int = 1,
    ):
        if dlib is None:
            raise DetectorUnavailableError("dlib is required. Install the 'dlib' extra.")

        for label, path in (
            ("shape predictor", predictor_path),
            ("face recognition model", recognition_model_path),
        ):
            if path is None or not Path(path).exists():
                raise DetectorUnavailableError(f"{label} model not found at {path!r}.")

        self.upsample_times = upsample_times
        self.num_jitters = num_jitters
        self.logger = setup_logger(self.__class__.__name__)

        try:
            self.face_detector = dlib.get_frontal_face_detector()
            self.shape_predictor = dlib.shape_predictor(str(predictor_path))
            self.face_encoder = dlib.face_recognition_model_v1(str(recognition_model_path))
        except Exception as exc:
            raise DetectorUnavailableError(f"Failed to load dlib models: {exc}") from exc

    @classmethod
    def from_settings(cls, settings: Settings) -> "DlibLandmarkDetector":
        return cls(
            predictor_path=settings.predictor_path,
            recognition_model_path=settings.recognition_model_path,
            upsample_times=settings.upsample_times,
        )

    async def detect_face(self, frame: np.ndarray) -> FacialLandmarks | None:
        return await asyncio.to_thread(self.detect_face_sync, frame)

    async def extract_descriptor(self, frame: np.ndarray) -> np.ndarray | None:
        return await asyncio.to_thread(self.extract_descriptor_sync, frame)

    def detect_face_sync(self, frame: np.ndarray) -> FacialLandmarks | None:
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        shape = self._primary_shape(rgb)
        if shape is None:
            return None
        if shape.num_parts != LANDMARK_COUNT:
            raise DetectorUnavailableError(
                f"Shape predictor returned {shape.num_parts} points; a 68-point model is required."
            )
        return FacialLandmarks([(shape.part(i).x, shape.part(i).y) for i in range(shape.num_parts)])

    def extract_descriptor_sync(self, frame: np.ndarray) -> np.ndarray | None:
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        shape = self._primary_shape(rgb)
        if shape is None:
            return None
        raw = self.face_encoder.compute_face_descriptor(rgb, shape, self.num_jitters)
        return as_descriptor(np.array(raw, dtype=np.float32))

    def _primary_shape(self, rgb: np.ndarray):
        rects = self.face_detector(rgb, self.upsample_times)
        if len(rects) == 0:
            return None
        if len(rects) > 1:
            self.logger.debug("Found %d faces; using the largest", len(rects))
        rect = max(rects, key=lambda r: r.width() * r.height())
        return self.shape_predictor(rgb, rect)
