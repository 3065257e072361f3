from __future__ import annotations

import asyncio
import time
from dataclasses import replace
from typing import Callable

import numpy as np

from .camera import FrameSource
from .config import FRAME_INTERVAL_SECONDS, SESSION_TIMEOUT_SECONDS, Settings
from .detector import LandmarkDetector
from .exceptions import CameraError, DetectorUnavailableError
from .liveness import LivenessEvaluator
from .logger import setup_logger
from .types import (
    CaptureOutcome,
    CaptureStage,
    FailureReason,
    LivenessResult,
    LivenessState,
    as_descriptor,
)

CAPTURE_RETRY_MESSAGE = "Capturing face template..."
COMPLETE_MESSAGE = "Verification complete!"

ResultCallback = Callable[[LivenessResult], None]


class CaptureOrchestrator:
    """Drives one liveness attempt from camera frames to a face descriptor.

    Stages run INIT -> DETECTING -> LIVENESS_CHECKING -> CAPTURING and end in
    COMPLETE or FAILED. A fresh LivenessState is created on every entry into
    DETECTING; ``reset()`` discards it and returns to INIT.

    ``run()`` owns the frame source for the whole attempt and always closes
    it. ``process_frame()`` can also be fed directly by callers that own
    their own frame cadence.
    """

    def __init__(
        self,
        detector: LandmarkDetector,
        frame_source: FrameSource,
        evaluator: LivenessEvaluator | None = None,
        frame_interval: float = FRAME_INTERVAL_SECONDS,
        session_timeout: float = SESSION_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        on_result: ResultCallback | None = None,
    ):
        self.detector = detector
        self.frame_source = frame_source
        self.evaluator = evaluator or LivenessEvaluator()
        self.frame_interval = max(0.0, frame_interval)
        self.session_timeout = session_timeout
        self.on_result = on_result
        self._clock = clock
        self.logger = setup_logger(self.__class__.__name__)

        self._stage = CaptureStage.INIT
        self._state: LivenessState | None = None
        self._descriptor: np.ndarray | None = None
        self._last_result: LivenessResult | None = None
        self._last_tick: float | None = None
        self._in_flight = False
        self._cancelled = False
        self._poll_task: asyncio.Task | None = None
        self._source_call: asyncio.Future | None = None
        self._started_at: float | None = None
        self._failure: FailureReason | None = None

        self.frames_processed = 0
        self.dropped_frames = 0

    @classmethod
    def from_settings(
        cls,
        detector: LandmarkDetector,
        frame_source: FrameSource,
        settings: Settings,
        on_result: ResultCallback | None = None,
    ) -> "CaptureOrchestrator":
        return cls(
            detector=detector,
            frame_source=frame_source,
            evaluator=LivenessEvaluator.from_settings(settings),
            frame_interval=settings.frame_interval_seconds,
            session_timeout=settings.session_timeout_seconds,
            on_result=on_result,
        )

    @property
    def stage(self) -> CaptureStage:
        return self._stage

    @property
    def state(self) -> LivenessState | None:
        return self._state

    @property
    def descriptor(self) -> np.ndarray | None:
        return self._descriptor

    @property
    def last_result(self) -> LivenessResult | None:
        return self._last_result

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def failure_reason(self) -> FailureReason | None:
        return self._failure

    def elapsed(self, now: float | None = None) -> float:
        """Seconds since the first frame of the attempt, 0.0 before it."""
        if self._started_at is None:
            return 0.0
        return (self._clock() if now is None else now) - self._started_at

    def reset(self) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            raise RuntimeError("Cannot reset while run() is in progress; cancel it first.")
        self._state = None
        self._descriptor = None
        self._last_result = None
        self._last_tick = None
        self._started_at = None
        self._failure = None
        self._cancelled = False
        self.frames_processed = 0
        self.dropped_frames = 0
        self._transition(CaptureStage.INIT)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self.logger.info("Capture cancelled during %s", self._stage.value)
        if self._poll_task is not None and not self._poll_task.done():
            self._poll_task.cancel()

    async def run(self) -> CaptureOutcome:
        if self._stage is not CaptureStage.INIT:
            self.reset()
        if self._cancelled:
            return self._fail(FailureReason.CANCELLED, "Capture cancelled before start.")

        try:
            try:
                await self._call_source(self.frame_source.open)
            except CameraError as exc:
                self.logger.error("Camera acquisition failed: %s", exc)
                return self._fail(FailureReason.CAMERA_UNAVAILABLE, str(exc))

            if self._cancelled:
                return self._fail(FailureReason.CANCELLED, "Capture cancelled before start.")

            self._poll_task = asyncio.ensure_future(self._poll())
            done, _ = await asyncio.wait({self._poll_task}, timeout=self.session_timeout)
            if not done:
                self.logger.warning("Capture session timed out after %.1fs", self.session_timeout)
                await self._stop_polling()
                return self._fail(
                    FailureReason.TIMEOUT,
                    f"No verified capture within {self.session_timeout:.1f}s.",
                )
            if self._poll_task.cancelled():
                return self._fail(FailureReason.CANCELLED, "Capture cancelled.")
            return self._poll_task.result()
        except CameraError as exc:
            self.logger.error("Camera failed mid-session: %s", exc)
            return self._fail(FailureReason.CAMERA_UNAVAILABLE, str(exc))
        except DetectorUnavailableError as exc:
            self.logger.exception("Face detector unavailable")
            return self._fail(FailureReason.DETECTOR_UNAVAILABLE, str(exc))
        except asyncio.CancelledError:
            self._cancelled = True
            self._fail(FailureReason.CANCELLED, "Capture task cancelled.")
            raise
        finally:
            await self._stop_polling()
            await self._release_source()

    async def process_frame(self, frame: np.ndarray, now: float | None = None) -> LivenessResult | None:
        """Evaluate one frame, or return None when it is dropped.

        Callers feeding frames themselves get the same session timeout as
        ``run()``: once ``session_timeout`` has elapsed since the first
        frame, the attempt moves to FAILED with ``failure_reason`` TIMEOUT
        and later frames are ignored.
        """
        if now is None:
            now = self._clock()
        if not self._stage.terminal and self.elapsed(now) >= self.session_timeout:
            self.logger.warning("Capture session timed out after %.1fs", self.session_timeout)
            self._fail(FailureReason.TIMEOUT, f"No verified capture within {self.session_timeout:.1f}s.")
            return None
        if self._last_tick is not None and now - self._last_tick < self.frame_interval:
            self.dropped_frames += 1
            return None
        return await self._handle(frame, now)

    async def _poll(self) -> CaptureOutcome:
        while not self._cancelled:
            if self._last_tick is not None:
                wait = self.frame_interval - (self._clock() - self._last_tick)
                if wait > 0:
                    await asyncio.sleep(wait)

            frame = await self._call_source(self.frame_source.read)
            if self._cancelled:
                break
            await self._handle(frame, self._clock())

            if self._stage is CaptureStage.COMPLETE:
                return CaptureOutcome(
                    stage=CaptureStage.COMPLETE,
                    descriptor=self._descriptor,
                    frames_processed=self.frames_processed,
                )
        return self._fail(FailureReason.CANCELLED, "Capture cancelled.")

    async def _stop_polling(self) -> None:
        task = self._poll_task
        if task is None or task is asyncio.current_task():
            return
        if not task.done():
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _call_source(self, method: Callable[[], object]):
        # The worker thread outlives a cancelled caller; keep it reachable for release.
        call = asyncio.ensure_future(asyncio.to_thread(method))
        self._source_call = call
        return await asyncio.shield(call)

    async def _release_source(self) -> None:
        pending, self._source_call = self._source_call, None
        try:
            if pending is not None and not pending.done():
                await asyncio.wait({pending})
        finally:
            if pending is None or pending.done():
                self._close_source()
            else:
                pending.add_done_callback(lambda _: self._close_source())

    def _close_source(self) -> None:
        self.frame_source.close()
        self.logger.info("Frame source released at %s", self._stage.value)

    async def _handle(self, frame: np.ndarray, now: float) -> LivenessResult | None:
        if self._cancelled or self._stage.terminal:
            return None
        if self._in_flight:
            self.dropped_frames += 1
            self.logger.debug("Dropped frame: previous frame still in flight")
            return None

        self._in_flight = True
        self._last_tick = now
        try:
            return await self._step(frame, now)
        finally:
            self._in_flight = False

    async def _step(self, frame: np.ndarray, now: float) -> LivenessResult | None:
        if self._stage is CaptureStage.INIT:
            self._started_at = now
            self._transition(CaptureStage.DETECTING)
        self.frames_processed += 1
        state = self._state

        if self._stage is CaptureStage.CAPTURING:
            await self._capture(frame)
            return self._capture_result()

        landmarks = await self._detect(frame)
        if self._cancelled:
            return None

        if landmarks is None:
            result = self.evaluator.no_face(state)
        else:
            if self._stage is CaptureStage.DETECTING:
                self._transition(CaptureStage.LIVENESS_CHECKING)
            previous_blinks = state.blink_count
            result = self.evaluator.evaluate(landmarks, state, now)
            if result.blink_count != previous_blinks:
                self.logger.debug("Blink %d counted", result.blink_count)

        self._emit(result)
        if not result.passed:
            return result

        self._transition(CaptureStage.CAPTURING)
        await self._capture(frame)
        return self._capture_result()

    async def _detect(self, frame: np.ndarray):
        try:
            return await self.detector.detect_face(frame)
        except DetectorUnavailableError:
            raise
        except Exception as exc:
            self.logger.warning("Landmark detection failed, treating frame as no face: %s", exc)
            return None

    async def _capture(self, frame: np.ndarray) -> None:
        try:
            raw = await self.detector.extract_descriptor(frame)
        except DetectorUnavailableError:
            raise
        except Exception as exc:
            self.logger.warning("Descriptor extraction raised: %s", exc)
            raw = None

        if self._cancelled:
            return
        if raw is None:
            self.logger.info("Descriptor extraction failed; retrying on next frame")
            return

        self._descriptor = as_descriptor(raw)
        self._transition(CaptureStage.COMPLETE)

    def _capture_result(self) -> LivenessResult | None:
        if self._last_result is None:
            return None
        message = COMPLETE_MESSAGE if self._stage is CaptureStage.COMPLETE else CAPTURE_RETRY_MESSAGE
        result = replace(self._last_result, message=message)
        self._emit(result)
        return result

    def _emit(self, result: LivenessResult) -> None:
        if self._cancelled:
            return
        self._last_result = result
        if self.on_result is not None:
            self.on_result(result)

    def _transition(self, stage: CaptureStage) -> None:
        if stage is CaptureStage.DETECTING:
            self._state = LivenessState()
        if stage is self._stage:
            return
        self.logger.info("Capture stage %s -> %s", self._stage.value, stage.value)
        self._stage = stage

    def _fail(self, reason: FailureReason, error: str) -> CaptureOutcome:
        self._failure = reason
        self._transition(CaptureStage.FAILED)
        return CaptureOutcome(
            stage=CaptureStage.FAILED,
            reason=reason,
            error=error,
            frames_processed=self.frames_processed,
        )
