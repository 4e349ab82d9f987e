"""Capture pipeline - owns the microphone, the recording deadline and live captions for one recording"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List, Optional, Sequence
from loguru import logger

from .captions import LiveCaptioner, LiveCaptionSource
from .errors import DataError, DeviceError, MeetMindError
from .models import AudioArtifact


class CaptureState(str, Enum):
    """Capture pipeline state"""
    IDLE = "idle"
    RECORDING = "recording"
    STOPPING = "stopping"
    FINISHED = "finished"
    ERRORED = "errored"


class CaptureDevice(ABC):
    """
    Live microphone input.

    ``open`` acquires the input, ``start`` begins delivering encoded chunks
    roughly every ``interval`` seconds, ``finalize`` flushes what is still
    buffered, and ``release`` frees the input. ``release`` must be safe to
    call at any time, including when nothing is open.
    """

    # MIME type used when none of the preferred types is supported
    default_mime_type: str = ""

    @abstractmethod
    async def open(self) -> None:
        """Acquire the input. Raises MicrophonePermissionError or DeviceError."""

    @abstractmethod
    def is_type_supported(self, mime_type: str) -> bool:
        """Whether chunks can be encoded as ``mime_type``"""

    @abstractmethod
    def start(
        self,
        mime_type: str,
        interval: float,
        on_chunk: Callable[[bytes], None],
        on_error: Callable[[MeetMindError], None],
    ) -> None:
        """Begin capturing. Chunks and errors are delivered on the event loop."""

    @abstractmethod
    async def finalize(self) -> None:
        """Stop capturing and deliver any buffered audio through ``on_chunk``."""

    @abstractmethod
    def release(self) -> None:
        """Free the input."""

    @property
    def mime_type(self) -> str:
        """MIME type actually produced by the last ``start``"""
        return self.default_mime_type

    def assemble(self, chunks: Sequence[bytes]) -> bytes:
        """Join captured chunks into one playable file."""
        return b"".join(chunks)


class RecordingDeadline:
    """
    Hard wall-clock ceiling for one recording.

    Fires ``on_expired`` once when the limit is reached and reports the
    remaining whole seconds through ``on_tick`` every ``tick_seconds``.
    ``cancel`` clears both timers and is safe to call repeatedly.
    """

    def __init__(
        self,
        limit_seconds: float,
        tick_seconds: float = 1.0,
        on_expired: Optional[Callable[[], None]] = None,
        on_tick: Optional[Callable[[int], None]] = None,
    ):
        self.limit_seconds = limit_seconds
        self.tick_seconds = tick_seconds
        self._on_expired = on_expired
        self._on_tick = on_tick

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None
        self._expiry_handle: Optional[asyncio.TimerHandle] = None
        self._ticker: Optional[asyncio.Task] = None
        self._expired = False

    @property
    def is_active(self) -> bool:
        return self._expiry_handle is not None

    @property
    def expired(self) -> bool:
        return self._expired

    def start(self):
        self.cancel()
        self._loop = asyncio.get_running_loop()
        self._started_at = self._loop.time()
        self._stopped_at = None
        self._expired = False
        self._expiry_handle = self._loop.call_later(self.limit_seconds, self._expire)
        self._ticker = self._loop.create_task(self._tick_loop())

    def elapsed(self) -> float:
        """Seconds since start, frozen by ``cancel`` and never above the limit"""
        if self._started_at is None:
            return 0.0
        end = self._stopped_at if self._stopped_at is not None else self._loop.time()
        return min(max(0.0, end - self._started_at), self.limit_seconds)

    def remaining_seconds(self) -> int:
        return max(0, round(self.limit_seconds - self.elapsed()))

    def cancel(self):
        if self._expiry_handle is not None:
            self._expiry_handle.cancel()
            self._expiry_handle = None
            if self._loop is not None and self._stopped_at is None:
                self._stopped_at = self._loop.time()
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def _tick_loop(self):
        while True:
            await asyncio.sleep(self.tick_seconds)
            remaining = self.remaining_seconds()
            if self._on_tick:
                self._on_tick(remaining)
            if remaining <= 0:
                break

    def _expire(self):
        if self._expiry_handle is None:
            return
        logger.info("Recording time limit reached")
        self._expired = True
        self.cancel()
        if self._on_expired:
            self._on_expired()


class CapturePipeline:
    """
    Captures one recording at a time.

    The device and the caption side-channel belong to the pipeline for the
    whole recording and are released exactly once per ``start``, whether the
    recording ends by ``stop``, by the time limit, or by an error.
    """

    DEFAULT_MIME_TYPES = (
        "audio/webm;codecs=opus",
        "audio/ogg;codecs=opus",
        "audio/mp4",
    )

    def __init__(
        self,
        device: CaptureDevice,
        caption_source: Optional[LiveCaptionSource] = None,
        mime_types: Sequence[str] = DEFAULT_MIME_TYPES,
        time_limit_seconds: float = 600.0,
        tick_seconds: float = 1.0,
        chunk_interval_seconds: float = 1.0,
    ):
        self._device = device
        self._caption_source = caption_source
        self.mime_types = list(mime_types)
        self.time_limit_seconds = time_limit_seconds
        self.tick_seconds = tick_seconds
        self.chunk_interval_seconds = chunk_interval_seconds

        self._state = CaptureState.IDLE
        self._chunks: List[bytes] = []
        self._mime_type = ""
        self._released = True
        self._captioner: Optional[LiveCaptioner] = None
        self._deadline: Optional[RecordingDeadline] = None

        # Callbacks for the current recording
        self._on_caption: Optional[Callable[[str], None]] = None
        self._on_remaining: Optional[Callable[[Optional[int]], None]] = None
        self._on_autostop: Optional[Callable[[], None]] = None
        self._on_failure: Optional[Callable[[MeetMindError], None]] = None

    @property
    def device(self) -> CaptureDevice:
        return self._device

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state == CaptureState.RECORDING

    @property
    def mime_type(self) -> str:
        return self._mime_type

    @property
    def live_caption(self) -> str:
        return self._captioner.text if self._captioner else ""

    def remaining_seconds(self) -> Optional[int]:
        """Seconds left before the forced stop, or None when not recording"""
        if self._deadline is None or not self.is_recording:
            return None
        return self._deadline.remaining_seconds()

    def negotiate_mime_type(self) -> str:
        """First preferred MIME type the device supports, else the device default"""
        for mime_type in self.mime_types:
            if self._device.is_type_supported(mime_type):
                return mime_type
        return self._device.default_mime_type

    async def start(
        self,
        language: str,
        on_caption: Optional[Callable[[str], None]] = None,
        on_remaining: Optional[Callable[[Optional[int]], None]] = None,
        on_autostop: Optional[Callable[[], None]] = None,
        on_failure: Optional[Callable[[MeetMindError], None]] = None,
    ) -> str:
        """
        Open the device and start recording.

        Args:
            language: Locale tag for live captions (e.g. "en-US")
            on_caption: Called with the live preview text
            on_remaining: Called with remaining seconds (None once stopped)
            on_autostop: Called once when the time limit forces a stop
            on_failure: Called once if recording fails after it started

        Returns:
            The negotiated MIME type
        """
        if self._state in (CaptureState.RECORDING, CaptureState.STOPPING):
            raise RuntimeError("Recording already in progress")

        self._on_caption = on_caption
        self._on_remaining = on_remaining
        self._on_autostop = on_autostop
        self._on_failure = on_failure
        self._chunks = []
        self._captioner = None
        self._released = False

        try:
            await self._device.open()
            self._mime_type = self.negotiate_mime_type()
            logger.info(f"Using MIME type for recording: {self._mime_type or 'device default'}")
            self._device.start(
                self._mime_type,
                self.chunk_interval_seconds,
                self._on_chunk,
                self._on_device_error,
            )
        except MeetMindError:
            self._state = CaptureState.ERRORED
            self._release()
            raise
        except Exception as e:
            logger.error(f"Failed to start audio capture: {e}")
            self._state = CaptureState.ERRORED
            self._release()
            raise DeviceError(f"Could not start recording: {e}") from e

        self._state = CaptureState.RECORDING

        self._deadline = RecordingDeadline(
            self.time_limit_seconds,
            self.tick_seconds,
            on_expired=self._on_deadline_expired,
            on_tick=self._on_deadline_tick,
        )
        self._deadline.start()
        self._notify_remaining(self._deadline.remaining_seconds())

        self._captioner = LiveCaptioner(
            self._caption_source,
            language,
            is_active=lambda: self._state == CaptureState.RECORDING,
            on_text=self._on_caption_text,
            on_fatal=self._fail,
        )
        self._captioner.start()

        logger.info(f"Recording started (limit {self.time_limit_seconds:.0f}s)")
        return self._mime_type

    async def stop(self) -> Optional[AudioArtifact]:
        """
        Finish the recording.

        Returns:
            The captured audio, or None if no recording was in progress

        Raises:
            DataError: if no audio was captured
            DeviceError: if the device failed while finalizing
        """
        if self._state != CaptureState.RECORDING:
            logger.debug(f"Stop ignored, capture is {self._state.value}")
            return None

        self._state = CaptureState.STOPPING
        self._clear_timers()
        duration = self._deadline.elapsed() if self._deadline else 0.0
        if self._captioner:
            self._captioner.stop()

        try:
            await self._device.finalize()
            logger.info(f"Capture stopped, chunks collected: {len(self._chunks)}")

            if not self._chunks:
                raise DataError("No audio data was captured.")

            data = self._device.assemble(self._chunks)
            artifact = AudioArtifact(
                data=data,
                mime_type=self._device.mime_type or self._mime_type or "audio/webm",
                duration_seconds=min(duration, self.time_limit_seconds),
            )
            self._state = CaptureState.FINISHED
            logger.info(f"Audio captured: {artifact.size} bytes, {artifact.duration_seconds:.1f}s")
            return artifact

        except MeetMindError:
            self._state = CaptureState.ERRORED
            raise
        except Exception as e:
            logger.error(f"Error finalizing capture: {e}")
            self._state = CaptureState.ERRORED
            raise DeviceError(f"Recording error: {e}") from e
        finally:
            self._chunks = []
            self._release()

    def abort(self, reason: str = ""):
        """Stop immediately without producing audio. Used when permission is revoked."""
        if self._state != CaptureState.RECORDING:
            return
        logger.warning(f"Aborting capture: {reason or 'no reason given'}")
        self._state = CaptureState.ERRORED
        self._clear_timers()
        if self._captioner:
            self._captioner.stop()
        self._chunks = []
        self._release()

    def reset(self):
        """Forget the last recording. Does nothing while a recording is active."""
        if self._state in (CaptureState.RECORDING, CaptureState.STOPPING):
            return
        self._clear_timers()
        self._release()
        self._chunks = []
        self._captioner = None
        self._deadline = None
        self._state = CaptureState.IDLE

    def _fail(self, error: MeetMindError):
        if self._state != CaptureState.RECORDING:
            return
        self.abort(error.message)
        if self._on_failure:
            self._on_failure(error)

    def _on_chunk(self, chunk: bytes):
        if chunk and self._state in (CaptureState.RECORDING, CaptureState.STOPPING):
            self._chunks.append(chunk)

    def _on_device_error(self, error: MeetMindError):
        logger.error(f"Capture device error: {error.message}")
        self._fail(error)

    def _on_caption_text(self, text: str):
        if self._on_caption:
            self._on_caption(text)

    def _on_deadline_tick(self, remaining: int):
        self._notify_remaining(remaining)

    def _on_deadline_expired(self):
        if self._state != CaptureState.RECORDING:
            return
        if self._on_autostop:
            self._on_autostop()
        else:
            asyncio.get_running_loop().create_task(self.stop())

    def _notify_remaining(self, remaining: Optional[int]):
        if self._on_remaining:
            self._on_remaining(remaining)

    def _clear_timers(self):
        if self._deadline is not None:
            was_active = self._deadline.is_active
            self._deadline.cancel()
            if was_active or self._deadline.expired:
                self._notify_remaining(None)

    def _release(self):
        if self._released:
            return
        self._released = True
        try:
            self._device.release()
        except Exception as e:
            logger.error(f"Error releasing capture device: {e}")
