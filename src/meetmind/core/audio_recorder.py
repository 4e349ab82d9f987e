"""Microphone capture through sounddevice"""

import asyncio
import io
import threading
import wave
import numpy as np
from typing import Callable, List, Optional, Sequence
from loguru import logger

from .capture import CaptureDevice
from .errors import DeviceError, DeviceErrorKind, MeetMindError, MicrophonePermissionError

try:
    import sounddevice as sd
except ImportError:
    sd = None
    logger.warning("sounddevice not installed. Audio recording will not work.")


def classify_device_error(error: Exception) -> MeetMindError:
    """Map a PortAudio failure to a permission or device error."""
    if isinstance(error, MeetMindError):
        return error

    message = str(error)
    lowered = message.lower()

    if any(key in lowered for key in ("permission", "not authorized", "access denied", "not permitted")):
        return MicrophonePermissionError(f"Microphone access was denied: {message}")
    if any(key in lowered for key in ("no default input", "invalid device", "no input device", "device unavailable")):
        return DeviceError(f"No microphone found: {message}", DeviceErrorKind.NOT_FOUND)
    if any(key in lowered for key in ("busy", "in use", "unanticipated host error")):
        return DeviceError(f"Microphone is busy: {message}", DeviceErrorKind.BUSY)
    if "invalid sample rate" in lowered or "invalid number of channels" in lowered:
        return DeviceError(f"Microphone settings not supported: {message}", DeviceErrorKind.UNSUPPORTED)
    return DeviceError(f"Recording error: {message}")


class SoundDeviceCapture(CaptureDevice):
    """
    Records 16-bit PCM from an input device and hands it out as chunks.

    The PortAudio callback runs on the audio thread and only appends frames
    under a lock; a task on the event loop drains them into ``on_chunk``
    every ``interval`` seconds. ``assemble`` wraps the chunks into a WAV
    file, the only container this device produces.
    """

    default_mime_type = "audio/wav"

    def __init__(
        self,
        sample_rate: int = 44100,
        channels: int = 1,
        device_index: Optional[int] = None,
        dtype: str = "int16",
    ):
        self.sample_rate = sample_rate
        self.channels = channels
        self.dtype = dtype
        self._device_index = device_index

        self._stream = None
        self._frames: List[bytes] = []
        self._lock = threading.Lock()
        self._stopping = False

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._flush_task: Optional[asyncio.Task] = None
        self._on_chunk: Optional[Callable[[bytes], None]] = None
        self._on_error: Optional[Callable[[MeetMindError], None]] = None

        # Callback for raw audio data (for live captions)
        self._audio_data_callback: Optional[Callable[[np.ndarray], None]] = None

    def set_audio_data_callback(self, callback: Optional[Callable[[np.ndarray], None]]):
        """Set callback for raw audio data (for live captions)"""
        self._audio_data_callback = callback

    def set_device(self, device_index: Optional[int]):
        """Set the audio input device"""
        self._device_index = device_index
        logger.info(f"Set audio device to index {device_index}")

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def is_type_supported(self, mime_type: str) -> bool:
        return mime_type.split(";")[0].strip().lower() in ("audio/wav", "audio/x-wav", "audio/wave")

    async def open(self):
        if sd is None:
            raise DeviceError("sounddevice not installed", DeviceErrorKind.UNSUPPORTED)
        if self._stream is not None:
            return

        try:
            sd.check_input_settings(
                device=self._device_index,
                channels=self.channels,
                samplerate=self.sample_rate,
                dtype=self.dtype,
            )
            self._stream = sd.InputStream(
                device=self._device_index,
                channels=self.channels,
                samplerate=self.sample_rate,
                dtype=self.dtype,
                callback=self._audio_callback,
                finished_callback=self._finished_callback,
                blocksize=1024,
            )
        except (sd.PortAudioError, ValueError) as e:
            self._stream = None
            logger.error(f"Failed to open audio input: {e}")
            raise classify_device_error(e) from e

        logger.info(f"Opened audio input (device={self._device_index}, {self.sample_rate}Hz)")

    def start(
        self,
        mime_type: str,
        interval: float,
        on_chunk: Callable[[bytes], None],
        on_error: Callable[[MeetMindError], None],
    ):
        if self._stream is None:
            raise DeviceError("Audio input is not open")

        self._loop = asyncio.get_running_loop()
        self._on_chunk = on_chunk
        self._on_error = on_error
        self._stopping = False
        with self._lock:
            self._frames = []

        try:
            self._stream.start()
        except sd.PortAudioError as e:
            logger.error(f"Failed to start audio stream: {e}")
            raise classify_device_error(e) from e

        self._flush_task = self._loop.create_task(self._flush_loop(interval))
        logger.info("Started audio capture")

    def _audio_callback(self, indata: np.ndarray, frames: int, time_info, status):
        """Callback for audio stream - called on audio thread"""
        if status:
            logger.warning(f"Audio callback status: {status}")

        with self._lock:
            self._frames.append(indata.tobytes())

        if self._audio_data_callback:
            self._audio_data_callback(indata.copy())

    def _finished_callback(self):
        """Called by PortAudio when the stream becomes inactive"""
        if self._stopping or self._loop is None or self._on_error is None:
            return
        logger.error("Audio stream ended unexpectedly")
        self._loop.call_soon_threadsafe(
            self._on_error,
            DeviceError("Audio capture failed. Ensure microphone is working."),
        )

    async def _flush_loop(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            self._flush()

    def _flush(self):
        with self._lock:
            if not self._frames:
                return
            chunk = b"".join(self._frames)
            self._frames = []
        if self._on_chunk:
            self._on_chunk(chunk)

    async def finalize(self):
        self._stopping = True
        if self._flush_task is not None:
            self._flush_task.cancel()
            self._flush_task = None

        if self._stream is not None:
            try:
                await asyncio.to_thread(self._stream.stop)
            except sd.PortAudioError as e:
                logger.error(f"Error stopping stream: {e}")
                raise classify_device_error(e) from e

        self._flush()

    def release(self):
        self._stopping = True
        if self._flush_task is not None:
            self._flush_task.cancel()
            self._flush_task = None

        if self._stream is None:
            return
        try:
            self._stream.close()
        except Exception as e:
            logger.error(f"Error closing stream: {e}")
        self._stream = None
        logger.debug("Released audio input")

    def assemble(self, chunks: Sequence[bytes]) -> bytes:
        """Wrap raw PCM chunks into a WAV file"""
        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wav_file:
            wav_file.setnchannels(self.channels)
            wav_file.setsampwidth(2)  # 16-bit
            wav_file.setframerate(self.sample_rate)
            for chunk in chunks:
                wav_file.writeframes(chunk)
        return buffer.getvalue()
