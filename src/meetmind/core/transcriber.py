"""Speech recognition using faster-whisper: live caption preview and final transcription"""

import asyncio
import base64
import os
import tempfile
import threading
import time
import numpy as np
from queue import Queue, Empty
from typing import Optional
from loguru import logger

from .captions import EndCallback, ErrorCallback, LiveCaptionSource, ResultCallback

try:
    from faster_whisper import WhisperModel
except ImportError:
    WhisperModel = None
    logger.warning("faster-whisper not installed. Transcription will not work.")


# Whisper expects 16kHz mono float32
WHISPER_SAMPLE_RATE = 16000

_MIME_EXTENSIONS = {
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/webm": ".webm",
    "audio/ogg": ".ogg",
    "audio/mp4": ".m4a",
    "audio/mpeg": ".mp3",
    "audio/flac": ".flac",
}


def whisper_language(locale: Optional[str]) -> Optional[str]:
    """Whisper takes a bare language code: "sw-TZ" -> "sw". None means auto-detect."""
    if not locale:
        return None
    return locale.split("-")[0].lower()


def decode_data_uri(audio_data_uri: str):
    """Split ``data:<mime>;base64,<payload>`` into (mime type, bytes)"""
    if not audio_data_uri.startswith("data:") or "," not in audio_data_uri:
        raise ValueError("Audio must be a base64 data URI")
    header, payload = audio_data_uri.split(",", 1)
    mime_type = header[len("data:"):].split(";")[0]
    return mime_type, base64.b64decode(payload)


class _ModelCache:
    """Loads each Whisper model once per process"""

    _lock = threading.Lock()
    _models = {}

    @classmethod
    def get(cls, model_size: str, device: str, compute_type: str):
        if WhisperModel is None:
            raise RuntimeError("faster-whisper not installed")

        key = (model_size, device, compute_type)
        with cls._lock:
            model = cls._models.get(key)
            if model is None:
                logger.info(f"Loading Whisper model: {model_size} on {device}")
                start_time = time.time()
                model = WhisperModel(model_size, device=device, compute_type=compute_type)
                logger.info(f"Whisper model loaded in {time.time() - start_time:.1f}s")
                cls._models[key] = model
            return model


class WhisperTranscriber:
    """Transcribes a complete recording"""

    def __init__(
        self,
        model_size: str = "large-v3",
        device: str = "cpu",
        compute_type: str = "int8",
    ):
        self.model_size = model_size
        self.device = device
        self.compute_type = compute_type

    def transcribe_file(self, path: str, language: Optional[str] = None) -> str:
        """Blocking transcription of an audio file. Returns the joined segment text."""
        model = _ModelCache.get(self.model_size, self.device, self.compute_type)

        transcribe_opts = dict(vad_filter=True)
        lang = whisper_language(language)
        if lang:
            transcribe_opts["language"] = lang

        segments, info = model.transcribe(path, **transcribe_opts)
        texts = [seg.text.strip() for seg in segments if seg.text.strip()]
        logger.info(
            f"Transcribed {len(texts)} segments "
            f"(language={getattr(info, 'language', None)})"
        )
        return " ".join(texts)

    async def transcribe(self, audio_data_uri: str, language: Optional[str] = None) -> str:
        """Transcribe a base64 data URI. Runs the model off the event loop."""
        mime_type, audio = decode_data_uri(audio_data_uri)
        suffix = _MIME_EXTENSIONS.get(mime_type, ".bin")

        fd, path = tempfile.mkstemp(suffix=suffix, prefix="meetmind_")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(audio)
            return await asyncio.to_thread(self.transcribe_file, path, language)
        finally:
            try:
                os.unlink(path)
            except OSError as e:
                logger.warning(f"Could not remove temp audio file: {e}")


class _CaptionSession:
    """Queue and stop flag owned by one start/stop cycle and its worker thread"""

    def __init__(self):
        self.queue: Queue = Queue()
        self.stopped = threading.Event()
        self.thread: Optional[threading.Thread] = None

    def stop(self):
        self.stopped.set()
        self.queue.put(None)


class WhisperCaptionSource(LiveCaptionSource):
    """
    Live caption preview from the microphone feed.

    Audio arrives through ``feed_audio`` (wired to the capture device's raw
    audio callback), is buffered on a worker thread and transcribed every
    ``buffer_seconds``. Each pass is reported as a final result. Results,
    errors and the end notification are delivered on the event loop.

    Every ``start`` gets its own session. A worker still finishing a pass
    for a stopped session never reads the new session's audio and drops
    its late results.
    """

    def __init__(
        self,
        model_size: str = "small",
        device: str = "cpu",
        compute_type: str = "int8",
        source_sample_rate: int = 44100,
        buffer_seconds: float = 3.0,
    ):
        self.model_size = model_size
        self.device = device
        self.compute_type = compute_type
        self.source_sample_rate = source_sample_rate
        self.buffer_seconds = buffer_seconds

        self._session: Optional[_CaptionSession] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def is_supported(self) -> bool:
        return WhisperModel is not None

    @property
    def is_running(self) -> bool:
        return self._session is not None and not self._session.stopped.is_set()

    def start(
        self,
        language: str,
        on_result: ResultCallback,
        on_error: ErrorCallback,
        on_end: EndCallback,
    ):
        if WhisperModel is None:
            raise RuntimeError("faster-whisper not installed")
        if self.is_running:
            raise RuntimeError("Live captioning already running")

        self._loop = asyncio.get_running_loop()
        session = _CaptionSession()
        session.thread = threading.Thread(
            target=self._worker_loop,
            args=(session, language, on_result, on_error, on_end),
            daemon=True,
        )
        self._session = session
        session.thread.start()

    def stop(self):
        session = self._session
        if session is None or session.stopped.is_set():
            return
        session.stop()

    def feed_audio(self, audio_data: np.ndarray):
        """Feed raw int16/float32 audio from the capture device"""
        session = self._session
        if session is None or session.stopped.is_set():
            return

        if audio_data.dtype == np.int16:
            audio_data = audio_data.astype(np.float32) / 32768.0

        # Ensure mono
        if len(audio_data.shape) > 1:
            audio_data = audio_data.mean(axis=1)

        # Resample to 16kHz
        if self.source_sample_rate != WHISPER_SAMPLE_RATE and len(audio_data) > 1:
            new_length = int(len(audio_data) * WHISPER_SAMPLE_RATE / self.source_sample_rate)
            positions = np.linspace(0, len(audio_data) - 1, new_length)
            audio_data = np.interp(positions, np.arange(len(audio_data)), audio_data).astype(np.float32)

        session.queue.put(audio_data)

    def _post(self, callback, *args):
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(callback, *args)

    def _worker_loop(self, session: _CaptionSession, language, on_result, on_error, on_end):
        """Worker thread: buffer audio and transcribe it in passes"""
        logger.debug("Live caption worker started")
        try:
            try:
                model = _ModelCache.get(self.model_size, self.device, self.compute_type)
            except Exception as e:
                logger.error(f"Failed to load caption model: {e}")
                session.stopped.set()
                self._post(on_error, "service-unavailable", str(e))
                return

            lang = whisper_language(language)
            if lang and hasattr(model, "supported_languages") and lang not in model.supported_languages:
                session.stopped.set()
                self._post(on_error, "language-not-supported", language)
                return

            buffer = []
            buffered = 0.0
            while not session.stopped.is_set():
                try:
                    chunk = session.queue.get(timeout=0.1)
                except Empty:
                    continue
                if chunk is None:
                    break

                buffer.append(chunk)
                buffered += len(chunk) / WHISPER_SAMPLE_RATE
                if buffered < self.buffer_seconds:
                    continue

                audio = np.concatenate(buffer)
                buffer = []
                buffered = 0.0

                try:
                    segments, _ = model.transcribe(audio, language=lang, vad_filter=True)
                    text = " ".join(seg.text.strip() for seg in segments if seg.text.strip())
                except ValueError as e:
                    session.stopped.set()
                    self._post(on_error, "language-not-supported", str(e))
                    break
                except Exception as e:
                    logger.error(f"Error in live caption worker: {e}")
                    self._post(on_error, "processing-error", str(e))
                    continue

                # Stopped while transcribing: the result belongs to a finished session
                if session.stopped.is_set():
                    break
                if text:
                    self._post(on_result, text, True)
                else:
                    self._post(on_error, "no-speech", "")
        finally:
            session.stopped.set()
            logger.debug("Live caption worker stopped")
            self._post(on_end)
