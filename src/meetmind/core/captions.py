"""Best-effort live captioning while recording.

The caption preview is a side-channel: it never produces the final
transcript, and most of its errors are swallowed. Only errors that mean the
microphone itself is unusable (permission revoked, audio capture failure) or
that the chosen language cannot work at all are escalated, and those stop the
whole capture.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional
from loguru import logger

from .errors import DeviceError, DeviceErrorKind, MeetMindError, MicrophonePermissionError


ResultCallback = Callable[[str, bool], None]  # (text, is_final)
ErrorCallback = Callable[[str, str], None]  # (error code, message)
EndCallback = Callable[[], None]


class LiveCaptionSource(ABC):
    """
    Continuous speech-to-text service.

    After ``start`` the source reports results through ``on_result``,
    problems through ``on_error`` and always calls ``on_end`` once the
    service disconnects, whether because ``stop`` was called, because of an
    error, or on its own.
    """

    @property
    def is_supported(self) -> bool:
        return True

    @abstractmethod
    def start(
        self,
        language: str,
        on_result: ResultCallback,
        on_error: ErrorCallback,
        on_end: EndCallback,
    ) -> None:
        """Begin recognizing. Raises if the service cannot start."""

    @abstractmethod
    def stop(self) -> None:
        """Stop recognizing. ``on_end`` follows."""


class LiveCaptioner:
    """Runs one caption session for one recording, restarting after transient disconnects."""

    UNSUPPORTED_PREVIEW = "(Live transcription preview not supported)"

    # Not an error: the user is simply quiet
    SILENT_ERRORS = frozenset({"no-speech", "aborted"})

    # The side-channel gives up quietly; recording continues without a preview
    DROP_ERRORS = frozenset({"network", "service-unavailable"})

    # The microphone or language cannot work; the whole capture stops
    FATAL_ERRORS = frozenset({
        "not-allowed", "service-not-allowed", "language-not-supported", "audio-capture",
    })

    def __init__(
        self,
        source: Optional[LiveCaptionSource],
        language: str,
        is_active: Callable[[], bool],
        on_text: Optional[Callable[[str], None]] = None,
        on_fatal: Optional[Callable[[MeetMindError], None]] = None,
    ):
        self._source = source
        self._language = language
        self._is_active = is_active
        self._on_text = on_text
        self._on_fatal = on_fatal

        self._final_text = ""
        self._interim_text = ""
        self._running = False
        self._stopped = False
        self.restart_count = 0

    @property
    def text(self) -> str:
        """Current preview: all final results followed by the pending interim result"""
        return self._final_text + self._interim_text

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> bool:
        """Start the side-channel. Returns False when no preview is available."""
        if self._source is None or not self._source.is_supported:
            logger.warning("Live captioning not supported, recording without preview")
            self._publish(self.UNSUPPORTED_PREVIEW)
            return False

        if self._running:
            logger.warning("Live captioning already started")
            return True

        logger.info(f"Starting live captioning in language: {self._language}")
        return self._start_source()

    def _start_source(self) -> bool:
        try:
            self._source.start(
                self._language,
                self._handle_result,
                self._handle_error,
                self._handle_end,
            )
        except Exception as e:
            logger.warning(f"Could not start live captioning ({self._language}): {e}")
            self._running = False
            return False
        self._running = True
        return True

    def stop(self):
        """Stop for good. No restarts happen after this."""
        if self._stopped:
            return
        self._stopped = True
        if self._running:
            logger.debug("Stopping live captioning")
            self._running = False
            try:
                self._source.stop()
            except Exception as e:
                logger.warning(f"Error stopping live captioning: {e}")

    def _handle_result(self, text: str, is_final: bool):
        if self._stopped:
            return
        if is_final:
            self._final_text += text.strip() + " "
            self._interim_text = ""
        else:
            self._interim_text = text
        self._publish(self.text)

    def _handle_error(self, code: str, message: str = ""):
        if self._stopped:
            return

        if code in self.SILENT_ERRORS:
            logger.debug(f"Live captioning: {code} {message}".rstrip())
            return

        if code in self.FATAL_ERRORS:
            logger.error(f"Live captioning failed: {code} {message}".rstrip())
            error = self._fatal_error(code)
            self.stop()
            if self._on_fatal:
                self._on_fatal(error)
            return

        if code in self.DROP_ERRORS:
            logger.warning(f"Live captioning unavailable ({code}), continuing without preview")
            self.stop()
            return

        logger.warning(f"Live captioning error: {code} {message}".rstrip())

    def _handle_end(self):
        if self._stopped or not self._running:
            return

        if not self._is_active():
            logger.debug("Capture no longer active, not restarting live captioning")
            self._running = False
            return

        logger.info("Live captioning disconnected, restarting")
        self.restart_count += 1
        if not self._start_source():
            logger.error("Live captioning could not be restarted")

    def _fatal_error(self, code: str) -> MeetMindError:
        if code in ("not-allowed", "service-not-allowed"):
            return MicrophonePermissionError("Microphone/Speech Recognition permission denied.")
        if code == "language-not-supported":
            return DeviceError(
                f"The selected language ({self._language}) is not supported by live captioning.",
                DeviceErrorKind.UNSUPPORTED,
            )
        return DeviceError("Audio capture failed. Ensure microphone is working.")

    def _publish(self, text: str):
        if self._on_text:
            self._on_text(text)
