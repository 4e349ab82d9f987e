"""Microphone permission gate"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List, Optional
from loguru import logger

from .errors import DeviceError, DeviceErrorKind, MicrophonePermissionError

try:
    import sounddevice as sd
except ImportError:
    sd = None


class PermissionStatus(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"  # the platform would ask the user
    UNKNOWN = "unknown"


PermissionListener = Callable[[PermissionStatus], None]


class PermissionProbe(ABC):
    """Platform hook that reports microphone permission without prompting."""

    @abstractmethod
    async def query(self) -> PermissionStatus:
        """Return the current permission status. May raise when probing is unsupported."""

    def subscribe(self, listener: PermissionListener) -> bool:
        """Register for out-of-band permission changes.

        Returns False when the platform cannot report changes.
        """
        return False


class SoundDevicePermissionProbe(PermissionProbe):
    """Permission probe for PortAudio input devices"""

    async def query(self) -> PermissionStatus:
        # PortAudio has no permission API; access is only known once the device is opened
        if sd is None:
            logger.warning("sounddevice not installed, microphone permission is unknown")
        return PermissionStatus.UNKNOWN


class CapabilityGate:
    """
    Tracks whether the microphone may be used.

    ``has_permission`` is a tri-state: True (granted), False (denied) or
    None (not determined yet). The gate never touches the controller's
    processing state; it reports outcomes and the controller transitions.
    """

    DENIED_MESSAGE = "Please enable microphone permissions in your system settings to record audio."

    def __init__(self, probe: PermissionProbe, device):
        self._probe = probe
        self._device = device
        self._listeners: List[Callable[[bool], None]] = []
        self._watching = False

        self.has_permission: Optional[bool] = None
        self.failure_reason: Optional[str] = None

    async def query(self) -> PermissionStatus:
        """Probe permission without prompting. Prompt and probe failures map to UNKNOWN."""
        try:
            status = await self._probe.query()
        except Exception as e:
            logger.warning(f"Microphone permission query failed: {e}")
            return PermissionStatus.UNKNOWN

        if status == PermissionStatus.GRANTED:
            self.has_permission = True
            return status
        if status == PermissionStatus.DENIED:
            self.has_permission = False
            return status
        return PermissionStatus.UNKNOWN

    async def request(self) -> bool:
        """
        Make sure the microphone can be used, opening the device if needed.

        Returns:
            True if access is available. On False, ``failure_reason`` holds
            the message to show the user.
        """
        self.failure_reason = None
        status = await self.query()

        if status == PermissionStatus.GRANTED:
            logger.info("Microphone permission already granted")
            return True

        if status == PermissionStatus.DENIED:
            logger.info("Microphone permission explicitly denied by user or policy")
            self.failure_reason = self.DENIED_MESSAGE
            return False

        # Unknown or prompt: the only way to find out is to try the device
        try:
            await self._device.open()
        except MicrophonePermissionError:
            self._deny("Microphone access was denied. Please enable it in system settings.")
            return False
        except DeviceError as e:
            if e.device_kind == DeviceErrorKind.NOT_FOUND:
                self._deny("No microphone found. Please ensure a microphone is connected and enabled.")
            elif e.device_kind == DeviceErrorKind.BUSY:
                self._deny(
                    "Microphone is already in use or cannot be accessed. "
                    "Try closing other apps using the mic."
                )
            else:
                self._deny(f"Could not access microphone: {e.message}. Check system settings.")
            return False
        except Exception as e:
            logger.error(f"Error requesting microphone permission: {e}")
            self._deny(f"Could not access microphone: {e}. Check system settings.")
            return False
        finally:
            self._device.release()

        logger.info("Microphone access confirmed")
        self.has_permission = True
        return True

    def _deny(self, reason: str):
        logger.warning(f"Microphone access failed: {reason}")
        self.has_permission = False
        self.failure_reason = reason

    def watch(self, listener: Callable[[bool], None]) -> bool:
        """
        Call ``listener(granted)`` whenever the platform reports a permission change.

        Returns False when the platform cannot report changes.
        """
        self._listeners.append(listener)
        if not self._watching:
            self._watching = self._probe.subscribe(self._on_status_changed)
            if not self._watching:
                logger.debug("Permission change notifications not supported on this platform")
        return self._watching

    def _on_status_changed(self, status: PermissionStatus):
        granted = status == PermissionStatus.GRANTED
        logger.info(f"Microphone permission changed: {status.value}")

        if status in (PermissionStatus.GRANTED, PermissionStatus.DENIED):
            self.has_permission = granted
        else:
            self.has_permission = None

        for listener in list(self._listeners):
            listener(granted)
