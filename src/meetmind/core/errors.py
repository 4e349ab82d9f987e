"""Error taxonomy shared by the capture, transcription, analysis and export stages"""

from enum import Enum
from typing import Dict, Optional


class MeetMindError(Exception):
    """Base class for failures that are reported to the user.

    ``kind`` is the tag returned in ``OperationResult.kind`` and the message
    is the human-readable cause shown in the notification.
    """

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MicrophonePermissionError(MeetMindError):
    """Microphone access was denied, could not be determined, or was revoked"""

    kind = "permission"


class DeviceErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    BUSY = "busy"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"


class DeviceError(MeetMindError):
    """The capture device could not be opened or failed while recording"""

    kind = "device"

    def __init__(self, message: str, device_kind: DeviceErrorKind = DeviceErrorKind.FAILED):
        super().__init__(message)
        self.device_kind = device_kind


class DataError(MeetMindError):
    """Empty audio, empty transcript or empty AI output"""

    kind = "data"


class ExternalCallError(MeetMindError):
    """An AI flow or a storage call raised"""

    kind = "external"


class ValidationError(MeetMindError):
    """Missing session fields. Never moves the controller out of its state."""

    kind = "validation"

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.field_errors = field_errors or {}
