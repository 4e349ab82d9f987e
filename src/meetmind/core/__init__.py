"""Core business logic"""

from .config import AppConfig, ConfigManager, get_config_manager
from .errors import (
    DataError,
    DeviceError,
    DeviceErrorKind,
    ExternalCallError,
    MeetMindError,
    MicrophonePermissionError,
    ValidationError,
)
from .models import (
    AnalysisLanguage,
    AnalysisResult,
    AudioArtifact,
    ExportArtifact,
    ExportFormat,
    MeetingSession,
    OperationResult,
    RecordingDraft,
    RecordingLanguage,
    RecordingMetadata,
    RecordingRecord,
)
from .state import ProcessingState, StateTransitionError
from .permissions import CapabilityGate, PermissionProbe, PermissionStatus
from .captions import LiveCaptioner, LiveCaptionSource
from .capture import CaptureDevice, CapturePipeline, CaptureState, RecordingDeadline
from .store import DirectoryRecordingStore, RecordingStore
from .flows import MeetingFlows
from .transcription import TranscriptionStage
from .analysis import AnalysisPipeline
from .export import ExportStage, PrintFlow
from .controller import MeetingController, create_meeting_controller, get_meeting_controller

__all__ = [
    "AppConfig",
    "ConfigManager",
    "get_config_manager",
    # Errors
    "MeetMindError",
    "MicrophonePermissionError",
    "DeviceError",
    "DeviceErrorKind",
    "DataError",
    "ExternalCallError",
    "ValidationError",
    # Models
    "AnalysisLanguage",
    "AnalysisResult",
    "AudioArtifact",
    "ExportArtifact",
    "ExportFormat",
    "MeetingSession",
    "OperationResult",
    "RecordingDraft",
    "RecordingLanguage",
    "RecordingMetadata",
    "RecordingRecord",
    "ProcessingState",
    "StateTransitionError",
    # Components
    "CapabilityGate",
    "PermissionProbe",
    "PermissionStatus",
    "LiveCaptioner",
    "LiveCaptionSource",
    "CaptureDevice",
    "CapturePipeline",
    "CaptureState",
    "RecordingDeadline",
    "RecordingStore",
    "DirectoryRecordingStore",
    "MeetingFlows",
    "TranscriptionStage",
    "AnalysisPipeline",
    "ExportStage",
    "PrintFlow",
    "MeetingController",
    "create_meeting_controller",
    "get_meeting_controller",
]
