"""Data models for MeetMind sessions, recordings and analysis results"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field


class RecordingLanguage(str, Enum):
    """Locale tag used for live captioning and stored with each recording"""
    EN_US = "en-US"
    SW_TZ = "sw-TZ"


class AnalysisLanguage(str, Enum):
    """Language the analysis is produced in"""
    EN = "en"
    SW = "sw"


class ExportFormat(str, Enum):
    DOCX = "docx"
    PPTX = "pptx"
    PDF = "pdf"

    @property
    def is_print(self) -> bool:
        """PDF export goes through the print flow instead of an export dialog"""
        return self is ExportFormat.PDF


RECORDING_LANGUAGE_NAMES = {
    RecordingLanguage.EN_US: "English (US)",
    RecordingLanguage.SW_TZ: "Swahili (Tanzania)",
}

ANALYSIS_LANGUAGE_NAMES = {
    AnalysisLanguage.EN: "English",
    AnalysisLanguage.SW: "Swahili",
}

EXPORT_FORMAT_NAMES = {
    ExportFormat.DOCX: "Word Document",
    ExportFormat.PPTX: "PowerPoint Presentation",
    ExportFormat.PDF: "PDF Document",
}


@dataclass
class MeetingSession:
    """The meeting currently being captured or analyzed"""
    meeting_name: str = ""
    meeting_date: Optional[date] = field(default_factory=date.today)
    recording_language: RecordingLanguage = RecordingLanguage.EN_US
    analysis_language: AnalysisLanguage = AnalysisLanguage.EN

    def validate_for_recording(self) -> Dict[str, str]:
        """Return field errors that prevent a recording from starting."""
        errors = {}
        if not self.meeting_name.strip():
            errors["meeting_name"] = "Meeting name is required to start recording."
        if self.meeting_date is None:
            errors["meeting_date"] = "Meeting date is required to start recording."
        return errors


@dataclass(frozen=True)
class AudioArtifact:
    """Finished audio, either captured or uploaded. Never mutated."""
    data: bytes
    mime_type: str
    duration_seconds: float = 0.0

    @property
    def size(self) -> int:
        return len(self.data)


class RecordingMetadata(BaseModel):
    """Listing view of a stored recording (no audio bytes)"""

    # Store-assigned id, never reused
    id: int = Field(ge=1)

    name: str

    # Meeting date/time in Unix milliseconds
    timestamp_ms: int

    duration_seconds: float = Field(default=0.0, ge=0)

    mime_type: str

    # Recording language, stored explicitly instead of inferred from the MIME type
    language: Optional[str] = None


class RecordingDraft(BaseModel):
    """A recording about to be saved; the store assigns the id"""
    name: str
    timestamp_ms: int
    duration_seconds: float = Field(default=0.0, ge=0)
    mime_type: str
    language: Optional[str] = None
    audio: bytes

    @classmethod
    def from_artifact(
        cls,
        artifact: AudioArtifact,
        name: str,
        timestamp_ms: int,
        language: Optional[str] = None,
    ) -> "RecordingDraft":
        return cls(
            name=name,
            timestamp_ms=timestamp_ms,
            duration_seconds=max(0.0, artifact.duration_seconds),
            mime_type=artifact.mime_type,
            language=language,
            audio=artifact.data,
        )


class RecordingRecord(RecordingMetadata):
    """Full stored recording including the audio bytes"""
    audio: bytes

    def to_artifact(self) -> AudioArtifact:
        return AudioArtifact(
            data=self.audio,
            mime_type=self.mime_type,
            duration_seconds=self.duration_seconds,
        )

    def metadata(self) -> RecordingMetadata:
        return RecordingMetadata(**self.model_dump(exclude={"audio"}))


# ===== AI flow outputs =====

class TranscriptionOutput(BaseModel):
    transcript: str


class TranslationOutput(BaseModel):
    translation: str


class SentimentResult(BaseModel):
    sentiment: Literal["positive", "negative", "neutral"]
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: Optional[str] = None


class TopicsOutput(BaseModel):
    topics: List[str] = Field(default_factory=list)


class KeyPoints(BaseModel):
    summary: Optional[str] = None
    decisions: List[str] = Field(default_factory=list)
    tasks: List[str] = Field(default_factory=list)
    questions: List[str] = Field(default_factory=list)
    deadlines: List[str] = Field(default_factory=list)


class ExportContentOutput(BaseModel):
    exported_content: str


@dataclass(frozen=True)
class AnalysisResult:
    """Aggregate of one analysis run. Built once, only when every stage succeeded."""
    language: AnalysisLanguage
    translated_transcript: Optional[str] = None
    sentiment: Optional[SentimentResult] = None
    topics: Optional[List[str]] = None
    key_points: Optional[KeyPoints] = None

    @property
    def is_complete(self) -> bool:
        return (
            self.sentiment is not None
            and self.topics is not None
            and self.key_points is not None
        )


@dataclass(frozen=True)
class ExportArtifact:
    format: ExportFormat
    content: str


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a user-facing controller operation"""
    ok: bool
    kind: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls) -> "OperationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, kind: str, reason: str) -> "OperationResult":
        return cls(ok=False, kind=kind, reason=reason)
