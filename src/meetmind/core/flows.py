"""AI flows used by the transcription, analysis and export stages"""

from abc import ABC, abstractmethod
from typing import Optional

from .models import (
    AnalysisLanguage,
    AnalysisResult,
    ExportContentOutput,
    ExportFormat,
    KeyPoints,
    SentimentResult,
    TopicsOutput,
    TranscriptionOutput,
    TranslationOutput,
)


class MeetingFlows(ABC):
    """
    The model calls behind MeetMind. Every call is async, may raise, and
    returns a validated output model. Implementations must not retry.
    """

    @abstractmethod
    async def transcribe(self, audio_data_uri: str) -> TranscriptionOutput:
        """Transcribe a ``data:audio/...;base64,`` URI"""

    @abstractmethod
    async def translate(self, transcript: str, target_language: AnalysisLanguage) -> TranslationOutput:
        ...

    @abstractmethod
    async def analyze_sentiment(self, transcript: str) -> SentimentResult:
        ...

    @abstractmethod
    async def detect_topics(self, transcript: str) -> TopicsOutput:
        ...

    @abstractmethod
    async def extract_key_points(self, transcript: str) -> KeyPoints:
        ...

    @abstractmethod
    async def generate_export_content(
        self,
        analysis: AnalysisResult,
        format: ExportFormat,
        original_transcript: str,
        translated_transcript: Optional[str],
        language: AnalysisLanguage,
    ) -> ExportContentOutput:
        """Markdown suited to the target format"""
