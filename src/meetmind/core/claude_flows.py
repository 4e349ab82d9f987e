"""Claude-based meeting flows - translation, sentiment, topics, key points and export content.

Transcription is delegated to the local faster-whisper model; every other
flow is a single Claude message whose JSON answer is validated with the
matching pydantic output model.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any, Optional, Type, TypeVar
from pydantic import BaseModel, ValidationError as PydanticValidationError
from loguru import logger

from .config import get_config_manager
from .errors import ExternalCallError
from .flows import MeetingFlows
from .models import (
    ANALYSIS_LANGUAGE_NAMES,
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
from .transcriber import WhisperTranscriber

try:
    import anthropic
    HAS_ANTHROPIC = True
except ImportError:
    HAS_ANTHROPIC = False
    anthropic = None


ModelT = TypeVar("ModelT", bound=BaseModel)


def extract_json_object(text: str) -> dict:
    """Pull the first JSON object out of a model response"""
    json_match = re.search(r'\{[\s\S]*\}', text)
    if not json_match:
        raise ValueError("No JSON object found in response")
    return json.loads(json_match.group())


def format_for_prompt(data: Any) -> str:
    """Render optional analysis data the way the export prompt expects it"""
    if data is None:
        return "N/A"
    if isinstance(data, list):
        return "\n".join(f"- {item}" for item in data) if data else "None"
    return str(data)


class ClaudeMeetingFlows(MeetingFlows):
    """MeetingFlows backed by the Anthropic API"""

    TRANSLATE_PROMPT = """You are a translation expert.
Translate the following meeting transcript to {language}.

Rules:
- Translate ALL spoken content, keep speaker names as they are
- Do not summarize or add commentary

Output format: Return ONLY a valid JSON object, no other text:
{{"translation": "the translated transcript"}}

Transcript:
{transcript}"""

    SENTIMENT_PROMPT = """Analyze the overall sentiment of the following meeting transcript. Determine if the general tone is positive, negative, or neutral. Provide a confidence score between 0 and 1 for your assessment and optionally a brief reasoning.

Output format: Return ONLY a valid JSON object, no other text:
{{"sentiment": "positive" | "negative" | "neutral", "confidence": 0.85, "reasoning": "..."}}

Transcript:
{transcript}"""

    TOPICS_PROMPT = """Analyze the following meeting transcript and identify the main topics discussed. List the key topics concisely.

Output format: Return ONLY a valid JSON object, no other text:
{{"topics": ["topic 1", "topic 2"]}}

Transcript:
{transcript}"""

    KEY_POINTS_PROMPT = """You are an AI assistant tasked with extracting key information from a meeting transcript.

Analyze the following transcript and identify key decisions, assigned tasks (including names, if provided), questions raised, and deadlines. Also, provide a concise summary of the meeting that is under 30 seconds of reading time.

Output format: Return ONLY a valid JSON object, no other text:
{{
  "summary": "short summary",
  "decisions": ["..."],
  "tasks": ["..."],
  "questions": ["..."],
  "deadlines": ["..."]
}}

Transcript:
{transcript}"""

    EXPORT_SYSTEM_PROMPT = """You are an AI assistant specializing in formatting meeting analysis results for export.
The output should be in **Markdown**, suitable for easy conversion or copy-pasting into the target application (Word for DOCX, PowerPoint for PPTX, or printing for PDF).

Output format: Return ONLY a valid JSON object, no other text:
{"exported_content": "the markdown content"}"""

    FORMAT_INSTRUCTIONS = {
        ExportFormat.DOCX: (
            "Structure the content logically using Markdown headers (#, ##, ###), lists, bold text "
            "and paragraphs, suitable for a formal document. Start with a main title like "
            "\"# Meeting Analysis Report\". Include sections for Key Points, Sentiment, and Topics."
        ),
        ExportFormat.PPTX: (
            "Outline the content as a series of slides using Markdown. Use '## Slide Title' for each "
            "slide and keep bullet points concise. Cover an overview (summary, sentiment, key topics), "
            "key decisions, action items, sentiment details, discussion topics, questions and deadlines."
        ),
        ExportFormat.PDF: (
            "Structure the content as a clean printable report using Markdown headers, lists and "
            "paragraphs. Do not include a document title or date header; those are added when printing."
        ),
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        transcriber: Optional[WhisperTranscriber] = None,
        max_tokens: int = 8192,
    ):
        """Initialize the Claude flows.

        Args:
            api_key: Anthropic API key. If None, reads from config.
            model: Claude model name. If None, reads from config.
            transcriber: Local transcriber used for ``transcribe``
            max_tokens: Response token limit for every call
        """
        config_manager = get_config_manager()
        config = config_manager.config

        self._api_key = api_key or config_manager.get_anthropic_api_key()
        self.model = model or config.claude_model
        self.max_tokens = max_tokens
        self._transcriber = transcriber or WhisperTranscriber(
            model_size=config.transcription_model,
            device=config.transcription_device,
            compute_type=config.transcription_compute_type,
        )
        self._client = None

        if HAS_ANTHROPIC and self._api_key:
            self._client = anthropic.Anthropic(api_key=self._api_key)
            logger.info("Claude meeting flows initialized")
        else:
            if not HAS_ANTHROPIC:
                logger.warning("anthropic package not installed")
            if not self._api_key:
                logger.warning("No Anthropic API key configured")

    @property
    def is_available(self) -> bool:
        """Check if Claude API is available."""
        return HAS_ANTHROPIC and self._client is not None

    def _complete(self, prompt: str, system: Optional[str] = None) -> str:
        """Blocking Claude call returning the response text"""
        kwargs = dict(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        if system:
            kwargs["system"] = system
        response = self._client.messages.create(**kwargs)
        return response.content[0].text.strip()

    async def _ask(
        self,
        flow_name: str,
        prompt: str,
        output_model: Type[ModelT],
        system: Optional[str] = None,
    ) -> ModelT:
        if not self.is_available:
            raise ExternalCallError("Claude API not available. Configure an Anthropic API key.")

        logger.debug(f"Calling Claude for {flow_name}")
        try:
            result_text = await asyncio.to_thread(self._complete, prompt, system)
        except anthropic.APIError as e:
            logger.error(f"Claude API error in {flow_name}: {e}")
            raise ExternalCallError(f"Claude API error: {e}") from e

        try:
            return output_model(**extract_json_object(result_text))
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Failed to parse Claude response for {flow_name}: {e}")
            logger.debug(f"Response was: {result_text[:500]}")
            raise ExternalCallError(f"Invalid response from {flow_name}: {e}") from e

    async def transcribe(self, audio_data_uri: str) -> TranscriptionOutput:
        if not audio_data_uri.startswith("data:audio/"):
            raise ExternalCallError("Invalid audio data URI format. Expected 'data:audio/...'.")
        try:
            transcript = await self._transcriber.transcribe(audio_data_uri)
        except (RuntimeError, ValueError, OSError) as e:
            logger.error(f"Whisper transcription failed: {e}")
            raise ExternalCallError(str(e)) from e
        return TranscriptionOutput(transcript=transcript)

    async def translate(self, transcript: str, target_language: AnalysisLanguage) -> TranslationOutput:
        language = ANALYSIS_LANGUAGE_NAMES.get(AnalysisLanguage(target_language), str(target_language))
        prompt = self.TRANSLATE_PROMPT.format(language=language, transcript=transcript)
        return await self._ask("translation", prompt, TranslationOutput)

    async def analyze_sentiment(self, transcript: str) -> SentimentResult:
        prompt = self.SENTIMENT_PROMPT.format(transcript=transcript)
        return await self._ask("sentiment analysis", prompt, SentimentResult)

    async def detect_topics(self, transcript: str) -> TopicsOutput:
        prompt = self.TOPICS_PROMPT.format(transcript=transcript)
        return await self._ask("topic detection", prompt, TopicsOutput)

    async def extract_key_points(self, transcript: str) -> KeyPoints:
        prompt = self.KEY_POINTS_PROMPT.format(transcript=transcript)
        return await self._ask("key point extraction", prompt, KeyPoints)

    async def generate_export_content(
        self,
        analysis: AnalysisResult,
        format: ExportFormat,
        original_transcript: str,
        translated_transcript: Optional[str],
        language: AnalysisLanguage,
    ) -> ExportContentOutput:
        prompt = self._build_export_prompt(
            analysis, ExportFormat(format), original_transcript, translated_transcript, language,
        )
        return await self._ask("export content", prompt, ExportContentOutput, system=self.EXPORT_SYSTEM_PROMPT)

    def _build_export_prompt(
        self,
        analysis: AnalysisResult,
        format: ExportFormat,
        original_transcript: str,
        translated_transcript: Optional[str],
        language: AnalysisLanguage,
    ) -> str:
        key_points = analysis.key_points or KeyPoints()
        sentiment = analysis.sentiment
        lang = AnalysisLanguage(language).value

        lines = [
            f"Generate structured content for the requested format: {format.value}.",
            "",
            "**Meeting Analysis Data:**",
            f"**Language:** {lang}",
        ]
        if translated_transcript:
            lines += [
                f"**Analyzed Transcript ({lang}):**", translated_transcript, "---",
                "**Original Transcript:**", original_transcript,
            ]
        else:
            lines += ["**Transcript:**", original_transcript]

        lines += [
            "---",
            "**Key Points & Summary:**",
            f"Summary: {format_for_prompt(key_points.summary)}",
            "Decisions:", format_for_prompt(key_points.decisions),
            "Tasks:", format_for_prompt(key_points.tasks),
            "Questions:", format_for_prompt(key_points.questions),
            "Deadlines:", format_for_prompt(key_points.deadlines),
            "---",
            "**Sentiment Analysis:**",
        ]
        if sentiment:
            lines += [
                f"Sentiment: {sentiment.sentiment} (Confidence: {round(sentiment.confidence * 100)}%)",
                f"Reasoning: {format_for_prompt(sentiment.reasoning)}",
            ]
        else:
            lines.append("N/A")

        lines += [
            "---",
            "**Detected Topics:**",
            format_for_prompt(analysis.topics),
            "---",
            f"**Instructions for {format.value.upper()}:**",
            self.FORMAT_INSTRUCTIONS[format],
        ]
        return "\n".join(lines)
