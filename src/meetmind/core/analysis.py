"""Analysis pipeline - translation, sentiment, topics and key points"""

import asyncio
from typing import Optional
from loguru import logger

from .errors import DataError, ExternalCallError, MeetMindError
from .flows import MeetingFlows
from .models import AnalysisLanguage, AnalysisResult, KeyPoints, SentimentResult


class AnalysisPipeline:
    """
    Runs the analysis stages for one transcript.

    Order:
        1. translate, when the analysis language differs from ``base_language``
        2. sentiment and topics, concurrently
        3. key points

    The result is only built once every stage succeeded. Any failure raises
    and nothing from earlier stages is returned.
    """

    def __init__(self, flows: MeetingFlows, base_language: str = AnalysisLanguage.EN.value):
        self._flows = flows
        self.base_language = base_language
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def _stage(self, name: str, coro):
        try:
            return await coro
        except MeetMindError as e:
            logger.error(f"{name} failed: {e.message}")
            raise type(e)(f"{name} failed: {e.message}") from e
        except Exception as e:
            logger.error(f"{name} failed: {e}")
            raise ExternalCallError(f"{name} failed: {e}") from e

    async def run(self, transcript: str, analysis_language: AnalysisLanguage) -> AnalysisResult:
        if not transcript or not transcript.strip():
            raise DataError("No transcript available to process.")

        language = AnalysisLanguage(analysis_language)
        self._running = True
        try:
            text = transcript
            translated: Optional[str] = None

            if language.value != self.base_language:
                logger.info(f"Translating transcript to {language.value}")
                output = await self._stage("Translation", self._flows.translate(transcript, language))
                translated = (output.translation if output else "") or ""
                if not translated.strip():
                    logger.error("Translation returned empty text")
                    raise DataError("Translation failed: translation result was empty.")
                text = translated

            logger.info("Running sentiment analysis and topic detection")
            sentiment_result, topics_result = await asyncio.gather(
                self._stage("Sentiment analysis", self._flows.analyze_sentiment(text)),
                self._stage("Topic detection", self._flows.detect_topics(text)),
                return_exceptions=True,
            )
            for result in (sentiment_result, topics_result):
                if isinstance(result, BaseException):
                    raise result

            if not isinstance(sentiment_result, SentimentResult):
                raise DataError("Sentiment analysis failed: no result returned.")
            if topics_result is None:
                raise DataError("Topic detection failed: no result returned.")

            logger.info("Extracting key points")
            key_points = await self._stage("Key point extraction", self._flows.extract_key_points(text))
            if not isinstance(key_points, KeyPoints):
                raise DataError("Key point extraction failed: no result returned.")

            result = AnalysisResult(
                language=language,
                translated_transcript=translated,
                sentiment=sentiment_result,
                topics=list(topics_result.topics),
                key_points=key_points,
            )
            logger.info(
                f"Analysis complete: sentiment={sentiment_result.sentiment}, "
                f"{len(result.topics)} topics"
            )
            return result
        finally:
            self._running = False
