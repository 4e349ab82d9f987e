"""Transcription stage - turns a finished recording into text"""

import asyncio
import base64
from typing import Optional
from loguru import logger

from .errors import DataError, ExternalCallError
from .flows import MeetingFlows
from .models import AudioArtifact


def encode_data_uri(artifact: AudioArtifact) -> str:
    """Encode audio as ``data:<mime>;base64,<payload>``"""
    mime_type = artifact.mime_type or "audio/webm"
    if not mime_type.startswith("audio/"):
        raise DataError(f"Unsupported audio type: {mime_type}")
    payload = base64.b64encode(artifact.data).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


class TranscriptionStage:
    """
    Runs one transcription at a time.

    A second ``run`` while one is in flight is ignored with a warning and
    returns None. Failures are raised as DataError (empty input or empty
    result) or ExternalCallError (the transcription call itself failed).
    """

    def __init__(self, flows: MeetingFlows):
        self._flows = flows
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(self, artifact: AudioArtifact, source_label: Optional[str] = None) -> Optional[str]:
        label = source_label or "recording"

        if self._running:
            logger.warning(f"Transcription already in progress, ignoring request for {label}")
            return None

        if artifact is None or artifact.size == 0:
            logger.error(f"Cannot transcribe empty audio ({label})")
            raise DataError("Cannot transcribe empty audio.")

        self._running = True
        try:
            logger.info(f"Transcribing {label}: {artifact.size} bytes ({artifact.mime_type})")
            data_uri = await asyncio.to_thread(encode_data_uri, artifact)

            try:
                output = await self._flows.transcribe(data_uri)
            except ExternalCallError:
                raise
            except Exception as e:
                logger.error(f"Transcription call failed for {label}: {e}")
                raise ExternalCallError(f"Transcription failed: {e}") from e

            transcript = (output.transcript if output else "") or ""
            if not transcript.strip():
                logger.warning(f"Transcription of {label} returned empty text")
                raise DataError("Transcription result was empty.")

            logger.info(f"Transcription complete for {label}: {len(transcript)} chars")
            return transcript
        finally:
            self._running = False
