"""
Tests for the transcription stage.
"""

import asyncio
import base64
import pytest

from meetmind.core.errors import DataError, ExternalCallError
from meetmind.core.models import AudioArtifact
from meetmind.core.transcription import TranscriptionStage, encode_data_uri

from fakes import FakeFlows


AUDIO = AudioArtifact(data=b"\x01\x02\x03", mime_type="audio/webm;codecs=opus", duration_seconds=3.0)


def test_encode_data_uri():
    uri = encode_data_uri(AUDIO)
    assert uri.startswith("data:audio/webm;codecs=opus;base64,")
    assert base64.b64decode(uri.split(",", 1)[1]) == AUDIO.data


def test_encode_rejects_non_audio():
    with pytest.raises(DataError):
        encode_data_uri(AudioArtifact(data=b"x", mime_type="video/mp4"))


class TestTranscriptionStage:
    def test_returns_transcript(self):
        flows = FakeFlows()
        stage = TranscriptionStage(flows)

        transcript = asyncio.run(stage.run(AUDIO, "Standup"))

        assert transcript == flows.transcript
        assert flows.received["transcribe"].startswith("data:audio/")
        assert not stage.is_running

    def test_empty_audio_never_calls_flow(self):
        flows = FakeFlows()
        stage = TranscriptionStage(flows)

        with pytest.raises(DataError, match="Cannot transcribe empty audio"):
            asyncio.run(stage.run(AudioArtifact(data=b"", mime_type="audio/webm")))
        assert flows.calls == []

    def test_empty_result_is_data_error(self):
        flows = FakeFlows()
        flows.transcript = "   "
        stage = TranscriptionStage(flows)

        with pytest.raises(DataError, match="Transcription result was empty"):
            asyncio.run(stage.run(AUDIO))
        assert not stage.is_running

    def test_call_failure_is_external_error(self):
        flows = FakeFlows()
        flows.failures["transcribe"] = RuntimeError("model exploded")
        stage = TranscriptionStage(flows)

        with pytest.raises(ExternalCallError, match="Transcription failed: model exploded"):
            asyncio.run(stage.run(AUDIO))
        assert not stage.is_running

    def test_second_run_while_running_is_ignored(self):
        flows = FakeFlows()
        stage = TranscriptionStage(flows)

        async def scenario():
            first = asyncio.create_task(stage.run(AUDIO, "first"))
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            second = await stage.run(AUDIO, "second")
            return await first, second

        first, second = asyncio.run(scenario())
        assert first == flows.transcript
        assert second is None
        assert flows.calls == ["transcribe"]
