"""
Tests for the analysis pipeline.
"""

import asyncio
import pytest

from meetmind.core.analysis import AnalysisPipeline
from meetmind.core.errors import DataError, ExternalCallError
from meetmind.core.models import AnalysisLanguage

from fakes import FakeFlows


TRANSCRIPT = "We agreed to ship on Friday."


def run(flows, language=AnalysisLanguage.EN, transcript=TRANSCRIPT):
    return asyncio.run(AnalysisPipeline(flows).run(transcript, language))


class TestEnglish:
    def test_builds_complete_result_without_translation(self):
        flows = FakeFlows()
        result = run(flows)

        assert result.is_complete
        assert result.language == AnalysisLanguage.EN
        assert result.translated_transcript is None
        assert result.topics == flows.topics
        assert "translate" not in flows.calls
        assert flows.received["analyze_sentiment"] == TRANSCRIPT

    def test_sentiment_and_topics_run_concurrently(self):
        flows = FakeFlows()
        run(flows)

        events = flows.events
        assert events.index("detect_topics:start") < events.index("analyze_sentiment:end")
        assert events.index("extract_key_points:start") > events.index("detect_topics:end")
        assert events.index("extract_key_points:start") > events.index("analyze_sentiment:end")

    def test_empty_transcript(self):
        flows = FakeFlows()
        with pytest.raises(DataError):
            run(flows, transcript="  ")
        assert flows.calls == []


class TestSwahili:
    def test_translation_comes_first_and_feeds_every_stage(self):
        flows = FakeFlows()
        result = run(flows, AnalysisLanguage.SW)

        assert flows.calls[0] == "translate"
        assert flows.received["translate"] == (TRANSCRIPT, AnalysisLanguage.SW)
        for stage in ("analyze_sentiment", "detect_topics", "extract_key_points"):
            assert flows.received[stage] == flows.translation
        assert result.translated_transcript == flows.translation

    def test_empty_translation_stops_pipeline(self):
        flows = FakeFlows()
        flows.translation = ""

        with pytest.raises(DataError, match="Translation failed"):
            run(flows, AnalysisLanguage.SW)
        assert flows.calls == ["translate"]

    def test_translation_call_failure(self):
        flows = FakeFlows()
        flows.failures["translate"] = RuntimeError("quota")

        with pytest.raises(ExternalCallError, match="Translation failed: quota"):
            run(flows, AnalysisLanguage.SW)
        assert flows.calls == ["translate"]


class TestFailures:
    def test_key_points_failure_returns_nothing(self):
        flows = FakeFlows()
        flows.failures["extract_key_points"] = RuntimeError("timeout")

        with pytest.raises(ExternalCallError, match="Key point extraction failed"):
            run(flows)

    def test_sentiment_failure_skips_key_points(self):
        flows = FakeFlows()
        flows.failures["analyze_sentiment"] = ExternalCallError("bad json")

        with pytest.raises(ExternalCallError, match="Sentiment analysis failed: bad json"):
            run(flows)
        assert "extract_key_points" not in flows.calls

    def test_not_running_after_failure(self):
        flows = FakeFlows()
        flows.failures["detect_topics"] = RuntimeError("boom")
        pipeline = AnalysisPipeline(flows)

        with pytest.raises(ExternalCallError):
            asyncio.run(pipeline.run(TRANSCRIPT, AnalysisLanguage.EN))
        assert not pipeline.is_running
