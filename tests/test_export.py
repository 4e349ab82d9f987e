"""
Tests for export content generation and the print path.
"""

import asyncio
from datetime import date, datetime
import pytest

from meetmind.core.errors import DataError, ExternalCallError
from meetmind.core.export import ExportStage, build_print_markdown, report_title
from meetmind.core.models import (
    AnalysisLanguage,
    AnalysisResult,
    ExportArtifact,
    ExportFormat,
    KeyPoints,
    SentimentResult,
)

from fakes import FakeFlows, FakePrintFlow


GENERATED_AT = datetime(2026, 3, 2, 14, 30, 0)


def make_analysis(language=AnalysisLanguage.EN, translated=None, complete=True):
    return AnalysisResult(
        language=language,
        translated_transcript=translated,
        sentiment=SentimentResult(sentiment="neutral", confidence=0.5),
        topics=["budget"],
        key_points=KeyPoints(summary="Budget review") if complete else None,
    )


class TestPrintMarkdown:
    def test_header_fields(self):
        markdown = build_print_markdown("## Summary\n\nAll good.", "Board Meeting", date(2026, 3, 2), GENERATED_AT)

        assert markdown.startswith("# Meeting Analysis Report\n")
        assert "**Date Generated:** 2026-03-02 14:30:00" in markdown
        assert "**Meeting Name:** Board Meeting" in markdown
        assert "**Meeting Date:** March 02, 2026" in markdown
        assert markdown.index("---") < markdown.index("## Summary")

    def test_optional_fields_omitted(self):
        markdown = build_print_markdown("Body", "", None, GENERATED_AT)
        assert "Meeting Name" not in markdown
        assert "Meeting Date" not in markdown

    def test_report_title(self):
        assert report_title("Board Meeting", GENERATED_AT) == "Meeting Analysis Report - Board Meeting"
        assert report_title("", GENERATED_AT) == "Meeting Analysis Report - 2026-03-02 14:30:00"


class TestGenerate:
    def test_returns_artifact(self):
        flows = FakeFlows()
        stage = ExportStage(flows)

        artifact = asyncio.run(stage.generate(make_analysis(), ExportFormat.DOCX, "original", AnalysisLanguage.EN))

        assert artifact == ExportArtifact(format=ExportFormat.DOCX, content=flows.export_content)
        assert flows.received["generate_export_content"] == (ExportFormat.DOCX, "original", None, AnalysisLanguage.EN)

    def test_translated_transcript_only_for_non_english(self):
        flows = FakeFlows()
        stage = ExportStage(flows)
        analysis = make_analysis(AnalysisLanguage.SW, translated="tafsiri")

        asyncio.run(stage.generate(analysis, ExportFormat.PPTX, "original", AnalysisLanguage.SW))
        assert flows.received["generate_export_content"][2] == "tafsiri"

        asyncio.run(stage.generate(analysis, ExportFormat.PPTX, "original", AnalysisLanguage.EN))
        assert flows.received["generate_export_content"][2] is None

    def test_translated_transcript_follows_base_language(self):
        flows = FakeFlows()
        stage = ExportStage(flows, base_language=AnalysisLanguage.SW.value)
        analysis = make_analysis(AnalysisLanguage.EN, translated="translated to english")

        asyncio.run(stage.generate(analysis, ExportFormat.DOCX, "asili", AnalysisLanguage.EN))
        assert flows.received["generate_export_content"][2] == "translated to english"

        asyncio.run(stage.generate(analysis, ExportFormat.DOCX, "asili", AnalysisLanguage.SW))
        assert flows.received["generate_export_content"][2] is None

    def test_incomplete_analysis(self):
        flows = FakeFlows()
        stage = ExportStage(flows)

        with pytest.raises(DataError):
            asyncio.run(stage.generate(make_analysis(complete=False), ExportFormat.DOCX, "t", AnalysisLanguage.EN))
        with pytest.raises(DataError):
            asyncio.run(stage.generate(None, ExportFormat.DOCX, "t", AnalysisLanguage.EN))
        assert flows.calls == []

    def test_empty_content(self):
        flows = FakeFlows()
        flows.export_content = ""

        with pytest.raises(DataError, match="empty"):
            asyncio.run(ExportStage(flows).generate(make_analysis(), ExportFormat.DOCX, "t", AnalysisLanguage.EN))

    def test_call_failure(self):
        flows = FakeFlows()
        flows.failures["generate_export_content"] = RuntimeError("overloaded")

        with pytest.raises(ExternalCallError, match="overloaded"):
            asyncio.run(ExportStage(flows).generate(make_analysis(), ExportFormat.PDF, "t", AnalysisLanguage.EN))


class TestStartPrint:
    ARTIFACT = ExportArtifact(format=ExportFormat.PDF, content="## Summary")

    def test_prints_report(self):
        print_flow = FakePrintFlow()
        stage = ExportStage(FakeFlows(), print_flow)

        async def scenario():
            await stage.start_print(self.ARTIFACT, "Board Meeting", date(2026, 3, 2))

        asyncio.run(scenario())
        title, markdown = print_flow.printed[0]
        assert title == "Meeting Analysis Report - Board Meeting"
        assert "## Summary" in markdown

    def test_print_failure_reported_to_callback(self):
        errors = []
        stage = ExportStage(FakeFlows(), FakePrintFlow(error=RuntimeError("no printer")))

        async def scenario():
            await stage.start_print(self.ARTIFACT, "Board Meeting", None, on_error=errors.append)

        asyncio.run(scenario())
        assert errors == ["no printer"]

    def test_missing_print_flow(self):
        errors = []
        stage = ExportStage(FakeFlows())

        async def scenario():
            await stage.start_print(self.ARTIFACT, "", None, on_error=errors.append)

        asyncio.run(scenario())
        assert errors == ["Printing is not available on this system."]
