"""Export stage - formatted content for Word, PowerPoint and printed reports"""

import asyncio
from abc import ABC, abstractmethod
from datetime import date, datetime
from pathlib import Path
from typing import Optional
from loguru import logger

from .errors import DataError, ExternalCallError, MeetMindError
from .flows import MeetingFlows
from .models import AnalysisLanguage, AnalysisResult, ExportArtifact, ExportFormat


PRINT_STYLESHEET = """
body { font-family: sans-serif; line-height: 1.6; }
h1, h2, h3 { margin-top: 1.5em; margin-bottom: 0.5em; color: #333; }
h1 { font-size: 1.8em; }
h2 { font-size: 1.5em; }
h3 { font-size: 1.2em; }
li { margin-bottom: 0.5em; }
p { margin-bottom: 1em; }
pre { background-color: #f5f5f5; font-family: monospace; }
blockquote { color: #666; }
th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
th { background-color: #f2f2f2; }
"""


def report_title(meeting_name: str, generated_at: datetime) -> str:
    return f"Meeting Analysis Report - {meeting_name or generated_at.strftime('%Y-%m-%d %H:%M:%S')}"


def build_print_markdown(
    content: str,
    meeting_name: str = "",
    meeting_date: Optional[date] = None,
    generated_at: Optional[datetime] = None,
) -> str:
    """The printed report: a fixed header followed by the generated content"""
    generated_at = generated_at or datetime.now()
    lines = [
        "# Meeting Analysis Report",
        "",
        f"**Date Generated:** {generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
        "",
    ]
    if meeting_name:
        lines += [f"**Meeting Name:** {meeting_name}", ""]
    if meeting_date:
        lines += [f"**Meeting Date:** {meeting_date.strftime('%B %d, %Y')}", ""]
    lines += ["---", "", content.strip(), ""]
    return "\n".join(lines)


class PrintFlow(ABC):
    """Platform print flow for print-style exports"""

    @abstractmethod
    def print_report(self, title: str, markdown: str) -> Optional[Path]:
        """Render and hand the report to the platform. Raises on failure."""


class QtPrintFlow(PrintFlow):
    """Prints the report to a PDF file with Qt and opens it in the default viewer"""

    def __init__(self, output_dir: Path, open_after: bool = True):
        self.output_dir = Path(output_dir)
        self.open_after = open_after

    def print_report(self, title: str, markdown: str) -> Optional[Path]:
        from PySide6.QtCore import QUrl
        from PySide6.QtGui import QDesktopServices, QGuiApplication, QPageSize, QTextDocument
        from PySide6.QtPrintSupport import QPrinter

        # QTextDocument needs a GUI application for fonts
        if QGuiApplication.instance() is None:
            self._app = QGuiApplication([])

        self.output_dir.mkdir(parents=True, exist_ok=True)
        safe_name = "".join(c if c.isalnum() or c in "-_ " else "_" for c in title).strip()
        output_path = self.output_dir / f"{safe_name or 'report'}.pdf"

        source = QTextDocument()
        source.setMarkdown(markdown)

        document = QTextDocument()
        document.setDefaultStyleSheet(PRINT_STYLESHEET)
        document.setHtml(source.toHtml())
        document.setMetaInformation(QTextDocument.MetaInformation.DocumentTitle, title)

        printer = QPrinter(QPrinter.PrinterMode.HighResolution)
        printer.setOutputFormat(QPrinter.OutputFormat.PdfFormat)
        printer.setOutputFileName(str(output_path))
        printer.setPageSize(QPageSize(QPageSize.PageSizeId.A4))
        printer.setDocName(title)
        document.print_(printer)

        if not output_path.exists():
            raise RuntimeError(f"Printer did not produce {output_path}")
        logger.info(f"Printed report to {output_path}")

        if self.open_after:
            QDesktopServices.openUrl(QUrl.fromLocalFile(str(output_path)))
        return output_path


class ExportStage:
    """
    Requests export content for an analysis.

    Non-print formats return the Markdown as an ExportArtifact. The print
    format also renders the report through the PrintFlow; that part runs in
    the background and its failure never fails the export.
    """

    def __init__(
        self,
        flows: MeetingFlows,
        print_flow: Optional[PrintFlow] = None,
        base_language: str = AnalysisLanguage.EN.value,
    ):
        self._flows = flows
        self._print_flow = print_flow
        self.base_language = base_language
        self._print_task: Optional[asyncio.Task] = None

    async def generate(
        self,
        analysis: AnalysisResult,
        format: ExportFormat,
        original_transcript: str,
        language: AnalysisLanguage,
    ) -> ExportArtifact:
        if analysis is None or not analysis.is_complete:
            raise DataError("Please analyze the transcript first before exporting.")

        format = ExportFormat(format)
        translated = (
            analysis.translated_transcript
            if AnalysisLanguage(language).value != self.base_language
            else None
        )
        logger.info(f"Generating {format.value.upper()} export content")

        try:
            output = await self._flows.generate_export_content(
                analysis, format, original_transcript, translated, language,
            )
        except MeetMindError:
            raise
        except Exception as e:
            logger.error(f"Export generation error: {e}")
            raise ExternalCallError(str(e)) from e

        content = (output.exported_content if output else "") or ""
        if not content.strip():
            raise DataError("Generated export content was empty.")

        logger.info(f"Export content ready: {len(content)} chars")
        return ExportArtifact(format=format, content=content)

    def start_print(
        self,
        artifact: ExportArtifact,
        meeting_name: str,
        meeting_date: Optional[date],
        on_error=None,
    ) -> asyncio.Task:
        """Print the report without waiting for it. ``on_error(message)`` reports failures."""
        generated_at = datetime.now()
        title = report_title(meeting_name, generated_at)
        markdown = build_print_markdown(artifact.content, meeting_name, meeting_date, generated_at)

        async def _print():
            if self._print_flow is None:
                logger.warning("No print flow configured, skipping print")
                if on_error:
                    on_error("Printing is not available on this system.")
                return None
            # Qt documents must be created on the loop's (main) thread
            await asyncio.sleep(0)
            try:
                return self._print_flow.print_report(title, markdown)
            except Exception as e:
                logger.error(f"Error during print operation: {e}")
                if on_error:
                    on_error(str(e))
                return None

        self._print_task = asyncio.get_running_loop().create_task(_print())
        return self._print_task
