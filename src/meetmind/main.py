"""Application entry point"""

import asyncio
import shlex
import sys
from datetime import date
from loguru import logger

from .app import setup_logging
from .core.controller import MeetingController, create_meeting_controller
from .core.models import ANALYSIS_LANGUAGE_NAMES, RECORDING_LANGUAGE_NAMES
from .signals import get_app_signals


HELP_TEXT = """Commands:
  name <meeting name>       set the meeting name
  date <YYYY-MM-DD>         set the meeting date
  lang <en-US|sw-TZ>        set the recording language
  analysis <en|sw>          set the analysis language
  record                    start recording
  stop                      stop recording
  upload <path>             upload an audio file
  list                      list stored recordings
  select <id>               load and transcribe a stored recording
  delete <id>               delete a stored recording
  transcript <text>         replace the transcript
  process                   analyze the transcript
  export <docx|pptx|pdf>    generate export content
  show                      show the current session
  reset                     start over
  quit                      exit"""


def _connect_output(controller: MeetingController):
    signals = get_app_signals()
    signals.notification.connect(lambda title, message, level: print(f"[{level}] {title}: {message}"))
    signals.state_changed.connect(lambda state: print(f"  state: {state}"))
    signals.live_caption_updated.connect(lambda text: text and print(f"  live: {text}"))
    signals.export_ready.connect(lambda artifact: artifact and print(artifact.content))


def _show(controller: MeetingController):
    session = controller.session
    print(f"State:              {controller.state.value}")
    print(f"Microphone:         {controller.has_permission}")
    print(f"Meeting name:       {session.meeting_name or '-'}")
    print(f"Meeting date:       {session.meeting_date or '-'}")
    print(f"Recording language: {RECORDING_LANGUAGE_NAMES[session.recording_language]}")
    print(f"Analysis language:  {ANALYSIS_LANGUAGE_NAMES[session.analysis_language]}")
    print(f"Loaded recording:   {controller.loaded_recording_id or '-'}")
    if controller.remaining_seconds is not None:
        print(f"Remaining:          {controller.remaining_seconds}s")
    if controller.error:
        print(f"Error:              {controller.error}")
    if controller.transcript:
        print(f"\nTranscript:\n{controller.transcript}")
    analysis = controller.analysis
    if analysis and analysis.is_complete:
        print(f"\nSentiment: {analysis.sentiment.sentiment} ({analysis.sentiment.confidence:.0%})")
        print(f"Topics: {', '.join(analysis.topics)}")
        if analysis.key_points.summary:
            print(f"Summary: {analysis.key_points.summary}")
        for label, items in (
            ("Decisions", analysis.key_points.decisions),
            ("Tasks", analysis.key_points.tasks),
            ("Questions", analysis.key_points.questions),
            ("Deadlines", analysis.key_points.deadlines),
        ):
            if items:
                print(f"{label}:")
                for item in items:
                    print(f"  - {item}")


def _list(controller: MeetingController):
    if not controller.recordings:
        print("No recordings stored.")
        return
    for rec in controller.recordings:
        print(f"  {rec.id:>4}  {rec.name}  ({rec.duration_seconds:.0f}s, {rec.mime_type})")


async def _dispatch(controller: MeetingController, command: str, args: list) -> bool:
    """Run one command. Returns False to quit."""
    text = " ".join(args)

    if command in ("quit", "exit"):
        if controller.pipeline.is_recording:
            await controller.stop_recording()
        return False
    if command == "help":
        print(HELP_TEXT)
    elif command == "name":
        controller.set_meeting_name(text)
    elif command == "date":
        try:
            controller.set_meeting_date(date.fromisoformat(text) if text else None)
        except ValueError:
            print("Date must be YYYY-MM-DD")
    elif command == "lang":
        print(controller.set_recording_language(text).reason or "ok")
    elif command == "analysis":
        print(controller.set_analysis_language(text).reason or "ok")
    elif command == "record":
        await controller.start_recording()
    elif command == "stop":
        await controller.stop_recording()
    elif command == "upload":
        await controller.upload_file(text)
    elif command == "list":
        await controller.refresh_recordings()
        _list(controller)
    elif command in ("select", "delete"):
        try:
            recording_id = int(text)
        except ValueError:
            print(f"Usage: {command} <id>")
            return True
        if command == "select":
            await controller.select_recording(recording_id)
        else:
            await controller.delete_recording(recording_id)
    elif command == "transcript":
        controller.set_transcript(text)
    elif command == "process":
        await controller.process()
    elif command == "export":
        await controller.export(text or "docx")
    elif command == "show":
        _show(controller)
    elif command == "reset":
        controller.reset()
    else:
        print(f"Unknown command: {command} (type 'help')")
    return True


async def run_command_loop(controller: MeetingController):
    loop = asyncio.get_running_loop()
    await controller.initialize()
    print(HELP_TEXT)

    while True:
        # Read input off the loop so recording timers keep running
        line = await loop.run_in_executor(None, input, "meetmind> ")
        try:
            parts = shlex.split(line)
        except ValueError as e:
            print(f"Could not parse command: {e}")
            continue
        if not parts:
            continue
        if not await _dispatch(controller, parts[0].lower(), parts[1:]):
            break


def main() -> int:
    """Main entry point for the application"""
    try:
        setup_logging()
        controller = create_meeting_controller()
        _connect_output(controller)
        asyncio.run(run_command_loop(controller))
        return 0

    except (KeyboardInterrupt, EOFError):
        logger.info("Exiting")
        return 0
    except Exception as e:
        logger.exception(f"Application error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
