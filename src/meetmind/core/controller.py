"""Meeting controller - coordinates permission, capture, storage, transcription, analysis and export"""

import asyncio
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional, Union
from loguru import logger

from .analysis import AnalysisPipeline
from .audio_utils import guess_mime_type, parse_filename_date, probe_duration, recording_name_from_filename
from .capture import CapturePipeline
from .errors import DataError, MeetMindError, MicrophonePermissionError
from .export import ExportStage, PrintFlow
from .flows import MeetingFlows
from .models import (
    AnalysisLanguage,
    AnalysisResult,
    AudioArtifact,
    ExportArtifact,
    ExportFormat,
    MeetingSession,
    OperationResult,
    RecordingDraft,
    RecordingLanguage,
    RecordingMetadata,
)
from .permissions import CapabilityGate, PermissionStatus
from .state import LOADING_STATES, ProcessingState, StateTransitionError, can_transition, is_busy
from .store import RecordingStore
from .transcription import TranscriptionStage
from ..signals import AppSignals, get_app_signals


S = ProcessingState


def meeting_timestamp_ms(meeting_date: Optional[date], now: Optional[datetime] = None) -> int:
    """Meeting date at the current wall-clock time, in Unix milliseconds"""
    now = now or datetime.now()
    moment = datetime.combine(meeting_date, now.time()) if meeting_date else now
    return int(moment.timestamp() * 1000)


class MeetingController:
    """
    Owns the processing state and every piece of data derived from it.

    Each user-facing operation returns an OperationResult. Only
    ``_set_state`` writes the state, and it refuses transitions that are not
    in the transition table. A reset bumps the session epoch so results of
    calls still in flight are discarded when they arrive.
    """

    def __init__(
        self,
        pipeline: CapturePipeline,
        gate: CapabilityGate,
        store: RecordingStore,
        flows: MeetingFlows,
        print_flow: Optional[PrintFlow] = None,
        signals: Optional[AppSignals] = None,
        default_analysis_language: AnalysisLanguage = AnalysisLanguage.EN,
        base_language: str = AnalysisLanguage.EN.value,
    ):
        self._pipeline = pipeline
        self._gate = gate
        self._store = store
        self._signals = signals or get_app_signals()

        self.transcription = TranscriptionStage(flows)
        self.analysis_pipeline = AnalysisPipeline(flows, base_language=base_language)
        self.export_stage = ExportStage(flows, print_flow, base_language=base_language)

        self._default_analysis_language = AnalysisLanguage(default_analysis_language)
        self._state = S.IDLE
        self._epoch = 0
        self._autostop_task: Optional[asyncio.Task] = None

        # Session and derived data
        self.session = MeetingSession(analysis_language=self._default_analysis_language)
        self.transcript = ""
        self.analysis: Optional[AnalysisResult] = None
        self.export_artifact: Optional[ExportArtifact] = None
        self.loaded_recording_id: Optional[int] = None
        self.recordings: List[RecordingMetadata] = []

        # Live recording feedback
        self.live_caption = ""
        self.remaining_seconds: Optional[int] = None

        # Last failure shown to the user, and per-field validation messages
        self.error: Optional[str] = None
        self.field_errors: Dict[str, str] = {}

    # ===== Observable state =====

    @property
    def state(self) -> ProcessingState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return is_busy(self._state)

    @property
    def is_loading(self) -> bool:
        return self._state in LOADING_STATES

    @property
    def has_permission(self) -> Optional[bool]:
        return self._gate.has_permission

    @property
    def pipeline(self) -> CapturePipeline:
        return self._pipeline

    def _set_state(self, target: ProcessingState):
        current = self._state
        if target == current:
            return
        if not can_transition(current, target):
            raise StateTransitionError(f"Illegal transition {current.value} -> {target.value}")

        was_busy = is_busy(current)
        self._state = target
        logger.debug(f"State: {current.value} -> {target.value}")
        self._signals.state_changed.emit(target.value)
        if is_busy(target) != was_busy:
            self._signals.busy_state_changed.emit(is_busy(target))

    def _set_error(self, message: Optional[str]):
        self.error = message
        self._signals.error_changed.emit(message)

    def _set_transcript(self, text: str):
        self.transcript = text
        self._signals.transcript_changed.emit(text)

    def _set_analysis(self, analysis: Optional[AnalysisResult]):
        self.analysis = analysis
        self._signals.analysis_updated.emit(analysis)

    def _set_export(self, artifact: Optional[ExportArtifact]):
        self.export_artifact = artifact
        self._signals.export_ready.emit(artifact)

    def _clear_results(self):
        """Drop the analysis and export derived from the current transcript"""
        if self.analysis is not None:
            self._set_analysis(None)
        if self.export_artifact is not None:
            self._set_export(None)

    def _notify(self, title: str, message: str, level: str = "info"):
        if level == "error":
            logger.error(f"{title}: {message}")
        elif level == "warning":
            logger.warning(f"{title}: {message}")
        else:
            logger.info(f"{title}: {message}")
        self._signals.notification.emit(title, message, level)

    def _fail(self, error: MeetMindError, title: str, message: Optional[str] = None) -> OperationResult:
        """Enter the error state with one notification"""
        message = message or error.message
        self._set_error(message)
        self._set_state(S.ERROR)
        self._notify(title, message, "error")
        return OperationResult.failure(error.kind, message)

    def _is_stale(self, epoch: int) -> bool:
        return epoch != self._epoch

    def _stale(self, action: str) -> OperationResult:
        logger.info(f"Discarding result of {action}: session was reset")
        return OperationResult.failure("stale", f"The session was reset while {action} was in progress.")

    def _guard_busy(self, action: str) -> Optional[OperationResult]:
        if not self.is_busy:
            return None
        message = f"Please wait for the current operation to finish before {action}."
        self._notify("Busy", message, "warning")
        return OperationResult.failure("busy", message)

    # ===== Setup =====

    async def initialize(self) -> OperationResult:
        """Query permission once, watch for changes, and load the recordings list"""
        status = await self._gate.query()
        logger.info(f"Initial microphone permission: {status.value}")
        self._signals.permission_changed.emit(self._gate.has_permission)
        if status == PermissionStatus.DENIED and self._state == S.IDLE:
            self._set_state(S.PERMISSION_DENIED)

        self._gate.watch(self._on_permission_changed)
        await self.refresh_recordings()
        return OperationResult.success()

    def _on_permission_changed(self, granted: bool):
        self._signals.permission_changed.emit(self._gate.has_permission)

        if not granted and self._state == S.RECORDING:
            message = "Microphone permission was revoked. Recording stopped."
            self._pipeline.abort(message)
            self._set_error(message)
            self._set_state(S.PERMISSION_DENIED)
            self._notify("Permission Revoked", message, "error")
        elif not granted and self._state == S.IDLE and self._gate.has_permission is False:
            self._set_state(S.PERMISSION_DENIED)
        elif granted and self._state == S.PERMISSION_DENIED:
            self._set_error(None)
            self._set_state(S.IDLE)

    # ===== Session fields =====

    def set_meeting_name(self, name: str) -> OperationResult:
        if self._state == S.RECORDING:
            return OperationResult.failure("busy", "Cannot rename the meeting while recording.")
        self.session.meeting_name = name
        self.field_errors.pop("meeting_name", None)
        return OperationResult.success()

    def set_meeting_date(self, meeting_date: Optional[date]) -> OperationResult:
        if self._state == S.RECORDING:
            return OperationResult.failure("busy", "Cannot change the meeting date while recording.")
        self.session.meeting_date = meeting_date
        self.field_errors.pop("meeting_date", None)
        return OperationResult.success()

    def set_recording_language(self, language: Union[str, RecordingLanguage]) -> OperationResult:
        if self._state == S.RECORDING:
            return OperationResult.failure("busy", "Cannot change the recording language while recording.")
        try:
            self.session.recording_language = RecordingLanguage(language)
        except ValueError:
            return OperationResult.failure("validation", f"Unsupported recording language: {language}")
        return OperationResult.success()

    def set_analysis_language(self, language: Union[str, AnalysisLanguage]) -> OperationResult:
        try:
            self.session.analysis_language = AnalysisLanguage(language)
        except ValueError:
            return OperationResult.failure("validation", f"Unsupported analysis language: {language}")
        return OperationResult.success()

    def set_transcript(self, text: str) -> OperationResult:
        """
        User edit of the transcript.

        Clears the analysis and export, severs the tie to a loaded recording
        for good, and returns a finished or failed run to idle.
        """
        guard = self._guard_busy("editing the transcript")
        if guard:
            return guard
        if text == self.transcript:
            return OperationResult.success()

        self._set_transcript(text)
        self._clear_results()
        if self.loaded_recording_id is not None:
            logger.info(f"Transcript edited, detaching from recording {self.loaded_recording_id}")
            self.loaded_recording_id = None

        if self._state in (S.DONE, S.EXPORT_READY, S.ERROR):
            self._set_error(None)
            self._set_state(S.IDLE)
        return OperationResult.success()

    # ===== Recording =====

    async def start_recording(self) -> OperationResult:
        guard = self._guard_busy("starting a new recording")
        if guard:
            return guard

        field_errors = self.session.validate_for_recording()
        if field_errors:
            self.field_errors = field_errors
            message = " ".join(field_errors.values())
            self._notify("Missing Information", message, "error")
            return OperationResult.failure("validation", message)
        self.field_errors = {}

        epoch = self._epoch
        self._set_error(None)

        if self._gate.has_permission is not True:
            self._set_state(S.CHECKING_PERMISSION)
            granted = await self._gate.request()
            self._signals.permission_changed.emit(self._gate.has_permission)
            if self._is_stale(epoch):
                return self._stale("permission check")
            if not granted:
                message = self._gate.failure_reason or CapabilityGate.DENIED_MESSAGE
                self._set_error(message)
                self._set_state(S.PERMISSION_DENIED)
                self._notify("Microphone Access Denied", message, "error")
                return OperationResult.failure("permission", message)

        # A new recording replaces everything derived from the previous one
        self._set_transcript("")
        self._clear_results()
        self.loaded_recording_id = None
        self._on_live_caption("")

        self._set_state(S.RECORDING)
        language = self.session.recording_language.value
        try:
            await self._pipeline.start(
                language,
                on_caption=self._on_live_caption,
                on_remaining=self._on_remaining_time,
                on_autostop=self._on_autostop,
                on_failure=self._on_capture_failure,
            )
        except MeetMindError as e:
            if self._state != S.RECORDING:
                # Already moved on (permission revoked while the device was opening)
                logger.info(f"Recording start failed after state changed to {self._state.value}: {e.message}")
                return OperationResult.failure(e.kind, e.message)
            return self._start_failed(e)

        if self._is_stale(epoch) or self._state != S.RECORDING:
            # The device finished opening after a revocation; the stream must not outlive it
            self._pipeline.abort("recording start was superseded")
            message = self.error or "Recording was cancelled while the microphone was opening."
            return OperationResult.failure("permission", message)

        self._notify(
            "Recording Started",
            f"Recording \"{self.session.meeting_name}\" ({self.session.recording_language.value}).",
        )
        return OperationResult.success()

    def _start_failed(self, error: MeetMindError) -> OperationResult:
        if isinstance(error, MicrophonePermissionError):
            self._gate.has_permission = False
            self._signals.permission_changed.emit(False)
            self._set_error(error.message)
            self._set_state(S.PERMISSION_DENIED)
            self._notify("Microphone Access Denied", error.message, "error")
            return OperationResult.failure(error.kind, error.message)
        return self._fail(error, "Recording Setup Failed")

    async def stop_recording(self) -> OperationResult:
        """Stop the recording. Does nothing when no recording is in progress."""
        if self._state != S.RECORDING:
            logger.debug(f"Stop ignored in state {self._state.value}")
            return OperationResult.success()
        if not self._pipeline.is_recording:
            return OperationResult.failure("busy", "The recording is still starting.")
        return await self._finish_recording(forced=False)

    def _on_live_caption(self, text: str):
        self.live_caption = text
        self._signals.live_caption_updated.emit(text)

    def _on_remaining_time(self, remaining: Optional[int]):
        self.remaining_seconds = remaining
        self._signals.remaining_time_updated.emit(remaining)

    def _on_autostop(self):
        minutes = self._pipeline.time_limit_seconds / 60
        self._notify(
            "Recording Limit Reached",
            f"Maximum recording time of {minutes:g} minutes reached. Stopping recording.",
        )
        self._autostop_task = asyncio.get_running_loop().create_task(self._finish_recording(forced=True))

    def _on_capture_failure(self, error: MeetMindError):
        """The capture stopped itself (device failure or fatal caption error)"""
        if self._state != S.RECORDING:
            return
        if isinstance(error, MicrophonePermissionError):
            self._gate.has_permission = False
            self._signals.permission_changed.emit(False)
            self._set_error(error.message)
            self._set_state(S.PERMISSION_DENIED)
            self._notify("Recording Error", error.message, "error")
        else:
            self._fail(error, "Recording Error")

    async def _finish_recording(self, forced: bool) -> OperationResult:
        if self._state != S.RECORDING:
            return OperationResult.success()

        epoch = self._epoch
        self._set_state(S.STOPPING)
        logger.info(f"Stopping recording ({'time limit' if forced else 'user request'})")

        try:
            artifact = await self._pipeline.stop()
        except DataError as e:
            if self._is_stale(epoch):
                return self._stale("stopping the recording")
            # Nothing was captured: there is nothing worth keeping from this run
            self._set_transcript("")
            self._clear_results()
            return self._fail(e, "Recording Error")
        except MeetMindError as e:
            if self._is_stale(epoch):
                return self._stale("stopping the recording")
            return self._fail(e, "Recording Error")

        if self._is_stale(epoch):
            return self._stale("stopping the recording")
        if artifact is None:
            # The capture ended on its own while stopping
            self._set_state(S.IDLE)
            return OperationResult.failure("device", "Recording had already ended.")

        self._set_state(S.SAVING)
        name = self.session.meeting_name.strip()
        draft = RecordingDraft.from_artifact(
            artifact,
            name=name,
            timestamp_ms=meeting_timestamp_ms(self.session.meeting_date),
            language=self.session.recording_language.value,
        )
        try:
            recording_id = await self._store.save(draft)
        except MeetMindError as e:
            if self._is_stale(epoch):
                return self._stale("saving the recording")
            return self._fail(e, "Save Failed", f"Failed to save recording: {e.message}")

        if self._is_stale(epoch):
            return self._stale("saving the recording")
        logger.info(f"Recording saved with ID: {recording_id}, duration: {artifact.duration_seconds:.1f}s")
        self._notify("Recording Saved!", f"\"{name}\" saved locally.")
        await self.refresh_recordings()

        return await self._transcribe(artifact, name, epoch)

    # ===== Upload =====

    async def upload(self, data: bytes, filename: str, mime_type: Optional[str] = None) -> OperationResult:
        """Save an audio file as a recording and transcribe it"""
        guard = self._guard_busy("uploading a file")
        if guard:
            return guard

        mime_type = mime_type or guess_mime_type(filename)
        if not mime_type or not mime_type.startswith("audio/"):
            message = "Please upload a valid audio file."
            self._notify("Invalid File Type", message, "error")
            return OperationResult.failure("validation", message)

        logger.info(f"Uploaded file selected: {filename}, Type: {mime_type}, Size: {len(data)}")
        epoch = self._epoch
        self._set_error(None)
        self._set_state(S.SAVING)

        try:
            duration = await asyncio.to_thread(probe_duration, data, mime_type)
        except RuntimeError as e:
            logger.warning(f"Could not determine duration of uploaded file: {e}")
            self._notify(
                "Upload Warning",
                "Could not automatically determine audio duration for the uploaded file. Duration will be 0.",
                "warning",
            )
            duration = 0.0

        name = recording_name_from_filename(filename)
        meeting_date = parse_filename_date(name) or date.today()
        artifact = AudioArtifact(data=data, mime_type=mime_type, duration_seconds=duration)
        draft = RecordingDraft.from_artifact(
            artifact,
            name=name,
            timestamp_ms=meeting_timestamp_ms(meeting_date),
            language=self.session.recording_language.value,
        )

        try:
            recording_id = await self._store.save(draft)
        except MeetMindError as e:
            if self._is_stale(epoch):
                return self._stale("uploading")
            return self._fail(e, "Upload Processing Failed", f"Upload processing failed: {e.message}")

        if self._is_stale(epoch):
            return self._stale("uploading")
        logger.info(f"Uploaded file saved as recording with ID: {recording_id}, duration: {duration:.1f}s")
        self._notify("Upload Saved!", f"\"{filename}\" saved locally.")
        await self.refresh_recordings()

        self._set_transcript("")
        self._clear_results()
        return await self._transcribe(artifact, name, epoch)

    async def upload_file(self, path: Union[str, Path]) -> OperationResult:
        path = Path(path)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            message = f"Could not read {path.name}: {e}"
            self._notify("Upload Failed", message, "error")
            return OperationResult.failure("external", message)
        return await self.upload(data, path.name)

    # ===== Stored recordings =====

    async def refresh_recordings(self) -> OperationResult:
        try:
            recordings = await self._store.list_metadata()
        except MeetMindError as e:
            self._notify("Error Loading Recordings", e.message, "error")
            return OperationResult.failure(e.kind, e.message)

        self.recordings = recordings
        self._signals.recordings_updated.emit(recordings)
        return OperationResult.success()

    async def select_recording(self, recording_id: int) -> OperationResult:
        """Load a stored recording into the session and transcribe it"""
        guard = self._guard_busy("loading a recording")
        if guard:
            return guard

        epoch = self._epoch
        self._set_error(None)
        self._set_state(S.LOADING_RECORDING)

        try:
            record = await self._store.get(recording_id)
            if record is None:
                raise DataError("Recording not found in local storage.")
        except MeetMindError as e:
            if self._is_stale(epoch):
                return self._stale("loading a recording")
            self.loaded_recording_id = None
            self.session.meeting_name = ""
            self.session.meeting_date = date.today()
            return self._fail(e, "Loading Failed", f"Failed to load recording: {e.message}")

        if self._is_stale(epoch):
            return self._stale("loading a recording")

        self.loaded_recording_id = record.id
        self.session.meeting_name = record.name
        self.session.meeting_date = datetime.fromtimestamp(record.timestamp_ms / 1000).date()
        if record.language:
            try:
                self.session.recording_language = RecordingLanguage(record.language)
            except ValueError:
                logger.warning(f"Recording {record.id} has unknown language {record.language}")

        self._set_transcript("")
        self._clear_results()
        self._notify("Recording Loaded!", f"\"{record.name}\" ready for transcription/analysis.")
        return await self._transcribe(record.to_artifact(), record.name, epoch)

    async def delete_recording(self, recording_id: int) -> OperationResult:
        try:
            deleted = await self._store.delete(recording_id)
        except MeetMindError as e:
            message = f"Could not delete recording: {e.message}"
            self._notify("Delete Failed", message, "error")
            return OperationResult.failure(e.kind, message)

        if not deleted:
            message = "Could not delete recording: not found."
            self._notify("Delete Failed", message, "error")
            return OperationResult.failure("data", message)

        if self.loaded_recording_id == recording_id:
            self.loaded_recording_id = None
        self._notify("Recording Deleted", "Recording has been removed from local storage.")
        await self.refresh_recordings()
        return OperationResult.success()

    # ===== Transcription =====

    async def _transcribe(self, artifact: AudioArtifact, label: str, epoch: int) -> OperationResult:
        if self.transcription.is_running:
            logger.warning(f"Transcription already running, not transcribing {label}")
            self._set_state(S.IDLE)
            return OperationResult.failure("busy", "A transcription is already in progress.")

        self._set_state(S.TRANSCRIBING)
        try:
            transcript = await self.transcription.run(artifact, label)
        except MeetMindError as e:
            if self._is_stale(epoch):
                return self._stale("transcribing")
            return self._fail(e, "Transcription Failed")

        if self._is_stale(epoch):
            return self._stale("transcribing")
        if transcript is None:
            self._set_state(S.IDLE)
            return OperationResult.failure("busy", "A transcription is already in progress.")

        self._set_transcript(transcript)
        self._set_state(S.IDLE)
        self._notify("Transcription Complete!", f"\"{label}\" is ready for analysis.")
        return OperationResult.success()

    # ===== Analysis =====

    async def process(self) -> OperationResult:
        """Run the analysis pipeline on the current transcript"""
        guard = self._guard_busy("processing")
        if guard:
            return guard

        if not self.transcript.strip():
            self._set_error("Please record, upload, or load a transcript first.")
            self._notify("Error", "No transcript provided.", "error")
            return OperationResult.failure("data", "No transcript provided.")

        epoch = self._epoch
        language = self.session.analysis_language
        self._set_state(S.PROCESSING)
        self._set_error(None)
        self._clear_results()
        logger.info(f"Analyzing transcript in {language.value.upper()}")

        try:
            result = await self.analysis_pipeline.run(self.transcript, language)
        except MeetMindError as e:
            if self._is_stale(epoch):
                return self._stale("processing")
            return self._fail(e, "Processing Error", f"Processing failed: {e.message}")

        if self._is_stale(epoch):
            return self._stale("processing")

        self._set_analysis(result)
        self._set_state(S.DONE)
        self._notify("Processing Complete!", "Meeting insights generated successfully.")
        return OperationResult.success()

    # ===== Export =====

    async def export(self, format: Union[str, ExportFormat]) -> OperationResult:
        guard = self._guard_busy("exporting")
        if guard:
            return guard

        try:
            format = ExportFormat(format)
        except ValueError:
            return OperationResult.failure("validation", f"Unsupported export format: {format}")

        if self.analysis is None or not self.analysis.is_complete:
            message = "Please analyze the transcript first before exporting."
            self._notify("Analysis Not Ready", message, "error")
            return OperationResult.failure("validation", message)

        epoch = self._epoch
        self._set_state(S.GENERATING_EXPORT)
        self._set_error(None)
        self._set_export(None)

        try:
            artifact = await self.export_stage.generate(
                self.analysis, format, self.transcript, self.analysis.language,
            )
        except MeetMindError as e:
            if self._is_stale(epoch):
                return self._stale("exporting")
            return self._fail(e, "Export Generation Failed", f"Failed to generate export content: {e.message}")

        if self._is_stale(epoch):
            return self._stale("exporting")

        self._set_export(artifact)
        if format.is_print:
            self.export_stage.start_print(
                artifact,
                self.session.meeting_name,
                self.session.meeting_date,
                on_error=self._on_print_error,
            )
            self._set_state(S.DONE)
            self._notify("Print Started", "The report is being prepared as a PDF.")
        else:
            self._set_state(S.EXPORT_READY)
            self._notify("Export Content Ready!", f"Markdown content for {format.value.upper()} is generated.")
        return OperationResult.success()

    def _on_print_error(self, message: str):
        self._notify("Print Error", f"Could not print the report: {message}", "error")

    # ===== Reset =====

    def reset(self) -> OperationResult:
        """
        Start over. Not allowed while recording.

        Clears everything except the recording language, and ends in idle or
        permission_denied depending on the known permission.
        """
        if self._state == S.RECORDING:
            message = "Please stop the recording before resetting."
            self._notify("Cannot Reset", message, "warning")
            return OperationResult.failure("busy", message)

        self._epoch += 1
        recording_language = self.session.recording_language
        self.session = MeetingSession(
            recording_language=recording_language,
            analysis_language=self._default_analysis_language,
        )
        self._set_transcript("")
        self._clear_results()
        self.loaded_recording_id = None
        self.field_errors = {}
        self._on_live_caption("")
        self._on_remaining_time(None)
        self._set_error(None)
        self._pipeline.reset()

        target = S.PERMISSION_DENIED if self._gate.has_permission is False else S.IDLE
        self._set_state(target)
        self._notify("Reset Complete", "Ready for a new meeting.")
        return OperationResult.success()


# ===== Wiring =====

def create_meeting_controller(config_manager=None, signals: Optional[AppSignals] = None) -> MeetingController:
    """Build a controller on the real devices and services described by the config"""
    from .audio_recorder import SoundDeviceCapture
    from .claude_flows import ClaudeMeetingFlows
    from .config import get_config_manager
    from .export import QtPrintFlow
    from .permissions import SoundDevicePermissionProbe
    from .store import DirectoryRecordingStore
    from .transcriber import WhisperCaptionSource

    config_manager = config_manager or get_config_manager()
    config = config_manager.config

    device = SoundDeviceCapture(
        sample_rate=config.audio_sample_rate,
        channels=config.audio_channels,
        device_index=config.audio_device_index,
    )

    caption_source = None
    if config.live_captions_enabled:
        caption_source = WhisperCaptionSource(
            model_size=config.caption_model,
            device=config.transcription_device,
            compute_type=config.transcription_compute_type,
            source_sample_rate=config.audio_sample_rate,
            buffer_seconds=config.caption_buffer_seconds,
        )
        device.set_audio_data_callback(caption_source.feed_audio)

    pipeline = CapturePipeline(
        device,
        caption_source,
        mime_types=config.audio_mime_types,
        time_limit_seconds=config.recording_time_limit_seconds,
        tick_seconds=config.remaining_time_tick_seconds,
        chunk_interval_seconds=config.chunk_interval_seconds,
    )
    gate = CapabilityGate(SoundDevicePermissionProbe(), device)
    store = DirectoryRecordingStore(config_manager.get_storage_directory())

    return MeetingController(
        pipeline,
        gate,
        store,
        ClaudeMeetingFlows(),
        print_flow=QtPrintFlow(config_manager.get_export_directory()),
        signals=signals,
        default_analysis_language=AnalysisLanguage(config.analysis_language),
        base_language=config.base_language,
    )


# Singleton instance
_controller_instance: Optional[MeetingController] = None


def get_meeting_controller() -> MeetingController:
    """Get the singleton meeting controller"""
    global _controller_instance
    if _controller_instance is None:
        _controller_instance = create_meeting_controller()
    return _controller_instance
