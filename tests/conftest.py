"""
Pytest fixtures for MeetMind tests.
"""

import sys
import tempfile
from datetime import date
from pathlib import Path
import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from meetmind.core.capture import CapturePipeline
from meetmind.core.controller import MeetingController
from meetmind.core.models import AnalysisLanguage
from meetmind.core.permissions import CapabilityGate, PermissionStatus
from meetmind.signals import AppSignals

from fakes import (
    FakeCaptionSource,
    FakeCaptureDevice,
    FakeFlows,
    FakePermissionProbe,
    FakePrintFlow,
    InMemoryRecordingStore,
)


class SignalRecorder:
    """Collects everything the controller publishes."""

    def __init__(self, signals: AppSignals):
        self.states = []
        self.notifications = []
        self.captions = []
        self.remaining = []
        self.recordings = []
        signals.state_changed.connect(self.states.append)
        signals.notification.connect(lambda title, message, level: self.notifications.append((title, message, level)))
        signals.live_caption_updated.connect(self.captions.append)
        signals.remaining_time_updated.connect(self.remaining.append)
        signals.recordings_updated.connect(self.recordings.append)

    def errors(self):
        return [n for n in self.notifications if n[2] == "error"]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def signals():
    return AppSignals()


@pytest.fixture
def recorder(signals):
    return SignalRecorder(signals)


@pytest.fixture
def device():
    return FakeCaptureDevice()


@pytest.fixture
def caption_source():
    return FakeCaptionSource()


@pytest.fixture
def probe():
    return FakePermissionProbe(status=PermissionStatus.PROMPT)


@pytest.fixture
def flows():
    return FakeFlows()


@pytest.fixture
def store():
    return InMemoryRecordingStore()


@pytest.fixture
def print_flow():
    return FakePrintFlow()


@pytest.fixture
def make_controller(device, caption_source, probe, flows, store, print_flow, signals):
    """Factory for a controller on fakes, with a valid session filled in."""

    def _make(time_limit=600.0, tick=1.0, chunk_interval=1.0, analysis_language=AnalysisLanguage.EN):
        pipeline = CapturePipeline(
            device,
            caption_source,
            time_limit_seconds=time_limit,
            tick_seconds=tick,
            chunk_interval_seconds=chunk_interval,
        )
        gate = CapabilityGate(probe, device)
        controller = MeetingController(
            pipeline,
            gate,
            store,
            flows,
            print_flow=print_flow,
            signals=signals,
            default_analysis_language=analysis_language,
        )
        controller.set_meeting_name("Weekly sync")
        controller.set_meeting_date(date(2026, 3, 2))
        return controller

    return _make
