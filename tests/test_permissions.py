"""
Tests for the microphone capability gate.
"""

import asyncio

from meetmind.core.errors import DeviceError, DeviceErrorKind, MicrophonePermissionError
from meetmind.core.permissions import CapabilityGate, PermissionStatus, SoundDevicePermissionProbe

from fakes import FakeCaptureDevice, FakePermissionProbe


def make_gate(status=PermissionStatus.PROMPT):
    probe = FakePermissionProbe(status=status)
    device = FakeCaptureDevice()
    return CapabilityGate(probe, device), probe, device


class TestQuery:
    def test_granted_sets_permission(self):
        gate, _, _ = make_gate(PermissionStatus.GRANTED)
        assert asyncio.run(gate.query()) == PermissionStatus.GRANTED
        assert gate.has_permission is True

    def test_prompt_is_unknown(self):
        gate, _, _ = make_gate(PermissionStatus.PROMPT)
        assert asyncio.run(gate.query()) == PermissionStatus.UNKNOWN
        assert gate.has_permission is None

    def test_probe_failure_is_unknown(self):
        """Platforms that cannot probe are treated as undetermined."""
        gate, probe, _ = make_gate()
        probe.query_error = NotImplementedError("no permissions API")
        assert asyncio.run(gate.query()) == PermissionStatus.UNKNOWN
        assert gate.has_permission is None


class TestSoundDeviceProbe:
    def test_reports_unknown_without_raising(self):
        probe = SoundDevicePermissionProbe()
        assert asyncio.run(probe.query()) == PermissionStatus.UNKNOWN
        assert probe.subscribe(lambda status: None) is False

    def test_gate_opens_device_to_find_out(self):
        device = FakeCaptureDevice()
        gate = CapabilityGate(SoundDevicePermissionProbe(), device)
        assert asyncio.run(gate.request()) is True
        assert device.open_count == 1
        assert device.release_count == 1


class TestRequest:
    def test_granted_does_not_open_device(self):
        gate, _, device = make_gate(PermissionStatus.GRANTED)
        assert asyncio.run(gate.request()) is True
        assert device.open_count == 0

    def test_denied_does_not_open_device(self):
        gate, _, device = make_gate(PermissionStatus.DENIED)
        assert asyncio.run(gate.request()) is False
        assert device.open_count == 0
        assert gate.has_permission is False
        assert gate.failure_reason == CapabilityGate.DENIED_MESSAGE

    def test_unknown_opens_and_releases_device(self):
        gate, _, device = make_gate()
        assert asyncio.run(gate.request()) is True
        assert device.open_count == 1
        assert device.release_count == 1
        assert not device.is_open
        assert gate.has_permission is True

    def test_access_refused(self):
        gate, _, device = make_gate()
        device.open_error = MicrophonePermissionError("denied by OS")
        assert asyncio.run(gate.request()) is False
        assert gate.has_permission is False
        assert "denied" in gate.failure_reason
        assert device.release_count == 1

    def test_no_device(self):
        gate, _, device = make_gate()
        device.open_error = DeviceError("none", DeviceErrorKind.NOT_FOUND)
        assert asyncio.run(gate.request()) is False
        assert gate.failure_reason.startswith("No microphone found")

    def test_device_busy(self):
        gate, _, device = make_gate()
        device.open_error = DeviceError("busy", DeviceErrorKind.BUSY)
        assert asyncio.run(gate.request()) is False
        assert "already in use" in gate.failure_reason

    def test_generic_failure(self):
        gate, _, device = make_gate()
        device.open_error = RuntimeError("driver crashed")
        assert asyncio.run(gate.request()) is False
        assert "driver crashed" in gate.failure_reason


class TestWatch:
    def test_listener_receives_changes(self):
        gate, probe, _ = make_gate(PermissionStatus.GRANTED)
        seen = []
        assert gate.watch(seen.append) is True

        probe.change(PermissionStatus.DENIED)
        assert seen == [False]
        assert gate.has_permission is False

        probe.change(PermissionStatus.GRANTED)
        assert seen == [False, True]
        assert gate.has_permission is True

    def test_unsupported_platform(self):
        probe = FakePermissionProbe(supports_changes=False)
        gate = CapabilityGate(probe, FakeCaptureDevice())
        assert gate.watch(lambda granted: None) is False
