"""
Tests for the live caption side-channel.
"""

from meetmind.core.captions import LiveCaptioner
from meetmind.core.errors import DeviceError, MicrophonePermissionError

from fakes import FakeCaptionSource


def make_captioner(source=None, active=True):
    source = source or FakeCaptionSource()
    state = {"active": active}
    texts = []
    fatal = []
    captioner = LiveCaptioner(
        source,
        "en-US",
        is_active=lambda: state["active"],
        on_text=texts.append,
        on_fatal=fatal.append,
    )
    return captioner, source, state, texts, fatal


class TestPreview:
    def test_interim_then_final(self):
        captioner, source, _, texts, _ = make_captioner()
        assert captioner.start() is True

        source.emit_result("hello", is_final=False)
        assert captioner.text == "hello"

        source.emit_result("hello everyone", is_final=True)
        source.emit_result("next", is_final=False)
        assert captioner.text == "hello everyone next"
        assert texts[-1] == "hello everyone next"

    def test_unsupported_source(self):
        captioner, source, _, texts, _ = make_captioner(FakeCaptionSource(supported=False))
        assert captioner.start() is False
        assert texts == [LiveCaptioner.UNSUPPORTED_PREVIEW]
        assert source.start_count == 0

    def test_no_source(self):
        captioner = LiveCaptioner(None, "en-US", is_active=lambda: True)
        assert captioner.start() is False

    def test_start_failure_is_swallowed(self):
        source = FakeCaptionSource()
        source.start_error = RuntimeError("service down")
        captioner, _, _, _, fatal = make_captioner(source)
        assert captioner.start() is False
        assert fatal == []


class TestErrors:
    def test_no_speech_is_silent(self):
        captioner, source, _, texts, fatal = make_captioner()
        captioner.start()
        source.emit_error("no-speech")
        assert fatal == []
        assert texts == []
        assert captioner.is_running

    def test_permission_error_is_fatal(self):
        captioner, source, _, _, fatal = make_captioner()
        captioner.start()
        source.emit_error("not-allowed")
        assert len(fatal) == 1
        assert isinstance(fatal[0], MicrophonePermissionError)
        assert not captioner.is_running
        assert source.stop_count == 1

    def test_language_not_supported_is_fatal(self):
        captioner, source, _, _, fatal = make_captioner()
        captioner.start()
        source.emit_error("language-not-supported")
        assert isinstance(fatal[0], DeviceError)
        assert "en-US" in fatal[0].message

    def test_network_error_drops_preview_quietly(self):
        captioner, source, _, _, fatal = make_captioner()
        captioner.start()
        source.emit_error("network")
        assert fatal == []
        assert not captioner.is_running


class TestRestart:
    def test_restarts_after_disconnect_while_active(self):
        captioner, source, _, _, _ = make_captioner()
        captioner.start()
        source.disconnect()
        assert source.start_count == 2
        assert captioner.restart_count == 1
        assert captioner.is_running

    def test_no_restart_once_capture_inactive(self):
        captioner, source, state, _, _ = make_captioner()
        captioner.start()
        state["active"] = False
        source.disconnect()
        assert source.start_count == 1
        assert not captioner.is_running

    def test_no_restart_after_stop(self):
        captioner, source, _, _, _ = make_captioner()
        captioner.start()
        captioner.stop()
        assert source.start_count == 1
        assert source.stop_count == 1

        # Stopping twice is harmless
        captioner.stop()
        assert source.stop_count == 1

    def test_results_after_stop_are_ignored(self):
        captioner, source, _, texts, _ = make_captioner()
        captioner.start()
        source.emit_result("before", is_final=True)
        captioner.stop()
        captioner._handle_result("after", True)
        assert captioner.text == "before "
