"""Application-wide signals for cross-component communication"""

from PySide6.QtCore import QObject, Signal


class AppSignals(QObject):
    """
    Signals through which the controller publishes observable state.
    Use get_app_signals() to access the shared instance.
    """

    # ===== Controller state =====
    state_changed = Signal(str)  # ProcessingState value
    busy_state_changed = Signal(bool)
    error_changed = Signal(object)  # error message or None

    # ===== Permission =====
    permission_changed = Signal(object)  # True / False / None (unknown)

    # ===== Recording =====
    live_caption_updated = Signal(str)
    remaining_time_updated = Signal(object)  # seconds left, or None when not recording

    # ===== Results =====
    transcript_changed = Signal(str)
    analysis_updated = Signal(object)  # AnalysisResult or None
    export_ready = Signal(object)  # ExportArtifact or None

    # ===== Recordings store =====
    recordings_updated = Signal(object)  # list of RecordingMetadata

    # ===== UI =====
    notification = Signal(str, str, str)  # (title, message, level)


# Module-level singleton instance
_app_signals_instance: AppSignals | None = None


def get_app_signals() -> AppSignals:
    """Get the singleton AppSignals instance"""
    global _app_signals_instance
    if _app_signals_instance is None:
        _app_signals_instance = AppSignals()
    return _app_signals_instance
