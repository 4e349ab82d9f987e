"""MeetMind - record, transcribe and analyze meetings"""

__version__ = "0.1.0"
