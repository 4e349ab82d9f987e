"""Helpers for uploaded audio files"""

import io
import mimetypes
import re
from datetime import date
from pathlib import Path
from typing import Optional
from loguru import logger

try:
    from pydub import AudioSegment
except ImportError:
    AudioSegment = None
    logger.warning("pydub not installed. Uploaded audio duration will not be detected.")


FILENAME_DATE_PATTERN = re.compile(
    r"(\d{4}-\d{2}-\d{2}|\d{2}[-/]\d{2}[-/]\d{2,4}|\d{1,2}[-/]\d{1,2}[-/]\d{2,4})"
)

_EXTRA_AUDIO_TYPES = {
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
    ".opus": "audio/ogg",
    ".m4a": "audio/mp4",
    ".flac": "audio/flac",
    ".wav": "audio/wav",
}


def guess_mime_type(filename: str) -> Optional[str]:
    """MIME type from the file extension, or None if unknown"""
    suffix = Path(filename).suffix.lower()
    if suffix in _EXTRA_AUDIO_TYPES:
        return _EXTRA_AUDIO_TYPES[suffix]
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type


def recording_name_from_filename(filename: str) -> str:
    """File name without its extension"""
    name = Path(filename).name
    stem = name[: name.rfind(".")] if "." in name[1:] else name
    return stem or name


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_filename_date(name: str) -> Optional[date]:
    """
    Find a meeting date in a file name.

    Supports ``YYYY-MM-DD`` and day/month forms separated by ``-`` or ``/``.
    Ambiguous ``NN-NN-YYYY`` dates are read month first, then day first.
    Two-digit years are taken as 20YY.
    """
    match = FILENAME_DATE_PATTERN.search(name)
    if not match:
        return None

    parts = re.split(r"[-/]", match.group(0))
    if len(parts) != 3:
        return None
    try:
        a, b, c = (int(p) for p in parts)
    except ValueError:
        return None

    if len(parts[0]) == 4:
        return _safe_date(a, b, c)

    year = c if len(parts[2]) == 4 else 2000 + c
    return _safe_date(year, a, b) or _safe_date(year, b, a)


def probe_duration(data: bytes, mime_type: Optional[str] = None) -> float:
    """
    Duration of an audio file in seconds.

    Raises:
        RuntimeError: if pydub is missing or the audio cannot be decoded
    """
    if AudioSegment is None:
        raise RuntimeError("pydub not installed")

    audio_format = None
    if mime_type:
        subtype = mime_type.split(";")[0].split("/")[-1].lower()
        audio_format = {"mpeg": "mp3", "x-wav": "wav", "mp4": "mp4", "x-m4a": "mp4"}.get(subtype, subtype)

    try:
        segment = AudioSegment.from_file(io.BytesIO(data), format=audio_format)
    except Exception as e:
        raise RuntimeError(f"Could not decode audio: {e}") from e
    return len(segment) / 1000.0
