"""Recording persistence"""

import asyncio
import json
import shutil
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional
from loguru import logger

from .errors import ExternalCallError
from .models import RecordingDraft, RecordingMetadata, RecordingRecord


class RecordingStore(ABC):
    """
    Key-value persistence for recordings.

    Ids are assigned by the store, start at 1, and are never reused after a
    delete. Every operation may fail with ExternalCallError.
    """

    @abstractmethod
    async def save(self, draft: RecordingDraft) -> int:
        """Persist a new recording and return its id"""

    @abstractmethod
    async def list_metadata(self) -> List[RecordingMetadata]:
        """All recordings without audio bytes, newest first"""

    @abstractmethod
    async def get(self, recording_id: int) -> Optional[RecordingRecord]:
        """Full record including audio, or None if not found"""

    @abstractmethod
    async def delete(self, recording_id: int) -> bool:
        """Remove a recording. Returns False if it did not exist."""


class DirectoryRecordingStore(RecordingStore):
    """
    One folder per recording under ``base_dir``:

        base_dir/
            index.json          {"next_id": N}
            1/recording.json    metadata
            1/audio.bin         raw audio bytes
    """

    INDEX_FILE = "index.json"
    METADATA_FILE = "recording.json"
    AUDIO_FILE = "audio.bin"

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self._lock = threading.Lock()

    def _recording_dir(self, recording_id: int) -> Path:
        return self.base_dir / str(recording_id)

    def _read_next_id(self) -> int:
        index_path = self.base_dir / self.INDEX_FILE
        if not index_path.exists():
            # Never reuse an id that is still on disk
            existing = [int(p.name) for p in self.base_dir.iterdir() if p.is_dir() and p.name.isdigit()]
            return max(existing, default=0) + 1
        with open(index_path, "r", encoding="utf-8") as f:
            return int(json.load(f)["next_id"])

    def _write_next_id(self, next_id: int):
        index_path = self.base_dir / self.INDEX_FILE
        tmp_path = index_path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump({"next_id": next_id}, f)
        tmp_path.replace(index_path)

    def _save_sync(self, draft: RecordingDraft) -> int:
        with self._lock:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            recording_id = self._read_next_id()
            self._write_next_id(recording_id + 1)

            record_dir = self._recording_dir(recording_id)
            record_dir.mkdir(parents=True, exist_ok=False)

            (record_dir / self.AUDIO_FILE).write_bytes(draft.audio)
            metadata = RecordingMetadata(id=recording_id, **draft.model_dump(exclude={"audio"}))
            with open(record_dir / self.METADATA_FILE, "w", encoding="utf-8") as f:
                json.dump(metadata.model_dump(), f, indent=2, ensure_ascii=False)

        logger.info(f"Saved recording {recording_id}: {draft.name} ({len(draft.audio)} bytes)")
        return recording_id

    def _load_metadata(self, record_dir: Path) -> Optional[RecordingMetadata]:
        metadata_path = record_dir / self.METADATA_FILE
        if not metadata_path.exists():
            return None
        try:
            with open(metadata_path, "r", encoding="utf-8") as f:
                return RecordingMetadata(**json.load(f))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Skipping unreadable recording in {record_dir}: {e}")
            return None

    def _list_sync(self) -> List[RecordingMetadata]:
        if not self.base_dir.exists():
            return []
        with self._lock:
            records = []
            for item in self.base_dir.iterdir():
                if item.is_dir() and item.name.isdigit():
                    metadata = self._load_metadata(item)
                    if metadata:
                        records.append(metadata)
        records.sort(key=lambda r: (r.timestamp_ms, r.id), reverse=True)
        return records

    def _get_sync(self, recording_id: int) -> Optional[RecordingRecord]:
        record_dir = self._recording_dir(recording_id)
        with self._lock:
            metadata = self._load_metadata(record_dir)
            audio_path = record_dir / self.AUDIO_FILE
            if metadata is None or not audio_path.exists():
                return None
            audio = audio_path.read_bytes()
        return RecordingRecord(**metadata.model_dump(), audio=audio)

    def _delete_sync(self, recording_id: int) -> bool:
        record_dir = self._recording_dir(recording_id)
        with self._lock:
            if not record_dir.exists():
                return False
            shutil.rmtree(record_dir)
        logger.info(f"Deleted recording {recording_id}")
        return True

    async def _run(self, action: str, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except (OSError, KeyError, ValueError) as e:
            logger.error(f"Failed to {action}: {e}")
            raise ExternalCallError(f"Failed to {action}: {e}") from e

    async def save(self, draft: RecordingDraft) -> int:
        return await self._run("save recording", self._save_sync, draft)

    async def list_metadata(self) -> List[RecordingMetadata]:
        return await self._run("load recordings", self._list_sync)

    async def get(self, recording_id: int) -> Optional[RecordingRecord]:
        return await self._run("load recording", self._get_sync, recording_id)

    async def delete(self, recording_id: int) -> bool:
        return await self._run("delete recording", self._delete_sync, recording_id)
