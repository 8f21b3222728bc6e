"""Meeting history storage."""

import os
import json
import logging
from pathlib import Path
from datetime import datetime
from typing import List, Optional

from ..models.session import SessionRecord, new_record_id


logger = logging.getLogger(__name__)

HISTORY_FILENAME = "meeting_history.json"


class HistoryStore:
    """Persists analyzed meetings as a JSON list in the data directory."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize history store with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.history_file = self.data_dir / HISTORY_FILENAME

        logger.info(f"HistoryStore initialized with file: {self.history_file}")

    def save_record(self, transcript: str, analysis: str, now: Optional[datetime] = None) -> SessionRecord:
        """Append a finished meeting to the history.

        Args:
            transcript: Final transcript text
            analysis: Analysis produced for the transcript
            now: Record timestamp (defaults to the current time)

        Returns:
            The stored record
        """
        now = now or datetime.now()
        record = SessionRecord(
            id=new_record_id(now),
            timestamp=now,
            transcript=transcript,
            analysis=analysis,
        )

        records = self.list_records()
        records.append(record)
        self._write([r.to_dict() for r in records])

        logger.info(f"Meeting saved to history: {record.id} ({len(records)} total)")
        return record

    def list_records(self) -> List[SessionRecord]:
        """Load all stored meetings, oldest first.

        A missing file is an empty history. An unreadable file is logged
        and also treated as empty.
        """
        if not self.history_file.exists():
            return []

        try:
            with open(self.history_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return [SessionRecord.from_dict(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable history file {self.history_file}: {e}")
            return []

    def get_record(self, record_id: str) -> Optional[SessionRecord]:
        for record in self.list_records():
            if record.id == record_id:
                return record
        return None

    def _write(self, data: list) -> None:
        tmp_file = self.history_file.with_name(self.history_file.name + ".tmp")
        try:
            with open(tmp_file, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_file, self.history_file)
        except Exception as e:
            logger.error(f"Error saving meeting history: {e}")
            raise
