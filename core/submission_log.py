# core/submission_log.py
"""
Append-only JSON log of contact submissions

The whole file is one JSON array. Every append reads the array, adds one
record and rewrites the file through a temporary file in the same directory.
Appends from one process are serialized; separate processes are not.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)


class SubmissionLogError(Exception):
    """The submissions file could not be read or written"""
    pass


class SubmissionLog:
    """File-backed array of submission records"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def read_all(self) -> List[Dict[str, Any]]:
        """All records in insertion order; a missing or blank file is empty"""
        try:
            if not self.path.exists():
                return []
            data = self.path.read_text(encoding='utf-8')
        except OSError as e:
            raise SubmissionLogError(f"Cannot read {self.path}: {e}") from e

        if not data.strip():
            return []

        try:
            records = json.loads(data)
        except json.JSONDecodeError as e:
            raise SubmissionLogError(f"Corrupt submissions file {self.path}: {e}") from e

        if not isinstance(records, list):
            raise SubmissionLogError(f"Submissions file {self.path} does not hold a JSON array")
        return records

    def append(self, record: Dict[str, Any]) -> None:
        """Add one record at the end of the log"""
        with self._lock:
            records = self.read_all()
            records.append(record)
            self._write(records)
        logger.info(f"Saved to file: {record.get('id')}")

    def try_append(self, record: Dict[str, Any]) -> bool:
        """append() that logs failures instead of raising them"""
        try:
            self.append(record)
            return True
        except SubmissionLogError as e:
            logger.error(f"Error saving submission {record.get('id')}: {e}")
            return False

    def recent(self, limit: int = 20) -> List[Dict[str, Any]]:
        """The newest `limit` records, newest first"""
        if limit <= 0:
            return []
        return list(reversed(self.read_all()[-limit:]))

    def count(self) -> int:
        return len(self.read_all())

    def _write(self, records: List[Dict[str, Any]]) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix='.tmp'
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(records, fh, indent=2, ensure_ascii=False, default=str)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise SubmissionLogError(f"Cannot write {self.path}: {e}") from e
