"""
Kanban task storage backends.

The board is persisted as one JSON array ("the kanban file"). There is no
partial update: callers load the full list, modify it and save it back.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Dict, Any

from .schema import KanbanTask

logger = logging.getLogger(__name__)


class KanbanStore:
    """Load/save contract shared by all backends."""

    def load(self) -> List[KanbanTask]:
        raise NotImplementedError

    def save(self, tasks: List[KanbanTask]) -> None:
        raise NotImplementedError


def _normalize_rows(rows: Any) -> List[KanbanTask]:
    if not isinstance(rows, list):
        return []
    return [KanbanTask.from_dict(row) for row in rows if isinstance(row, dict)]


class JsonFileKanbanStore(KanbanStore):
    """JSON-file-backed store."""

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> List[KanbanTask]:
        """Read all tasks. Missing or unparseable file → empty board."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning(f"Cannot read kanban file {self.path}: {e}")
            return []

        try:
            rows = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Kanban file {self.path} is not valid JSON: {e}")
            return []

        if not isinstance(rows, list):
            logger.warning(f"Kanban file {self.path} does not hold a list")
        return _normalize_rows(rows)

    def save(self, tasks: List[KanbanTask]) -> None:
        """Overwrite the whole file. I/O errors propagate."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([t.to_dict() for t in tasks], indent=2, ensure_ascii=False)

        # Write to a sibling temp file, then swap it in
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=".kanban-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class MemoryKanbanStore(KanbanStore):
    """In-memory store for tests and embedding."""

    def __init__(self, tasks: Optional[List[Dict[str, Any]]] = None):
        self._rows: List[Dict[str, Any]] = [dict(t) for t in (tasks or [])]
        self.save_count = 0

    def load(self) -> List[KanbanTask]:
        return _normalize_rows(self._rows)

    def save(self, tasks: List[KanbanTask]) -> None:
        self._rows = [t.to_dict() for t in tasks]
        self.save_count += 1

    @property
    def rows(self) -> List[Dict[str, Any]]:
        """Snapshot of the stored wire-form rows."""
        return [dict(r) for r in self._rows]
