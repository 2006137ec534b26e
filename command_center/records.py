"""
JSON document collections for directives, feature requests and recovered tasks.

Each collection is one file holding {"<key>": [record, ...]}. Records are
free-form objects; only id and timestamps are managed here.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from .errors import RecordNotFound, ValidationError
from .kanban.schema import make_task_id

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RecordCollection:
    """A list of records under one key of a JSON file."""

    def __init__(self, path: str, key: str, id_prefix: str,
                 kind: str = "Record", stamp_updates: bool = False):
        self.path = Path(path)
        self.key = key
        self.id_prefix = id_prefix
        self.kind = kind
        self.stamp_updates = stamp_updates

    def _read(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {self.key: []}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Cannot read {self.path}: {e}")
            return {self.key: []}
        if not isinstance(data, dict) or not isinstance(data.get(self.key), list):
            return {self.key: []}
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    def list(self) -> List[Dict[str, Any]]:
        return self._read()[self.key]

    def add(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Append a record with a generated id and creation timestamp."""
        if not isinstance(fields, dict):
            raise ValidationError("request body must be a JSON object")
        data = self._read()
        now = _now()
        record = {**fields, "id": make_task_id(self.id_prefix), "createdAt": now}
        if self.stamp_updates:
            record["updatedAt"] = now
        data[self.key].append(record)
        self._write(data)
        return record

    def get(self, record_id: Any) -> Dict[str, Any]:
        """One record by id. Raises RecordNotFound."""
        for record in self.list():
            if isinstance(record, dict) and record.get("id") == record_id:
                return record
        raise RecordNotFound(self.kind, str(record_id))

    def update(self, record_id: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Merge changes into one record. Raises RecordNotFound."""
        data = self._read()
        records = data[self.key]
        for i, record in enumerate(records):
            if isinstance(record, dict) and record.get("id") == record_id:
                merged = {**record, **changes}
                if self.stamp_updates:
                    merged["updatedAt"] = _now()
                records[i] = merged
                self._write(data)
                return merged
        raise RecordNotFound(self.kind, str(record_id))


def directives(data_dir: str) -> RecordCollection:
    return RecordCollection(str(Path(data_dir) / "chairman-directives.json"),
                            "directives", "directive", kind="Directive", stamp_updates=True)


def feature_requests(data_dir: str) -> RecordCollection:
    return RecordCollection(str(Path(data_dir) / "feature-requests.json"),
                            "featureRequests", "feature", kind="Feature request")


def recovered_tasks(data_dir: str) -> RecordCollection:
    return RecordCollection(str(Path(data_dir) / "recovered-tasks.json"),
                            "recoveredTasks", "task", kind="Task")
