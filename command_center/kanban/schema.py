"""
Kanban task schema.

Task lifecycle:
  Backlog → In Progress → Done   (moved freely by drag-and-drop)

Every record carries a source tag that decides what the sync engine may do
with it: manual records are never touched by sync, todo/active_context
records are discovered from markdown notes, subagent records are rebuilt
from live agent status on every pass.
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, List, Dict, Any
import time
import uuid


class TaskStatus(Enum):
    """Board columns."""
    BACKLOG = "backlog"
    INPROGRESS = "inprogress"
    DONE = "done"

    @classmethod
    def from_str(cls, value: Any) -> "TaskStatus":
        """Collapse legacy states: blocked → inprogress, unknown → backlog."""
        raw = str(value or "").strip().lower()
        if raw == "done":
            return cls.DONE
        if raw in ("inprogress", "blocked"):
            return cls.INPROGRESS
        return cls.BACKLOG


class TaskPriority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_str(cls, value: Any) -> "TaskPriority":
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.MEDIUM


class Project(Enum):
    """Project groupings shown as card colors."""
    LESSONCRAFT = "LessonCraft"
    GALLERY = "JD Gallery"
    INFRASTRUCTURE = "Infrastructure"
    CONTENT = "Content"
    OTHER = "Other"

    @classmethod
    def from_str(cls, value: Any) -> "Project":
        try:
            return cls(str(value or "").strip())
        except ValueError:
            return cls.OTHER


class TaskSource(Enum):
    """Where the task originated."""
    MANUAL = "manual"                  # created from the board
    TODO = "todo"                      # discovered in TODO.md
    ACTIVE_CONTEXT = "active_context"  # discovered in ACTIVE_CONTEXT.md
    SUBAGENT = "subagent"              # live agent currently working

    @classmethod
    def from_str(cls, value: Any) -> "TaskSource":
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.MANUAL


# Id prefix and default owner per source
SOURCE_ID_PREFIX = {
    TaskSource.MANUAL: "manual",
    TaskSource.TODO: "todo",
    TaskSource.ACTIVE_CONTEXT: "active",
    TaskSource.SUBAGENT: "subagent",
}

SOURCE_DEFAULT_OWNER = {
    TaskSource.MANUAL: "Manual",
    TaskSource.TODO: "System",
    TaskSource.ACTIVE_CONTEXT: "Active Context",
    TaskSource.SUBAGENT: "Subagent",
}

COLUMNS = [
    {"id": TaskStatus.BACKLOG.value, "title": "Backlog", "color": "border-slate-600"},
    {"id": TaskStatus.INPROGRESS.value, "title": "In Progress", "color": "border-amber-500"},
    {"id": TaskStatus.DONE.value, "title": "Done", "color": "border-green-500"},
]

PROJECT_COLORS = {
    Project.LESSONCRAFT.value: "border-amber-500 bg-amber-500/10",
    Project.GALLERY.value: "border-green-500 bg-green-500/10",
    Project.INFRASTRUCTURE.value: "border-blue-500 bg-blue-500/10",
    Project.CONTENT.value: "border-purple-500 bg-purple-500/10",
    Project.OTHER.value: "border-slate-500 bg-slate-500/10",
}


def utc_now() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def next_stamp(prior: Optional[str]) -> str:
    """Current time, or one millisecond past prior when the clock has not moved on."""
    now = utc_now()
    if not prior or now > prior:
        return now
    try:
        last = datetime.fromisoformat(prior.replace("Z", "+00:00"))
    except ValueError:
        return now
    bumped = (last + timedelta(milliseconds=1)).astimezone(timezone.utc)
    return bumped.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_task_id(prefix: str) -> str:
    """Sortable unique task ID: <prefix>-<epoch ms>-<random hex>."""
    ts = int(time.time() * 1000)
    rand = uuid.uuid4().hex[:9]
    return f"{prefix}-{ts}-{rand}"


@dataclass
class TaskCandidate:
    """Partial task produced by extraction or projection, before merge."""
    title: str
    source: TaskSource
    status: TaskStatus = TaskStatus.BACKLOG
    priority: TaskPriority = TaskPriority.MEDIUM
    project: Project = Project.OTHER
    owner: Optional[str] = None
    description: Optional[str] = None

    def materialize(self) -> "KanbanTask":
        """Assign id, owner default and timestamps."""
        now = utc_now()
        return KanbanTask(
            id=make_task_id(SOURCE_ID_PREFIX[self.source]),
            title=self.title,
            status=self.status,
            priority=self.priority,
            project=self.project,
            owner=self.owner or SOURCE_DEFAULT_OWNER[self.source],
            source=self.source,
            created_at=now,
            updated_at=now,
            description=self.description,
        )


@dataclass
class KanbanTask:
    """One card on the board."""

    id: str
    title: str
    status: TaskStatus = TaskStatus.BACKLOG
    priority: TaskPriority = TaskPriority.MEDIUM
    project: Project = Project.OTHER
    owner: str = "System"
    source: TaskSource = TaskSource.MANUAL
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    def touch(self) -> None:
        self.updated_at = next_stamp(self.updated_at)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire/storage form (camelCase timestamps)."""
        data = {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "priority": self.priority.value,
            "project": self.project.value,
            "owner": self.owner,
            "source": self.source.value,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "tags": list(self.tags),
        }
        if self.description is not None:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KanbanTask":
        """Normalizing constructor: every stored or patched record goes through here."""
        title = str(data.get("title") or "").strip() or "Untitled task"

        tags = data.get("tags")
        tags = [str(t) for t in tags] if isinstance(tags, list) else []

        description = data.get("description")
        if not isinstance(description, str):
            description = None

        return cls(
            id=str(data.get("id") or make_task_id("legacy")),
            title=title,
            status=TaskStatus.from_str(data.get("status")),
            priority=TaskPriority.from_str(data.get("priority")),
            project=Project.from_str(data.get("project")),
            owner=str(data.get("owner") or "System"),
            source=TaskSource.from_str(data.get("source")),
            created_at=str(data.get("createdAt") or utc_now()),
            updated_at=str(data.get("updatedAt") or utc_now()),
            description=description,
            tags=tags,
        )
