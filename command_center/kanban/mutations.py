"""
Direct board mutations (create, move, update, delete).

Each function takes the full task list and returns the updated list; the
caller persists it. Unknown ids are silent no-ops, and only manual tasks
can be deleted, so synced data cannot be lost from the board.
"""
from typing import Any, Dict, List, Optional

from ..errors import ValidationError
from .schema import (
    KanbanTask, TaskPriority, TaskSource, TaskStatus, Project,
    SOURCE_DEFAULT_OWNER, SOURCE_ID_PREFIX, make_task_id, next_stamp, utc_now,
)

# Patch keys that never change after creation
PROTECTED_FIELDS = ("id", "source", "createdAt")

ACTIONS = ("move", "create", "update", "delete")


def _find(tasks: List[KanbanTask], task_id: Any) -> Optional[int]:
    for i, task in enumerate(tasks):
        if task.id == task_id:
            return i
    return None


def move_task(tasks: List[KanbanTask], task_id: str, new_status: Any) -> List[KanbanTask]:
    """Drag-and-drop move to another column."""
    i = _find(tasks, task_id)
    if i is not None:
        tasks[i].status = TaskStatus.from_str(new_status)
        tasks[i].touch()
    return tasks


def create_task(tasks: List[KanbanTask], fields: Dict[str, Any]) -> List[KanbanTask]:
    """Append a new manual task. Title is required."""
    title = fields.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("title is required")

    tags = fields.get("tags") or []
    if not isinstance(tags, list):
        raise ValidationError("tags must be a list")

    description = fields.get("description")
    now = utc_now()
    tasks.append(KanbanTask(
        id=make_task_id(SOURCE_ID_PREFIX[TaskSource.MANUAL]),
        title=title.strip(),
        status=TaskStatus.from_str(fields.get("status") or "backlog"),
        priority=TaskPriority.from_str(fields.get("priority")),
        project=Project.from_str(fields.get("project")),
        owner=str(fields.get("owner") or SOURCE_DEFAULT_OWNER[TaskSource.MANUAL]),
        source=TaskSource.MANUAL,
        created_at=now,
        updated_at=now,
        description=description if isinstance(description, str) else None,
        tags=[str(t) for t in tags],
    ))
    return tasks


def update_task(tasks: List[KanbanTask], task_id: str, updates: Dict[str, Any]) -> List[KanbanTask]:
    """Shallow-merge a patch (wire field names) onto an existing task."""
    if not isinstance(updates, dict):
        raise ValidationError("updates must be an object")
    i = _find(tasks, task_id)
    if i is None:
        return tasks

    merged = tasks[i].to_dict()
    merged.update({k: v for k, v in updates.items() if k not in PROTECTED_FIELDS})
    merged["updatedAt"] = next_stamp(tasks[i].updated_at)
    tasks[i] = KanbanTask.from_dict(merged)
    return tasks


def delete_task(tasks: List[KanbanTask], task_id: str) -> List[KanbanTask]:
    """Remove a manual task; anything else is left alone."""
    i = _find(tasks, task_id)
    if i is not None and tasks[i].source is TaskSource.MANUAL:
        del tasks[i]
    return tasks


def apply_action(tasks: List[KanbanTask], payload: Dict[str, Any]) -> List[KanbanTask]:
    """
    Dispatch a write-endpoint payload.

    Payload shapes:
        {"action": "move", "taskId": ..., "newStatus": ...}
        {"action": "create", "title": ..., "status"?, "priority"?, "project"?,
         "owner"?, "description"?, "tags"?}
        {"action": "update", "id": ..., "updates": {...}}
        {"action": "delete", "id": ...}
    """
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    action = payload.get("action")

    if action == "move":
        return move_task(tasks, payload.get("taskId"), payload.get("newStatus"))
    if action == "create":
        return create_task(tasks, payload)
    if action == "update":
        return update_task(tasks, payload.get("id"), payload.get("updates") or {})
    if action == "delete":
        return delete_task(tasks, payload.get("id"))
    raise ValidationError(f"action must be one of: {', '.join(ACTIONS)}")
