"""
Tests for board mutations and the KanbanBoard service.
"""
import threading

import pytest

from command_center.errors import ValidationError
from command_center.kanban.board import KanbanBoard
from command_center.kanban.mutations import (
    apply_action, create_task, delete_task, move_task, update_task,
)
from command_center.kanban.schema import (
    KanbanTask, TaskSource, TaskStatus, TaskPriority, Project, next_stamp,
)
from command_center.kanban.store import MemoryKanbanStore
from command_center.kanban.sync import KanbanSync

from conftest import manual_row


def _tasks(*rows):
    return [KanbanTask.from_dict(r) for r in rows]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# move
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_move_sets_status_and_touches():
    tasks = _tasks(manual_row("t1"))
    before = tasks[0].updated_at

    apply_action(tasks, {"action": "move", "taskId": "t1", "newStatus": "done"})

    assert tasks[0].status is TaskStatus.DONE
    assert tasks[0].updated_at > before
    assert tasks[0].created_at == "2026-01-01T00:00:00.000Z"


def test_move_right_after_create_advances_updated_at():
    for _ in range(50):
        (task,) = create_task([], {"title": "Plan launch"})
        before = task.updated_at
        move_task([task], task.id, "done")
        assert task.updated_at > before


def test_update_right_after_create_advances_updated_at():
    tasks = create_task([], {"title": "Plan launch"})
    before = tasks[0].updated_at
    update_task(tasks, tasks[0].id, {"priority": "high"})
    assert tasks[0].updated_at > before


def test_next_stamp_steps_past_a_future_prior():
    assert next_stamp("2999-12-31T23:59:59.999Z") == "3000-01-01T00:00:00.000Z"
    assert next_stamp(None).endswith("Z")
    assert next_stamp("garbage").endswith("Z")


def test_move_unknown_id_is_noop():
    tasks = _tasks(manual_row("t2"))
    snapshot = [t.to_dict() for t in tasks]
    result = apply_action(tasks, {"action": "move", "taskId": "t1", "newStatus": "done"})
    assert [t.to_dict() for t in result] == snapshot


def test_move_to_unknown_status_lands_in_backlog():
    tasks = _tasks(manual_row("t1", status="inprogress"))
    move_task(tasks, "t1", "archived")
    assert tasks[0].status is TaskStatus.BACKLOG


def test_move_works_on_synced_records():
    tasks = _tasks(manual_row("todo-1", source="todo"))
    move_task(tasks, "todo-1", "inprogress")
    assert tasks[0].status is TaskStatus.INPROGRESS


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# create
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestCreate:

    def test_defaults(self):
        (task,) = create_task([], {"title": "  Plan launch  "})
        assert task.title == "Plan launch"
        assert task.id.startswith("manual-")
        assert task.source is TaskSource.MANUAL
        assert task.owner == "Manual"
        assert task.status is TaskStatus.BACKLOG
        assert task.priority is TaskPriority.MEDIUM
        assert task.project is Project.OTHER
        assert task.tags == []

    def test_explicit_fields(self):
        (task,) = create_task([], {
            "title": "Plan launch",
            "status": "inprogress",
            "priority": "high",
            "project": "LessonCraft",
            "owner": "Jackbot",
            "description": "Week of the 12th",
            "tags": ["launch", 2],
            "source": "todo",
        })
        assert task.status is TaskStatus.INPROGRESS
        assert task.priority is TaskPriority.HIGH
        assert task.project is Project.LESSONCRAFT
        assert task.owner == "Jackbot"
        assert task.description == "Week of the 12th"
        assert task.tags == ["launch", "2"]
        assert task.source is TaskSource.MANUAL

    @pytest.mark.parametrize("payload", [{}, {"title": ""}, {"title": "   "}, {"title": 5}])
    def test_title_required(self, payload):
        with pytest.raises(ValidationError):
            create_task([], payload)

    def test_tags_must_be_list(self):
        with pytest.raises(ValidationError):
            create_task([], {"title": "Plan launch", "tags": "launch"})


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# update
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestUpdate:

    def test_merges_patch(self):
        tasks = _tasks(manual_row("t1"))
        update_task(tasks, "t1", {"title": "Renamed", "priority": "low", "tags": ["a"]})
        assert tasks[0].title == "Renamed"
        assert tasks[0].priority is TaskPriority.LOW
        assert tasks[0].tags == ["a"]
        assert tasks[0].updated_at > "2026-01-01T00:00:00.000Z"

    def test_protected_fields_ignored(self):
        tasks = _tasks(manual_row("t1"))
        update_task(tasks, "t1", {"id": "t9", "source": "todo", "createdAt": "1999"})
        assert tasks[0].id == "t1"
        assert tasks[0].source is TaskSource.MANUAL
        assert tasks[0].created_at == "2026-01-01T00:00:00.000Z"

    def test_patch_values_are_normalized(self):
        tasks = _tasks(manual_row("t1"))
        update_task(tasks, "t1", {"status": "blocked", "project": "Nowhere"})
        assert tasks[0].status is TaskStatus.INPROGRESS
        assert tasks[0].project is Project.OTHER

    def test_unknown_id_is_noop(self):
        tasks = _tasks(manual_row("t1"))
        update_task(tasks, "nope", {"title": "Renamed"})
        assert tasks[0].title == "Write release notes"

    def test_updates_must_be_object(self):
        with pytest.raises(ValidationError):
            apply_action(_tasks(manual_row("t1")), {"action": "update", "id": "t1", "updates": ["x"]})


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# delete
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@pytest.mark.parametrize("source", ["todo", "active_context", "subagent"])
def test_delete_refuses_synced_records(source):
    tasks = _tasks(manual_row("x1", source=source))
    delete_task(tasks, "x1")
    assert [t.id for t in tasks] == ["x1"]


def test_delete_removes_manual_record():
    tasks = _tasks(manual_row("m1"), manual_row("m2"))
    apply_action(tasks, {"action": "delete", "id": "m1"})
    assert [t.id for t in tasks] == ["m2"]


@pytest.mark.parametrize("payload", [{"action": "archive"}, {}, []])
def test_unknown_action_rejected(payload):
    with pytest.raises(ValidationError):
        apply_action([], payload)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# KanbanBoard
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestKanbanBoard:

    def _board(self, rows=None):
        store = MemoryKanbanStore(rows or [])
        return KanbanBoard(store, KanbanSync(store)), store

    def test_mutate_persists(self):
        board, store = self._board([manual_row("t1")])
        board.mutate({"action": "move", "taskId": "t1", "newStatus": "done"})
        assert store.rows[0]["status"] == "done"
        assert store.save_count == 1

    def test_failed_validation_does_not_save(self):
        board, store = self._board()
        with pytest.raises(ValidationError):
            board.mutate({"action": "create"})
        assert store.save_count == 0

    def test_read_returns_payload(self):
        board, _ = self._board([manual_row("t1")])
        payload = board.read()
        assert [t["id"] for t in payload["tasks"]] == ["t1"]
        assert len(payload["columns"]) == 3

    def test_concurrent_creates_all_land(self):
        board, store = self._board()

        def create(n):
            board.mutate({"action": "create", "title": f"Task number {n}"})

        threads = [threading.Thread(target=create, args=(n,)) for n in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.rows) == 20
