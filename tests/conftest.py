"""Shared test fixtures for command center tests."""

import sys
from pathlib import Path

import pytest

# Ensure the repo root is importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from command_center.config import Config
from command_center.kanban.store import MemoryKanbanStore


@pytest.fixture
def notes_dir(tmp_path):
    d = tmp_path / "notes"
    d.mkdir()
    return d


@pytest.fixture
def cfg(tmp_path, notes_dir):
    """Config rooted in tmp_path with no secrets set."""
    c = Config(data_dir=str(tmp_path / "data"), notes_dir=str(notes_dir))
    c.resolve_paths()
    return c


@pytest.fixture
def memory_store():
    return MemoryKanbanStore()


def manual_row(task_id="manual-1", title="Write release notes", status="backlog", **extra):
    row = {
        "id": task_id,
        "title": title,
        "status": status,
        "priority": "medium",
        "project": "Other",
        "owner": "Manual",
        "source": "manual",
        "createdAt": "2026-01-01T00:00:00.000Z",
        "updatedAt": "2026-01-01T00:00:00.000Z",
        "tags": [],
    }
    row.update(extra)
    return row
