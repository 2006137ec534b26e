"""
Sync pass: merge note-derived and agent-derived candidates into the store.

Merge policy per source:
  manual          kept verbatim, never created or removed here
  todo            append-only: new titles added, old ones retained
  active_context  same as todo
  subagent        dropped and rebuilt from live agent status every pass
"""
import logging
from pathlib import Path
from typing import Callable, List, Optional, Set, Tuple

import requests

from .extractor import extract_tasks
from .schema import COLUMNS, PROJECT_COLORS, KanbanTask, TaskCandidate, TaskSource
from .store import KanbanStore

logger = logging.getLogger(__name__)

AgentFetcher = Callable[[], List[TaskCandidate]]


class NoteSource:
    """A markdown note read from a local path or an http(s) URL."""

    def __init__(self, location: str, timeout: float = 5.0):
        self.location = location
        self.timeout = timeout

    @property
    def is_remote(self) -> bool:
        return self.location.startswith(("http://", "https://"))

    def read(self) -> Optional[str]:
        """Return the document text, or None if it is absent or unreadable."""
        if self.is_remote:
            try:
                r = requests.get(self.location, timeout=self.timeout)
                r.raise_for_status()
                return r.text
            except requests.RequestException as e:
                logger.warning(f"{self.location} not reachable: {e}")
                return None
        try:
            return Path(self.location).read_text(encoding="utf-8", errors="replace")
        except OSError:
            logger.warning(f"{self.location} not found or unreadable")
            return None


class KanbanSync:
    """Runs sync passes against a store."""

    def __init__(
        self,
        store: KanbanStore,
        todo_source: Optional[NoteSource] = None,
        active_context_source: Optional[NoteSource] = None,
        agent_fetcher: Optional[AgentFetcher] = None,
    ):
        self.store = store
        self.note_sources = [
            (TaskSource.TODO, todo_source),
            (TaskSource.ACTIVE_CONTEXT, active_context_source),
        ]
        self.agent_fetcher = agent_fetcher

    def _note_candidates(self) -> List[TaskCandidate]:
        candidates = []
        for source, note in self.note_sources:
            if note is None:
                continue
            content = note.read()
            if content is None:
                continue
            candidates.extend(extract_tasks(content, source))
        return candidates

    def _agent_candidates(self) -> List[TaskCandidate]:
        if self.agent_fetcher is None:
            return []
        try:
            return list(self.agent_fetcher())
        except Exception as e:
            logger.warning(f"Agent projection failed: {e}")
            return []

    def sync(self) -> List[KanbanTask]:
        """One sync pass. Persists only if every step succeeds."""
        existing = self.store.load()
        known: Set[Tuple[str, TaskSource]] = {(t.title, t.source) for t in existing}

        new_tasks: List[KanbanTask] = []
        for candidate in self._note_candidates():
            key = (candidate.title, candidate.source)
            if key in known:
                continue
            known.add(key)
            new_tasks.append(candidate.materialize())

        for candidate in self._agent_candidates():
            new_tasks.append(candidate.materialize())

        manual = [t for t in existing if t.source is TaskSource.MANUAL]
        synced = [t for t in existing
                  if t.source not in (TaskSource.MANUAL, TaskSource.SUBAGENT)]

        tasks = manual + synced + new_tasks
        self.store.save(tasks)

        added = sum(1 for t in new_tasks if t.source is not TaskSource.SUBAGENT)
        if added:
            logger.info(f"Sync added {added} note task(s); {len(tasks)} total")
        return tasks


def board_payload(tasks: List[KanbanTask]) -> dict:
    """Read-endpoint body: tasks plus static column and color metadata."""
    return {
        "tasks": [t.to_dict() for t in tasks],
        "columns": [dict(c) for c in COLUMNS],
        "projectColors": dict(PROJECT_COLORS),
    }
