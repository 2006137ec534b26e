"""
Board service used by the HTTP layer.

Sync passes and mutations are both load-modify-save of the whole store;
one lock serializes them inside a server process. Separate processes
writing the same kanban file still race (last write wins).
"""
import threading
from typing import Any, Dict, List

from .mutations import apply_action
from .schema import KanbanTask
from .store import KanbanStore
from .sync import KanbanSync, board_payload


class KanbanBoard:
    """Read (sync) and write (mutate) entry points over one store."""

    def __init__(self, store: KanbanStore, sync: KanbanSync):
        self.store = store
        self.sync = sync
        self._lock = threading.Lock()

    def read(self) -> Dict[str, Any]:
        """Run a sync pass and return the board payload."""
        with self._lock:
            tasks = self.sync.sync()
        return board_payload(tasks)

    def mutate(self, payload: Dict[str, Any]) -> List[KanbanTask]:
        """Apply one write action and persist the result."""
        with self._lock:
            tasks = apply_action(self.store.load(), payload)
            self.store.save(tasks)
        return tasks
