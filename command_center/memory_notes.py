"""Memory notes viewer: MEMORY.md, ACTIVE_CONTEXT.md and memory/*.md."""
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

CORE_FILES = ("MEMORY.md", "ACTIVE_CONTEXT.md")


def _read_note(path: Path, name: str) -> Optional[Dict[str, Any]]:
    """Read one note without ever raising. Returns None on any failure."""
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
        st = path.stat()
    except OSError:
        return None
    return {
        "path": str(path),
        "name": name,
        "content": content,
        "modified": datetime.fromtimestamp(st.st_mtime, timezone.utc)
                            .isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "size": st.st_size,
    }


def list_memory_files(notes_dir: str) -> List[Dict[str, Any]]:
    """All readable memory notes, most recently modified first."""
    root = Path(notes_dir)
    files = []
    for name in CORE_FILES:
        note = _read_note(root / name, name)
        if note:
            files.append(note)

    memory_dir = root / "memory"
    if memory_dir.is_dir():
        for path in sorted(memory_dir.glob("*.md")):
            note = _read_note(path, f"memory/{path.name}")
            if note:
                files.append(note)

    files.sort(key=lambda f: f["modified"], reverse=True)
    return files
