"""
Markdown → task candidates.

Scans TODO.md / ACTIVE_CONTEXT.md line by line. Headings and other lines
that mention a project name or a priority marker switch the running
section state; every bullet or open checkbox below them becomes a
candidate carrying that state.

Best effort: never raises on odd markdown, only on an unknown source tag.
"""
import re
from typing import List, Optional

from .schema import TaskCandidate, TaskPriority, TaskSource, TaskStatus, Project

MIN_TITLE_LENGTH = 3

# First match wins, checked in order
PROJECT_KEYWORDS = [
    (Project.LESSONCRAFT, ("LessonCraft",)),
    (Project.GALLERY, ("JD Gallery", "Gallery")),
    (Project.INFRASTRUCTURE, ("Infrastructure", "Command Center")),
    (Project.CONTENT, ("Content", "Gospel Tuned")),
]

PRIORITY_MARKERS = [
    (TaskPriority.HIGH, ("\U0001F525", "HIGH", "URGENT")),
    (TaskPriority.MEDIUM, ("\u26a0", "MEDIUM")),
    (TaskPriority.LOW, ("\U0001F4DD", "LOW")),
]

WIP_PHRASES = ("WORKING ON", "IN PROGRESS", "DOING")
BLOCKED_PHRASES = ("BLOCKED", "WAITING")
BLOCKED_PREFIX = "[BLOCKED]"

_BULLET = re.compile(r"^[-*]\s+")
_THEMATIC_BREAK = re.compile(r"^(?:[-*_]\s*){3,}$")
_BULLET_MARK = re.compile(r"^[-*]\s*")
_CHECKBOX = re.compile(r"^-?\s*\[(\s*[xX]?\s*)\]\s*")
_DECORATION = re.compile("[\U0001F525\U0001F4DD\u26a0]\ufe0f?")
_PRIORITY_WORD = re.compile(r"\b(?:HIGH|MEDIUM|LOW|URGENT)\b", re.IGNORECASE)
_LEADING_PUNCT = re.compile(r"^[\s:|\-]+")
_SPACES = re.compile(r"\s{2,}")


def clean_title(text: str) -> str:
    """Strip priority emoji and priority words from a task title."""
    text = _DECORATION.sub("", text)
    text = _PRIORITY_WORD.sub("", text)
    text = _LEADING_PUNCT.sub("", text)
    return _SPACES.sub(" ", text).strip()


class MarkdownTaskExtractor:
    """Line-fed state machine holding the current project and priority."""

    def __init__(self, source: TaskSource):
        if source not in (TaskSource.TODO, TaskSource.ACTIVE_CONTEXT):
            raise ValueError(f"Markdown extraction does not apply to source: {source.value}")
        self.source = source
        self.current_project = Project.OTHER
        self.current_priority = TaskPriority.MEDIUM

    def _update_section(self, line: str) -> None:
        for project, keywords in PROJECT_KEYWORDS:
            if any(k in line for k in keywords):
                self.current_project = project
                break
        for priority, markers in PRIORITY_MARKERS:
            if any(m in line for m in markers):
                self.current_priority = priority
                break

    def _status_and_title(self, line: str, title: str):
        if self.source is not TaskSource.ACTIVE_CONTEXT:
            return TaskStatus.BACKLOG, title
        upper = line.upper()
        if any(p in upper for p in WIP_PHRASES):
            return TaskStatus.INPROGRESS, title
        if any(p in upper for p in BLOCKED_PHRASES):
            return TaskStatus.INPROGRESS, f"{BLOCKED_PREFIX} {title}"
        return TaskStatus.BACKLOG, title

    def feed(self, raw_line: str, next_line: Optional[str] = None) -> Optional[TaskCandidate]:
        """Consume one line; return a candidate when the line is an open task."""
        line = raw_line.strip()
        self._update_section(line)

        if not (_BULLET.match(line) or _CHECKBOX.match(line)):
            return None
        if _THEMATIC_BREAK.match(line):
            return None

        text = _BULLET_MARK.sub("", line, count=1)
        box = _CHECKBOX.match(text)
        if box:
            if "x" in box.group(1).lower():
                return None  # completed items are not imported
            text = text[box.end():]

        title = clean_title(text)
        if len(title) < MIN_TITLE_LENGTH:
            return None

        status, title = self._status_and_title(line, title)

        description = None
        if next_line is not None and next_line.startswith("  "):
            description = next_line.strip() or None

        return TaskCandidate(
            title=title,
            source=self.source,
            status=status,
            priority=self.current_priority,
            project=self.current_project,
            description=description,
        )


def extract_tasks(content: str, source: TaskSource) -> List[TaskCandidate]:
    """Extract candidate tasks from one markdown document."""
    extractor = MarkdownTaskExtractor(source)
    lines = content.splitlines()
    candidates = []
    for i, line in enumerate(lines):
        next_line = lines[i + 1] if i + 1 < len(lines) else None
        candidate = extractor.feed(line, next_line)
        if candidate:
            candidates.append(candidate)
    return candidates
