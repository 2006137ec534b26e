"""
openclaw CLI integration: sessions, cron jobs and agent spawning.

The CLI prints either JSON or a whitespace-aligned table depending on the
subcommand and version, so every parser here is defensive: unparseable
fields become "unknown" placeholders instead of errors.
"""
import json
import logging
import re
import subprocess
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..errors import CommandError, ValidationError

logger = logging.getLogger(__name__)

SESSION_HEADER_LINES = 2
ACTIVE_SESSION_MINUTES = 5
_AGENT_NAME = re.compile(r"[A-Za-z0-9_-]+")


def validate_agent_name(name: Any) -> bool:
    """Alphanumeric, hyphen, underscore only."""
    return isinstance(name, str) and bool(_AGENT_NAME.fullmatch(name))


# ── Text parsers ─────────────────────────────────────────────────────────────

def _session_placeholder(line: str, index: int) -> Dict[str, Any]:
    return {
        "id": f"session-{index}",
        "name": line[:30] or f"Session {index}",
        "status": "unknown",
        "lastActive": "unknown",
        "model": "unknown",
        "tokens": "0/0 (0%)",
        "flags": "",
    }


def _session_status(age: str) -> str:
    """Active if seen seconds ago or under five minutes ago."""
    if "m ago" in age:
        m = re.match(r"\d+", age)
        if m and int(m.group()) < ACTIVE_SESSION_MINUTES:
            return "active"
    elif "s ago" in age:
        return "active"
    return "idle"


def parse_sessions_text(stdout: str) -> List[Dict[str, Any]]:
    """
    Parse the `openclaw sessions list` table.

    Columns: kind, key, age ("3m ago"), model (may contain spaces),
    tokens ("12k/200k (6%)"), flags...
    """
    lines = stdout.strip().split("\n")
    if len(lines) <= SESSION_HEADER_LINES:
        return []

    sessions = []
    for index, line in enumerate(lines[SESSION_HEADER_LINES:]):
        if not line.strip():
            continue
        parts = line.split()
        if len(parts) < 6:
            sessions.append(_session_placeholder(line, index))
            continue

        kind, key = parts[0], parts[1]
        age = f"{parts[2]} {parts[3]}"

        # Model runs until the first token that looks like a token count
        model_end = len(parts) - 2
        for i in range(4, len(parts)):
            if "/" in parts[i] or "(" in parts[i]:
                model_end = i
                break

        sessions.append({
            "id": f"session-{index}",
            "name": key,
            "status": _session_status(age),
            "lastActive": age,
            "model": " ".join(parts[4:model_end]),
            "tokens": parts[model_end] if model_end < len(parts) else "0/0 (0%)",
            "flags": " ".join(parts[model_end + 1:]),
            "kind": kind,
        })

    return [s for s in sessions if s["name"] and "..." not in s["name"]]


def parse_cron_output(stdout: str) -> Any:
    """JSON if the CLI produced it, otherwise one record per text line."""
    try:
        return json.loads(stdout)
    except json.JSONDecodeError:
        logger.info("cron list output is not JSON; falling back to text parsing")

    lines = [line for line in stdout.strip().split("\n") if line.strip()]
    jobs = []
    for index, line in enumerate(lines):
        parts = line.split()
        jobs.append({
            "id": f"cron-{index}",
            "schedule": parts[0] if parts else "unknown",
            "command": " ".join(parts[1:]) or "unknown",
            "status": "active",
            "lastRun": "unknown",
            "nextRun": "unknown",
        })
    return jobs


def format_age(ms: Optional[float]) -> str:
    if not ms:
        return "active"
    seconds = int(ms // 1000)
    if seconds < 60:
        return f"{seconds}s ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def format_next_run(ms: Optional[float], now_ms: Optional[float] = None) -> str:
    if not ms:
        return "N/A"
    if now_ms is None:
        now_ms = time.time() * 1000
    diff = ms - now_ms
    if diff < 0:
        return "overdue"
    if diff < 3_600_000:
        return f"in {int(diff // 60_000)}m"
    if diff < 86_400_000:
        return f"in {int(diff // 3_600_000)}h"
    dt = datetime.fromtimestamp(ms / 1000)
    return f"{dt:%b} {dt.day}, {dt:%I:%M %p}"


def _summarize_session(s: Dict[str, Any]) -> Dict[str, Any]:
    total = s.get("totalTokens")
    return {
        "key": s.get("key") or "unknown",
        "kind": s.get("kind") or "direct",
        "model": s.get("model") or "unknown",
        "age": format_age(s.get("ageMs")),
        "tokens": f"{total:,}" if isinstance(total, (int, float)) and total else "N/A",
    }


def _summarize_job(job: Dict[str, Any]) -> Dict[str, Any]:
    schedule = job.get("schedule") if isinstance(job.get("schedule"), dict) else {}
    state = job.get("state") if isinstance(job.get("state"), dict) else {}
    return {
        "id": job.get("id"),
        "name": job.get("name") or "Unnamed",
        "schedule": schedule.get("expr") or schedule.get("kind") or "Unknown",
        "next": format_next_run(state.get("nextRunAtMs")),
        "status": "active" if job.get("enabled") is not False else "disabled",
    }


# ── CLI wrapper ──────────────────────────────────────────────────────────────

class OpenClawCLI:
    """Runs openclaw subcommands with a timeout and no shell."""

    def __init__(self, binary: str = "openclaw", timeout: float = 30.0):
        self.binary = binary
        self.timeout = timeout

    def run(self, *args: str, allow_stderr: bool = False) -> str:
        """Return stdout. Raises CommandError on failure or unexpected stderr."""
        cmd = [self.binary, *args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise CommandError(f"{self.binary} not found", str(e))
        except subprocess.TimeoutExpired:
            raise CommandError(f"{' '.join(cmd)} timed out after {self.timeout}s")

        if result.returncode != 0:
            raise CommandError(
                f"{' '.join(cmd)} exited with {result.returncode}",
                result.stderr.strip(),
            )
        if result.stderr.strip() and not allow_stderr:
            raise CommandError(f"{' '.join(cmd)} wrote to stderr", result.stderr.strip())
        return result.stdout

    def list_sessions(self) -> List[Dict[str, Any]]:
        return parse_sessions_text(self.run("sessions", "list"))

    def list_cron(self) -> Any:
        return parse_cron_output(self.run("cron", "list", "--json"))

    def spawn_agent(self, agent: str, task: str) -> str:
        if not validate_agent_name(agent):
            raise ValidationError(f"Invalid agent name: {agent}")
        if not isinstance(task, str) or not task.strip():
            raise ValidationError("Task is required")
        logger.info(f"Spawning agent {agent} with task: {task}")
        return self.run("agent", "spawn", agent, "--task", task)

    def _json_list(self, args: List[str], key: str) -> List[Dict[str, Any]]:
        try:
            parsed = json.loads(self.run(*args, allow_stderr=True).strip())
        except (CommandError, json.JSONDecodeError) as e:
            logger.warning(f"{' '.join(args)} unavailable: {e}")
            return []
        items = parsed.get(key) if isinstance(parsed, dict) else None
        return [i for i in items if isinstance(i, dict)] if isinstance(items, list) else []

    def status_snapshot(self) -> Dict[str, Any]:
        """Sessions and cron jobs from the JSON output; each part degrades to []."""
        sessions = self._json_list(["sessions", "list", "--json"], "sessions")
        jobs = self._json_list(["cron", "list", "--json"], "jobs")
        return {
            "sessions": [_summarize_session(s) for s in sessions],
            "cronJobs": [_summarize_job(j) for j in jobs],
        }
