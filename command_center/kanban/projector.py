"""
Live agent status → task candidates.

Every agent reporting status "active" becomes one in-progress,
high-priority Infrastructure card owned by that agent. The status feed is
an external collaborator: any failure to reach or parse it means "no
agents", never an error for the sync pass.
"""
import logging
from typing import Any, Dict, List

import requests

from .schema import TaskCandidate, TaskPriority, TaskSource, TaskStatus, Project

logger = logging.getLogger(__name__)


def project_agents(agents: List[Any]) -> List[TaskCandidate]:
    """One candidate per active agent."""
    candidates = []
    for agent in agents:
        if not isinstance(agent, dict) or agent.get("status") != "active":
            continue
        name = agent.get("name") or ""
        title = agent.get("currentTask") or agent.get("description") or f"{name} active task"
        focus = agent.get("specialty") or agent.get("personality") or name
        candidates.append(TaskCandidate(
            title=str(title),
            source=TaskSource.SUBAGENT,
            status=TaskStatus.INPROGRESS,
            priority=TaskPriority.HIGH,
            project=Project.INFRASTRUCTURE,
            owner=str(name) if name else None,
            description=f"Active subagent: {focus}",
        ))
    return candidates


def fetch_agent_status(url: str, timeout: float = 5.0) -> List[Dict[str, Any]]:
    """GET the agent status feed. Returns [] on any failure."""
    try:
        r = requests.get(url, timeout=timeout)
        r.raise_for_status()
        data = r.json()
    except (requests.RequestException, ValueError) as e:
        logger.info(f"Agent status feed unavailable ({url}): {e}")
        return []

    agents = data.get("agents") if isinstance(data, dict) else None
    if not isinstance(agents, list):
        logger.info(f"Agent status feed returned no agent list ({url})")
        return []
    return agents


def fetch_agent_tasks(url: str, timeout: float = 5.0) -> List[TaskCandidate]:
    """Fetch and project in one step. Never raises."""
    return project_agents(fetch_agent_status(url, timeout))
