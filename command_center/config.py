# Command Center: configuration
# Override paths and endpoints via command_center.yaml, secrets via environment.

import os
import yaml
from pathlib import Path
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

CONFIG_PATH = Path(__file__).resolve().parent.parent / "command_center.yaml"

# Environment variable → Config attribute
ENV_OVERRIDES = {
    "CF_ACCOUNT_ID": "cf_account_id",
    "CF_EMAIL": "cf_email",
    "CF_API_KEY": "cf_api_key",
    "LESSONCRAFT_R2_BUCKET": "r2_bucket",
    "ELEVENLABS_API_KEY": "elevenlabs_api_key",
    "COMMAND_CENTER_API_SECRET": "api_secret",
    "COMMAND_CENTER_DATA_DIR": "data_dir",
    "COMMAND_CENTER_NOTES_DIR": "notes_dir",
}


@dataclass
class Config:
    """Runtime configuration for the command center."""

    # Storage
    data_dir: str = "./data"
    kanban_file: str = ""          # default: <data_dir>/kanban-tasks.json

    # Notes workspace (TODO.md, ACTIVE_CONTEXT.md, MEMORY.md, memory/)
    notes_dir: str = "~/Jackbot"
    todo_source: str = ""          # path or http(s) URL
    active_context_source: str = ""

    # Live agent status feed
    agents_url: str = "http://localhost:3333/api/agents"
    fetch_timeout_secs: float = 5.0

    # openclaw CLI
    openclaw_bin: str = "openclaw"
    cli_timeout_secs: float = 30.0

    # LessonCraft catalog + R2 bucket
    catalog_url: str = "https://api.aituned.io/api/catalog"
    r2_bucket: str = "lessoncraft-audio"
    r2_page_size: int = 1000
    r2_max_pages: int = 200
    upstream_timeout_secs: float = 30.0
    cf_account_id: str = ""
    cf_email: str = ""
    cf_api_key: str = ""

    # ElevenLabs
    elevenlabs_api_key: str = ""
    elevenlabs_model: str = "eleven_multilingual_v2"
    tts_timeout_secs: float = 60.0

    # HTTP server
    api_secret: str = ""           # empty = write routes unauthenticated
    host: str = "127.0.0.1"
    port: int = 3000

    # Static dashboard content
    agents: List[Dict[str, Any]] = field(default_factory=list)
    projects: List[Dict[str, Any]] = field(default_factory=list)

    def resolve_paths(self):
        """Expand ~ and fill paths derived from data_dir and notes_dir."""
        self.data_dir = str(Path(self.data_dir).expanduser())
        self.notes_dir = str(Path(self.notes_dir).expanduser())

        if not self.kanban_file:
            self.kanban_file = str(Path(self.data_dir) / "kanban-tasks.json")
        else:
            self.kanban_file = str(Path(self.kanban_file).expanduser())

        if not self.todo_source:
            self.todo_source = str(Path(self.notes_dir) / "TODO.md")
        if not self.active_context_source:
            self.active_context_source = str(Path(self.notes_dir) / "ACTIVE_CONTEXT.md")

    def apply_env(self, environ: Optional[Dict[str, str]] = None):
        """Overlay secrets and paths from environment variables."""
        env = os.environ if environ is None else environ
        for var, attr in ENV_OVERRIDES.items():
            value = env.get(var)
            if value:
                setattr(self, attr, value)

    @classmethod
    def load(cls, path: Optional[str] = None,
             environ: Optional[Dict[str, str]] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        env = os.environ if environ is None else environ
        if path:
            cfg_path = Path(path)
        elif env.get("COMMAND_CENTER_CONFIG"):
            cfg_path = Path(env["COMMAND_CENTER_CONFIG"])
        else:
            cfg_path = CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                known = {fld.name for fld in fields(cls)}
                cfg = cls(**{k: v for k, v in data.items() if k in known})
            except Exception:
                cfg = cls()
        else:
            cfg = cls()
        cfg.apply_env(env)
        cfg.resolve_paths()
        return cfg
