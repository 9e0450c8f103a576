"""Settings, file locations and the fixed change policy."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".specsync"
CONFIG_FILE = CONFIG_DIR / "config.json"
LOG_FILE = CONFIG_DIR / "specsync.log"

# Workspace layout, relative to the working directory
DEFAULT_SPEC_PATH = "docs-spec.md"
DEFAULT_STATE_DIR = ".specsync"
DEFAULT_MODULES_DIR = "modules"
DEFAULT_REPORTS_DIR = "reports"

HISTORY_FILE_NAME = "change-history.json"
SNAPSHOT_FILE_NAME = "workflow-config.json"

# Change history ring buffer
HISTORY_LIMIT = 10

# Parser
MAX_WORKFLOW_STEPS = 10
MAX_ARTICLES = 5
MAX_REVIEW_CRITERIA = 10
DEFAULT_VERSION = "1.0.0"
TIMESTAMP_FORMAT = "YYYY-MM-DD_HH-mm-ss"

# Report files: update-summary-2025-01-31_12-00-00.json
REPORT_TIMESTAMP = "%Y-%m-%d_%H-%M-%S"

# Change type -> (description, downstream module group, severity).
# Severity is fixed per type, never derived from the size of the diff.
CHANGE_POLICY: dict[str, tuple[str, str, str]] = {
    "sources": ("Source URLs or data extraction requirements changed", "data-extractors", "medium"),
    "content-rules": ("Content generation rules changed", "content-builders", "high"),
    "validation-rules": ("Quality validation rules changed", "quality-controllers", "medium"),
    "output-structure": ("Output file structure or naming changed", "file-generators", "high"),
    "templates": ("Template file references changed", "template-processors", "low"),
}

IMPACT_TARGETS: dict[str, str] = {change_type: policy[1] for change_type, policy in CHANGE_POLICY.items()}

# Dimensions diffed on every pass; "templates" is added by Config.track_templates
TRACKED_DIMENSIONS = ("sources", "content-rules", "validation-rules", "output-structure")

# Impact estimation
SEVERITY_WEIGHTS = {"low": 1, "medium": 3, "high": 5}
EFFORT_LOW_MAX = 3
EFFORT_MEDIUM_MAX = 10
MANUAL_REVIEW_DETAIL_LIMIT = 5


def _history_limit(value) -> int:
    try:
        limit = int(value)
    except (TypeError, ValueError):
        limit = 0
    if limit < 1:
        log.warning("Ignoring history_limit %r: expected a positive integer", value)
        return HISTORY_LIMIT
    return limit


@dataclass
class Config:
    spec_path: Path = field(default_factory=lambda: Path(DEFAULT_SPEC_PATH))
    state_dir: Path = field(default_factory=lambda: Path(DEFAULT_STATE_DIR))
    modules_dir: Path = field(default_factory=lambda: Path(DEFAULT_MODULES_DIR))
    reports_dir: Path = field(default_factory=lambda: Path(DEFAULT_REPORTS_DIR))
    history_limit: int = HISTORY_LIMIT
    track_templates: bool = False

    @property
    def history_path(self) -> Path:
        return self.state_dir / HISTORY_FILE_NAME

    @property
    def snapshot_path(self) -> Path:
        return self.state_dir / SNAPSHOT_FILE_NAME

    @property
    def dimensions(self) -> tuple[str, ...]:
        if self.track_templates:
            return TRACKED_DIMENSIONS + ("templates",)
        return TRACKED_DIMENSIONS

    @classmethod
    def load(cls) -> "Config":
        """Load config from the config file, then apply env var overrides."""
        cfg = cls()

        if CONFIG_FILE.exists():
            try:
                data = json.loads(CONFIG_FILE.read_text(encoding="utf-8-sig"))
            except (json.JSONDecodeError, OSError) as e:
                log.warning("Ignoring unreadable config file %s: %s", CONFIG_FILE, e)
                data = {}
            if not isinstance(data, dict):
                log.warning("Ignoring config file %s: expected a JSON object", CONFIG_FILE)
                data = {}
            if spec := data.get("spec_path"):
                cfg.spec_path = Path(spec)
            if state := data.get("state_dir"):
                cfg.state_dir = Path(state)
            if modules := data.get("modules_dir"):
                cfg.modules_dir = Path(modules)
            if reports := data.get("reports_dir"):
                cfg.reports_dir = Path(reports)
            if data.get("history_limit") is not None:
                cfg.history_limit = _history_limit(data["history_limit"])
            if data.get("track_templates") is not None:
                cfg.track_templates = bool(data["track_templates"])

        # Env vars take priority
        if spec := os.environ.get("SPECSYNC_SPEC"):
            cfg.spec_path = Path(spec)
        if state := os.environ.get("SPECSYNC_STATE_DIR"):
            cfg.state_dir = Path(state)
        if modules := os.environ.get("SPECSYNC_MODULES_DIR"):
            cfg.modules_dir = Path(modules)
        if reports := os.environ.get("SPECSYNC_REPORTS_DIR"):
            cfg.reports_dir = Path(reports)
        return cfg

    def save(self) -> None:
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        data = {
            "spec_path": str(self.spec_path),
            "state_dir": str(self.state_dir),
            "modules_dir": str(self.modules_dir),
            "reports_dir": str(self.reports_dir),
            "history_limit": self.history_limit,
            "track_templates": self.track_templates,
        }
        CONFIG_FILE.write_text(json.dumps(data, indent=2))
