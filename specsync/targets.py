"""Patchable settings exposed by the downstream documentation modules.

Each downstream module keeps its configurable values in a small JSON
key/value file under ``<modules_dir>/<group>/<module>.json``. Update
strategies write through :class:`PatchableConfig` instead of editing the
module's source text.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .config import IMPACT_TARGETS
from .utils import write_text_atomic

log = logging.getLogger(__name__)


class StrategyApplicationFailure(Exception):
    """A patch step could not be applied to its target module."""


@dataclass(frozen=True)
class PatchTarget:
    module: str
    setting: str
    label: str   # used in "Updated <label>"


# module group -> detail key -> target
MODULE_TARGETS: dict[str, dict[str, PatchTarget]] = {
    "data-extractors": {
        "commands": PatchTarget("commands-extractor", "COMMANDS_URL", "commands URL"),
        "examples": PatchTarget("examples-extractor", "EXAMPLES_URL", "examples URL"),
        "tools-json": PatchTarget("tools-json-processor", "TOOLS_JSON_URL", "tools.json URL"),
    },
    "content-builders": {
        "example-prompts": PatchTarget("example-prompt-builder", "EXAMPLE_PROMPT_RULES", "example prompt generation rules"),
        "parameters": PatchTarget("parameter-table-builder", "PARAMETER_RULES", "parameter table formatting rules"),
        "headers": PatchTarget("operation-builder", "HEADER_RULES", "header formatting rules"),
        "links": PatchTarget("operation-builder", "LINK_RULES", "link formatting rules"),
        "markdown": PatchTarget("operation-builder", "MARKDOWN_RULES", "markdown formatting rules"),
    },
    "quality-controllers": {
        "content": PatchTarget("content-validator", "CONTENT_RULES", "content validation rules"),
        "structure": PatchTarget("format-checker", "STRUCTURE_RULES", "structure validation rules"),
    },
    "file-generators": {
        "base-directory": PatchTarget("output-file-manager", "BASE_DIRECTORY", "output base directory"),
        "timestamp-format": PatchTarget("output-file-manager", "TIMESTAMP_FORMAT", "output timestamp format"),
        "directories": PatchTarget("output-file-manager", "SUBDIRECTORIES", "directory structure"),
        "files": PatchTarget("output-file-manager", "OUTPUT_FILES", "output file structure"),
    },
    "template-processors": {
        "primary": PatchTarget("template-loader", "PRIMARY_TEMPLATE", "primary template reference"),
        "partial": PatchTarget("template-loader", "PARTIAL_TEMPLATE", "partial template reference"),
    },
}


def settings_path(modules_dir: str | Path, group: str, module: str) -> Path:
    return Path(modules_dir) / group / f"{module}.json"


class PatchableConfig:
    """Key/value settings of one downstream module."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise StrategyApplicationFailure(f"Module settings not found: {self.path}") from e
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StrategyApplicationFailure(f"Cannot read module settings {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StrategyApplicationFailure(f"Module settings {self.path} is not a key/value object")
        return data

    def get(self, key: str) -> Any:
        data = self.read()
        if key not in data:
            raise StrategyApplicationFailure(f"{key} is not configured in {self.path}")
        return data[key]

    def patch(self, key: str, value: Any) -> Any:
        """Replace the configured ``key`` and rewrite the file; returns the old value."""
        data = self.read()
        if key not in data:
            raise StrategyApplicationFailure(f"{key} is not configured in {self.path}")
        old = data[key]
        data[key] = value
        try:
            write_text_atomic(self.path, json.dumps(data, indent=2) + "\n")
        except OSError as e:
            raise StrategyApplicationFailure(f"Cannot write module settings {self.path}: {e}") from e
        log.info("Patched %s in %s", key, self.path)
        return old


def seed_module_settings(modules_dir: str | Path, snapshot: dict[str, Any]) -> list[Path]:
    """Create settings files that do not exist yet, filled from ``snapshot``."""
    created: list[Path] = []
    for change_type, group in IMPACT_TARGETS.items():
        dimension = snapshot.get(change_type) or {}
        modules: dict[str, dict[str, Any]] = {}
        for key, target in MODULE_TARGETS[group].items():
            modules.setdefault(target.module, {})[target.setting] = dimension.get(key)
        for module, settings in modules.items():
            path = settings_path(modules_dir, group, module)
            if path.exists():
                continue
            write_text_atomic(path, json.dumps(settings, indent=2) + "\n")
            created.append(path)
    return created
