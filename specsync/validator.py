"""Integration check: do the module settings match the current snapshot?"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .config import IMPACT_TARGETS
from .schemas import IntegrationMismatch, IntegrationReport
from .targets import MODULE_TARGETS, PatchableConfig, StrategyApplicationFailure, settings_path
from .utils import canonical_json

log = logging.getLogger(__name__)


def validate_integration(snapshot: dict[str, Any], modules_dir: str | Path) -> IntegrationReport:
    checked = 0
    mismatches: list[IntegrationMismatch] = []
    missing: list[str] = []

    for change_type, group in IMPACT_TARGETS.items():
        dimension = snapshot.get(change_type) or {}
        for key, target in MODULE_TARGETS[group].items():
            if key not in dimension:
                continue
            checked += 1
            config = PatchableConfig(settings_path(modules_dir, group, target.module))
            try:
                actual = config.get(target.setting)
            except StrategyApplicationFailure as e:
                missing.append(str(e))
                continue
            if canonical_json(actual) != canonical_json(dimension[key]):
                mismatches.append(IntegrationMismatch(
                    group=group,
                    module=target.module,
                    setting=target.setting,
                    expected=dimension[key],
                    actual=actual,
                ))

    report = IntegrationReport(
        checked=checked,
        mismatches=mismatches,
        missing=missing,
        valid=not mismatches and not missing,
    )
    log.info("Integration check: %d settings, %d mismatches, %d missing", checked, len(mismatches), len(missing))
    return report
