"""Applies detected changes to downstream modules, one strategy per change type."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable

from .analyzer import ImpactAnalyzer
from .config import IMPACT_TARGETS
from .schemas import ChangeItem, ImpactAnalysis, UpdateResult, UpdateSummary
from .targets import MODULE_TARGETS, PatchableConfig, StrategyApplicationFailure, settings_path

log = logging.getLogger(__name__)

Strategy = Callable[[ChangeItem], UpdateResult]

NEXT_STEP_REVIEW = "Review manual_review_items and apply those changes by hand"
NEXT_STEP_VALIDATE = "Run: specsync validate"


class UpdateDispatcher:
    def __init__(
        self,
        modules_dir: str | Path,
        analyzer: ImpactAnalyzer | None = None,
        progress_cb: Callable[[str], None] | None = None,
    ):
        self.modules_dir = Path(modules_dir)
        self.analyzer = analyzer or ImpactAnalyzer()
        self.progress_cb = progress_cb or (lambda msg: None)
        self.strategies: dict[str, Strategy] = {
            "sources": self.update_data_extractors,
            "content-rules": self.update_content_builders,
            "validation-rules": self.update_quality_controllers,
            "output-structure": self.update_file_generators,
            "templates": self.update_template_processors,
        }

    def register_strategy(self, change_type: str, strategy: Strategy) -> None:
        self.strategies[change_type] = strategy

    def apply(self, changes: Iterable[ChangeItem], analysis: ImpactAnalysis | None = None) -> UpdateSummary:
        changes = list(changes)
        if analysis is None:
            analysis = self.analyzer.analyze(changes)

        results: list[UpdateResult] = []
        manual: list[ChangeItem] = []
        for change in changes:
            if change in analysis.manual_review_required:
                self.progress_cb(f"  ⚠ {change.type} requires manual review")
                manual.append(change)
                continue
            try:
                result = self.apply_change(change)
            except Exception as e:
                log.exception("Applying %s changes failed", change.type)
                self.progress_cb(f"  ❌ {change.type}: {e}")
                manual.append(change.model_copy(update={"error": str(e) or type(e).__name__}))
                continue
            if result.updates or not result.unhandled:
                results.append(result)
                self.progress_cb(f"  ✅ {change.type}: {len(result.updates)} updates")
            if result.unhandled:
                keys = ", ".join(result.unhandled)
                log.warning("No automatic update for %s details: %s", change.type, keys)
                self.progress_cb(f"  ⚠ {change.type}: no automatic update for {keys}")
                manual.append(change.model_copy(update={"error": f"No automatic update for: {keys}"}))

        return self.summarize(results, manual)

    def apply_change(self, change: ChangeItem) -> UpdateResult:
        strategy = self.strategies.get(change.type)
        if strategy is None:
            raise StrategyApplicationFailure(f"No update strategy registered for change type: {change.type}")
        return strategy(change)

    def summarize(self, results: list[UpdateResult], manual: list[ChangeItem]) -> UpdateSummary:
        next_steps = []
        if manual:
            next_steps.append(NEXT_STEP_REVIEW)
        next_steps.append(NEXT_STEP_VALIDATE)
        return UpdateSummary(
            timestamp=datetime.now(timezone.utc).isoformat(),
            automatic_updates=len(results),
            manual_review_required=len(manual),
            results=results,
            manual_review_items=manual,
            success=all(r.success for r in results),
            next_steps=next_steps,
        )

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _patch_group(self, change: ChangeItem) -> UpdateResult:
        group = IMPACT_TARGETS[change.type]
        targets = MODULE_TARGETS[group]
        updates: list[str] = []
        unhandled: list[str] = []
        for detail in change.details:
            target = targets.get(detail.key)
            # Removed values have nothing to substitute
            if target is None or detail.kind == "removed":
                unhandled.append(detail.key)
                continue
            config = PatchableConfig(settings_path(self.modules_dir, group, target.module))
            config.patch(target.setting, detail.new_value)
            updates.append(f"Updated {target.label}")
        return UpdateResult(type=group, updates=updates, unhandled=unhandled, success=True)

    def update_data_extractors(self, change: ChangeItem) -> UpdateResult:
        return self._patch_group(change)

    def update_content_builders(self, change: ChangeItem) -> UpdateResult:
        return self._patch_group(change)

    def update_quality_controllers(self, change: ChangeItem) -> UpdateResult:
        return self._patch_group(change)

    def update_file_generators(self, change: ChangeItem) -> UpdateResult:
        return self._patch_group(change)

    def update_template_processors(self, change: ChangeItem) -> UpdateResult:
        return self._patch_group(change)
