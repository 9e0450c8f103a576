"""Impact classification: affected modules, effort and manual-review gating."""
from __future__ import annotations

import logging
from typing import Iterable

from .config import (
    EFFORT_LOW_MAX,
    EFFORT_MEDIUM_MAX,
    IMPACT_TARGETS,
    MANUAL_REVIEW_DETAIL_LIMIT,
    SEVERITY_WEIGHTS,
)
from .schemas import ChangeItem, ImpactAnalysis

log = logging.getLogger(__name__)

UPDATE_ACTIONS = {
    "sources": "Update source URLs and data extraction logic",
    "content-rules": "Update content generation rules and templates",
    "validation-rules": "Update validation rules and quality checks",
    "output-structure": "Update output file structure and naming",
    "templates": "Update template references",
}


class ImpactAnalyzer:
    def analyze(self, changes: Iterable[ChangeItem]) -> ImpactAnalysis:
        changes = list(changes)
        modules: set[str] = set()
        actions: list[str] = []
        manual: list[ChangeItem] = []

        for change in changes:
            modules.add(IMPACT_TARGETS[change.type])
            actions.append(UPDATE_ACTIONS[change.type])
            if self.requires_manual_review(change):
                manual.append(change)

        analysis = ImpactAnalysis(
            impacted_modules=sorted(modules),
            update_actions=actions,
            manual_review_required=manual,
            estimated_effort=self.estimate_effort(changes),
            auto_updateable=not manual,
        )
        log.info(
            "Impact: %d modules, effort %s, %d for manual review",
            len(modules), analysis.estimated_effort, len(manual),
        )
        return analysis

    @staticmethod
    def requires_manual_review(change: ChangeItem) -> bool:
        """True when a change should not be applied mechanically.

        - content rules touching the example prompts
        - output structure losing something
        - a high-severity change carrying more details than the review threshold
        """
        criteria = [
            change.type == "content-rules" and any(d.key == "example-prompts" for d in change.details),
            change.type == "output-structure" and any(d.kind == "removed" for d in change.details),
            change.severity == "high" and len(change.details) > MANUAL_REVIEW_DETAIL_LIMIT,
        ]
        return any(criteria)

    @staticmethod
    def estimate_effort(changes: Iterable[ChangeItem]) -> str:
        total = sum(SEVERITY_WEIGHTS[c.severity] for c in changes)
        if total <= EFFORT_LOW_MAX:
            return "low"
        if total <= EFFORT_MEDIUM_MAX:
            return "medium"
        return "high"

    @staticmethod
    def recommendations(analysis: ImpactAnalysis) -> list[str]:
        recs: list[str] = []
        if analysis.auto_updateable:
            recs.append("All changes can be applied automatically")
            recs.append("Run: specsync run")
        else:
            recs.append("Manual review required for some changes")
            recs.append("Review the manual_review_items of the update summary")
        if analysis.estimated_effort == "high":
            recs.append("Consider applying changes incrementally")
            recs.append("Test each module update separately")
        recs.append("Run: specsync validate after updates")
        return recs
