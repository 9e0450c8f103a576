"""Fingerprint-based change detection and structural diffing of spec configs."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from .analyzer import ImpactAnalyzer
from .config import CHANGE_POLICY, TRACKED_DIMENSIONS
from .history import HistoryStore, PersistenceFailure
from .parser import compute_fingerprint, decode_spec, file_modified_time, parse_text, read_spec_bytes
from .schemas import (
    ChangeItem,
    ChangeReport,
    ChangeReportImpact,
    ChangeReportRow,
    ChangeReportSummary,
    DetectionResult,
    DifferenceItem,
)
from .snapshot import SnapshotStore
from .utils import canonical_json

log = logging.getLogger(__name__)


def compare_objects(old: Any, new: Any) -> list[DifferenceItem]:
    """Key-by-key difference of two mappings.

    Keys are visited in sorted order and values compared by their canonical
    JSON form, so the result does not depend on dict ordering. Nested values
    are compared as a whole and reported under their top-level key.
    """
    old = old if isinstance(old, dict) else {}
    new = new if isinstance(new, dict) else {}
    differences: list[DifferenceItem] = []
    for key in sorted(set(old) | set(new)):
        if key not in old:
            differences.append(DifferenceItem(key=key, kind="added", new_value=new[key]))
        elif key not in new:
            differences.append(DifferenceItem(key=key, kind="removed", old_value=old[key]))
        elif canonical_json(old[key]) != canonical_json(new[key]):
            differences.append(DifferenceItem(key=key, kind="modified", old_value=old[key], new_value=new[key]))
    return differences


def make_change(change_type: str, details: list[DifferenceItem]) -> ChangeItem:
    description, impact_target, severity = CHANGE_POLICY[change_type]
    return ChangeItem(
        type=change_type,
        description=description,
        impact_target=impact_target,
        severity=severity,
        details=details,
    )


def diff_configs(
    previous: dict[str, Any],
    current: dict[str, Any],
    dimensions: Iterable[str] = TRACKED_DIMENSIONS,
) -> list[ChangeItem]:
    """One ChangeItem per dimension that has at least one difference."""
    changes = []
    for dimension in dimensions:
        details = compare_objects(previous.get(dimension), current.get(dimension))
        if details:
            changes.append(make_change(dimension, details))
    return changes


class ChangeDetector:
    def __init__(
        self,
        history: HistoryStore,
        snapshots: SnapshotStore,
        analyzer: ImpactAnalyzer | None = None,
        dimensions: Iterable[str] = TRACKED_DIMENSIONS,
    ):
        self.history = history
        self.snapshots = snapshots
        self.analyzer = analyzer or ImpactAnalyzer()
        self.dimensions = tuple(dimensions)

    def detect(self, spec_path: str | Path) -> DetectionResult:
        data = read_spec_bytes(spec_path)
        fingerprint = compute_fingerprint(data)
        last = self.history.get_last_fingerprint()

        if fingerprint == last:
            log.info("Spec fingerprint %s unchanged", fingerprint[:12])
            return DetectionResult(has_changes=False, fingerprint=fingerprint, message="No changes detected in spec")

        parsed = parse_text(decode_spec(data, spec_path), last_modified=file_modified_time(spec_path))
        first_run = not last
        stored = self.snapshots.load()
        # Without a known fingerprint the old snapshot cannot be trusted
        previous = {} if first_run else stored
        current = parsed.tracked_config(include_templates="templates" in self.dimensions)
        changes = diff_configs(previous, current, self.dimensions)
        log.info(
            "Spec fingerprint %s -> %s: %d changed dimensions%s",
            last[:12] or "(none)", fingerprint[:12], len(changes), " (first run)" if first_run else "",
        )

        self.snapshots.save(current)
        try:
            self.history.record_entry(fingerprint, changes)
        except PersistenceFailure:
            # Put the old snapshot back so the next pass diffs against it again
            log.error("Recording history failed, restoring the previous config snapshot")
            self.snapshots.save(stored)
            raise

        if not changes and not first_run:
            return DetectionResult(
                has_changes=False,
                fingerprint=fingerprint,
                message="Spec changed but tracked configuration is still in sync",
                parsed=parsed,
            )
        return DetectionResult(
            has_changes=True,
            fingerprint=fingerprint,
            message="First run: no previous fingerprint" if first_run else f"{len(changes)} changed dimensions",
            changes=changes,
            impact_analysis=self.analyzer.analyze(changes),
            parsed=parsed,
        )


def build_change_report(result: DetectionResult, analyzer: ImpactAnalyzer | None = None) -> ChangeReport:
    analyzer = analyzer or ImpactAnalyzer()
    analysis = result.impact_analysis or analyzer.analyze(result.changes)
    return ChangeReport(
        summary=ChangeReportSummary(
            timestamp=datetime.now(timezone.utc).isoformat(),
            total_changes=len(result.changes),
            estimated_effort=analysis.estimated_effort,
            auto_updateable=analysis.auto_updateable,
        ),
        changes=[
            ChangeReportRow(
                type=c.type,
                description=c.description,
                severity=c.severity,
                impact_target=c.impact_target,
                detail_count=len(c.details),
            )
            for c in result.changes
        ],
        impact=ChangeReportImpact(
            modules_affected=len(analysis.impacted_modules),
            update_actions=len(analysis.update_actions),
            manual_review_items=len(analysis.manual_review_required),
        ),
        recommendations=analyzer.recommendations(analysis),
    )
