"""Sync pipeline: detect -> classify -> apply -> record."""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

from .analyzer import ImpactAnalyzer
from .config import Config
from .detector import ChangeDetector, build_change_report
from .dispatcher import UpdateDispatcher
from .history import FileHistoryStore, HistoryStore
from .parser import validate_parsed_spec
from .schemas import DetectionResult, SyncOutcome, UpdateSummary
from .schemas.update_summary import SyncState
from .snapshot import FileSnapshotStore, SnapshotStore
from .utils import ReportManager

log = logging.getLogger(__name__)

SUMMARY_PREFIX = "update-summary"
REPORT_PREFIX = "change-report"


class SyncPipeline:
    def __init__(
        self,
        config: Config,
        history: HistoryStore | None = None,
        snapshots: SnapshotStore | None = None,
        progress_cb: Callable[[str], None] | None = None,
    ):
        self.config = config
        self.progress_cb = progress_cb or (lambda msg: None)
        self.history = history or FileHistoryStore(config.history_path, config.history_limit)
        self.snapshots = snapshots or FileSnapshotStore(config.snapshot_path)
        self.analyzer = ImpactAnalyzer()
        self.detector = ChangeDetector(self.history, self.snapshots, self.analyzer, config.dimensions)
        self.dispatcher = UpdateDispatcher(config.modules_dir, self.analyzer, self.progress_cb)
        self.reports = ReportManager(str(config.reports_dir))
        self.state: SyncState = "idle"

    def step_detect(self, spec_path: Path) -> DetectionResult:
        self.progress_cb(f"🔍 Checking {spec_path} for changes...")
        result = self.detector.detect(spec_path)
        self.state = "fingerprinted"
        if result.parsed is not None:
            self.state = "parsed"
            for problem in validate_parsed_spec(result.parsed):
                self.progress_cb(f"  ⚠ {problem}")
                log.warning("Spec check: %s", problem)
            self.state = "diffed"
        self.progress_cb(f"  {result.message}")
        return result

    def step_apply(self, result: DetectionResult) -> UpdateSummary:
        analysis = result.impact_analysis
        self.state = "classified"
        self.progress_cb(
            f"🛠 Applying {len(result.changes)} changes "
            f"(effort {analysis.estimated_effort if analysis else 'low'})..."
        )
        summary = self.dispatcher.apply(result.changes, analysis)
        self.state = "manual_review_pending" if summary.manual_review_required else "auto_applied"
        return summary

    def step_write_reports(self, result: DetectionResult, summary: UpdateSummary) -> Path | None:
        when = datetime.now()
        try:
            path = self.reports.save_model(SUMMARY_PREFIX, summary, when)
            self.reports.save_model(REPORT_PREFIX, build_change_report(result, self.analyzer), when)
        except OSError as e:
            # Reports are informational; the pass itself already happened
            log.error("Writing reports to %s failed: %s", self.reports.base_dir, e)
            self.progress_cb(f"  ⚠ Could not write reports: {e}")
            return None
        self.progress_cb(f"📄 Summary: {path}")
        return path

    def run(self, spec_path: str | Path | None = None) -> SyncOutcome:
        spec_path = Path(spec_path) if spec_path is not None else self.config.spec_path
        self.state = "idle"
        result = self.step_detect(spec_path)
        if not result.has_changes:
            if result.parsed is None:
                self.state = "unchanged"
            else:
                # New fingerprint recorded with nothing to dispatch
                self.history.mark_processed(result.fingerprint)
                self.state = "recorded"
            return SyncOutcome(state=self.state, detection=result)

        summary = self.step_apply(result)
        settled = self.state
        report_path = self.step_write_reports(result, summary)
        self.history.mark_processed(result.fingerprint)
        self.state = "recorded"
        log.info(
            "Sync pass %s: %d automatic, %d for manual review",
            result.fingerprint[:12], summary.automatic_updates, summary.manual_review_required,
        )
        return SyncOutcome(
            state=self.state,
            dispatch=settled,
            detection=result,
            summary=summary,
            report_path=str(report_path) if report_path else None,
        )
