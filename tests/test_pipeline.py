import json

import pytest

from specsync.config import Config
from specsync.history import FileHistoryStore
from specsync.pipeline import SyncPipeline
from specsync.targets import seed_module_settings


@pytest.fixture
def config(tmp_path, spec_file):
    cfg = Config(
        spec_path=spec_file,
        state_dir=tmp_path / "state",
        modules_dir=tmp_path / "modules",
        reports_dir=tmp_path / "reports",
    )
    seed_module_settings(cfg.modules_dir, {})
    return cfg


def test_first_pass(config):
    messages = []
    pipeline = SyncPipeline(config, progress_cb=messages.append)
    outcome = pipeline.run()

    assert outcome.state == "recorded"
    assert outcome.dispatch == "manual_review_pending"
    assert pipeline.state == "recorded"
    assert outcome.summary.automatic_updates == 3
    assert [i.type for i in outcome.summary.manual_review_items] == ["content-rules"]
    assert messages

    summary = json.loads(open(outcome.report_path, encoding="utf-8").read())
    assert summary["manual_review_required"] == 1
    assert outcome.report_path.endswith(".json")
    assert "update-summary-" in outcome.report_path
    assert len(list(config.reports_dir.glob("change-report-*.json"))) == 1

    entries = FileHistoryStore(config.history_path).entries()
    assert entries[-1].processed is True
    assert config.snapshot_path.exists()


def test_second_pass_is_noop(config):
    SyncPipeline(config).run()
    pipeline = SyncPipeline(config)
    outcome = pipeline.run()
    assert outcome.state == "unchanged"
    assert outcome.summary is None
    assert len(FileHistoryStore(config.history_path).entries()) == 1


def test_in_sync_pass_is_marked_processed(config, spec_text):
    SyncPipeline(config).run()
    config.spec_path.write_text(spec_text + "\nA closing remark for readers.\n")

    outcome = SyncPipeline(config).run()
    assert outcome.state == "recorded"
    assert outcome.dispatch is None
    assert outcome.summary is None
    entries = FileHistoryStore(config.history_path).entries()
    assert len(entries) == 2
    assert all(e.processed for e in entries)


def test_auto_applied_pass(config, spec_text):
    SyncPipeline(config).run()
    config.spec_path.write_text(spec_text.replace("more than 4 individual tools", "more than 6 individual tools"))

    outcome = SyncPipeline(config).run()
    assert outcome.state == "recorded"
    assert outcome.dispatch == "auto_applied"
    assert outcome.summary.results[0].updates == ["Updated content validation rules"]
    settings = json.loads((config.modules_dir / "quality-controllers" / "content-validator.json").read_text())
    assert settings["CONTENT_RULES"] == {"max-landing-page-tools": 6}


def test_report_failure_does_not_fail_pass(config, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    config.reports_dir = blocker
    outcome = SyncPipeline(config).run()
    assert outcome.summary is not None
    assert outcome.report_path is None
    assert FileHistoryStore(config.history_path).entries()[-1].processed is True
