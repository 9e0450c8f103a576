"""Entry point for the specsync command line."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import LOG_FILE, Config

log = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(LOG_FILE),
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if verbose:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logging.getLogger().addHandler(handler)


def _config_from_args(args: argparse.Namespace) -> Config:
    config = Config.load()
    if getattr(args, "spec", None):
        config.spec_path = Path(args.spec)
    if args.state_dir:
        config.state_dir = Path(args.state_dir)
    if args.modules_dir:
        config.modules_dir = Path(args.modules_dir)
    if args.reports_dir:
        config.reports_dir = Path(args.reports_dir)
    return config


def cmd_run(config: Config) -> int:
    from .pipeline import SyncPipeline

    outcome = SyncPipeline(config, progress_cb=print).run()
    if outcome.summary is None:
        print("✅ No updates needed.")
        return 0

    summary = outcome.summary
    print(f"\nAutomatic updates: {summary.automatic_updates}")
    for result in summary.results:
        for line in result.updates:
            print(f"  {result.type}: {line}")
    print(f"Manual review required: {summary.manual_review_required}")
    for item in summary.manual_review_items:
        suffix = f" ({item.error})" if item.error else ""
        print(f"  {item.type}: {item.description}{suffix}")
    print("Next steps:")
    for step in summary.next_steps:
        print(f"  - {step}")
    return 0 if summary.success else 1


def cmd_history(config: Config) -> int:
    from .history import FileHistoryStore

    entries = FileHistoryStore(config.history_path, config.history_limit).entries()
    if not entries:
        print("No change history.")
        return 0
    for entry in entries:
        mark = "✓" if entry.processed else " "
        types = ", ".join(c.type for c in entry.changes) or "no tracked changes"
        print(f"[{mark}] {entry.timestamp}  {entry.fingerprint[:12]}  {types}")
    return 0


def cmd_validate(config: Config) -> int:
    from .snapshot import FileSnapshotStore
    from .validator import validate_integration

    snapshot = FileSnapshotStore(config.snapshot_path).load()
    if not snapshot:
        print(f"No config snapshot at {config.snapshot_path}; run `specsync init` first.")
        return 1
    report = validate_integration(snapshot, config.modules_dir)
    for m in report.mismatches:
        print(f"  ✗ {m.group}/{m.module} {m.setting}: expected {m.expected!r}, found {m.actual!r}")
    for problem in report.missing:
        print(f"  ✗ {problem}")
    status = "✅ Integration valid" if report.valid else "❌ Integration invalid"
    print(f"{status} ({report.checked} settings checked)")
    return 0 if report.valid else 1


def cmd_init(config: Config) -> int:
    from .parser import load_spec
    from .snapshot import FileSnapshotStore
    from .targets import seed_module_settings

    parsed = load_spec(config.spec_path)
    snapshot = parsed.tracked_config(include_templates=config.track_templates)
    FileSnapshotStore(config.snapshot_path).save(snapshot)
    print(f"Wrote config snapshot {config.snapshot_path}")
    for path in seed_module_settings(config.modules_dir, snapshot):
        print(f"  created {path}")
    return 0


COMMANDS = {
    "run": cmd_run,
    "history": cmd_history,
    "validate": cmd_validate,
    "init": cmd_init,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="specsync", description="Keep documentation modules in sync with the spec")
    parser.add_argument("--state-dir", help="Directory holding change history and config snapshot")
    parser.add_argument("--modules-dir", help="Directory of downstream module settings")
    parser.add_argument("--reports-dir", help="Directory for update summaries")
    parser.add_argument("-v", "--verbose", action="store_true", help="Also log to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run one synchronization pass")
    run.add_argument("--spec", help="Spec document path")
    sub.add_parser("history", help="Show stored change history")
    sub.add_parser("validate", help="Check module settings against the config snapshot")
    init = sub.add_parser("init", help="Write the config snapshot and seed module settings")
    init.add_argument("--spec", help="Spec document path")
    return parser


def main(argv: list[str] | None = None) -> None:
    from .history import PersistenceFailure
    from .parser import ParseFailure

    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    config = _config_from_args(args)

    try:
        code = COMMANDS[args.command](config)
    except (ParseFailure, PersistenceFailure) as e:
        log.error("%s failed: %s", args.command, e)
        print(f"Error: {e}")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
