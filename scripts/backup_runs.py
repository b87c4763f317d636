"""Export the configured run log to a JSON file, or merge one back in."""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path

from backend.app.config import load_settings
from backend.app.domain.runlog import RunLogStore, build_blob_store
from backend.app.domain.runlog.store import export_filename
from backend.app.infra.logging import configure_logging


def export_runs(store: RunLogStore, destination: Path | None) -> Path:
    """Write the indented export to ``destination`` (defaults to runs_<today>.json)."""

    target = destination or Path(export_filename(date.today()))
    target.write_text(store.export_payload(), encoding="utf-8")
    return target


def import_runs(store: RunLogStore, source: Path) -> int:
    result = store.import_payload(source.read_bytes())
    if not result.ok or result.merge is None:
        print(result.message, file=sys.stderr)
        return 1
    print(
        f"{result.message}: {result.merge.added} added, {result.merge.replaced} replaced, "
        f"{result.dropped} dropped ({result.merge.total} total)"
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--profile",
        default=None,
        help="Settings profile to load (defaults to RUNLOG_CONFIG_PROFILE or 'dev').",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    export_parser = subparsers.add_parser("export", help="Write every entry to a JSON file.")
    export_parser.add_argument("--output", type=Path, default=None)
    import_parser = subparsers.add_parser("import", help="Merge a JSON export into the log.")
    import_parser.add_argument("path", type=Path)
    args = parser.parse_args()

    settings = load_settings(profile=args.profile)
    configure_logging(settings.logging, environment=settings.environment)
    store = RunLogStore(build_blob_store(settings), storage_key=settings.storage.key)
    store.load()

    if args.command == "export":
        written = export_runs(store, args.output)
        print(f"Exported {len(store)} entries to {written}")
        sys.exit(0)
    sys.exit(import_runs(store, args.path))


if __name__ == "__main__":
    main()
