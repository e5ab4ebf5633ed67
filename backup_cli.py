"""Command-line entry point for BurbujApp backups and the local backup API."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence

from api import __version__ as API_VERSION
from backup import BackupService
from backup.errors import BackupError, NotFoundError, PartialRestoreError, UnavailableError, ValidationError
from backup.types import Snapshot
from core.logging_utils import configure_json_logging
from core.paths import ensure_working_dir_structure, resolve_working_dir
from core.settings import api_settings, load_settings

LOGGER = logging.getLogger("burbujapp.cli")


def _format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def _parse_value(raw: str) -> Any:
    token = raw.strip()
    lowered = token.lower()
    if lowered in {"true", "yes", "on"}:
        return True
    if lowered in {"false", "no", "off"}:
        return False
    try:
        return int(token)
    except ValueError:
        return token


def _parse_assignments(pairs: Sequence[str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key.strip():
            raise ValidationError(f"expected key=value, got {pair!r}")
        values[key.strip()] = _parse_value(raw)
    return values


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage BurbujApp local backups.")
    parser.add_argument("--working-dir", dest="working_dir", default=None, help="Override the working directory.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to the console.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Seed the default policy and create the backup directory.")

    create = sub.add_parser("create", help="Create a backup now.")
    create.add_argument("--manual", action="store_true", help="Mark as manual (exempt from retention).")

    listing = sub.add_parser("list", help="List backups, newest first.")
    listing.add_argument("--json", action="store_true", help="Print JSON instead of a table.")

    delete = sub.add_parser("delete", help="Delete a backup file.")
    delete.add_argument("filename")

    export = sub.add_parser("export", help="Share a backup through the configured share directory.")
    export.add_argument("filename")

    importer = sub.add_parser("import", help="Validate a snapshot file without restoring it.")
    importer.add_argument("path", type=Path)

    restore = sub.add_parser("restore", help="Restore a snapshot over the current data.")
    source = restore.add_mutually_exclusive_group(required=True)
    source.add_argument("path", nargs="?", type=Path, help="Snapshot file to restore.")
    source.add_argument("--backup", dest="backup", default=None, help="Stored backup filename to restore.")
    restore.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")

    config = sub.add_parser("config", help="Show or update the backup policy.")
    config.add_argument("--set", dest="assignments", action="append", default=[], metavar="KEY=VALUE")

    sub.add_parser("check", help="Create an automatic backup if one is due.")

    serve = sub.add_parser("serve", help="Start the local backup API.")
    serve.add_argument("--host", default=None, help="Bind host (default from settings.json)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default from settings.json)")
    serve.add_argument("--api-key", dest="api_key", default=None, help="Override the API key for this session")
    return parser.parse_args(argv)


# ----------------------------------------------------------------------
def _cmd_init(service: BackupService, args: argparse.Namespace) -> int:
    service.initialize()
    print(f"Backups directory: {service.backups_dir}")
    return 0


def _cmd_create(service: BackupService, args: argparse.Namespace) -> int:
    path = service.create_backup(manual=bool(args.manual))
    print(path)
    return 0


def _cmd_list(service: BackupService, args: argparse.Namespace) -> int:
    backups = service.list_backups()
    if args.json:
        print(json.dumps([item.to_dict() for item in backups], indent=2))
        return 0
    if not backups:
        print("No backups found.")
        return 0
    for item in backups:
        kind = "manual" if item.manual else "auto"
        print(f"{item.date}  {_format_size(item.size):>9}  {kind:<6}  {item.filename}")
    return 0


def _cmd_delete(service: BackupService, args: argparse.Namespace) -> int:
    service.delete_backup(args.filename)
    print(f"Deleted {args.filename}")
    return 0


def _cmd_export(service: BackupService, args: argparse.Namespace) -> int:
    shared = service.export_backup(args.filename)
    print(shared)
    return 0


def _describe(snapshot: Snapshot) -> str:
    counts = []
    for name, value in snapshot.payload.items():
        size = len(value) if isinstance(value, (list, dict)) else 1
        counts.append(f"{name}={size}")
    return f"snapshot {snapshot.timestamp} (version {snapshot.version}): {', '.join(counts) or 'empty'}"


def _cmd_import(service: BackupService, args: argparse.Namespace) -> int:
    snapshot = service.import_backup(args.path)
    if snapshot is None:
        print("Import cancelled.")
        return 1
    print(_describe(snapshot))
    return 0


def _confirm(snapshot: Snapshot) -> bool:
    answer = input(f"Restore {_describe(snapshot)}?\nThis replaces the current data. [y/N] ")
    return answer.strip().lower() in {"y", "yes"}


def _cmd_restore(service: BackupService, args: argparse.Namespace) -> int:
    if args.backup:
        snapshot = service.read_backup(args.backup)
    else:
        snapshot = service.import_backup(args.path)
        if snapshot is None:
            print("Import cancelled.")
            return 1
    if not args.yes and not _confirm(snapshot):
        print("Restore cancelled.")
        return 1
    report = service.restore_backup(snapshot)
    print(f"Safety snapshot: {report.safety_snapshot}")
    print(f"Restored: {', '.join(report.restored) or '-'}")
    if report.skipped:
        print(f"Skipped: {', '.join(report.skipped)}")
    report.raise_for_failures()
    return 0


def _cmd_config(service: BackupService, args: argparse.Namespace) -> int:
    if args.assignments:
        config = service.set_config(_parse_assignments(args.assignments))
    else:
        config = service.get_config()
    print(json.dumps(config.to_dict(), indent=2))
    return 0


def _cmd_check(service: BackupService, args: argparse.Namespace) -> int:
    path = service.check_automatic_backup()
    print(path if path else "No backup due.")
    return 0


def _cmd_serve(service: BackupService, args: argparse.Namespace) -> int:
    import uvicorn

    from api.server import APIServerConfig, create_app

    api_config = api_settings(load_settings(service.working_dir))
    host = args.host or api_config["host"]
    port = args.port or api_config["port"]
    api_key = args.api_key or api_config["api_key"]
    if not api_key:
        LOGGER.warning("API key is not configured; all requests will be rejected with 401.")
    app = create_app(
        APIServerConfig(
            service=service,
            api_key=api_key,
            cors_origins=api_config["cors_origins"],
            app_version=API_VERSION,
        )
    )
    print(f"API listening on http://{host}:{port}", flush=True)
    server = uvicorn.Server(uvicorn.Config(app, host=str(host), port=port, log_level="info", access_log=False))
    server.run()
    return 0


_COMMANDS: Dict[str, Callable[[BackupService, argparse.Namespace], int]] = {
    "init": _cmd_init,
    "create": _cmd_create,
    "list": _cmd_list,
    "delete": _cmd_delete,
    "export": _cmd_export,
    "import": _cmd_import,
    "restore": _cmd_restore,
    "config": _cmd_config,
    "check": _cmd_check,
    "serve": _cmd_serve,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    working_dir = Path(args.working_dir).expanduser().resolve() if args.working_dir else resolve_working_dir()
    ensure_working_dir_structure(working_dir)
    configure_json_logging(working_dir, level=logging.DEBUG if args.verbose else logging.INFO, console=args.verbose)
    try:
        with BackupService(working_dir=working_dir) as service:
            return _COMMANDS[args.command](service, args)
    except PartialRestoreError as exc:
        logging.getLogger("burbujapp").error("%s", exc)
        print(f"Failed keys: {', '.join(sorted(exc.report.failed))}", file=sys.stderr)
        return 1
    except (ValidationError, NotFoundError, UnavailableError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except BackupError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
