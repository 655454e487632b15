# /sharewatch.py
# ShareWatch - shared watch-lists with CSV import/export
# Copyright (c) 2025-2026 ShareWatch contributors
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import uvicorn
from fastapi import FastAPI

from _logging import log
from api import register as register_api
from services.csv_parser import auto_detect_mapping, decode_csv
from services.export import entries_to_csv
from services.importer import run_import
from sw_platform.config_base import load_config
from sw_platform.errors import DecodeError, MappingError, PersistenceError
from sw_platform.models import MAPPING_FIELDS, ImportProgress
from sw_platform.runtime import get_catalog, get_store

__version__ = "0.1.0"


def create_app() -> FastAPI:
    app = FastAPI(title="ShareWatch", version=__version__)
    register_api(app)

    @app.get("/api/health")
    def api_health() -> dict[str, Any]:
        return {"ok": True, "version": __version__}

    return app


# CLI
def _parse_map_overrides(items: Sequence[str]) -> dict[str, Optional[str]]:
    out: dict[str, Optional[str]] = {}
    for it in items or []:
        field, sep, header = it.partition("=")
        field = field.strip()
        if not sep or field not in MAPPING_FIELDS:
            raise SystemExit(f"--map expects field=header with field in {', '.join(MAPPING_FIELDS)}")
        out[field] = header.strip() or None
    return out


def _cli_progress(p: ImportProgress) -> None:
    if p.processed == p.total or p.processed % 25 == 0:
        log.info(f"progress {p.processed}/{p.total}")


def _cmd_import(args: argparse.Namespace) -> int:
    try:
        headers, rows = decode_csv(Path(args.file).read_bytes())
    except (OSError, DecodeError) as e:
        log.error(str(e))
        return 2

    mapping = auto_detect_mapping(headers)
    for field, header in _parse_map_overrides(args.map).items():
        mapping.bind(field, header)
    log.info(f"column mapping: {mapping.bound()}")

    try:
        result = run_import(
            rows,
            mapping,
            list_id=args.list,
            user_id=args.user,
            store=get_store(),
            catalog=None if args.offline else get_catalog(),
            on_progress=_cli_progress,
            slash_order=args.slash_order,
        )
    except (MappingError, PersistenceError) as e:
        log.error(str(e))
        return 2

    for err in result.errors:
        log.warn(f"row {err.row} ({err.title}): {err.error}")
    print(f"created={result.created} merged={result.merged} failed={result.failed} skipped={result.skipped}")
    return 1 if result.failed else 0


def _cmd_export(args: argparse.Namespace) -> int:
    try:
        text = entries_to_csv(get_store().find_entries_by_list(args.list), args.user)
    except PersistenceError as e:
        log.error(str(e))
        return 2
    if args.out:
        Path(args.out).write_text(text, encoding="utf-8")
        log.success(f"exported list {args.list} to {args.out}")
    else:
        sys.stdout.write(text)
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    uvicorn.run(create_app(), host=args.host, port=args.port, log_level="info")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="sharewatch", description="Shared watch-lists with CSV import/export")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("serve", help="run the HTTP API")
    s.add_argument("--host", default="0.0.0.0")
    s.add_argument("--port", type=int, default=8787)
    s.set_defaults(func=_cmd_serve)

    i = sub.add_parser("import", help="import a CSV file into a list")
    i.add_argument("file")
    i.add_argument("--list", required=True, help="target list id")
    i.add_argument("--user", required=True, help="importing user id")
    i.add_argument("--map", action="append", default=[], metavar="FIELD=HEADER", help="override the detected mapping")
    i.add_argument("--slash-order", choices=("mdy", "dmy", "auto"), default=None)
    i.add_argument("--offline", action="store_true", help="skip catalog lookups (stub entries only)")
    i.set_defaults(func=_cmd_import)

    e = sub.add_parser("export", help="export a list as CSV")
    e.add_argument("--list", required=True)
    e.add_argument("--user", default=None, help="rating column uses this user's rating")
    e.add_argument("--out", default=None)
    e.set_defaults(func=_cmd_export)
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    log.configure(load_config())
    args = build_parser().parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
