# /api/importAPI.py
# ShareWatch - CSV import endpoints (preview, run, progress)
# Copyright (c) 2025-2026 ShareWatch contributors
from __future__ import annotations

import threading
import time
import uuid
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from _logging import log as _root_log
from services.csv_parser import auto_detect_mapping, decode_csv
from services.importer import run_import
from sw_platform.config_base import load_config
from sw_platform.errors import DecodeError, MappingError
from sw_platform.models import ColumnMapping, ImportProgress
from sw_platform.runtime import get_catalog, get_store

router = APIRouter(prefix="/api/import", tags=["import"])
log = _root_log.child("IMPORT")

RUNS_LOCK = threading.Lock()
RUNS: dict[str, dict[str, Any]] = {}
MAX_RUNS_KEPT = 50


class ImportRunRequest(BaseModel):
    csv: str = Field(..., description="raw CSV text")
    list_id: str
    user_id: str
    mapping: Optional[dict[str, Optional[str]]] = None
    slash_date_order: Optional[str] = Field(None, pattern="^(mdy|dmy|auto)$")


def _run_set(run_id: str, **kv: Any) -> None:
    with RUNS_LOCK:
        RUNS.setdefault(run_id, {}).update(kv)


def _run_snapshot(run_id: str) -> Optional[dict[str, Any]]:
    with RUNS_LOCK:
        snap = RUNS.get(run_id)
        return dict(snap) if snap is not None else None


def _prune_runs() -> None:
    with RUNS_LOCK:
        done = sorted(
            (rid for rid, r in RUNS.items() if not r.get("running")),
            key=lambda rid: RUNS[rid].get("started_at") or 0,
        )
        while len(RUNS) > MAX_RUNS_KEPT and done:
            RUNS.pop(done.pop(0), None)


def _progress_sink(run_id: str):
    def _on_progress(p: ImportProgress) -> None:
        _run_set(run_id, progress={"processed": p.processed, "total": p.total})
    return _on_progress


def _execute(run_id: str, rows: list[dict[str, str]], mapping: ColumnMapping, req: ImportRunRequest) -> dict[str, Any]:
    result = run_import(
        rows,
        mapping,
        list_id=req.list_id,
        user_id=req.user_id,
        store=get_store(),
        catalog=get_catalog(),
        on_progress=_progress_sink(run_id),
        slash_order=req.slash_date_order,
    )
    payload = result.to_dict()
    _run_set(run_id, running=False, finished_at=time.time(), result=payload)
    return payload


def _run_failed(run_id: str, e: Exception) -> None:
    log.error(f"import run {run_id} aborted: {e}")
    _run_set(run_id, running=False, finished_at=time.time(), error=str(e))


def _run_thread(run_id: str, rows: list[dict[str, str]], mapping: ColumnMapping, req: ImportRunRequest) -> None:
    try:
        _execute(run_id, rows, mapping, req)
    except Exception as e:
        _run_failed(run_id, e)


def _preview(body: bytes) -> dict[str, Any]:
    try:
        headers, rows = decode_csv(body)
    except DecodeError as e:
        raise HTTPException(400, str(e))
    limit = int((load_config().get("import") or {}).get("preview_rows") or 100)
    mapping = auto_detect_mapping(headers)
    return {
        "headers": headers,
        "rows": rows[:limit],
        "total": len(rows),
        "mapping": mapping.to_dict(),
        "importable": sum(1 for r in rows if mapping.title and (r.get(mapping.title) or "").strip()),
    }


@router.post("/preview")
async def api_import_preview(request: Request) -> dict[str, Any]:
    body = await request.body()
    return await run_in_threadpool(_preview, body)


@router.post("/runs")
def api_import_start(req: ImportRunRequest, wait: bool = Query(False)) -> dict[str, Any]:
    try:
        headers, rows = decode_csv(req.csv)
    except DecodeError as e:
        raise HTTPException(400, str(e))
    mapping = ColumnMapping.from_dict(req.mapping) if req.mapping is not None else auto_detect_mapping(headers)
    if not mapping.title:
        raise HTTPException(400, str(MappingError("Map a column to Title before importing")))
    missing = [h for h in mapping.bound().values() if h not in headers]
    if missing:
        raise HTTPException(400, f"Mapped column(s) not in file: {', '.join(missing)}")

    run_id = uuid.uuid4().hex[:12]
    _prune_runs()
    _run_set(
        run_id,
        running=True,
        started_at=time.time(),
        list_id=req.list_id,
        mapping=mapping.to_dict(),
        progress={"processed": 0, "total": len(rows)},
    )

    if wait:
        try:
            result = _execute(run_id, rows, mapping, req)
        except Exception as e:
            _run_failed(run_id, e)
            raise HTTPException(500, str(e) or type(e).__name__)
        return {"ok": True, "run_id": run_id, "result": result}

    th = threading.Thread(target=_run_thread, args=(run_id, rows, mapping, req), daemon=True)
    th.start()
    log.info(f"started import run {run_id} ({len(rows)} rows) into list {req.list_id}")
    return {"ok": True, "run_id": run_id}


@router.get("/runs/{run_id}")
def api_import_status(run_id: str) -> dict[str, Any]:
    snap = _run_snapshot(run_id)
    if snap is None:
        raise HTTPException(404, "Unknown import run")
    return {"run_id": run_id, **snap}
