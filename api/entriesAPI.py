# /api/entriesAPI.py
# ShareWatch - list entries, watches and ratings
# Copyright (c) 2025-2026 ShareWatch contributors
from __future__ import annotations

from typing import Any, Literal, Optional

from fastapi import APIRouter, Body, HTTPException, Query
from pydantic import BaseModel

from services.watches import add_watch, delete_watch, remove_entry, set_rating, update_watch
from sw_platform.errors import (
    EntryNotFound,
    InvalidWatch,
    LastWatchError,
    NotAuthorized,
    PersistenceError,
    ShareWatchError,
    WatchNotFound,
)
from sw_platform.runtime import get_store

router = APIRouter(prefix="/api/lists", tags=["entries"])

Role = Literal["owner", "member"]


class WatchIn(BaseModel):
    status: Literal["planned", "in_progress", "finished"] = "finished"
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    platform: Optional[str] = None
    notes: Optional[str] = None


class WatchPatch(BaseModel):
    status: Optional[Literal["planned", "in_progress", "finished"]] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    platform: Optional[str] = None
    notes: Optional[str] = None


class RatingIn(BaseModel):
    rating: Optional[Literal["disliked", "liked", "loved"]] = None


def _http_error(e: ShareWatchError) -> HTTPException:
    if isinstance(e, (EntryNotFound, WatchNotFound)):
        return HTTPException(404, str(e))
    if isinstance(e, NotAuthorized):
        return HTTPException(403, str(e))
    if isinstance(e, (InvalidWatch, LastWatchError)):
        return HTTPException(400, str(e))
    if isinstance(e, PersistenceError):
        return HTTPException(500, str(e))
    return HTTPException(400, str(e))


@router.get("/{list_id}/entries")
def api_list_entries(list_id: str) -> list[dict[str, Any]]:
    try:
        return [e.to_dict() for e in get_store().find_entries_by_list(list_id)]
    except ShareWatchError as e:
        raise _http_error(e)


@router.post("/{list_id}/entries/{entry_id}/watches", status_code=201)
def api_add_watch(list_id: str, entry_id: str, body: WatchIn, user_id: str = Query(...)) -> dict[str, Any]:
    try:
        return add_watch(get_store(), list_id, entry_id, user_id, **body.model_dump()).to_dict()
    except ShareWatchError as e:
        raise _http_error(e)


@router.patch("/{list_id}/entries/{entry_id}/watches/{watch_id}")
def api_update_watch(
    list_id: str,
    entry_id: str,
    watch_id: str,
    body: WatchPatch,
    user_id: str = Query(...),
    role: Role = Query("member"),
) -> dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    if changes.get("status") is None:
        changes.pop("status", None)
    try:
        return update_watch(get_store(), list_id, entry_id, watch_id, user_id, role=role, **changes).to_dict()
    except ShareWatchError as e:
        raise _http_error(e)


@router.delete("/{list_id}/entries/{entry_id}/watches/{watch_id}")
def api_delete_watch(
    list_id: str,
    entry_id: str,
    watch_id: str,
    user_id: str = Query(...),
    role: Role = Query("member"),
) -> dict[str, Any]:
    try:
        meta = delete_watch(get_store(), list_id, entry_id, watch_id, user_id, role=role)
    except ShareWatchError as e:
        raise _http_error(e)
    return {"success": True, "meta": meta.to_dict()}


@router.put("/{list_id}/entries/{entry_id}/rating")
def api_set_rating(list_id: str, entry_id: str, body: RatingIn = Body(...), user_id: str = Query(...)) -> dict[str, Any]:
    try:
        entry = set_rating(get_store(), list_id, entry_id, user_id, body.rating)
    except ShareWatchError as e:
        raise _http_error(e)
    return {"success": True, "user_ratings": entry.user_ratings}


@router.delete("/{list_id}/entries/{entry_id}")
def api_remove_entry(list_id: str, entry_id: str) -> dict[str, Any]:
    try:
        remove_entry(get_store(), list_id, entry_id)
    except ShareWatchError as e:
        raise _http_error(e)
    return {"success": True}
