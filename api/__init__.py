# api/__init__.py
from __future__ import annotations

from fastapi import FastAPI

from .importAPI import router as import_router
from .entriesAPI import router as entries_router

from services.export import router as export_router

__all__ = [
    "import_router",
    "entries_router",
    "export_router",
    "register",
]

def register(app: FastAPI) -> None:
    app.include_router(import_router)
    app.include_router(entries_router)
    app.include_router(export_router)
