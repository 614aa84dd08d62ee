from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import psycopg2
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..db.connection import DatabaseConfigurationError, db_cursor
from ..db.store import PostgresSaleStore, SaleStore
from ..models.config_models import ImportConfig
from ..models.sale_record import SaleCategory
from ..services.importer import ImportProcessingError, import_directory
from ..services.queries import InvalidWindowError, list_sales, sales_counts, sales_summary

"""HTTP surface: read endpoints per category plus the triggered import.

Routes (``{category}`` is online | offline | raj | lok, or a sheet-style name):
    GET  /api/sales/{category}/summary?days=&startDate=&endDate=
    GET  /api/sales/{category}/counts?days=&startDate=&endDate=
    GET  /api/sales/{category}?limit=&cursorId=&q=&startDate=&endDate=
    POST /api/sales/import

The store is a dependency: by default one PostgreSQL connection per request,
replaced by ``create_app(store=...)`` or ``app.dependency_overrides``.
"""

logger = logging.getLogger(__name__)

__all__ = ["create_app", "get_store", "get_config"]


class UnknownCategoryError(LookupError):
    pass


class ImportRequest(BaseModel):
    target: str | None = None
    only: str | None = None


def get_config(request: Request) -> ImportConfig:
    return request.app.state.config


def get_store(request: Request) -> Iterator[SaleStore]:
    store = request.app.state.store
    if store is not None:
        yield store
        return
    config: ImportConfig = request.app.state.config
    with db_cursor(config.database) as cur:
        yield PostgresSaleStore(cur)


def _category(name: str) -> SaleCategory:
    try:
        return SaleCategory(name.lower())
    except ValueError:
        category = SaleCategory.from_name(name)
        if category is None:
            raise UnknownCategoryError(name) from None
        return category


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"ok": False, "error": message})


def create_app(config: ImportConfig | None = None, store: SaleStore | None = None) -> FastAPI:
    app = FastAPI(title="sales-ingest", version="0.1.0")
    app.state.config = config or ImportConfig(source_directory=str(Path("data")))
    app.state.store = store

    @app.exception_handler(InvalidWindowError)
    async def _invalid_query(request: Request, exc: InvalidWindowError) -> JSONResponse:
        logger.info("invalid query path=%s reason=%s", request.url.path, exc)
        return _error(400, "Invalid query")

    @app.exception_handler(UnknownCategoryError)
    async def _unknown_category(request: Request, exc: UnknownCategoryError) -> JSONResponse:
        return _error(404, f"Unknown category: {exc}")

    @app.exception_handler(DatabaseConfigurationError)
    async def _db_not_configured(request: Request, exc: DatabaseConfigurationError) -> JSONResponse:
        logger.error("database not configured path=%s: %s", request.url.path, exc)
        return _error(503, str(exc))

    @app.exception_handler(psycopg2.OperationalError)
    async def _db_unavailable(request: Request, exc: psycopg2.OperationalError) -> JSONResponse:
        logger.error("database unavailable path=%s: %s", request.url.path, exc)
        return _error(503, "Database unavailable")

    @app.exception_handler(ImportProcessingError)
    async def _import_failed(request: Request, exc: ImportProcessingError) -> JSONResponse:
        logger.error("import failed: %s", exc)
        return _error(500, str(exc))

    @app.get("/api/sales/{category}/summary")
    def summary(
        category: str,
        days: str | None = None,
        start_date: str | None = Query(None, alias="startDate"),
        end_date: str | None = Query(None, alias="endDate"),
        store: SaleStore = Depends(get_store),
        cfg: ImportConfig = Depends(get_config),
    ) -> dict[str, Any]:
        view = sales_summary(
            store,
            _category(category),
            days=days,
            start=start_date,
            end=end_date,
            config=cfg.aggregation,
            bounds=cfg.serial_dates,
        )
        return {"ok": True, **view.to_dict()}

    @app.get("/api/sales/{category}/counts")
    def counts(
        category: str,
        days: str | None = None,
        start_date: str | None = Query(None, alias="startDate"),
        end_date: str | None = Query(None, alias="endDate"),
        store: SaleStore = Depends(get_store),
        cfg: ImportConfig = Depends(get_config),
    ) -> dict[str, Any]:
        view = sales_counts(
            store,
            _category(category),
            days=days,
            start=start_date,
            end=end_date,
            config=cfg.aggregation,
            bounds=cfg.serial_dates,
        )
        return {"ok": True, **view.to_dict()}

    @app.get("/api/sales/{category}")
    def listing(
        category: str,
        limit: str | None = None,
        cursor_id: str | None = Query(None, alias="cursorId"),
        q: str | None = None,
        start_date: str | None = Query(None, alias="startDate"),
        end_date: str | None = Query(None, alias="endDate"),
        store: SaleStore = Depends(get_store),
        cfg: ImportConfig = Depends(get_config),
    ) -> dict[str, Any]:
        page = list_sales(
            store,
            _category(category),
            limit=limit,
            cursor_id=cursor_id,
            q=q,
            start=start_date,
            end=end_date,
            bounds=cfg.serial_dates,
        )
        return {"ok": True, **page}

    @app.post("/api/sales/import")
    def trigger_import(
        body: ImportRequest | None = None,
        store: SaleStore = Depends(get_store),
        cfg: ImportConfig = Depends(get_config),
    ) -> dict[str, Any]:
        body = body or ImportRequest()
        target = _category(body.target) if body.target else None
        outcome = import_directory(cfg, store, target=target, only=body.only)
        return {"ok": True, **outcome.to_dict()}

    return app
