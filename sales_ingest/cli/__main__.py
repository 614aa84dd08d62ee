from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..db.connection import DatabaseConfigurationError, db_cursor
from ..db.schema import ensure_schema
from ..db.store import InMemorySaleStore, PostgresSaleStore, SaleStore
from ..excel.reader import SheetHeaderError, list_sheet_names, normalize_sheet, read_excel_file
from ..logging.init import log_summary, setup_logging
from ..models.config_models import ImportConfig
from ..models.sale_record import SaleCategory
from ..services.importer import (
    ImportProcessingError,
    import_directory,
    preview_sheet,
    resolve_category,
    sheet_matches,
)
from ..services.queries import InvalidWindowError, sales_counts, sales_summary
from ..services.summary import render_summary_line
from ..services.verify import verify_store

"""CLI entrypoint.

    python -m sales_ingest.cli [--config PATH] [--debug] [--dry-run] <command>

Commands: import (default), sheets, preview, summary, counts, verify,
init-db, serve.

Exit codes:
    0  every row mapped and inserted (skipped duplicates count as success)
    2  finished with partial failures (see the error report)
    1  fatal: config, source, database configuration or connection
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; .env values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _category_arg(text: str) -> SaleCategory:
    try:
        return SaleCategory(text.lower())
    except ValueError:
        category = SaleCategory.from_name(text)
        if category is None:
            raise argparse.ArgumentTypeError(f"unknown category: {text}") from None
        return category


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="sales-ingest", description="Sales workbook importer and aggregates")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--dry-run", action="store_true",
        help="Use an in-memory store instead of PostgreSQL (same as DISABLE_DB_CONNECT=1)",
    )
    p.set_defaults(target=None, only=None, files=None)
    sub = p.add_subparsers(dest="command")

    imp = sub.add_parser("import", help="Import every workbook of source_directory")
    imp.add_argument("--target", type=_category_arg, help="Force one category for all sheets")
    imp.add_argument("--only", help="Only sheets matching this category keyword or name fragment")
    imp.add_argument("--file", dest="files", type=Path, action="append", help="Import this workbook (repeatable)")

    sh = sub.add_parser("sheets", help="List sheet names of a workbook as JSON")
    sh.add_argument("workbook", type=Path)

    pv = sub.add_parser("preview", help="Map sheets without inserting and report duplicate keys")
    pv.add_argument("workbook", type=Path)
    pv.add_argument("--only", help="Only sheets matching this category keyword or name fragment")
    pv.add_argument("--target", type=_category_arg)
    pv.add_argument("--top", type=int, default=10)

    for name in ("summary", "counts"):
        q = sub.add_parser(name, help=f"Print the {name} view of one category as JSON")
        q.add_argument("category", type=_category_arg)
        q.add_argument("--days")
        q.add_argument("--start", dest="start_date")
        q.add_argument("--end", dest="end_date")

    sub.add_parser("verify", help="Per-category counts and duplicate row_hash groups")
    sub.add_parser("init-db", help="Create the category tables if missing")

    sv = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    sv.add_argument("--host", default="127.0.0.1")
    sv.add_argument("--port", type=int, default=8000)
    return p.parse_args(argv)


def _db_disabled(args: argparse.Namespace) -> bool:
    return bool(args.dry_run) or os.getenv("DISABLE_DB_CONNECT") == "1"


@contextmanager
def _open_store(cfg: ImportConfig, args: argparse.Namespace) -> Iterator[SaleStore]:
    if _db_disabled(args):
        logging.getLogger(__name__).debug("DB connect disabled -> in-memory store")
        yield InMemorySaleStore()
        return
    with db_cursor(cfg.database) as cur:
        yield PostgresSaleStore(cur)


def _print_json(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def _run_import(cfg: ImportConfig, args: argparse.Namespace, logger: logging.Logger) -> int:
    mode = "mock" if _db_disabled(args) else "live"
    with _open_store(cfg, args) as store:
        outcome = import_directory(cfg, store, files=args.files, target=args.target, only=args.only)
    logger.info("mode=%s total_rows=%d inserted=%d", mode, outcome.total_rows, outcome.inserted)
    log_summary(render_summary_line(outcome))
    return EXIT_PARTIAL_FAILURE if outcome.error_count else EXIT_SUCCESS_ALL


def _run_preview(cfg: ImportConfig, args: argparse.Namespace) -> int:
    if not args.workbook.exists():
        raise ImportProcessingError(f"File not found: {args.workbook}")
    previews = []
    for name, df in read_excel_file(args.workbook, null_sentinels=cfg.null_sentinels).items():
        if not sheet_matches(name, args.only):
            continue
        try:
            data = normalize_sheet(df, name, cfg.header_row, cfg.null_sentinels)
        except SheetHeaderError:
            continue
        category = resolve_category(name, args.workbook.name, args.target, cfg.sheet_categories)
        previews.append(
            preview_sheet(data.rows, category, sheet=name, bounds=cfg.serial_dates, top=args.top).to_dict()
        )
    _print_json({"file": args.workbook.name, "sheets": previews})
    return EXIT_SUCCESS_ALL


def _run_query(cfg: ImportConfig, args: argparse.Namespace) -> int:
    query = sales_summary if args.command == "summary" else sales_counts
    with _open_store(cfg, args) as store:
        view = query(
            store,
            args.category,
            days=args.days,
            start=args.start_date,
            end=args.end_date,
            config=cfg.aggregation,
            bounds=cfg.serial_dates,
        )
    _print_json(view.to_dict())
    return EXIT_SUCCESS_ALL


def _run_verify(cfg: ImportConfig, args: argparse.Namespace) -> int:
    with _open_store(cfg, args) as store:
        checks = verify_store(store)
    _print_json([c.to_dict() for c in checks])
    return EXIT_SUCCESS_ALL if all(c.ok for c in checks) else EXIT_PARTIAL_FAILURE


def _run_init_db(cfg: ImportConfig, logger: logging.Logger) -> int:
    with db_cursor(cfg.database) as cur:
        tables = ensure_schema(cur)
    logger.info("schema ready tables=%s", ",".join(tables))
    return EXIT_SUCCESS_ALL


def _run_serve(cfg: ImportConfig, args: argparse.Namespace) -> int:  # pragma: no cover (blocking)
    import uvicorn

    from ..api.app import create_app

    store = InMemorySaleStore() if _db_disabled(args) else None
    uvicorn.run(create_app(cfg, store=store), host=args.host, port=args.port)
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # argv=[] はテストからの呼び出し: sys.argv を混入させない
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.command is None:
        args.command = "import"
    if args.debug:
        logger = setup_logging(logging.DEBUG)
        logger.debug("debug mode enabled")

    # .env を最優先で読み込む (DB 接続パラメータ優先順位保証)
    _load_env_file(Path(".env"), override=True)

    if args.command == "sheets":
        if not args.workbook.exists():
            logger.error("file not found: %s", args.workbook)
            return EXIT_FATAL
        _print_json({"file": args.workbook.name, "sheets": list_sheet_names(args.workbook)})
        return EXIT_SUCCESS_ALL

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error("config: %s", e)
        return EXIT_FATAL

    try:
        if args.command == "import":
            logger.info("Processing files from: %s", cfg.source_directory)
            return _run_import(cfg, args, logger)
        if args.command == "preview":
            return _run_preview(cfg, args)
        if args.command in ("summary", "counts"):
            return _run_query(cfg, args)
        if args.command == "verify":
            return _run_verify(cfg, args)
        if args.command == "init-db":
            return _run_init_db(cfg, logger)
        if args.command == "serve":
            return _run_serve(cfg, args)
    except ImportProcessingError as e:
        logger.error("processing: %s", e)
        return EXIT_FATAL
    except InvalidWindowError as e:
        logger.error("invalid query: %s", e)
        return EXIT_FATAL
    except DatabaseConfigurationError as e:
        logger.error("database: %s", e)
        return EXIT_FATAL
    except psycopg2.Error as e:
        logger.error("database connection failed: %s", e)
        return EXIT_FATAL

    logger.error("unknown command: %s", args.command)
    return EXIT_FATAL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
