"""Campus portal CLI — database setup and offline roster imports.

Usage:
    campus-portal init-db                               # Create missing tables
    campus-portal create-admin --id ADM001 --password … # Seed an admin account
    campus-portal import students roster.xlsx           # Bulk import from a workbook
    campus-portal import faculty staff.xlsx --actor ADM001

The import command runs the same pipeline as the HTTP endpoint, with a
local bus subscriber printing progress instead of an SSE stream.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
from pathlib import Path
from typing import Optional

import click
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campus_portal import __version__
from campus_portal.auth.password import hash_password_async
from campus_portal.config import settings
from campus_portal.db.engine import build_engine, create_schema
from campus_portal.db.models import Admin
from campus_portal.events.types import EventType, ImportTarget
from campus_portal.imports import (
    IMPORT_SPECS,
    BulkImportPipeline,
    NoValidRowsError,
    SpreadsheetError,
    read_rows_async,
)
from campus_portal.imports.store import SqlImportStore
from campus_portal.realtime.bus import NotificationBus
from campus_portal.services.audit_service import AuditRecorder

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _print_event(event) -> None:
    data = event.to_dict()
    if event.type == EventType.BULK_IMPORT_PROGRESS:
        click.echo(
            f"  {data['processed'] + data['skipped']}/{data['total']} rows "
            f"({data['skipped']} skipped)"
        )


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="campus-portal")
@click.option(
    "--database-url",
    envvar="CAMPUS_DATABASE_URL",
    default=settings.database_url,
    show_default=False,
    help="SQLAlchemy async URL (defaults to CAMPUS_DATABASE_URL)",
)
@click.pass_context
def main(ctx: click.Context, database_url: str):
    """Campus portal — examination administration tools."""
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url


# ---------------------------------------------------------------------------
# campus-portal init-db
# ---------------------------------------------------------------------------


@main.command("init-db")
@click.pass_obj
def init_db(obj: dict):
    """Create any missing tables."""
    _run(_init_db_impl(obj["database_url"]))
    click.secho("Database schema ready.", fg="green")


async def _init_db_impl(database_url: str):
    engine = build_engine(database_url)
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# campus-portal create-admin
# ---------------------------------------------------------------------------


@main.command("create-admin")
@click.option("--id", "admin_id", required=True, help="Admin login id")
@click.option("--password", required=True, help="Admin password")
@click.option("--name", default=None, help="Display name")
@click.pass_obj
def create_admin(obj: dict, admin_id: str, password: str, name: Optional[str]):
    """Create an admin account (no-op if the id already exists)."""
    created = _run(_create_admin_impl(obj["database_url"], admin_id, password, name))
    if created:
        click.secho(f"Admin {admin_id} created.", fg="green")
    else:
        click.secho(f"Admin {admin_id} already exists.", fg="yellow")


async def _create_admin_impl(
    database_url: str, admin_id: str, password: str, name: Optional[str]
) -> bool:
    engine = build_engine(database_url)
    try:
        await create_schema(engine)
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with factory() as session:
            existing = await session.execute(select(Admin).where(Admin.admin_id == admin_id))
            if existing.scalar_one_or_none() is not None:
                return False
            session.add(
                Admin(
                    admin_id=admin_id,
                    name=name,
                    password_hash=await hash_password_async(password),
                )
            )
            await session.commit()
            return True
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# campus-portal import
# ---------------------------------------------------------------------------


@main.command("import")
@click.argument("target", type=click.Choice([t.value for t in ImportTarget]))
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--actor", default="cli", show_default=True, help="Actor id for the audit log")
@click.pass_obj
def import_roster(obj: dict, target: str, path: Path, actor: str):
    """Import students or faculty from an .xlsx workbook."""
    result = _run(
        _import_impl(obj["database_url"], ImportTarget(target), path.read_bytes(), actor)
    )
    click.secho(result.message, fg="green")
    if result.skipped:
        click.secho(f"{result.skipped} of {result.total} rows skipped.", fg="yellow")


async def _import_impl(database_url: str, target: ImportTarget, data: bytes, actor: str):
    try:
        rows = await read_rows_async(data)
    except SpreadsheetError as e:
        raise click.ClickException(str(e))

    engine = build_engine(database_url)
    bus = NotificationBus()
    bus.subscribe(_print_event)
    try:
        await create_schema(engine)
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with factory() as session:
            pipeline = BulkImportPipeline(
                bus,
                SqlImportStore(session),
                AuditRecorder(factory),
                progress_every=settings.import_progress_every,
            )
            try:
                return await pipeline.run(IMPORT_SPECS[target], rows, actor_id=actor)
            except NoValidRowsError as e:
                raise click.ClickException(str(e))
    finally:
        await engine.dispose()


if __name__ == "__main__":
    main()
