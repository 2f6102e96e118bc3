"""
Database connection, initialization and the multi-item write primitive.
"""

import sqlite3
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from app.config import StoreConfig
from app.errors import TransactionCanceled, UpstreamUnavailable
from app.logging import get_logger

logger = get_logger('database')

SCHEMA_PATH = Path(__file__).parent / "init_db.sql"


@dataclass(frozen=True)
class Put:
    """Write ``item`` into ``table``; with ``if_absent`` the key must not exist yet."""
    table: str
    item: dict
    if_absent: bool = True


@dataclass(frozen=True)
class Delete:
    """Remove ``key`` from ``table``; with ``if_exists`` the key must be present."""
    table: str
    key: dict
    if_exists: bool = False


@dataclass(frozen=True)
class Check:
    """Condition-only item: ``key`` must be absent from ``table`` (present with ``must_exist``)."""
    table: str
    key: dict
    must_exist: bool = False


@dataclass
class _WriteOutcome:
    reasons: list[str | None] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(self.reasons)


@asynccontextmanager
async def open_db(config: StoreConfig, autocommit: bool = False) -> AsyncIterator[aiosqlite.Connection]:
    """
    Open a connection for a single store call.

    Lock waits and timeouts are surfaced as ``UpstreamUnavailable`` so the
    caller can retry; nothing is committed on that path.

    :param config: Store location and timeouts
    :type config: StoreConfig
    :param autocommit: Open with ``isolation_level=None`` for explicit BEGIN/COMMIT
    :type autocommit: bool
    :return: Async database connection
    :rtype: AsyncIterator[aiosqlite.Connection]
    """
    kwargs = {"timeout": config.timeout_seconds}
    if autocommit:
        kwargs["isolation_level"] = None
    try:
        db = await aiosqlite.connect(config.db_path, **kwargs)
    except sqlite3.OperationalError as e:
        logger.error(f"Could not open store at {config.db_path}: {e}")
        raise UpstreamUnavailable("Store unavailable, please retry") from e
    db.row_factory = aiosqlite.Row
    try:
        yield db
    except sqlite3.OperationalError as e:
        logger.warning(f"Store operation failed: {e}")
        raise UpstreamUnavailable("Store unavailable, please retry") from e
    finally:
        await db.close()


async def init_db(config: StoreConfig) -> None:
    """
    Initialize database with schema.

    :param config: Store location and table names
    :type config: StoreConfig
    :return: None
    :rtype: None
    """
    Path(config.db_path).parent.mkdir(parents=True, exist_ok=True)

    with open(SCHEMA_PATH) as f:
        schema = f.read().format(
            visits_table=config.visits_table,
            friends_table=config.friends_table,
            friend_requests_table=config.friend_requests_table,
            profiles_table=config.profiles_table,
        )

    async with open_db(config) as db:
        await db.executescript(schema)
        await db.commit()
    logger.info(f"Database initialized at {config.db_path}")


async def insert_if_absent(config: StoreConfig, table: str, item: dict) -> bool:
    """
    Conditional insert.

    :return: True when the row was written, False when the key already existed
    :rtype: bool
    """
    columns = ", ".join(item)
    placeholders = ", ".join("?" for _ in item)
    async with open_db(config) as db:
        try:
            await db.execute(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                tuple(item.values()),
            )
            await db.commit()
        except sqlite3.IntegrityError:
            await db.rollback()
            return False
    return True


def _where(key: dict) -> str:
    return " AND ".join(f"{k} = ?" for k in key)


async def _apply(db: aiosqlite.Connection, op: Put | Delete | Check) -> str | None:
    """Apply one item; return the failed condition, or None."""
    if isinstance(op, Check):
        cursor = await db.execute(f"SELECT 1 FROM {op.table} WHERE {_where(op.key)}", tuple(op.key.values()))
        found = await cursor.fetchone() is not None
        if found != op.must_exist:
            return f"ConditionalCheckFailed: {op.table} key {'missing' if op.must_exist else 'exists'}"
        return None

    if isinstance(op, Put):
        columns = ", ".join(op.item)
        placeholders = ", ".join("?" for _ in op.item)
        verb = "INSERT" if op.if_absent else "INSERT OR REPLACE"
        try:
            await db.execute(
                f"{verb} INTO {op.table} ({columns}) VALUES ({placeholders})",
                tuple(op.item.values()),
            )
        except sqlite3.IntegrityError:
            return f"ConditionalCheckFailed: {op.table} key exists"
        return None

    cursor = await db.execute(f"DELETE FROM {op.table} WHERE {_where(op.key)}", tuple(op.key.values()))
    if op.if_exists and cursor.rowcount == 0:
        return f"ConditionalCheckFailed: {op.table} key missing"
    return None


async def transact_write(config: StoreConfig, items: list[Put | Delete | Check]) -> None:
    """
    Apply every operation in ``items`` as one all-or-nothing unit.

    The unit runs under ``BEGIN IMMEDIATE`` so no other writer interleaves and
    no reader observes a partial result. ``Check`` items write nothing; they
    only add a condition on the state the unit runs against. If any condition
    fails the unit is rolled back and ``TransactionCanceled.reasons`` holds one
    entry per item, in order: the failed condition, or None for items that
    passed.

    :param config: Store location
    :type config: StoreConfig
    :param items: Puts, deletes and checks to apply together
    :type items: list[Put | Delete | Check]
    :return: None
    :rtype: None
    """
    if not items:
        return

    async with open_db(config, autocommit=True) as db:
        await db.execute("BEGIN IMMEDIATE")
        outcome = _WriteOutcome()
        try:
            for op in items:
                outcome.reasons.append(await _apply(db, op))
            if outcome.failed:
                raise TransactionCanceled(outcome.reasons)
            await db.execute("COMMIT")
        except BaseException:
            if db.in_transaction:
                await db.execute("ROLLBACK")
            raise
