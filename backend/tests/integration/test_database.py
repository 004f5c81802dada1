"""
Integration tests for SQLite transaction handling.
"""

from datetime import timedelta

import pytest
from sqlalchemy import event, func, select

from app.infrastructure.local.database import SNAPSHOT_READ, ChatSessionORM
from app.models.chat_session import VisitorInfo
from app.utils.datetime_utils import now_utc


def record_statements(session_factory) -> list[str]:
    statements: list[str] = []
    engine = session_factory.kw["bind"]

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    return statements


@pytest.mark.asyncio
async def test_snapshot_reads_share_one_transaction(session_factory, session_repo):
    await session_repo.create(VisitorInfo(visitor_name="Asha"), created_at=now_utc())

    async with session_factory() as session:
        async with session.begin():
            conn = await session.connection(execution_options={SNAPSHOT_READ: True})
            first = (await session.execute(select(func.count(ChatSessionORM.id)))).scalar()
            raw = await conn.get_raw_connection()
            assert raw.driver_connection.in_transaction
            second = (await session.execute(select(func.count(ChatSessionORM.id)))).scalar()
            assert raw.driver_connection.in_transaction

    assert first == second == 1


@pytest.mark.asyncio
async def test_snapshot_begins_deferred_and_writes_begin_immediate(session_factory, session_repo):
    statements = record_statements(session_factory)

    await session_repo.create(VisitorInfo(), created_at=now_utc())
    assert "BEGIN IMMEDIATE" in statements

    statements.clear()
    now = now_utc()
    await session_repo.load_analytics_snapshot(since=now - timedelta(days=1), as_of=now)
    assert statements[0] == "BEGIN"
    assert "BEGIN IMMEDIATE" not in statements
    assert sum(1 for s in statements if s.lstrip().upper().startswith("SELECT")) >= 4
