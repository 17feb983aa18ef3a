import asyncio
import pytest

sqlalchemy = pytest.importorskip("sqlalchemy")
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine

from mathcamp.db import ensure_sqlite_schema


def test_schema_created_on_fresh_database(tmp_path):
    async def _run():
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fresh.db'}", future=True)
        await ensure_sqlite_schema(engine)
        # second run on an existing file is a no-op
        await ensure_sqlite_schema(engine)
        async with engine.connect() as conn:
            tables = set(await conn.run_sync(lambda c: inspect(c).get_table_names()))
            columns = {
                col["name"]
                for col in await conn.run_sync(lambda c: inspect(c).get_columns("practice_sessions"))
            }
        await engine.dispose()
        return tables, columns

    tables, columns = asyncio.run(_run())
    assert {"players", "player_settings", "practice_sessions", "attempts", "achievements"} <= tables
    assert "streak_at_start" in columns
