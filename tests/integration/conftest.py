from __future__ import annotations

import pytest
from sqlalchemy import text
from sqlalchemy.engine import make_url

from petal_economy.core.integration_db_safety import assert_safe_integration_db
from petal_economy.db.session import engine

TRUNCATE_TABLES = (
    "transactions",
    "redemption_codes",
    "referrals",
    "balances",
    "config",
    "users",
)

TRUNCATE_SQL = f"TRUNCATE TABLE {', '.join(TRUNCATE_TABLES)} RESTART IDENTITY CASCADE"


@pytest.fixture(scope="session", autouse=True)
def guard_integration_db_target() -> None:
    if make_url(str(engine.url)).get_backend_name() != "postgresql":
        pytest.skip("integration tests need DATABASE_URL pointing at PostgreSQL")
    assert_safe_integration_db(str(engine.url))


@pytest.fixture(autouse=True)
async def cleanup_db() -> None:
    # asyncpg connections are bound to the loop that opened them.
    await engine.dispose()

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            migrated = (await conn.execute(text("SELECT to_regclass('transactions')"))).scalar()
    except Exception as exc:  # pragma: no cover - environment-dependent
        pytest.skip(f"Postgres is required for integration tests: {exc}")
    if migrated is None:
        pytest.skip("run `alembic upgrade head` against the test database first")

    async with engine.begin() as conn:
        await conn.execute(text(TRUNCATE_SQL))

    yield

    await engine.dispose()
