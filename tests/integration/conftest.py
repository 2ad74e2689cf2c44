from __future__ import annotations

import pytest
from sqlalchemy import text

from storefront.core.integration_db_safety import require_integration_db
from storefront.db.session import engine

TRUNCATE_TABLES = (
    "processed_webhook_events",
    "outbox_events",
    "push_tokens",
    "notifications",
    "affiliate_applications",
    "ledger_entries",
    "payouts",
    "commissions",
    "orders",
    "products",
    "users",
)

TRUNCATE_SQL = f"TRUNCATE TABLE {', '.join(TRUNCATE_TABLES)} RESTART IDENTITY CASCADE"


@pytest.fixture(scope="session", autouse=True)
def guard_integration_db_target() -> None:
    require_integration_db(str(engine.url))


@pytest.fixture(autouse=True)
async def cleanup_db() -> None:
    # asyncpg connections are bound to the loop that opened them.
    await engine.dispose()

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:  # pragma: no cover - environment-dependent
        pytest.skip(f"Postgres is required for integration tests: {exc}")

    async with engine.begin() as conn:
        await conn.execute(text(TRUNCATE_SQL))

    yield

    await engine.dispose()
