from __future__ import annotations

import re
from dataclasses import dataclass

from sqlalchemy.engine import make_url

TEST_DB_NAME_RE = re.compile(r"(^|_)test(_|$)", re.IGNORECASE)
PRODUCTION_MARKERS = ("prod", "live")
LOCAL_TEST_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "postgres", "storefront_postgres"})


@dataclass(frozen=True, slots=True)
class IntegrationDbVerdict:
    is_safe: bool
    reason: str
    database_name: str
    host: str


def check_integration_db(database_url: str) -> IntegrationDbVerdict:
    """Decides whether the ledger integration suite may TRUNCATE the target database."""
    parsed = make_url(database_url)
    db_name = (parsed.database or "").strip()
    host = (parsed.host or "").strip().lower()

    def verdict(is_safe: bool, reason: str) -> IntegrationDbVerdict:
        return IntegrationDbVerdict(is_safe=is_safe, reason=reason, database_name=db_name, host=host)

    if parsed.get_backend_name() != "postgresql":
        return verdict(False, "Ledger integration tests need PostgreSQL row locks and ON CONFLICT.")
    if TEST_DB_NAME_RE.search(db_name) is None:
        return verdict(False, "Database name must contain a 'test' segment, e.g. storefront_test.")
    if any(marker in db_name.lower() for marker in PRODUCTION_MARKERS):
        return verdict(False, "Database name looks like a production database.")
    if host not in LOCAL_TEST_HOSTS:
        return verdict(False, f"Host '{host}' is not a local test host.")
    return verdict(True, "ok")


def require_integration_db(database_url: str) -> None:
    result = check_integration_db(database_url)
    if result.is_safe:
        return
    raise RuntimeError(
        "Refusing to TRUNCATE ledger tables outside a local test database.\n"
        f"Reason: {result.reason}\n"
        f"Resolved DB: name='{result.database_name}' host='{result.host}'"
    )
