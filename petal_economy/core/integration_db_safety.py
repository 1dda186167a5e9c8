from __future__ import annotations

import re
from dataclasses import dataclass

from sqlalchemy.engine import make_url

TEST_DB_NAME_RE = re.compile(r"test", re.IGNORECASE)
ALLOWED_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "postgres", "petal_postgres"})


@dataclass(frozen=True, slots=True)
class IntegrationDbCheck:
    is_safe: bool
    reason: str
    database_name: str
    host: str


def check_integration_db(database_url: str) -> IntegrationDbCheck:
    """Only a local PostgreSQL database whose name mentions "test" may be truncated."""
    parsed = make_url(database_url)
    db_name = (parsed.database or "").strip()
    host = (parsed.host or "").strip().lower()

    if parsed.get_backend_name() != "postgresql":
        reason = "integration tests need PostgreSQL"
    elif not db_name:
        reason = "database name is empty"
    elif TEST_DB_NAME_RE.search(db_name) is None:
        reason = "database name must contain 'test'"
    elif host not in ALLOWED_LOCAL_HOSTS:
        reason = f"host '{host}' is not a local test host"
    else:
        return IntegrationDbCheck(is_safe=True, reason="ok", database_name=db_name, host=host)
    return IntegrationDbCheck(is_safe=False, reason=reason, database_name=db_name, host=host)


def assert_safe_integration_db(database_url: str) -> None:
    result = check_integration_db(database_url)
    if result.is_safe:
        return
    raise RuntimeError(
        f"Refusing to truncate '{result.database_name}' on '{result.host}': {result.reason}. "
        "Point DATABASE_URL at a local test database such as 'petal_economy_test'."
    )
