"""Integration test fixtures for tenant isolation against PostgreSQL.

These fixtures require a running PostgreSQL instance and a user allowed to
create roles. Row-level security policies are created here only; the
application never manages them.
"""

from __future__ import annotations

import os

import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from audit.infrastructure.models import AuditLogModel
from infrastructure.database.binder import ContextBinder, install_pool_defaults
from infrastructure.database.engines import build_async_url
from infrastructure.database.models import Base
from infrastructure.settings import DatabaseSettings, SecuritySettings
from tickets.infrastructure.models import TicketModel

# Policies do not apply to superusers, so the application side runs as this role
APP_ROLE = "helpdesk_rls_test"

TENANT_TABLES = ("tickets", "audit_logs")

SEED_TICKETS = [
    ("t-a-1", "tenant-a", "Printer on fire"),
    ("t-a-2", "tenant-a", "VPN down"),
    ("t-b-1", "tenant-b", "Password reset"),
]


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires database)",
    )


@pytest.fixture(scope="session")
def integration_db_settings() -> DatabaseSettings:
    """Database settings for integration tests.

    Override with environment variables:
        HELPDESK_DB_HOST, HELPDESK_DB_PORT, etc.
    """
    return DatabaseSettings(
        host=os.getenv("HELPDESK_DB_HOST", "localhost"),
        port=int(os.getenv("HELPDESK_DB_PORT", "5432")),
        database=os.getenv("HELPDESK_DB_DATABASE", "helpdesk"),
        username=os.getenv("HELPDESK_DB_USERNAME", "helpdesk"),
        password=SecretStr(os.getenv("HELPDESK_DB_PASSWORD", "helpdesk_dev_password")),
        pool_min_connections=1,
        pool_max_connections=1,
    )


@pytest.fixture(scope="session")
def security_settings() -> SecuritySettings:
    return SecuritySettings()


def _policy_sql(table: str, settings: SecuritySettings) -> str:
    predicate = (
        f"current_setting('{settings.admin_setting_name}', true) = 'true' "
        f"OR tenant_id = NULLIF(current_setting('{settings.tenant_setting_name}', true), '')"
    )
    return (
        f"CREATE POLICY {table}_tenant_isolation ON {table} "
        f"USING ({predicate}) WITH CHECK ({predicate})"
    )


@pytest_asyncio.fixture
async def rls_schema(integration_db_settings, security_settings):
    """Create the tenant tables with row-level security and seed tickets."""
    owner = create_async_engine(build_async_url(integration_db_settings))
    try:
        async with owner.begin() as conn:
            for table in TENANT_TABLES:
                await conn.execute(text(f"DROP TABLE IF EXISTS {table}"))
            await conn.run_sync(
                Base.metadata.create_all,
                tables=[TicketModel.__table__, AuditLogModel.__table__],
            )
            await conn.execute(
                text(
                    "DO $$ BEGIN "
                    f"CREATE ROLE {APP_ROLE} NOLOGIN; "
                    "EXCEPTION WHEN duplicate_object THEN NULL; END $$"
                )
            )
            for table in TENANT_TABLES:
                await conn.execute(
                    text(f"GRANT SELECT, INSERT, UPDATE, DELETE ON {table} TO {APP_ROLE}")
                )
                await conn.execute(text(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY"))
                await conn.execute(text(_policy_sql(table, security_settings)))
            for ticket_id, tenant_id, title in SEED_TICKETS:
                await conn.execute(
                    text(
                        "INSERT INTO tickets (id, tenant_id, title, status, created_at, updated_at) "
                        "VALUES (:id, :tenant_id, :title, 'OPEN', now(), now())"
                    ),
                    {"id": ticket_id, "tenant_id": tenant_id, "title": title},
                )
    except OSError as e:
        await owner.dispose()
        pytest.skip(f"PostgreSQL not reachable: {e}")

    yield owner

    async with owner.begin() as conn:
        for table in TENANT_TABLES:
            await conn.execute(text(f"DROP TABLE IF EXISTS {table}"))
    await owner.dispose()


@pytest_asyncio.fixture
async def app_engine(rls_schema, integration_db_settings, security_settings):
    """Single-connection engine running as the policy-bound role.

    One pooled connection makes every unit of work reuse the same physical
    connection, which is what pool hygiene is about.
    """
    engine = create_async_engine(
        build_async_url(integration_db_settings),
        pool_size=1,
        max_overflow=0,
        pool_reset_on_return="rollback",
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _assume_app_role(dbapi_connection, connection_record):
        dbapi_connection.run_async(lambda conn: conn.execute(f"SET ROLE {APP_ROLE}"))

    install_pool_defaults(engine, security_settings)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(app_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(app_engine, expire_on_commit=False)


@pytest.fixture
def binder(session_factory, security_settings) -> ContextBinder:
    return ContextBinder(session_factory=session_factory, settings=security_settings)
