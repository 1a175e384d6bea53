"""Unit test fixtures with faked dependencies.

FakePostgres stands in for a pooled PostgreSQL database behind an
AsyncSession. It models what the security layer relies on:

- session-level settings live on the physical connection and survive
  returning it to the pool
- transaction-local settings vanish on commit or rollback
- new physical connections start deny-by-default, as the pool connect
  listener arranges
- ticket rows are filtered the way the row-level security policies do
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Any

import pytest

from infrastructure.database.binder import (
    ADMIN_FALSE,
    ADMIN_TRUE,
    APPLY_SETTINGS_SQL,
    NO_TENANT,
    READ_SETTINGS_SQL,
    RESET_SETTINGS_SQL,
)
from infrastructure.settings import SecuritySettings
from shared_kernel.security.context import Role, Session, SessionUser

TENANT_SETTING = "app.tenant_id"
ADMIN_SETTING = "app.is_admin"


class FakeConnection:
    """One physical connection and its session-level settings."""

    def __init__(self, number: int) -> None:
        self.number = number
        self.settings = {TENANT_SETTING: NO_TENANT, ADMIN_SETTING: ADMIN_FALSE}
        self.invalidated = False


class FakeResult:
    def __init__(self, row: tuple[Any, ...]) -> None:
        self._row = row

    def one(self) -> tuple[Any, ...]:
        return self._row


class FakePostgres:
    """A tiny connection pool plus a tickets table under row-level security."""

    def __init__(self, tickets: list[dict[str, str]]) -> None:
        self.tickets = tickets
        self.idle: list[FakeConnection] = []
        self.opened: list[FakeConnection] = []
        self.sessions: list[FakeSession] = []
        self._numbers = itertools.count(1)
        # Faults applied to sessions created from now on
        self.fail_on: list[Any] = []
        self.read_override: tuple[Any, ...] | None = None
        self.reset_delay = 0.0

    def acquire(self) -> FakeConnection:
        if self.idle:
            return self.idle.pop()
        connection = FakeConnection(next(self._numbers))
        self.opened.append(connection)
        return connection

    def release(self, connection: FakeConnection) -> None:
        self.idle.append(connection)

    def session_factory(self) -> FakeSession:
        session = FakeSession(
            self,
            fail_on=list(self.fail_on),
            read_override=self.read_override,
            reset_delay=self.reset_delay,
        )
        self.sessions.append(session)
        return session


class FakeSession:
    """Implements the slice of AsyncSession the binder and handlers use."""

    def __init__(
        self,
        db: FakePostgres,
        fail_on: list[Any] | None = None,
        read_override: tuple[Any, ...] | None = None,
        reset_delay: float = 0.0,
    ) -> None:
        self._db = db
        self._reset_delay = reset_delay
        self._fail_on = fail_on or []
        self._read_override = read_override
        self.connection: FakeConnection | None = None
        self.local: dict[str, str] = {}
        self.transaction: object | None = None
        self.closed = False
        self.invalidated = False
        self.commits = 0
        self.rollbacks = 0

    @property
    def sync_session(self) -> FakeSession:
        return self

    def get_transaction(self) -> object | None:
        return self.transaction

    def in_transaction(self) -> bool:
        return self.transaction is not None

    def _autobegin(self) -> FakeConnection:
        if self.connection is None:
            self.connection = self._db.acquire()
        if self.transaction is None:
            self.transaction = object()
            self.local = {}
        return self.connection

    def current(self, name: str) -> str:
        connection = self._autobegin()
        return self.local.get(name, connection.settings.get(name, NO_TENANT))

    async def execute(self, statement: Any, params: dict[str, Any] | None = None):
        connection = self._autobegin()
        if any(statement is failing for failing in self._fail_on):
            raise RuntimeError("connection rejected statement")
        params = params or {}

        if statement is APPLY_SETTINGS_SQL:
            self.local[params["tenant_setting"]] = params["tenant_value"]
            self.local[params["admin_setting"]] = params["admin_value"]
            return FakeResult((params["tenant_value"], params["admin_value"]))
        if statement is READ_SETTINGS_SQL:
            if self._read_override is not None:
                return FakeResult(self._read_override)
            return FakeResult(
                (
                    self.current(params["tenant_setting"]),
                    self.current(params["admin_setting"]),
                )
            )
        if statement is RESET_SETTINGS_SQL:
            if self._reset_delay:
                await asyncio.sleep(self._reset_delay)
            for name, value in (
                (params["tenant_setting"], NO_TENANT),
                (params["admin_setting"], ADMIN_FALSE),
            ):
                connection.settings[name] = value
                self.local.pop(name, None)
            return FakeResult((NO_TENANT, ADMIN_FALSE))
        raise NotImplementedError(f"FakeSession cannot run {statement!r}")

    def visible_tickets(self) -> list[dict[str, str]]:
        """What ``SELECT * FROM tickets`` returns under the current settings."""
        tenant = self.current(TENANT_SETTING)
        is_admin = self.current(ADMIN_SETTING) == ADMIN_TRUE
        return [
            ticket
            for ticket in self._db.tickets
            if is_admin or (tenant != NO_TENANT and ticket["tenant_id"] == tenant)
        ]

    async def commit(self) -> None:
        self.commits += 1
        self.transaction = None
        self.local = {}

    async def rollback(self) -> None:
        self.rollbacks += 1
        self.transaction = None
        self.local = {}

    async def close(self) -> None:
        if self.transaction is not None:
            await self.rollback()
        if self.connection is not None:
            self._db.release(self.connection)
            self.connection = None
        self.closed = True

    async def invalidate(self) -> None:
        if self.connection is not None:
            self.connection.invalidated = True
            self.connection = None
        self.transaction = None
        self.local = {}
        self.invalidated = True


@pytest.fixture
def security_settings() -> SecuritySettings:
    return SecuritySettings(
        tenant_setting_name=TENANT_SETTING,
        admin_setting_name=ADMIN_SETTING,
    )


@pytest.fixture
def tickets() -> list[dict[str, str]]:
    return [
        {"id": "t-a-1", "tenant_id": "tenant-a", "title": "Printer on fire"},
        {"id": "t-a-2", "tenant_id": "tenant-a", "title": "VPN down"},
        {"id": "t-b-1", "tenant_id": "tenant-b", "title": "Password reset"},
    ]


@pytest.fixture
def fake_db(tickets) -> FakePostgres:
    """Provide a fake pooled PostgreSQL with tickets for two tenants."""
    return FakePostgres(tickets)


def make_session(
    role: Role,
    user_id: str = "user-1",
    tenant_id: str | None = None,
    permissions: dict[str, bool] | None = None,
) -> Session:
    return Session(
        user=SessionUser(
            id=user_id,
            role=role,
            tenant_id=tenant_id,
            permissions=permissions or {},
        )
    )


@pytest.fixture
def session_for():
    """Build authenticated sessions: ``session_for(Role.AGENT, tenant_id="t")``."""
    return make_session
