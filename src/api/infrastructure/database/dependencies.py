"""Database and security-context dependency providers.

Route handlers never receive a raw session from here. The only way to get
database access is through the RequestHandlerWrapper, which asks the
ContextBinder for a bound session.
"""

from __future__ import annotations

import threading

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.binder import ContextBinder, install_pool_defaults
from infrastructure.database.engines import create_engine
from infrastructure.observability import DefaultConnectionProbe
from infrastructure.settings import get_database_settings, get_security_settings

# Module-level probe for observability
_probe = DefaultConnectionProbe()

# Created on first use
_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None

# Thread lock for safe engine initialization
_engine_lock = threading.Lock()


def get_engine() -> AsyncEngine:
    """Get the database engine (singleton).

    Creates the engine on first call, registers the deny-by-default
    connection initializer on its pool, and caches a sessionmaker.
    Uses double-check locking for thread-safe initialization.

    Returns:
        Configured async engine
    """
    global _engine, _sessionmaker
    if _engine is None:
        with _engine_lock:
            # Double-check after acquiring lock
            if _engine is None:
                settings = get_database_settings()
                engine = create_engine(settings)
                install_pool_defaults(engine, get_security_settings(), probe=_probe)
                _sessionmaker = async_sessionmaker(
                    engine,
                    expire_on_commit=False,
                    class_=AsyncSession,
                )
                _engine = engine
                _probe.engine_created(
                    host=settings.host,
                    database=settings.database,
                    pool_size=settings.pool_max_connections,
                )
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the sessionmaker bound to the engine singleton."""
    get_engine()
    assert _sessionmaker is not None
    return _sessionmaker


def get_context_binder() -> ContextBinder:
    """Provide a ContextBinder over the shared pool."""
    return ContextBinder(
        session_factory=get_sessionmaker(),
        settings=get_security_settings(),
    )


async def close_database_connections() -> None:
    """Dispose the engine and its pool.

    Should be called on application shutdown. Also resets the sessionmaker
    to allow reinitialization.
    """
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _probe.pool_closed()
        _engine = None
        _sessionmaker = None
