"""Parsing of session payloads handed over by the authentication subsystem.

Auth middleware typically stores the session as a plain mapping (a decoded
token or a session-store record). These models validate that mapping and
turn it into the immutable Session value object. Anything that does not
validate is treated as "no session".
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shared_kernel.security.context import Role, Session, SessionUser


class SessionUserPayload(BaseModel):
    """Wire shape of the session user."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    role: Role
    tenant_id: str | None = Field(default=None, alias="tenantId")
    permissions: dict[str, bool] | None = None


class SessionPayload(BaseModel):
    """Wire shape of the session."""

    model_config = ConfigDict(extra="ignore")

    user: SessionUserPayload

    def to_session(self) -> Session:
        """Convert to the Session value object."""
        user = self.user
        return Session(
            user=SessionUser(
                id=user.id,
                role=user.role,
                tenant_id=user.tenant_id or None,
                permissions=MappingProxyType(dict(user.permissions or {})),
            )
        )


def session_from_mapping(data: Mapping[str, Any] | None) -> Session | None:
    """Build a Session from a raw mapping.

    Args:
        data: Raw session mapping, or None.

    Returns:
        The Session, or None when the mapping is missing or malformed.
    """
    if not data:
        return None
    try:
        return SessionPayload.model_validate(data).to_session()
    except ValidationError:
        return None


def coerce_session(raw: Session | Mapping[str, Any] | None) -> Session | None:
    """Accept either an already-built Session or a raw mapping."""
    if raw is None or isinstance(raw, Session):
        return raw
    return session_from_mapping(raw)
