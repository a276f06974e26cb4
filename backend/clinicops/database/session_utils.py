"""Dialect lookup for repositories that branch on the backing store."""

from __future__ import annotations

from sqlalchemy.exc import UnboundExecutionError
from sqlalchemy.orm import Session


def get_dialect_name(session: Session, default: str = "sqlite") -> str:
    """
    Return the dialect name of the engine behind ``session``.

    The hold store only takes advisory locks on PostgreSQL and the outbox
    only uses ``ON CONFLICT`` where the dialect supports it, so an unbound
    session reports ``default``.
    """
    try:
        bind = session.get_bind()
    except UnboundExecutionError:
        return default
    name = getattr(getattr(bind, "dialect", None), "name", None)
    return name.lower() if isinstance(name, str) else default
