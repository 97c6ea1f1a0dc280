"""
Base building blocks:
string identity shared by every registry record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(eq=False, kw_only=True)
class Entity:
    """Identity exists as soon as the object is built, before anything is persisted."""

    id: str = field(default_factory=new_id)
