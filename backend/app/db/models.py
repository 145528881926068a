"""ORM models backing database draft storage."""

from __future__ import annotations

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


class CachedDraftModel(TimestampMixin, Base):
    """One in-progress draft per user, stored as the cached JSON payload."""

    __tablename__ = "cached_drafts"
    __table_args__ = (Index("ix_cached_drafts_user_id", "user_id", unique=True),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    session_length: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[dict] = mapped_column(JSONType, nullable=False)


__all__ = ["CachedDraftModel"]
