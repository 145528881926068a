"""Durable caches for in-progress practice drafts."""

from .draft_cache import (
    DatabaseDraftStorage,
    DraftCache,
    DraftStorage,
    LocalDraftStorage,
    MemoryDraftStorage,
    build_draft_cache,
)

__all__ = [
    "DatabaseDraftStorage",
    "DraftCache",
    "DraftStorage",
    "LocalDraftStorage",
    "MemoryDraftStorage",
    "build_draft_cache",
]
