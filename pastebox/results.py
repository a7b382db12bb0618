"""
Domain types passed between the paste store, its backends and the routes.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class NotFoundReason(str, Enum):
    """Why a paste is unavailable. Internal only, never sent to clients."""

    NO_SUCH_ID = "no_such_id"
    EXPIRED = "expired"
    VIEW_LIMIT_EXCEEDED = "view_limit_exceeded"


class PasteRecord(BaseModel):
    """A persisted paste, as stored by a backend."""

    model_config = ConfigDict(frozen=True)

    id: str
    content: str
    created_at_ms: int
    ttl_seconds: Optional[int] = None
    max_views: Optional[int] = None
    view_count: int = 0

    @property
    def expires_at_ms(self) -> Optional[int]:
        if self.ttl_seconds is None:
            return None
        return self.created_at_ms + self.ttl_seconds * 1000

    def is_expired(self, now_ms: int) -> bool:
        """Expiry is inclusive of the boundary instant."""
        expires_at_ms = self.expires_at_ms
        return expires_at_ms is not None and now_ms >= expires_at_ms

    def is_exhausted(self) -> bool:
        return self.max_views is not None and self.view_count >= self.max_views


class CreatedPaste(BaseModel):
    """Result of a successful create()."""

    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime


class FoundPaste(BaseModel):
    """Result of a consume() that counted a view."""

    model_config = ConfigDict(frozen=True)

    content: str
    remaining_views: Optional[int] = None
    expires_at: Optional[datetime] = None


class NotFound(BaseModel):
    """Result of a consume() that did not count a view."""

    model_config = ConfigDict(frozen=True)

    reason: NotFoundReason
