"""
Paste store: validation, id generation and the create/consume protocol.

The store is the only owner of view counters. Every consume() is one
atomic backend call, so the number of successful reads of a paste with
max_views=N never exceeds N regardless of how many callers race.
"""
import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Any, Optional, Union

from pastebox.clock import Clock, SystemClock, from_epoch_ms, to_epoch_ms
from pastebox.config import settings
from pastebox.database import build_backend
from pastebox.exceptions import PasteValidationError, StorageError
from pastebox.results import CreatedPaste, FoundPaste, NotFound, PasteRecord

logger = logging.getLogger(__name__)

ID_ALPHABET = string.ascii_letters + string.digits + "_-"
MAX_ID_ATTEMPTS = 5
# 100 years; keeps created_at + ttl inside the datetime range and exact in Lua doubles
MAX_TTL_SECONDS = 100 * 365 * 24 * 3600


def generate_paste_id(length: int = 10) -> str:
    """Random URL-safe identifier, 64**length possible values."""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def _validate_limit(field: str, value: Any) -> None:
    if value is None:
        return
    # bool is an int subclass; True must not pass as 1
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise PasteValidationError(field, f"{field} must be an integer >= 1")


class PasteStore:
    """Creates pastes and serves them under TTL and view-limit rules."""

    def __init__(self, backend, clock: Optional[Clock] = None, id_length: int = 10):
        self.backend = backend
        self.clock = clock or SystemClock()
        self.id_length = id_length

    def create(
        self,
        content: str,
        ttl_seconds: Optional[int] = None,
        max_views: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> CreatedPaste:
        """
        Validate and persist a new paste.

        Args:
            content: Text content, must be non-empty after trimming
            ttl_seconds: Optional time-to-live in seconds (1 to MAX_TTL_SECONDS)
            max_views: Optional maximum view count (>= 1)
            now: Creation instant; defaults to the store's clock

        Returns:
            The new paste id and its creation instant

        Raises:
            PasteValidationError: If an input violates a constraint
            StorageError: If the durable write could not complete
        """
        if not isinstance(content, str) or not content.strip():
            raise PasteValidationError("content", "content must be a non-empty string")
        _validate_limit("ttl_seconds", ttl_seconds)
        if ttl_seconds is not None and ttl_seconds > MAX_TTL_SECONDS:
            raise PasteValidationError("ttl_seconds", f"ttl_seconds must be at most {MAX_TTL_SECONDS}")
        _validate_limit("max_views", max_views)

        created_at_ms = to_epoch_ms(now or self.clock.now())

        for _ in range(MAX_ID_ATTEMPTS):
            record = PasteRecord(
                id=generate_paste_id(self.id_length),
                content=content,
                created_at_ms=created_at_ms,
                ttl_seconds=ttl_seconds,
                max_views=max_views,
            )
            try:
                stored = self.backend.insert(record)
            except StorageError as e:
                logger.error(f"Error saving paste {record.id}: {e}")
                raise
            if stored:
                logger.info(f"Paste {record.id} saved successfully")
                return CreatedPaste(id=record.id, created_at=from_epoch_ms(created_at_ms))
            logger.warning(f"Paste id collision on {record.id}, drawing a new id")

        raise StorageError(f"Could not allocate a unique paste id after {MAX_ID_ATTEMPTS} attempts")

    def consume(self, paste_id: str, now: Optional[datetime] = None) -> Union[FoundPaste, NotFound]:
        """
        Fetch a paste and count one view, atomically.

        Args:
            paste_id: Unique paste identifier
            now: Instant used for the TTL check; defaults to the store's clock

        Returns:
            FoundPaste when a view was counted, otherwise NotFound carrying
            the internal reason

        Raises:
            StorageError: If the store could not be reached; no view is counted
        """
        now_ms = to_epoch_ms(now or self.clock.now())
        try:
            outcome = self.backend.consume(paste_id, now_ms)
        except StorageError as e:
            logger.error(f"Error consuming paste {paste_id}: {e}")
            raise

        if not isinstance(outcome, PasteRecord):
            logger.info(f"Paste {paste_id} unavailable: {outcome.value}")
            return NotFound(reason=outcome)

        remaining_views = None
        if outcome.max_views is not None:
            remaining_views = max(outcome.max_views - outcome.view_count, 0)

        expires_at = None
        if outcome.ttl_seconds is not None:
            expires_at = from_epoch_ms(outcome.created_at_ms) + timedelta(seconds=outcome.ttl_seconds)

        return FoundPaste(
            content=outcome.content,
            remaining_views=remaining_views,
            expires_at=expires_at,
        )

    def is_available(self) -> bool:
        """Check if the durable store answers. Never raises."""
        try:
            return bool(self.backend.ping())
        except StorageError as e:
            logger.error(f"Health check failed: {e}")
        return False


_store: Optional[PasteStore] = None


def get_store() -> PasteStore:
    """Return the process-wide store, building its backend on first use."""
    global _store
    if _store is None:
        _store = PasteStore(build_backend(settings), id_length=settings.PASTE_ID_LENGTH)
    return _store
