"""
Storage backends for pastes: Redis for real deployments, in-memory for
development and tests.

Both backends make the consume decision (existence, then TTL, then the
conditional view increment) a single indivisible operation: Redis runs it
as one Lua script, the in-memory backend runs it under a lock.
"""
import functools
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from redis import Redis
from redis.exceptions import RedisError

from pastebox.config import Settings
from pastebox.exceptions import StorageError
from pastebox.results import NotFoundReason, PasteRecord

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

ConsumeOutcome = Union[PasteRecord, NotFoundReason]

# KEYS[1] = paste key
# ARGV = content, created_at_ms, ttl_seconds or "", max_views or ""
INSERT_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 1 then
    return 0
end
redis.call('HSET', KEYS[1], 'content', ARGV[1], 'created_at_ms', ARGV[2], 'view_count', 0)
if ARGV[3] ~= '' then
    redis.call('HSET', KEYS[1], 'ttl_seconds', ARGV[3])
end
if ARGV[4] ~= '' then
    redis.call('HSET', KEYS[1], 'max_views', ARGV[4])
end
return 1
"""

# KEYS[1] = paste key
# ARGV[1] = now in epoch milliseconds
CONSUME_SCRIPT = """
local fields = redis.call('HMGET', KEYS[1], 'content', 'created_at_ms', 'ttl_seconds', 'max_views', 'view_count')
if not fields[1] then
    return {'no_such_id'}
end
if fields[3] then
    local expires_at_ms = tonumber(fields[2]) + tonumber(fields[3]) * 1000
    if tonumber(ARGV[1]) >= expires_at_ms then
        return {'expired'}
    end
end
if fields[4] and tonumber(fields[5]) >= tonumber(fields[4]) then
    return {'view_limit_exceeded'}
end
local view_count = redis.call('HINCRBY', KEYS[1], 'view_count', 1)
return {'found', fields[1], fields[2], fields[3] or '', fields[4] or '', view_count}
"""


def handle_redis_errors(method: F) -> F:
    """Re-raise any Redis failure inside a backend method as StorageError."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except RedisError as e:
            raise StorageError(f"Redis operation {method.__name__} failed: {type(e).__name__}: {e}") from e

    return wrapper  # type: ignore[return-value]


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


class InMemoryBackend:
    """Process-local store for development/testing (when Redis unavailable)."""

    name = "memory"

    def __init__(self):
        self._records: Dict[str, PasteRecord] = {}
        self._lock = threading.Lock()

    def insert(self, record: PasteRecord) -> bool:
        """Store a record unless its id is taken. Returns False on collision."""
        with self._lock:
            if record.id in self._records:
                return False
            self._records[record.id] = record
            return True

    def consume(self, paste_id: str, now_ms: int) -> ConsumeOutcome:
        with self._lock:
            record = self._records.get(paste_id)
            if record is None:
                return NotFoundReason.NO_SUCH_ID
            if record.is_expired(now_ms):
                return NotFoundReason.EXPIRED
            if record.is_exhausted():
                return NotFoundReason.VIEW_LIMIT_EXCEEDED

            record = record.model_copy(update={"view_count": record.view_count + 1})
            self._records[paste_id] = record
            return record

    def get(self, paste_id: str) -> Optional[PasteRecord]:
        """Read a record without counting a view. Inspection only; reads go through consume()."""
        with self._lock:
            return self._records.get(paste_id)

    def ping(self) -> bool:
        return True


class RedisBackend:
    """Stores each paste as a Redis hash under <prefix>paste:<id>."""

    name = "redis"

    def __init__(self, redis_client: Redis, prefix: str = ""):
        self.redis = redis_client
        self.prefix = prefix
        self._insert_script = self.redis.register_script(INSERT_SCRIPT)
        self._consume_script = self.redis.register_script(CONSUME_SCRIPT)

    @classmethod
    def from_url(cls, url: str, prefix: str = "") -> "RedisBackend":
        return cls(Redis.from_url(url, decode_responses=True), prefix=prefix)

    def key(self, paste_id: str) -> str:
        return f"{self.prefix}paste:{paste_id}"

    @handle_redis_errors
    def insert(self, record: PasteRecord) -> bool:
        """
        Save a paste unless its id is taken.

        Args:
            record: Paste to persist, view_count is always stored as 0

        Returns:
            True if stored, False if a paste with the same id exists
        """
        stored = self._insert_script(
            keys=[self.key(record.id)],
            args=[
                record.content,
                record.created_at_ms,
                "" if record.ttl_seconds is None else record.ttl_seconds,
                "" if record.max_views is None else record.max_views,
            ],
        )
        return int(stored) == 1

    @handle_redis_errors
    def consume(self, paste_id: str, now_ms: int) -> ConsumeOutcome:
        """
        Check existence and expiry, then increment view_count if below
        max_views, all in one script execution.

        Args:
            paste_id: Unique paste identifier
            now_ms: Current instant in epoch milliseconds

        Returns:
            The record as it stands after the increment, or the reason no
            view was counted
        """
        reply: List[Any] = self._consume_script(keys=[self.key(paste_id)], args=[now_ms])
        status = reply[0]
        if status != "found":
            return NotFoundReason(status)

        _, content, created_at_ms, ttl_seconds, max_views, view_count = reply
        return PasteRecord(
            id=paste_id,
            content=content,
            created_at_ms=int(created_at_ms),
            ttl_seconds=_optional_int(ttl_seconds),
            max_views=_optional_int(max_views),
            view_count=int(view_count),
        )

    @handle_redis_errors
    def get(self, paste_id: str) -> Optional[PasteRecord]:
        """Read a record without counting a view. Inspection only; reads go through consume()."""
        data = self.redis.hgetall(self.key(paste_id))
        if not data:
            return None
        return PasteRecord(
            id=paste_id,
            content=data["content"],
            created_at_ms=int(data["created_at_ms"]),
            ttl_seconds=_optional_int(data.get("ttl_seconds")),
            max_views=_optional_int(data.get("max_views")),
            view_count=int(data.get("view_count", 0)),
        )

    @handle_redis_errors
    def ping(self) -> bool:
        return bool(self.redis.ping())


def build_backend(settings: Settings) -> Union[RedisBackend, InMemoryBackend]:
    """
    Pick a backend from STORAGE_BACKEND.

    "memory" never touches Redis, "redis" fails with StorageError when Redis
    is unreachable, and "auto" falls back to memory with a warning.
    """
    mode = settings.STORAGE_BACKEND
    if mode == "memory":
        logger.info("Using in-memory storage (STORAGE_BACKEND=memory)")
        return InMemoryBackend()
    if mode not in ("auto", "redis"):
        raise ValueError(f"Unknown STORAGE_BACKEND {mode!r}, expected auto, redis or memory")

    try:
        logger.info(f"Attempting to connect to Redis: {settings.REDIS_URL[:30]}...")
        backend = RedisBackend.from_url(settings.REDIS_URL, prefix=settings.REDIS_KEY_PREFIX)
        backend.ping()
        logger.info("Redis connected successfully")
        return backend
    except StorageError as e:
        if mode == "redis":
            logger.error(f"Redis unavailable and STORAGE_BACKEND=redis: {e}")
            raise
        logger.error(f"Error connecting to Redis: {e}")
        logger.warning("Using in-memory fallback for development. Data will NOT persist across restarts.")
        return InMemoryBackend()
