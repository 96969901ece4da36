"""Redis-backed event store.

Layout under the configured key prefix:

- ``<prefix>:event:<eventId>``      JSON-encoded record
- ``<prefix>:machine:<machineId>``  sorted set of event ids scored by event time (epoch ms)
- ``<prefix>:factory:<factoryId>``  sorted set of event ids scored by event time (epoch ms)
"""
from datetime import datetime
import structlog
import orjson
from redis import Redis
from redis.client import Pipeline
from redis.exceptions import RedisError, WatchError
from .base import EventStore
from ..event_models import EventRecord
from ..errors import StoreError
from ..config import get_settings

log = structlog.get_logger()
settings = get_settings()


def _score(instant: datetime) -> float:
    return instant.timestamp() * 1000


class RedisEventStore(EventStore):
    """Redis implementation of the event store.

    Safe to share between processes: conditional writes use WATCH/MULTI on
    the record key.
    """

    def __init__(self, redis_url: str | None = None, key_prefix: str | None = None):
        """
        Initialize Redis event store.

        Args:
            redis_url: Redis connection URL (defaults to settings.REDIS_URL)
            key_prefix: Key namespace (defaults to settings.REDIS_KEY_PREFIX)
        """
        self.redis_url = redis_url or str(settings.REDIS_URL)
        self.key_prefix = key_prefix or settings.REDIS_KEY_PREFIX
        self._client: Redis | None = None

    def _get_client(self) -> Redis:
        """Get or create Redis client."""
        if self._client is None:
            self._client = Redis.from_url(
                self.redis_url,
                decode_responses=False,
                socket_connect_timeout=5,
                socket_timeout=5
            )
        return self._client

    def _event_key(self, event_id: str) -> str:
        return f"{self.key_prefix}:event:{event_id}"

    def _machine_key(self, machine_id: str) -> str:
        return f"{self.key_prefix}:machine:{machine_id}"

    def _factory_key(self, factory_id: str) -> str:
        return f"{self.key_prefix}:factory:{factory_id}"

    @staticmethod
    def _encode(record: EventRecord) -> bytes:
        return orjson.dumps(record.model_dump(mode="json", by_alias=True))

    @staticmethod
    def _decode(raw: bytes | None) -> EventRecord | None:
        if raw is None:
            return None
        return EventRecord.model_validate(orjson.loads(raw))

    def _queue_write(self, pipe: Pipeline, record: EventRecord, previous: EventRecord | None):
        """Queue the record write plus index maintenance on a pipeline."""
        member = record.event_id
        if previous is not None and previous.machine_id != record.machine_id:
            pipe.zrem(self._machine_key(previous.machine_id), member)
        if previous is not None and previous.factory_id != record.factory_id:
            pipe.zrem(self._factory_key(previous.factory_id), member)
        pipe.set(self._event_key(member), self._encode(record))
        score = _score(record.event_time)
        pipe.zadd(self._machine_key(record.machine_id), {member: score})
        pipe.zadd(self._factory_key(record.factory_id), {member: score})

    async def find_by_id(self, event_id: str) -> EventRecord | None:
        try:
            raw = self._get_client().get(self._event_key(event_id))
        except RedisError as e:
            log.error("redis.get_failed", error=str(e), event_id=event_id)
            raise StoreError(str(e)) from e
        return self._decode(raw)

    async def save(self, record: EventRecord) -> None:
        """
        Create or overwrite a record and keep the range indexes in step.

        Raises:
            StoreError: If Redis is unreachable or the write fails
        """
        try:
            client = self._get_client()
            previous = self._decode(client.get(self._event_key(record.event_id)))
            pipe = client.pipeline(transaction=True)
            self._queue_write(pipe, record, previous)
            pipe.execute()
        except RedisError as e:
            log.error("redis.save_failed", error=str(e), event_id=record.event_id)
            raise StoreError(str(e)) from e
        log.debug("event.saved", event_id=record.event_id, adapter="redis")

    async def compare_and_save(self, record: EventRecord, expected: EventRecord | None) -> bool:
        key = self._event_key(record.event_id)
        try:
            with self._get_client().pipeline(transaction=True) as pipe:
                pipe.watch(key)
                current = self._decode(pipe.get(key))
                if current != expected:
                    pipe.unwatch()
                    log.info("store.write_conflict", event_id=record.event_id, adapter="redis")
                    return False
                pipe.multi()
                self._queue_write(pipe, record, current)
                pipe.execute()
                return True
        except WatchError:
            log.info("store.write_conflict", event_id=record.event_id, adapter="redis")
            return False
        except RedisError as e:
            log.error("redis.save_failed", error=str(e), event_id=record.event_id)
            raise StoreError(str(e)) from e

    async def _range(self, index_key: str, start: datetime, end: datetime) -> list[EventRecord]:
        try:
            client = self._get_client()
            ids = client.zrangebyscore(index_key, _score(start), _score(end))
            if not ids:
                return []
            keys = [self._event_key(i.decode() if isinstance(i, bytes) else i) for i in ids]
            raws = client.mget(keys)
        except RedisError as e:
            log.error("redis.range_failed", error=str(e), index=index_key)
            raise StoreError(str(e)) from e
        records = [self._decode(raw) for raw in raws if raw is not None]
        return [r for r in records if start <= r.event_time <= end]

    async def find_by_machine_and_time_range(
        self, machine_id: str, start: datetime, end: datetime
    ) -> list[EventRecord]:
        records = await self._range(self._machine_key(machine_id), start, end)
        return [r for r in records if r.machine_id == machine_id]

    async def find_by_factory_and_time_range(
        self, factory_id: str, start: datetime, end: datetime
    ) -> list[EventRecord]:
        records = await self._range(self._factory_key(factory_id), start, end)
        return [r for r in records if r.factory_id == factory_id]

    async def health_check(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            True if Redis is accessible, False otherwise
        """
        try:
            return bool(self._get_client().ping())
        except RedisError as e:
            log.warning("redis.health_check_failed", error=str(e))
            return False

    def close(self):
        """Close Redis connection."""
        if self._client:
            self._client.close()
            self._client = None
