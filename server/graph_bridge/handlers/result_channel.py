"""
Result Channel

Side channel on which application instances publish the real outcome of
a dispatched command. The HTTP response of a dispatch only carries a
ticket; callers poll the ticket or listen on the event stream.

Records live in a bounded in-memory map. When Redis is configured they
are also written through with a TTL so they outlive local eviction.
All methods run on the server event loop.
"""

import asyncio
import json
import logging
from collections import OrderedDict
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Set

import redis.asyncio as redis

from graph_bridge.config import mcp_settings
from graph_bridge.core.errors import ResultNotFoundError
from graph_bridge.core.logging_config import log_structured
from graph_bridge.schemas.dispatch_schema import (
    DispatchCommand,
    ResultRecord,
    ResultStatus,
    now_iso,
)

logger = logging.getLogger(__name__)

_REDIS_KEY_PREFIX = "mcp:result:"


class ResultChannel:
    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        ttl_seconds: Optional[int] = None,
        max_entries: Optional[int] = None,
    ):
        self._redis = redis_client
        self._ttl = ttl_seconds or mcp_settings.MCP_RESULT_TTL_SECONDS
        self._max_entries = max_entries or mcp_settings.MCP_MAX_TRACKED_RESULTS
        self._records: "OrderedDict[str, ResultRecord]" = OrderedDict()
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def backend(self) -> str:
        return "redis" if self._redis is not None else "memory"

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def connect_redis(self, redis_url: Optional[str]) -> None:
        """Enable the Redis write-through. Degrades to memory if unreachable."""
        if self._redis is not None:
            return
        if not redis_url:
            log_structured(logger, "info", "redis_disabled", reason="REDIS_URL not configured")
            return
        client = redis.from_url(redis_url, decode_responses=True)
        try:
            await client.ping()
        except Exception as e:
            log_structured(
                logger,
                "warning",
                "redis_unavailable",
                error=str(e),
                result_backend="memory",
            )
            await client.aclose()
            return
        self._redis = client
        log_structured(logger, "info", "redis_connected")

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def register(self, command: DispatchCommand) -> ResultRecord:
        """Track a freshly delivered command as pending"""
        record = ResultRecord(
            ticket=command.ticket,
            kind=command.kind,
            target=command.target,
        )
        await self._store(record)
        return record

    async def publish(
        self,
        ticket: str,
        status: ResultStatus,
        result: Any = None,
    ) -> ResultRecord:
        """Record the instance's outcome for a ticket and notify listeners"""
        current = await self.get(ticket)
        record = current.model_copy(
            update={"status": ResultStatus(status), "result": result, "updated_at": now_iso()}
        )
        await self._store(record)
        log_structured(
            logger,
            "info",
            "result_published",
            ticket=ticket,
            kind=record.kind.value,
            target=record.target,
            status=record.status.value,
        )
        self._broadcast(record)
        return record

    async def get(self, ticket: str) -> ResultRecord:
        record = self._records.get(ticket)
        if record is not None:
            return record

        if self._redis is not None:
            try:
                cached = await self._redis.get(_REDIS_KEY_PREFIX + ticket)
                if cached:
                    return ResultRecord.model_validate(json.loads(cached))
            except Exception as e:
                log_structured(logger, "warning", "result_get_failed", ticket=ticket, error=str(e))

        raise ResultNotFoundError(ticket)

    async def _store(self, record: ResultRecord) -> None:
        self._records[record.ticket] = record
        self._records.move_to_end(record.ticket)
        while len(self._records) > self._max_entries:
            self._records.popitem(last=False)

        if self._redis is None:
            return
        try:
            await self._redis.setex(
                _REDIS_KEY_PREFIX + record.ticket,
                self._ttl,
                json.dumps(record.to_body(), default=str),
            )
        except Exception as e:
            log_structured(logger, "warning", "result_set_failed", ticket=record.ticket, error=str(e))

    # ------------------------------------------------------------------
    # Event stream
    # ------------------------------------------------------------------

    def subscribe(self, maxsize: int = 100) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def _broadcast(self, record: ResultRecord) -> None:
        event = record.to_body()
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                # Slow listener; drop rather than block the publisher.
                continue

    async def event_stream(
        self,
        is_disconnected: Callable[[], Awaitable[bool]],
        heartbeat: float,
    ) -> AsyncIterator[str]:
        """
        Server-sent event frames for every published result.

        Starts with a ``ready`` frame, sends a comment heartbeat when no
        result arrives within ``heartbeat`` seconds and stops once
        ``is_disconnected`` reports the client gone.
        """
        queue = self.subscribe()
        try:
            ready = {"type": "ready", "result_backend": self.backend}
            yield f"data: {json.dumps(ready)}\n\n"

            while True:
                if await is_disconnected():
                    break
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=heartbeat)
                except asyncio.TimeoutError:
                    yield ": heartbeat\n\n"
                    continue
                yield f"event: result\ndata: {json.dumps(event, default=str)}\n\n"
        finally:
            self.unsubscribe(queue)
