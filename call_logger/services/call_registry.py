"""
Active Call Registry.

Tracks calls a viewer has started from the browser: who was called,
when it started, and whether it has ended. The store is injected so
tests and single-process deployments use memory while multi-instance
deployments can share a Redis hash per call.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import redis.asyncio as aioredis

from call_logger.logging_config import get_logger
from call_logger.schemas.call import ActiveCall, CallStatus

logger = get_logger(__name__)

# Redis key layout
CALL_STATE_KEY = "calls:state:{}"    # Hash per call
ACTIVE_CALLS_KEY = "calls:active"    # Set of tracked call IDs

# Viewer notifications that touch the registry
EVENT_CALL_STARTED = "call-started"
EVENT_CALL_ENDED = "call-ended"


class CallRegistry(Protocol):
    async def get(self, call_id: str) -> Optional[ActiveCall]: ...

    async def set(self, call_id: str, call: ActiveCall) -> None: ...

    async def delete(self, call_id: str) -> None: ...

    async def all(self) -> dict[str, ActiveCall]: ...

    async def close(self) -> None: ...


class InMemoryCallRegistry:
    """Process-local registry backed by a dict."""

    def __init__(self) -> None:
        self._calls: dict[str, ActiveCall] = {}

    async def get(self, call_id: str) -> Optional[ActiveCall]:
        return self._calls.get(call_id)

    async def set(self, call_id: str, call: ActiveCall) -> None:
        self._calls[call_id] = call

    async def delete(self, call_id: str) -> None:
        self._calls.pop(call_id, None)

    async def all(self) -> dict[str, ActiveCall]:
        return dict(self._calls)

    async def close(self) -> None:
        return None


class RedisCallRegistry:
    """Registry stored as one Redis hash per call plus an index set."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    @classmethod
    def from_url(cls, url: str) -> RedisCallRegistry:
        return cls(aioredis.from_url(url, decode_responses=True))

    async def get(self, call_id: str) -> Optional[ActiveCall]:
        data = await self._redis.hgetall(CALL_STATE_KEY.format(call_id))
        if not data:
            return None
        return _from_hash(data)

    async def set(self, call_id: str, call: ActiveCall) -> None:
        await self._redis.hset(CALL_STATE_KEY.format(call_id), mapping=_to_hash(call))
        await self._redis.sadd(ACTIVE_CALLS_KEY, call_id)

    async def delete(self, call_id: str) -> None:
        await self._redis.delete(CALL_STATE_KEY.format(call_id))
        await self._redis.srem(ACTIVE_CALLS_KEY, call_id)

    async def all(self) -> dict[str, ActiveCall]:
        calls: dict[str, ActiveCall] = {}
        for call_id in await self._redis.smembers(ACTIVE_CALLS_KEY):
            call = await self.get(call_id)
            if call is not None:
                calls[call_id] = call
        return calls

    async def close(self) -> None:
        await self._redis.aclose()


def _to_hash(call: ActiveCall) -> dict[str, str]:
    data = {
        "customer_name": call.customer_name,
        "status": call.status.value,
        "start_time": call.start_time.isoformat(),
    }
    if call.end_time is not None:
        data["end_time"] = call.end_time.isoformat()
    return data


def _from_hash(data: dict[str, str]) -> ActiveCall:
    return ActiveCall(
        customer_name=data.get("customer_name", ""),
        status=CallStatus(data.get("status", CallStatus.ACTIVE.value)),
        start_time=datetime.fromisoformat(data["start_time"]),
        end_time=datetime.fromisoformat(data["end_time"]) if data.get("end_time") else None,
    )


def build_registry(redis_url: str) -> CallRegistry:
    if redis_url:
        logger.info("call_registry_backend", backend="redis")
        return RedisCallRegistry.from_url(redis_url)
    logger.info("call_registry_backend", backend="memory")
    return InMemoryCallRegistry()


# -- Lifecycle --

async def mark_call_started(
    registry: CallRegistry,
    call_id: str,
    customer_name: str = "",
) -> ActiveCall:
    call = ActiveCall(
        customer_name=customer_name,
        status=CallStatus.ACTIVE,
        start_time=datetime.now(timezone.utc),
    )
    await registry.set(call_id, call)
    logger.info("call_started", call_id=call_id, customer_name=customer_name)
    return call


async def mark_call_ended(registry: CallRegistry, call_id: str) -> Optional[ActiveCall]:
    """Mark a known call completed; unknown ids are ignored."""
    call = await registry.get(call_id)
    if call is None:
        logger.debug("call_end_unknown", call_id=call_id)
        return None

    completed = call.model_copy(
        update={"status": CallStatus.COMPLETED, "end_time": datetime.now(timezone.utc)}
    )
    await registry.set(call_id, completed)
    logger.info("call_ended", call_id=call_id)
    return completed


async def apply_viewer_event(registry: CallRegistry, frame: Any) -> Optional[ActiveCall]:
    """
    Apply a ``{"event": ..., "data": {...}}`` frame sent by a viewer.

    Frames without a call id, or with events other than call-started /
    call-ended, are ignored.
    """
    if not isinstance(frame, dict):
        return None
    data = frame.get("data")
    if not isinstance(data, dict) or not data.get("callId"):
        return None

    call_id = str(data["callId"])
    event = frame.get("event")
    if event == EVENT_CALL_STARTED:
        return await mark_call_started(registry, call_id, str(data.get("customerName") or ""))
    if event == EVENT_CALL_ENDED:
        return await mark_call_ended(registry, call_id)
    return None
