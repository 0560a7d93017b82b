from __future__ import annotations

import time
from typing import Protocol

from guardescrow.security import SignedRequest, verify_ed25519


def verify_timestamp(timestamp: int, max_age_seconds: int = 60, now: int | None = None) -> None:
    current = int(time.time()) if now is None else now
    if abs(current - timestamp) > max_age_seconds:
        raise ValueError("Timestamp expired")


class RedisLike(Protocol):
    async def setnx(self, key: str, value: str) -> bool: ...
    async def expire(self, key: str, ttl: int) -> bool: ...


async def verify_nonce(redis: RedisLike, nonce: str, ttl_seconds: int = 120) -> None:
    if not nonce:
        raise ValueError("Missing nonce")
    key = f"nonce:{nonce}"
    fresh = await redis.setnx(key, "1")
    if not fresh:
        raise ValueError("Replay detected")
    await redis.expire(key, ttl_seconds)


def verify_signature(request: SignedRequest) -> None:
    if not verify_ed25519(request.caller, request.message(), request.signature):
        raise ValueError("Invalid signature")
