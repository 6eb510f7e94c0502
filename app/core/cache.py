"""
Token cache on Redis — token blacklist, account-wide revocation markers
and one-time codes.

The client is created once in the app lifespan and shared by every request.
Redis errors propagate so that an outage is never read as "not revoked".
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any

from redis.asyncio import Redis

logger = logging.getLogger(__name__)

TOKEN_BLACKLIST_PREFIX = "blacklist:"
ACCOUNT_BLACKLIST_PREFIX = "user_blacklist:"


def create_redis(url: str) -> Redis:
    return Redis.from_url(url, decode_responses=True)


class TokenCache:
    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    # ── Generic JSON values ─────────────────────────────────────────
    async def get_json(self, key: str) -> Any | None:
        raw = await self._redis.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding malformed cache value at %s", key)
            return None

    async def set_json(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        serialized = json.dumps(value)
        if ttl_seconds:
            await self._redis.set(key, serialized, ex=ttl_seconds)
        else:
            await self._redis.set(key, serialized)

    async def ping(self) -> bool:
        return bool(await self._redis.ping())

    async def close(self) -> None:
        await self._redis.aclose()

    # ── Single-token revocation ─────────────────────────────────────
    async def blacklist_token(self, token: str, ttl_seconds: int) -> None:
        await self.set_json(
            TOKEN_BLACKLIST_PREFIX + token,
            {"blacklisted_at": datetime.now(timezone.utc).isoformat()},
            max(1, ttl_seconds),
        )

    async def is_token_blacklisted(self, token: str) -> bool:
        return bool(await self._redis.exists(TOKEN_BLACKLIST_PREFIX + token))

    # ── Account-wide revocation ─────────────────────────────────────
    async def revoke_all_for_account(self, account_id: str, ttl_seconds: int) -> float:
        """Revoke every token of *account_id* issued up to now. Returns the cutoff."""
        revoked_at = time.time()
        await self.set_json(
            ACCOUNT_BLACKLIST_PREFIX + account_id,
            {"revoked_at": revoked_at},
            max(1, ttl_seconds),
        )
        return revoked_at

    async def account_revoked_at(self, account_id: str) -> float | None:
        marker = await self.get_json(ACCOUNT_BLACKLIST_PREFIX + account_id)
        if not isinstance(marker, dict):
            return None
        value = marker.get("revoked_at")
        return float(value) if isinstance(value, (int, float)) else None

    async def is_revoked_for_account(self, account_id: str, issued_at: Any) -> bool:
        """True when a token of *account_id* issued at *issued_at* predates the marker.

        A marker with a token lacking a usable ``iat`` counts as revoked.
        """
        cutoff = await self.account_revoked_at(account_id)
        if cutoff is None:
            return False
        if not isinstance(issued_at, (int, float)):
            return True
        return issued_at <= cutoff

    # ── One-time codes ──────────────────────────────────────────────
    async def store_otp(self, prefix: str, email: str, otp: str, ttl_seconds: int) -> None:
        await self.set_json(
            prefix + email,
            {
                "otp": otp,
                "email": email,
                "used": False,
                "expires_at": time.time() + ttl_seconds,
            },
            ttl_seconds,
        )

    async def get_otp(self, prefix: str, email: str) -> dict | None:
        entry = await self.get_json(prefix + email)
        return entry if isinstance(entry, dict) else None

    async def consume_otp(self, prefix: str, email: str) -> bool:
        """Atomically flag the code as used. False if it was already used or gone."""
        key = prefix + email
        entry = await self.get_otp(prefix, email)
        if entry is None:
            return False
        previous = await self._redis.set(
            key,
            json.dumps({**entry, "used": True}),
            xx=True,
            keepttl=True,
            get=True,
        )
        if previous is None:
            return False
        try:
            return not json.loads(previous).get("used", False)
        except json.JSONDecodeError:
            return False
