"""
Per-user rate limits and a shared result cache for the AI issue assistant.

Both live in Supabase tables. Either store being unreachable must never
block the assistant, so failures are logged and treated as "allowed" or
"not cached".
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Mapping, Optional

import httpx

from tracker.clients.supabase_rest import SupabaseRestClient, SupabaseRestError
from tracker.schemas.ai import FeatureType

logger = logging.getLogger(__name__)

RATE_LIMITS_TABLE = "ai_rate_limits"
CACHE_TABLE = "ai_cache"

PER_MINUTE_LIMIT = 10
PER_DAY_LIMIT = 100
CACHE_TTL = timedelta(hours=24)

_STORE_ERRORS = (SupabaseRestError, httpx.HTTPError)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def input_hash(value: str) -> str:
    """SHA256 hex digest identifying a cached input."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class AIUsageLimiter:
    """Count assistant requests per user and feature in one-minute windows."""

    def __init__(
        self,
        rest_client: SupabaseRestClient,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._rest = rest_client
        self._clock = clock

    async def _requests_since(
        self, user_id: str, feature: FeatureType, since: datetime
    ) -> int:
        rows = await self._rest.select(
            RATE_LIMITS_TABLE,
            filters={"user_id": user_id, "feature_type": feature.value},
            columns="request_count",
            conditions={"window_start": f"gte.{since.isoformat()}"},
        )
        return sum(int(row.get("request_count") or 0) for row in rows)

    async def check(self, user_id: str, feature: FeatureType) -> Optional[str]:
        """Return a rejection message when a limit is reached, otherwise None."""
        now = self._clock()
        try:
            if (
                await self._requests_since(user_id, feature, now - timedelta(minutes=1))
                >= PER_MINUTE_LIMIT
            ):
                return (
                    f"The limit of {PER_MINUTE_LIMIT} requests per minute was "
                    "reached. Please try again shortly."
                )
            if (
                await self._requests_since(user_id, feature, now - timedelta(days=1))
                >= PER_DAY_LIMIT
            ):
                return (
                    f"The daily limit of {PER_DAY_LIMIT} requests was reached. "
                    "Please try again tomorrow."
                )
        except _STORE_ERRORS as exc:
            logger.warning("Rate limit check failed; allowing request: %s", exc)
        return None

    async def record(self, user_id: str, feature: FeatureType) -> None:
        window_start = self._clock().replace(second=0, microsecond=0).isoformat()
        filters = {
            "user_id": user_id,
            "feature_type": feature.value,
            "window_start": window_start,
        }
        try:
            existing = await self._rest.select_one(RATE_LIMITS_TABLE, filters=filters)
            if existing:
                await self._rest.update(
                    RATE_LIMITS_TABLE,
                    {"request_count": int(existing.get("request_count") or 0) + 1},
                    filters={"id": existing["id"]},
                )
            else:
                await self._rest.insert(
                    RATE_LIMITS_TABLE, {**filters, "request_count": 1}
                )
        except _STORE_ERRORS as exc:
            logger.warning("Failed to record assistant usage: %s", exc)


class AIResultCache:
    """Results keyed by feature and input hash, kept for 24 hours."""

    def __init__(
        self,
        rest_client: SupabaseRestClient,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._rest = rest_client
        self._clock = clock

    async def get(self, feature: FeatureType, digest: str) -> Optional[dict]:
        try:
            row = await self._rest.select_one(
                CACHE_TABLE,
                filters={"feature_type": feature.value, "input_hash": digest},
                conditions={"expires_at": f"gt.{self._clock().isoformat()}"},
            )
            if not row:
                return None
            await self._rest.update(
                CACHE_TABLE,
                {"hit_count": int(row.get("hit_count") or 0) + 1},
                filters={"id": row["id"]},
            )
        except _STORE_ERRORS as exc:
            logger.warning("Cache lookup failed: %s", exc)
            return None
        result = row.get("result")
        return result if isinstance(result, dict) else None

    async def save(
        self,
        feature: FeatureType,
        digest: str,
        input_data: Mapping[str, Any],
        result: Mapping[str, Any],
    ) -> None:
        row = {
            "feature_type": feature.value,
            "input_hash": digest,
            "input_data": dict(input_data),
            "result": dict(result),
            "expires_at": (self._clock() + CACHE_TTL).isoformat(),
            "hit_count": 0,
        }
        try:
            await self._rest.upsert(
                CACHE_TABLE, row, on_conflict="feature_type,input_hash"
            )
        except _STORE_ERRORS as exc:
            logger.warning("Cache save failed: %s", exc)

    async def invalidate(
        self, issue_id: str, feature_types: Optional[Iterable[FeatureType]] = None
    ) -> None:
        """Drop cached results whose input mentions ``issue_id``."""
        marker = json.dumps({"issueId": issue_id}, separators=(",", ":"))
        conditions = {"input_data": f"cs.{marker}"}
        features = [feature.value for feature in feature_types or ()]
        if features:
            conditions["feature_type"] = f"in.({','.join(features)})"
        try:
            await self._rest.delete(CACHE_TABLE, conditions=conditions)
        except _STORE_ERRORS as exc:
            logger.warning("Cache invalidation failed for issue %s: %s", issue_id, exc)


__all__ = [
    "AIResultCache",
    "AIUsageLimiter",
    "CACHE_TABLE",
    "CACHE_TTL",
    "PER_DAY_LIMIT",
    "PER_MINUTE_LIMIT",
    "RATE_LIMITS_TABLE",
    "input_hash",
]
