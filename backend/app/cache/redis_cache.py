"""Redis cache for active policy lookups, keyed by loan type."""

import logging
from typing import Optional

import redis.asyncio as redis
from pydantic import TypeAdapter

from app.core.enums import LoanType
from app.models.schemas.policy import PolicySnapshot

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "policy:active:entities:"
DEFAULT_TTL_SECONDS = 1800

_snapshot_list = TypeAdapter(list[PolicySnapshot])


class PolicyCache:
    """
    Cache of active policy snapshots per loan type.

    Redis problems never fail an evaluation: a read error is treated as a
    miss and a write error is only logged.
    """

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, redis_url: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> "PolicyCache":
        client = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        return cls(client=client, ttl_seconds=ttl_seconds)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    @staticmethod
    def cache_key(loan_type: LoanType) -> str:
        return f"{CACHE_KEY_PREFIX}{loan_type.value}"

    async def start(self) -> None:
        """Check connectivity; an unreachable Redis leaves the cache usable but cold."""
        if self.client is None:
            return
        try:
            await self.client.ping()
            logger.info("Policy cache connected to Redis")
        except Exception as e:
            logger.warning(f"Redis unavailable, policy lookups will hit the database: {e}")

    async def stop(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            logger.info("Policy cache stopped")

    async def get_active_policies(self, loan_type: LoanType) -> Optional[list[PolicySnapshot]]:
        """
        Read cached active policies for a loan type.

        Args:
            loan_type: Loan type being evaluated

        Returns:
            Cached snapshots, or None on a miss or any cache error
        """
        if self.client is None:
            return None
        key = self.cache_key(loan_type)
        try:
            cached = await self.client.get(key)
            if cached is None:
                return None
            policies = _snapshot_list.validate_json(cached)
            logger.debug(f"Cache hit for {key} ({len(policies)} policies)")
            return policies
        except Exception as e:
            logger.warning(f"Error reading policy cache {key}: {e}")
            return None

    async def set_active_policies(
        self, loan_type: LoanType, policies: list[PolicySnapshot]
    ) -> bool:
        """
        Store active policies for a loan type with the configured TTL.

        Returns:
            True if the entry was written
        """
        if self.client is None:
            return False
        key = self.cache_key(loan_type)
        try:
            payload = _snapshot_list.dump_json(policies).decode("utf-8")
            await self.client.setex(key, self.ttl_seconds, payload)
            return True
        except Exception as e:
            logger.warning(f"Error writing policy cache {key}: {e}")
            return False

    async def evict(self, loan_type: Optional[LoanType] = None) -> None:
        """
        Drop cached active policies.

        Args:
            loan_type: Loan type to evict; None evicts every loan type
        """
        if self.client is None:
            return
        # Global policies appear under every loan type key
        if loan_type is None or loan_type == LoanType.ALL:
            keys = [self.cache_key(lt) for lt in LoanType]
        else:
            keys = [self.cache_key(loan_type)]
        try:
            await self.client.delete(*keys)
        except Exception as e:
            logger.warning(f"Error evicting policy cache: {e}")
