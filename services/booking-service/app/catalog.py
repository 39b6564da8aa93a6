import logging
from dataclasses import dataclass

import httpx

from .cache import TTLCache
from .errors import GatewayError, GatewayTimeoutError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chef:
    chef_id: str
    hourly_rate: float
    is_active: bool = True
    name: str | None = None


def chef_from_payload(payload: dict) -> Chef:
    rate = payload.get("hourly_rate")
    if rate is None:
        rate = payload.get("hourlyRate", payload.get("pricePerHour"))
    active = payload.get("is_active", payload.get("isActive", True))
    return Chef(
        chef_id=str(payload.get("id") or payload.get("chef_id") or payload.get("_id")),
        hourly_rate=float(rate) if rate is not None else 0.0,
        is_active=bool(active),
        name=payload.get("name") or payload.get("fullName"),
    )


class ChefCatalog:
    """Read-only chef lookups against the catalog service, cached per chef id."""

    def __init__(self, base_url: str, timeout: float, cache: TTLCache, transport=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache
        self._transport = transport

    async def fetch_chef(self, chef_id: str) -> Chef | None:
        cached = self.cache.get(chef_id)
        if cached is not None:
            return cached

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.get(f"{self.base_url}/chefs/{chef_id}")
                if r.status_code == 404:
                    return None
                r.raise_for_status()
                chef = chef_from_payload(r.json())
        except httpx.TimeoutException:
            raise GatewayTimeoutError("Timeout calling chef catalog")
        except httpx.HTTPError as e:
            logger.warning("chef catalog lookup failed for %s: %s", chef_id, e)
            raise GatewayError("Chef catalog unavailable")

        self.cache.set(chef_id, chef)
        return chef

    async def require_active_chef(self, chef_id: str) -> Chef:
        chef = await self.fetch_chef(chef_id)
        if chef is None:
            raise NotFoundError("Chef not found", chef_id=chef_id)
        if not chef.is_active:
            raise ValidationError("Chef is not accepting bookings", chef_id=chef_id)
        return chef
