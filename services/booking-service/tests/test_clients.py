import httpx
import pytest
import respx

from app.cache import TTLCache
from app.catalog import ChefCatalog, chef_from_payload
from app.errors import GatewayError, GatewayTimeoutError, NotFoundError, ValidationError
from app.gateway import PaymentGateway

CATALOG_URL = "http://chef-service:8000"
GATEWAY_URL = "https://payments.example"


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_ttl_cache_expires_entries():
    clock = FakeClock()
    cache = TTLCache(ttl_seconds=60, clock=clock)
    cache.set("chef-1", "rate")

    clock.now = 59
    assert cache.get("chef-1") == "rate"
    clock.now = 60
    assert cache.get("chef-1") is None
    assert len(cache) == 0


def test_ttl_cache_evicts_oldest_beyond_capacity():
    cache = TTLCache(ttl_seconds=60, max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_ttl_cache_requires_positive_ttl():
    with pytest.raises(ValueError):
        TTLCache(ttl_seconds=0)


def test_chef_payload_accepts_legacy_field_names():
    chef = chef_from_payload({"_id": "abc", "pricePerHour": 1200, "fullName": "Meera"})
    assert chef.chef_id == "abc"
    assert chef.hourly_rate == 1200.0
    assert chef.is_active
    assert chef.name == "Meera"


@pytest.mark.asyncio
@respx.mock
async def test_catalog_lookup_is_cached():
    route = respx.get(f"{CATALOG_URL}/chefs/chef-1").respond(
        200, json={"id": "chef-1", "hourly_rate": 1000, "is_active": True}
    )
    catalog = ChefCatalog(CATALOG_URL, 1.0, TTLCache(60))

    first = await catalog.require_active_chef("chef-1")
    second = await catalog.require_active_chef("chef-1")

    assert first == second
    assert first.hourly_rate == 1000.0
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_catalog_missing_and_inactive_chefs():
    respx.get(f"{CATALOG_URL}/chefs/ghost").respond(404)
    respx.get(f"{CATALOG_URL}/chefs/retired").respond(200, json={"id": "retired", "hourly_rate": 500, "is_active": False})
    catalog = ChefCatalog(CATALOG_URL, 1.0, TTLCache(60))

    with pytest.raises(NotFoundError):
        await catalog.require_active_chef("ghost")
    with pytest.raises(ValidationError):
        await catalog.require_active_chef("retired")


@pytest.mark.asyncio
@respx.mock
async def test_catalog_outage_is_a_gateway_error():
    respx.get(f"{CATALOG_URL}/chefs/chef-1").respond(500)
    respx.get(f"{CATALOG_URL}/chefs/chef-2").mock(side_effect=httpx.ReadTimeout("slow"))
    catalog = ChefCatalog(CATALOG_URL, 1.0, TTLCache(60))

    with pytest.raises(GatewayError):
        await catalog.fetch_chef("chef-1")
    with pytest.raises(GatewayTimeoutError):
        await catalog.fetch_chef("chef-2")


@pytest.mark.asyncio
@respx.mock
async def test_gateway_create_order_and_refund():
    orders = respx.post(f"{GATEWAY_URL}/v1/orders").respond(
        200, json={"id": "order_1", "amount": 100000, "currency": "INR"}
    )
    refunds = respx.post(f"{GATEWAY_URL}/v1/payments/pay_1/refund").respond(200, json={"id": "rfnd_1"})
    gateway = PaymentGateway(GATEWAY_URL, "key", "secret", 5.0)

    order = await gateway.create_order(100000, "INR", "bk_1", {"bookingId": "b1"})
    refund = await gateway.refund("pay_1", 50000, {"reason": "x"})

    assert order["id"] == "order_1"
    assert refund["id"] == "rfnd_1"
    assert orders.calls.last.request.headers["Authorization"].startswith("Basic ")
    assert b'"amount":100000' in orders.calls.last.request.content.replace(b" ", b"")
    assert refunds.called


@pytest.mark.asyncio
@respx.mock
async def test_gateway_errors_are_not_retried():
    route = respx.post(f"{GATEWAY_URL}/v1/orders").respond(400, json={"error": "bad amount"})
    gateway = PaymentGateway(GATEWAY_URL, "key", "secret", 5.0)

    with pytest.raises(GatewayError) as exc:
        await gateway.create_order(0, "INR", "bk_1", {})

    assert exc.value.details["gateway_status"] == 400
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_gateway_timeout():
    respx.post(f"{GATEWAY_URL}/v1/payments/pay_1/refund").mock(side_effect=httpx.ConnectTimeout("down"))
    gateway = PaymentGateway(GATEWAY_URL, "key", "secret", 0.5)

    with pytest.raises(GatewayTimeoutError):
        await gateway.refund("pay_1", 100, {})
