import asyncio
import uuid
from datetime import date, datetime, timedelta

import pytest
import pytest_asyncio

from shared.database import create_schema, get_engine, get_session

from app import publisher
from app.catalog import Chef, ChefCatalog
from app.cache import TTLCache
from app.clock import LOCAL_TZ
from app.gateway import sign
from app.locks import LocalSlotLocks
from app.models import Booking
from app.payments import PaymentReconciler
from app.repository import BookingRepository, utcnow
from app.security import Principal

SECRET = "test_key_secret"

# Monday 2030-01-07, 10:00 local
NOW = datetime(2030, 1, 7, 10, 0, tzinfo=LOCAL_TZ)
THURSDAY = date(2030, 1, 10)
FRIDAY = date(2030, 1, 11)
SATURDAY = date(2030, 1, 12)


class FakeCatalog(ChefCatalog):
    def __init__(self, chefs):
        super().__init__("http://chef-service", 1.0, TTLCache(60))
        self.chefs = {c.chef_id: c for c in chefs}

    async def fetch_chef(self, chef_id):
        return self.chefs.get(chef_id)


class FakeGateway:
    def __init__(self):
        self.orders = []
        self.refunds = []
        self.fail_with = None
        self.delay = 0

    async def create_order(self, amount_minor_units, currency, receipt, notes):
        await asyncio.sleep(self.delay)
        if self.fail_with:
            raise self.fail_with
        self.orders.append({"amount": amount_minor_units, "currency": currency, "receipt": receipt, "notes": notes})
        return {"id": f"order_{len(self.orders)}", "amount": amount_minor_units, "currency": currency, "receipt": receipt}

    async def refund(self, payment_ref, amount_minor_units, notes):
        await asyncio.sleep(self.delay)
        if self.fail_with:
            raise self.fail_with
        self.refunds.append({"payment_ref": payment_ref, "amount": amount_minor_units, "notes": notes})
        return {"id": f"rfnd_{len(self.refunds)}"}


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def repo(engine):
    return BookingRepository(get_session(engine), LocalSlotLocks(timeout_seconds=5))


@pytest.fixture
def catalog():
    return FakeCatalog([
        Chef("chef-1", 1000.0, True, "Asha"),
        Chef("chef-2", 800.0, True, "Ravi"),
        Chef("chef-off", 900.0, False, "Inactive"),
    ])


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def reconciler(repo, gateway):
    return PaymentReconciler(repo, gateway, SECRET, "INR", provider_key="rzp_test_key")


@pytest.fixture
def owner():
    return Principal(user_id="user-1")


@pytest.fixture
def chef_principal():
    return Principal(user_id="chef-1", roles=["chef"], chef_id="chef-1")


@pytest.fixture
def stranger():
    return Principal(user_id="user-2")


@pytest.fixture(autouse=True)
def events(monkeypatch):
    sent = []

    async def capture(routing_key, body):
        sent.append((routing_key, body))

    monkeypatch.setattr(publisher.publisher, "publish", capture)
    return sent


def signature(order_id, payment_ref, secret=SECRET):
    return sign(secret, order_id, payment_ref)


async def insert_booking(repo, **overrides) -> Booking:
    """Store a booking row directly, bypassing the create-booking checks."""
    now = utcnow()
    fields = dict(
        booking_id=str(uuid.uuid4()),
        chef_id="chef-1",
        user_id="user-1",
        date=THURSDAY,
        start_time="18:00",
        duration_hours=3,
        guest_count=4,
        service_type="daily",
        add_ons=[],
        base_price=3000.0,
        guest_multiplier=1.0,
        surge_multiplier=1.0,
        surge_reason="",
        add_on_total=0,
        total_price=1000,
        status="pending",
        payment_status="pending",
        created_at=now,
        updated_at=now,
        version=1,
    )
    fields.update(overrides)
    return await repo.insert(Booking(**fields))


def days_ago(n):
    return NOW.date() - timedelta(days=n)

