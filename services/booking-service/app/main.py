import asyncio
import logging

from fastapi import FastAPI

from shared.database import create_schema, get_engine, get_session, is_sqlite

from . import config
from .cache import TTLCache
from .catalog import ChefCatalog
from .errors import BookingServiceError, booking_error_handler
from .gateway import PaymentGateway
from .locks import build_slot_locks
from .payments import PaymentReconciler
from .publisher import publisher
from .repository import BookingRepository
from .routes import router
from .sweeper import sweep_loop

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("booking-service")

app = FastAPI(title="Booking Service")
app.include_router(router)
app.add_exception_handler(BookingServiceError, booking_error_handler)

_engine = None
_stop_event = asyncio.Event()
_sweep_task = None


@app.get("/health")
async def health():
    return {"status": "ok", "service": config.SERVICE_NAME, "events_enabled": publisher.enabled}


@app.on_event("startup")
async def startup():
    global _engine, _sweep_task
    _engine = get_engine(config.DATABASE_URL)
    if is_sqlite(config.DATABASE_URL):
        await create_schema(_engine)

    repo = BookingRepository(
        get_session(_engine),
        build_slot_locks(config.REDIS_URL, config.SLOT_LOCK_TIMEOUT_SECONDS),
    )
    app.state.repo = repo
    app.state.catalog = ChefCatalog(
        config.CHEF_SERVICE_URL,
        config.CATALOG_TIMEOUT_SECONDS,
        TTLCache(config.CHEF_CACHE_TTL_SECONDS, config.CHEF_CACHE_MAX_ENTRIES),
    )
    gateway = PaymentGateway(
        config.PAYMENT_GATEWAY_URL,
        config.PAYMENT_KEY_ID,
        config.PAYMENT_KEY_SECRET,
        config.PAYMENT_TIMEOUT_SECONDS,
    )
    app.state.reconciler = PaymentReconciler(
        repo,
        gateway,
        config.require_payment_secret(),
        config.PAYMENT_CURRENCY,
        provider_key=config.PAYMENT_KEY_ID,
    )

    try:
        await publisher.connect()
    except Exception as e:
        logger.warning("RabbitMQ connect failed at startup; continuing: %s", e)

    if config.SWEEP_ENABLED:
        _sweep_task = asyncio.create_task(
            sweep_loop(repo, config.SWEEP_CRON, _stop_event, config.SWEEP_TIME_BUDGET_SECONDS)
        )


@app.on_event("shutdown")
async def shutdown():
    _stop_event.set()
    if _sweep_task:
        try:
            await _sweep_task
        except Exception:
            logger.exception("sweeper stopped with an error")
    try:
        await publisher.close()
    except Exception:
        logger.warning("publisher close failed", exc_info=True)
    if _engine is not None:
        await _engine.dispose()
