import os

SERVICE_NAME = "booking-service"

DATABASE_URL = os.getenv("BOOKING_DB") or "sqlite+aiosqlite:///./bookings.db"
REDIS_URL = os.getenv("REDIS_URL")  # optional; slot locks are process-local without it
RABBIT_URL = os.getenv("RABBIT_URL")  # optional in dev, required if you want events

CHEF_SERVICE_URL = os.getenv("CHEF_SERVICE_URL") or "http://chef-service:8000"
CHEF_CACHE_TTL_SECONDS = float(os.getenv("CHEF_CACHE_TTL_SECONDS") or "60")
CHEF_CACHE_MAX_ENTRIES = int(os.getenv("CHEF_CACHE_MAX_ENTRIES") or "1024")
CATALOG_TIMEOUT_SECONDS = float(os.getenv("CATALOG_TIMEOUT_SECONDS") or "3.0")

PAYMENT_GATEWAY_URL = os.getenv("PAYMENT_GATEWAY_URL") or "https://api.razorpay.com"
PAYMENT_KEY_ID = os.getenv("PAYMENT_KEY_ID")
PAYMENT_KEY_SECRET = os.getenv("PAYMENT_KEY_SECRET")
PAYMENT_TIMEOUT_SECONDS = float(os.getenv("PAYMENT_TIMEOUT_SECONDS") or "10")
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY") or "INR"

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"

BOOKING_TIMEZONE = os.getenv("BOOKING_TIMEZONE") or "Asia/Kolkata"

SWEEP_CRON = os.getenv("SWEEP_CRON") or "0 0 * * *"
SWEEP_ENABLED = (os.getenv("SWEEP_ENABLED") or "true").lower() in ("1", "true", "yes")
SWEEP_TIME_BUDGET_SECONDS = float(os.getenv("SWEEP_TIME_BUDGET_SECONDS") or "300")

SLOT_LOCK_TIMEOUT_SECONDS = float(os.getenv("SLOT_LOCK_TIMEOUT_SECONDS") or "10")


def require_payment_secret() -> str:
    if not PAYMENT_KEY_SECRET:
        raise RuntimeError("PAYMENT_KEY_SECRET environment variable is not set")
    return PAYMENT_KEY_SECRET
