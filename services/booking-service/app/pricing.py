"""
Booking price quotes.

quote() is pure: the same inputs always produce the same breakdown. The
weekday used for surge pricing is the literal calendar weekday of the date
passed in; callers normalize to the booking's local calendar day first.
"""

from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from .errors import ValidationError
from .models import ServiceType

WEEKEND_SURGE = 1.2
WEEKEND_SURGE_REASON = "Weekend Demand"
SURGE_WEEKDAYS = {4, 5, 6}  # Friday, Saturday, Sunday

COMMON_ADD_ONS = {"Cleanup": 150}

ADD_ON_CATALOG = {
    ServiceType.BIRTHDAY.value: {
        "Party Decor": 500,
        "Birthday Cake": 800,
        "Photography": 1200,
    },
    ServiceType.MARRIAGE.value: {
        "Wedding Decor": 2000,
        "Traditional Setup": 1500,
        "Catering Staff": 3000,
        "Premium Ingredients": 2500,
    },
    ServiceType.DAILY.value: {
        "Grocery Shopping": 200,
        "Meal Planning": 300,
        "Utensils Care": 150,
    },
}

# (minimum guests, multiplier), highest tier first
GUEST_TIERS = {
    ServiceType.MARRIAGE.value: [(101, 2.0), (51, 1.5), (26, 1.2)],
    ServiceType.BIRTHDAY.value: [(21, 1.3), (10, 1.15)],
    ServiceType.DAILY.value: [(7, 1.1)],
}

MAX_ADD_ONS = 20


@dataclass(frozen=True)
class Quote:
    base_price: float
    guest_multiplier: float
    surge_multiplier: float
    surge_reason: str
    add_on_total: int
    total_price: int

    def as_dict(self) -> dict:
        return asdict(self)


def round_currency(amount) -> int:
    """Round to the nearest whole currency unit, halves away from zero."""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_service_type(service_type: str) -> str:
    valid = [s.value for s in ServiceType]
    if service_type not in valid:
        raise ValidationError(
            f"Invalid service type '{service_type}'. Must be one of: {', '.join(valid)}"
        )
    return service_type


def add_on_catalog(service_type: str) -> dict[str, int]:
    return {**COMMON_ADD_ONS, **ADD_ON_CATALOG.get(service_type, {})}


def resolve_add_ons(service_type: str, names: Iterable[str] | None) -> dict[str, int]:
    """Map requested add-on names to catalog prices, rejecting unknown names."""
    names = list(names or [])
    if len(names) > MAX_ADD_ONS:
        raise ValidationError(f"Cannot have more than {MAX_ADD_ONS} add-ons")

    catalog = add_on_catalog(validate_service_type(service_type))
    unknown = [n for n in names if n not in catalog]
    if unknown:
        raise ValidationError(
            f"Unknown add-ons for {service_type}: {', '.join(unknown)}",
            unknown_add_ons=unknown,
        )
    # a set of add-ons: duplicates count once
    return {n: catalog[n] for n in dict.fromkeys(names)}


def guest_multiplier(service_type: str, guest_count: int) -> float:
    for minimum, multiplier in GUEST_TIERS.get(service_type, []):
        if guest_count >= minimum:
            return multiplier
    return 1.0


def surge_for(day: date) -> tuple[float, str]:
    if day.weekday() in SURGE_WEEKDAYS:
        return WEEKEND_SURGE, WEEKEND_SURGE_REASON
    return 1.0, ""


def quote(
    service_type: str,
    chef_hourly_rate: float,
    duration_hours: int,
    guest_count: int,
    day: date,
    add_on_prices: Iterable[int] = (),
) -> Quote:
    validate_service_type(service_type)
    if duration_hours is None or duration_hours < 1:
        raise ValidationError("Duration must be at least 1 hour")
    if guest_count is None or guest_count < 1:
        raise ValidationError("Guest count must be at least 1")
    if chef_hourly_rate is None or chef_hourly_rate < 0:
        raise ValidationError("Chef hourly rate must be a non-negative number")

    base_price = chef_hourly_rate * duration_hours
    g_mult = guest_multiplier(service_type, guest_count)
    s_mult, s_reason = surge_for(day)
    add_on_total = sum(add_on_prices)

    total = round_currency(Decimal(str(base_price)) * Decimal(str(g_mult)) * Decimal(str(s_mult)))

    return Quote(
        base_price=base_price,
        guest_multiplier=g_mult,
        surge_multiplier=s_mult,
        surge_reason=s_reason,
        add_on_total=add_on_total,
        total_price=total + add_on_total,
    )
