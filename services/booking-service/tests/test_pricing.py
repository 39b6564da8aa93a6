from datetime import date, timedelta

import pytest

from app.errors import ValidationError
from app.pricing import (
    guest_multiplier,
    quote,
    resolve_add_ons,
    round_currency,
    surge_for,
)

MONDAY = date(2030, 1, 7)


def test_weekday_has_no_surge():
    q = quote("daily", 1000, 3, 2, MONDAY)
    assert q.base_price == 3000
    assert q.surge_multiplier == 1.0
    assert q.surge_reason == ""
    assert q.total_price == 3000


@pytest.mark.parametrize("offset", [4, 5, 6])  # Fri, Sat, Sun
def test_weekend_surge_includes_friday(offset):
    day = MONDAY + timedelta(days=offset)
    multiplier, reason = surge_for(day)
    assert multiplier == 1.2
    assert reason == "Weekend Demand"


def test_saturday_daily_booking_end_to_end():
    q = quote("daily", 1000, 3, 2, date(2030, 1, 12))
    assert q.base_price == 3000
    assert q.surge_multiplier == 1.2
    assert q.total_price == 3600


def test_add_ons_are_added_after_surge():
    prices = resolve_add_ons("birthday", ["Cleanup", "Birthday Cake"])
    assert prices == {"Cleanup": 150, "Birthday Cake": 800}
    q = quote("birthday", 1000, 2, 4, date(2030, 1, 12), prices.values())
    assert q.add_on_total == 950
    assert q.total_price == round_currency(2000 * 1.2) + 950


def test_unknown_add_on_is_rejected():
    with pytest.raises(ValidationError):
        resolve_add_ons("daily", ["Wedding Decor"])


def test_duplicate_add_ons_count_once():
    assert resolve_add_ons("daily", ["Cleanup", "Cleanup"]) == {"Cleanup": 150}


def test_rounding_is_half_up():
    assert round_currency(2.5) == 3
    assert round_currency(1333.5) == 1334
    assert quote("daily", 1111.25, 1, 1, date(2030, 1, 12)).total_price == 1334


@pytest.mark.parametrize("duration, guests", [(0, 1), (1, 0), (-2, 3)])
def test_invalid_duration_or_guests_rejected(duration, guests):
    with pytest.raises(ValidationError):
        quote("daily", 1000, duration, guests, MONDAY)


def test_unknown_service_type_rejected():
    with pytest.raises(ValidationError):
        quote("brunch", 1000, 2, 2, MONDAY)


def test_birthday_guest_tier_prices_higher():
    small = quote("birthday", 1000, 3, 5, MONDAY)
    large = quote("birthday", 1000, 3, 10, MONDAY)
    assert large.guest_multiplier > small.guest_multiplier
    assert large.total_price > small.total_price


def test_guest_tiers():
    assert guest_multiplier("marriage", 25) == 1.0
    assert guest_multiplier("marriage", 26) == 1.2
    assert guest_multiplier("marriage", 51) == 1.5
    assert guest_multiplier("marriage", 150) == 2.0
    assert guest_multiplier("birthday", 21) == 1.3
    assert guest_multiplier("daily", 6) == 1.0
    assert guest_multiplier("daily", 7) == 1.1


@pytest.mark.parametrize("service_type", ["birthday", "marriage", "daily"])
def test_quote_is_monotonic_in_duration_and_guests(service_type):
    for day in (MONDAY, MONDAY + timedelta(days=5)):
        for guests in range(1, 120, 7):
            totals = [quote(service_type, 750, d, guests, day).total_price for d in range(1, 25)]
            assert totals == sorted(totals)
        for duration in (1, 4, 12):
            totals = [quote(service_type, 750, duration, g, day).total_price for g in range(1, 200)]
            assert totals == sorted(totals)


def test_quote_is_deterministic():
    args = ("marriage", 1500, 6, 80, date(2030, 1, 11), [2000, 150])
    assert quote(*args) == quote(*args)
