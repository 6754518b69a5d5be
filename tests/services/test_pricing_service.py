"""Price Reconciliation — tests for cache-aside price resolution and drift checks.

Tests cover:
    - authoritative price: variant overrides product, missing both gives 0
    - drift tolerance boundary (exactly 0.005 passes, one cent more fails)
    - cache misses are fetched in at most two store queries and written back
    - cache hits skip the store entirely
    - malformed or non-finite cache entries fall back to the store
    - cache outage gives the same result as a healthy cache
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from checkout.data.models import CartItemModel
from checkout.domain.errors import PricingChangedError
from checkout.services.cache_service import CacheKeys
from checkout.services.pricing_service import (
    PriceFact,
    PriceReconciler,
    authoritative_price,
    has_drifted,
)
from checkout.utils.settings import PRICE_CACHE_TTL_SECONDS, CART_TTL_SECONDS

from tests.factories import add_cart_line


def _spy_catalog(reconciler):
    reconciler.catalog.get_products = MagicMock(wraps=reconciler.catalog.get_products)
    reconciler.catalog.get_variants = MagicMock(wraps=reconciler.catalog.get_variants)
    return reconciler.catalog


# ─── pure helpers ────────────────────────────────────────────────

def test_variant_price_overrides_product_price():
    assert authoritative_price(Decimal("10.00"), Decimal("12.00")) == Decimal("12.00")


def test_product_price_used_without_variant():
    assert authoritative_price(Decimal("10.00"), None) == Decimal("10.00")


def test_zero_when_no_price_known():
    assert authoritative_price(None, None) == Decimal("0")


def test_drift_exactly_at_tolerance_passes():
    assert has_drifted(Decimal("25.005"), Decimal("25.00")) is False
    assert has_drifted(Decimal("24.995"), Decimal("25.00")) is False


def test_drift_one_cent_beyond_tolerance_fails():
    assert has_drifted(Decimal("25.015"), Decimal("25.00")) is True
    assert has_drifted(Decimal("25.01"), Decimal("25.00")) is True


def test_price_fact_cache_round_trip_keeps_decimal():
    fact = PriceFact("product_price:1", Decimal("25.00"))
    restored = PriceFact.from_cache(fact.subject_key, fact.to_cache())
    assert restored.unit_price == Decimal("25.00")
    assert restored.observed_at == fact.observed_at


# ─── reconcile ───────────────────────────────────────────────────

def test_reconcile_returns_authoritative_prices(world, cache):
    add_cart_line(world, product_id=1, quantity=2, price="25.00")
    add_cart_line(world, product_id=2, variant_id=1, quantity=1, price="12.00")
    items = world.query(CartItemModel).order_by(CartItemModel.id).all()

    facts = PriceReconciler(world, cache).reconcile(items)

    assert [(f.product_id, f.variant_id, f.quantity, f.unit_price) for f in facts] == [
        (1, None, 2, Decimal("25.00")),
        (2, 1, 1, Decimal("12.00")),
    ]


def test_reconcile_within_tolerance_charges_authoritative_price(world, cache):
    add_cart_line(world, product_id=1, price="25.005")
    items = world.query(CartItemModel).all()

    facts = PriceReconciler(world, cache).reconcile(items)

    assert facts[0].unit_price == Decimal("25.00")


def test_reconcile_rejects_drift_with_both_prices(world, cache):
    add_cart_line(world, product_id=2, variant_id=1, price="10.00")
    items = world.query(CartItemModel).all()

    with pytest.raises(PricingChangedError) as exc:
        PriceReconciler(world, cache).reconcile(items)

    assert exc.value.code == "PRICING_CHANGED"
    details = exc.value.details
    assert (details["product_id"], details["variant_id"]) == (2, 1)
    assert Decimal(details["previous"]) == Decimal("10.00")
    assert Decimal(details["current"]) == Decimal("12.00")


def test_misses_fetched_in_two_queries_and_cached(world, cache, fake_redis):
    add_cart_line(world, product_id=1, price="25.00")
    add_cart_line(world, product_id=2, variant_id=1, price="12.00")
    add_cart_line(world, product_id=3, price="5.00")
    items = world.query(CartItemModel).all()
    reconciler = PriceReconciler(world, cache)
    catalog = _spy_catalog(reconciler)

    reconciler.reconcile(items)

    assert catalog.get_products.call_count == 1
    assert catalog.get_variants.call_count == 1
    assert set(fake_redis.data) == {
        "product_price:1",
        "product_price:2",
        "product_price:3",
        "variant_price:1",
    }
    assert all(ttl == PRICE_CACHE_TTL_SECONDS for ttl in fake_redis.ttls.values())
    assert PRICE_CACHE_TTL_SECONDS >= CART_TTL_SECONDS


def test_cache_hits_skip_the_store(world, cache):
    add_cart_line(world, product_id=1, price="30.00")
    cache.set(CacheKeys.product_price(1), PriceFact("product_price:1", Decimal("30.00")).to_cache(), 60)
    items = world.query(CartItemModel).all()
    reconciler = PriceReconciler(world, cache)
    catalog = _spy_catalog(reconciler)

    facts = reconciler.reconcile(items)

    # cached price wins over the store's 25.00 until the entry expires
    assert facts[0].unit_price == Decimal("30.00")
    catalog.get_products.assert_called_once_with([])


@pytest.mark.parametrize(
    "raw",
    [
        '{"unit_price": "abc"}',
        "25.0",
        '["25.00"]',
        '"25.00"',
        '{"unit_price": "NaN", "observed_at": "2026-01-01T00:00:00+00:00"}',
        '{"unit_price": "Infinity", "observed_at": "2026-01-01T00:00:00+00:00"}',
    ],
)
def test_malformed_cache_entry_is_refetched(world, cache, fake_redis, raw):
    add_cart_line(world, product_id=1, price="25.00")
    fake_redis.data["product_price:1"] = raw
    items = world.query(CartItemModel).all()

    facts = PriceReconciler(world, cache).reconcile(items)

    assert facts[0].unit_price == Decimal("25.00")


def test_cache_outage_gives_same_result(world, cache, down_cache):
    add_cart_line(world, product_id=1, quantity=2, price="25.00")
    add_cart_line(world, product_id=2, variant_id=1, price="12.00")
    items = world.query(CartItemModel).all()

    healthy = PriceReconciler(world, cache).reconcile(items)
    degraded = PriceReconciler(world, down_cache).reconcile(items)

    assert healthy == degraded
