# checkout/services/pricing_service.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence

from sqlalchemy.orm import Session

from checkout.data.models.cart_item import CartItemModel
from checkout.domain.errors import PricingChangedError
from checkout.repos.catalog_repo import CatalogRepo
from checkout.services.cache_service import CacheService, CacheKeys
from checkout.utils.settings import PRICE_CACHE_TTL_SECONDS, PRICE_DRIFT_TOLERANCE
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PriceFact:
    subject_key: str
    unit_price: Decimal | None
    observed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_cache(self) -> dict:
        return {
            "unit_price": None if self.unit_price is None else str(self.unit_price),
            "observed_at": self.observed_at.isoformat(),
        }

    @classmethod
    def from_cache(cls, subject_key: str, value: dict) -> "PriceFact":
        if not isinstance(value, dict):
            raise TypeError(f"price fact must be an object, got {type(value).__name__}")
        price = value.get("unit_price")
        unit_price = None if price is None else Decimal(str(price))
        if unit_price is not None and not unit_price.is_finite():
            raise ValueError(f"non-finite price {price!r}")
        return cls(
            subject_key=subject_key,
            unit_price=unit_price,
            observed_at=datetime.fromisoformat(value["observed_at"]),
        )


@dataclass(frozen=True)
class LineFact:
    """Autorytatywna cena jednej linii koszyka, uzywana 1:1 przy naliczaniu."""

    product_id: int
    variant_id: int | None
    quantity: int
    unit_price: Decimal


def authoritative_price(product_price: Decimal | None, variant_price: Decimal | None) -> Decimal:
    # cena wariantu zawsze nadpisuje domyslna cene produktu
    if variant_price is not None:
        return variant_price
    if product_price is not None:
        return product_price
    return Decimal("0")


def has_drifted(remembered: Decimal, current: Decimal, tolerance: Decimal = PRICE_DRIFT_TOLERANCE) -> bool:
    return abs(Decimal(remembered) - Decimal(current)) > tolerance


class PriceReconciler:
    """
    Rozwiazuje ceny dla koszyka: cache -> (paczkami) baza -> zapis do cache,
    potem porownuje z cena zapamietana w koszyku.
    """

    def __init__(self, db: Session, cache: CacheService, tolerance: Decimal = PRICE_DRIFT_TOLERANCE):
        self.catalog = CatalogRepo(db)
        self.cache = cache
        self.tolerance = tolerance

    def reconcile(self, items: Sequence[CartItemModel]) -> list[LineFact]:
        facts = self.resolve_prices(items)

        line_facts = []
        for item in items:
            product_fact = facts.get(CacheKeys.product_price(item.product_id))
            variant_fact = facts.get(CacheKeys.variant_price(item.variant_id)) if item.variant_id else None
            current = authoritative_price(
                product_fact.unit_price if product_fact else None,
                variant_fact.unit_price if variant_fact else None,
            )

            if has_drifted(item.price, current, self.tolerance):
                logger.info(
                    f"Price drift on product {item.product_id} variant {item.variant_id}: "
                    f"remembered {item.price}, current {current}"
                )
                raise PricingChangedError(
                    "Prices changed since the cart was last viewed",
                    {
                        "product_id": item.product_id,
                        "variant_id": item.variant_id,
                        "previous": str(item.price),
                        "current": str(current),
                    },
                )

            line_facts.append(
                LineFact(
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    quantity=item.quantity,
                    unit_price=current,
                )
            )

        return line_facts

    def resolve_prices(self, items: Sequence[CartItemModel]) -> dict[str, PriceFact]:
        product_ids = {i.product_id for i in items}
        variant_ids = {i.variant_id for i in items if i.variant_id}

        keys = [CacheKeys.product_price(pid) for pid in product_ids]
        keys += [CacheKeys.variant_price(vid) for vid in variant_ids]

        facts: dict[str, PriceFact] = {}
        available = self.cache.is_available()
        if available:
            for key, value in self.cache.get_many(keys).items():
                try:
                    facts[key] = PriceFact.from_cache(key, value)
                except (KeyError, TypeError, ValueError, ArithmeticError):
                    logger.warning(f"Malformed price fact under {key}, refetching")

        missed_products = [pid for pid in product_ids if CacheKeys.product_price(pid) not in facts]
        missed_variants = [vid for vid in variant_ids if CacheKeys.variant_price(vid) not in facts]
        logger.info(
            f"Price lookup: {len(facts)} cache hits, "
            f"{len(missed_products)} product and {len(missed_variants)} variant misses"
        )

        fresh: list[PriceFact] = []
        #max dwa zapytania: produkty i warianty
        for pid, product in self.catalog.get_products(missed_products).items():
            fresh.append(PriceFact(CacheKeys.product_price(pid), product.default_price))
        for vid, variant in self.catalog.get_variants(missed_variants).items():
            fresh.append(PriceFact(CacheKeys.variant_price(vid), variant.price))

        for fact in fresh:
            facts[fact.subject_key] = fact
            if available:
                self.cache.set(fact.subject_key, fact.to_cache(), PRICE_CACHE_TTL_SECONDS)

        return facts
