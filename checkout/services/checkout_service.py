# checkout/services/checkout_service.py
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from checkout.data.models.order import OrderModel
from checkout.domain.errors import (
    ComplianceCheckError,
    ComplianceViolationError,
    EmptyCartError,
    InvalidAddressError,
    InvalidPaymentMethodError,
    LocationUnknownError,
)
from checkout.domain.schemas import CheckoutIn
from checkout.repos.cart_repo import CartRepo
from checkout.services.cache_service import CacheService
from checkout.services.compliance_service import ComplianceService
from checkout.services.idempotency_service import IdempotencyResolver
from checkout.services.order_service import OrderService
from checkout.services.pricing_service import PriceReconciler
from checkout.utils.settings import ALLOWED_PAYMENT_METHODS
from checkout.utils.logging import get_logger

logger = get_logger(__name__)

REQUIRED_ADDRESS_FIELDS = ("city", "state", "zip_code")


@dataclass
class CheckoutResult:
    order: dict
    idempotent: bool = False


def validate_request(payload: CheckoutIn, allowed_payments=ALLOWED_PAYMENT_METHODS):
    """Walidacja ksztaltu requestu, bez I/O."""
    if payload.payment_method not in allowed_payments:
        raise InvalidPaymentMethodError(
            "Invalid payment method",
            {"payment_method": payload.payment_method, "allowed": list(allowed_payments)},
        )

    if payload.delivery_method == "delivery":
        address = payload.delivery_address
        missing = [f for f in REQUIRED_ADDRESS_FIELDS if not address or not getattr(address, f)]
        if missing:
            raise InvalidAddressError("Delivery address is incomplete", {"missing": missing})


class CheckoutService:
    """
    Koszyk -> zamowienie.
    walidacja -> idempotencja -> ceny -> zgodnosc -> zapis; pierwszy blad przerywa.
    Nic tu nie jest ponawiane automatycznie, retry calego checkoutu robi klient (z tokenem).
    """

    def __init__(
        self,
        db: Session,
        cache: CacheService,
        order_service: OrderService | None = None,
        compliance_service: ComplianceService | None = None,
    ):
        self.db = db
        self.carts = CartRepo(db)
        self.resolver = IdempotencyResolver(db)
        self.reconciler = PriceReconciler(db, cache)
        self.compliance = compliance_service or ComplianceService(db)
        self.orders = order_service or OrderService(db)

    def checkout(self, user_id: int, payload: CheckoutIn) -> CheckoutResult:
        validate_request(payload)

        token = payload.idempotency_key
        existing = self.resolver.resolve(user_id, token)
        if existing:
            return self._replay(existing)

        cart = self.carts.get_active_cart_by_user(user_id)
        if not cart or not cart.items:
            raise EmptyCartError("Cart is empty")

        store_id = payload.store_id or cart.store_id
        if not store_id:
            raise LocationUnknownError("Store is required for checkout", {"store_id": None})

        logger.info(f"Checkout for user {user_id}: cart {cart.id}, {len(cart.items)} lines, store {store_id}")

        line_facts = self.reconciler.reconcile(cart.items)

        result = self.compliance.check_compliance(user_id, store_id, line_facts)
        if not result.ok:
            violations = [v.to_dict() for v in result.violations]
            if "COMPLIANCE_CHECK_ERROR" in result.codes():
                raise ComplianceCheckError(violations)
            raise ComplianceViolationError(violations)

        try:
            order = self.orders.materialize(
                user_id=user_id,
                store_id=store_id,
                cart=cart,
                line_facts=line_facts,
                payment_method=payload.payment_method,
                contact=payload.contact.model_dump(exclude_none=True) if payload.contact else None,
                idempotency_token=token,
                delivery_method=payload.delivery_method,
                delivery_address=payload.delivery_address.model_dump(exclude_none=True)
                if payload.delivery_method == "delivery" and payload.delivery_address
                else None,
                notes=payload.notes,
            )
        except IntegrityError:
            # rownolegly request z tym samym tokenem wygral wyscig
            existing = self.resolver.resolve(user_id, token)
            if existing is None:
                raise
            logger.info(f"Concurrent checkout with token for user {user_id} resolved to order {existing.id}")
            return self._replay(existing)

        return CheckoutResult(order=self.orders.project(order), idempotent=False)

    def _replay(self, order: OrderModel) -> CheckoutResult:
        return CheckoutResult(order=self.orders.project(order), idempotent=True)
