# checkout/domain/errors.py
"""
Typowane bledy checkoutu.

Kazdy blad biznesowy ma kod (widoczny dla klienta), status HTTP i opcjonalne
szczegoly. Wszystkie sa wykrywane przed zapisem zamowienia; bledy infrastruktury
w trakcie zapisu nie sa tu modelowane i koncza sie ogolnym 500.
"""
from typing import Any


class CheckoutError(Exception):
    code = "CHECKOUT_ERROR"
    http_status = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_response(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"error": body}


class EmptyCartError(CheckoutError):
    code = "EMPTY_CART"


class InvalidPaymentMethodError(CheckoutError):
    code = "INVALID_PAYMENT_METHOD"


class InvalidAddressError(CheckoutError):
    code = "INVALID_ADDRESS"


class PricingChangedError(CheckoutError):
    code = "PRICING_CHANGED"
    http_status = 409


class LocationUnknownError(CheckoutError):
    code = "LOCATION_UNKNOWN"


class ComplianceViolationError(CheckoutError):
    code = "COMPLIANCE_VIOLATION"

    def __init__(self, violations: list[dict]):
        super().__init__(
            "Order violates compliance requirements",
            {"violations": violations},
        )
        self.violations = violations


class ComplianceCheckError(ComplianceViolationError):
    """Compliance could not be evaluated; the order is refused (fail closed)."""

    code = "COMPLIANCE_CHECK_ERROR"
    http_status = 503


class OrderNotFoundError(CheckoutError):
    code = "ORDER_NOT_FOUND"
    http_status = 404


class InvalidStatusTransitionError(CheckoutError):
    code = "INVALID_STATUS_TRANSITION"
