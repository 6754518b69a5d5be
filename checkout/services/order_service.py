# checkout/services/order_service.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from sqlalchemy.orm import Session

from checkout.data.models.cart import CartModel
from checkout.data.models.order import OrderModel, OrderItemModel, OrderStatus
from checkout.domain.errors import OrderNotFoundError, InvalidStatusTransitionError
from checkout.repos.cart_repo import CartRepo
from checkout.repos.catalog_repo import CatalogRepo
from checkout.repos.order_repo import OrderRepo
from checkout.repos.store_repo import StoreRepo
from checkout.services.notification_service import NotificationService
from checkout.services.pricing_service import LineFact
from checkout.utils.settings import TAX_RATE
from checkout.utils.logging import get_logger

logger = get_logger(__name__)

CENTS = Decimal("0.01")
FEES = Decimal("0.00")

ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CREATED: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.READY},
    OrderStatus.READY: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_totals(line_facts: Sequence[LineFact], tax_rate: Decimal = TAX_RATE):
    """Zwraca (pozycje, subtotal, tax, total); ceny tylko z LineFact."""
    items = []
    for fact in line_facts:
        items.append(
            OrderItemModel(
                product_id=fact.product_id,
                variant_id=fact.variant_id,
                quantity=fact.quantity,
                unit_price=fact.unit_price,
                line_total=round2(fact.unit_price * fact.quantity),
            )
        )

    subtotal = sum((i.line_total for i in items), Decimal("0.00"))
    tax = round2(subtotal * tax_rate)
    total = round2(subtotal + tax)
    return items, subtotal, tax, total


def can_transition(current: str, target: str) -> bool:
    try:
        return OrderStatus(target) in ALLOWED_TRANSITIONS[OrderStatus(current)]
    except ValueError:
        return False


class OrderService:
    """
    Serwis odpowiedzialny za domene zamowien.
    Materializacja zamowienia z koszyka + odczyty i zmiany statusu.
    """

    def __init__(self, db: Session, notification_service: NotificationService | None = None):
        self.db = db
        self.repo = OrderRepo(db)
        self.carts = CartRepo(db)
        self.catalog = CatalogRepo(db)
        self.stores = StoreRepo(db)
        self.notification_service = notification_service

    def materialize(
        self,
        user_id: int,
        store_id: int,
        cart: CartModel,
        line_facts: Sequence[LineFact],
        payment_method: str,
        contact: dict | None = None,
        idempotency_token: str | None = None,
        delivery_method: str = "pickup",
        delivery_address: dict | None = None,
        notes: str | None = None,
    ) -> OrderModel:
        """
        Use Case: zapis zamowienia z koszyka.

        Zamowienie, jego pozycje i wyczyszczenie koszyka ida w jednej transakcji,
        wiec nie ma stanu "zamowienie jest, koszyk pelny".
        Bledy zapisu (w tym naruszenie unikalnego tokenu) sa propagowane po rollbacku.
        """
        items, subtotal, tax, total = compute_totals(line_facts)
        contact = contact or {}

        order = OrderModel(
            user_id=user_id,
            store_id=store_id,
            status=OrderStatus.CREATED.value,
            payment_method=payment_method,
            subtotal=subtotal,
            tax=tax,
            total=total,
            idempotency_token=idempotency_token,
            contact_name=contact.get("name"),
            contact_phone=contact.get("phone"),
            contact_email=contact.get("email"),
            delivery_method=delivery_method,
            delivery_address=delivery_address,
            notes=notes,
            items=items,
        )

        try:
            self.repo.add_order(order)
            cleared = self.carts.delete_cart_items(cart.id)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        self.db.expire(cart, ["items"])
        logger.info(
            f"Order {order.id} created for user {user_id} from cart {cart.id} "
            f"({len(items)} lines, total {total}); cleared {cleared} cart lines"
        )
        return order

    def get_order(self, order_id: int, user_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)

        if not order:
            raise OrderNotFoundError("Order not found", {"order_id": order_id})

        if order.user_id != user_id:
            raise PermissionError("No access to order")

        return order

    def list_orders(self, user_id: int, status: str | None = None, page: int = 1, limit: int = 24) -> list[OrderModel]:
        limit = max(1, min(100, limit))
        page = max(1, page)
        return self.repo.list_orders(user_id, status=status, offset=(page - 1) * limit, limit=limit)

    def cancel_order(self, order_id: int, user_id: int) -> OrderModel:
        """Anulowanie przez klienta, tylko z CREATED/PENDING."""
        order = self.get_order(order_id, user_id)
        return self._transition(order, OrderStatus.CANCELLED.value)

    def update_status(self, order_id: int, status: str) -> OrderModel:
        """Zmiana statusu przez proces realizacji (poza tym serwisem)."""
        order = self.repo.get_order(order_id)
        if not order:
            raise OrderNotFoundError("Order not found", {"order_id": order_id})
        return self._transition(order, status)

    def _transition(self, order: OrderModel, status: str) -> OrderModel:
        status = status.upper()
        if not can_transition(order.status, status):
            raise InvalidStatusTransitionError(
                f"Cannot change order from {order.status.lower()} to {status.lower()}",
                {"order_id": order.id, "from": order.status, "to": status},
            )

        previous = order.status
        updated = self.repo.update_order_status(order, status)
        logger.info(f"Order {order.id} status {previous} -> {status}")

        if self.notification_service:
            self.notification_service.send_order_status_notification(updated.user_id, updated.id, status)
        return updated

    # projekcja dla klienta
    def project(self, order: OrderModel) -> dict:
        return self.project_many([order])[0]

    def project_many(self, orders: Sequence[OrderModel]) -> list[dict]:
        items = [item for order in orders for item in order.items]
        stores = self.stores.get_stores(o.store_id for o in orders)
        products = self.catalog.get_products(i.product_id for i in items)
        variants = self.catalog.get_variants(i.variant_id for i in items if i.variant_id)

        def display_name(item: OrderItemModel) -> str:
            variant = variants.get(item.variant_id) if item.variant_id else None
            product = products.get(item.product_id)
            if variant and variant.name:
                return variant.name
            if product and product.name:
                return product.name
            return "Item"

        projected = []
        for order in orders:
            store = stores.get(order.store_id)
            projected.append({
                "id": order.id,
                "created_at": order.created_at,
                "status": (order.status or "").lower(),
                "store": store.name if store else "",
                "payment_method": order.payment_method,
                "delivery_method": order.delivery_method,
                "delivery_address": order.delivery_address,
                "items": [
                    {
                        "id": item.id,
                        "name": display_name(item),
                        "quantity": item.quantity,
                        "price": item.unit_price,
                    }
                    for item in order.items
                ],
                "subtotal": order.subtotal,
                "taxes": order.tax,
                "fees": FEES,
                "total": order.total,
            })
        return projected
