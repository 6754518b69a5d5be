# checkout/services/idempotency_service.py
from sqlalchemy.orm import Session

from checkout.data.models.order import OrderModel
from checkout.repos.order_repo import OrderRepo
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class IdempotencyResolver:
    """
    Szuka zamowienia juz utworzonego dla (user_id, token).
    Sprawdzenie nie jest atomowe - wyscig zamyka unikalny indeks na orders,
    patrz OrderService.materialize.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)

    def resolve(self, user_id: int, token: str | None) -> OrderModel | None:
        if not token:
            return None

        existing = self.repo.find_by_idempotency_token(user_id, token)
        if existing:
            logger.info(f"Idempotent replay: order {existing.id} for user {user_id}")
        return existing
