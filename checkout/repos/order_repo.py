# checkout/repos/order_repo.py
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from checkout.data.models.order import OrderModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        #flush bez commita - zamowienie i czyszczenie koszyka ida w jednej transakcji
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(selectinload(OrderModel.items))
        ).scalar_one_or_none()

    def find_by_idempotency_token(self, user_id: int, token: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.user_id == user_id, OrderModel.idempotency_token == token)
            .options(selectinload(OrderModel.items))
        ).scalar_one_or_none()

    def list_orders(
        self,
        user_id: int,
        status: str | None = None,
        offset: int = 0,
        limit: int = 24,
    ) -> list[OrderModel]:
        stmt = select(OrderModel).where(OrderModel.user_id == user_id)
        if status:
            stmt = stmt.where(OrderModel.status == status.upper())
        stmt = (
            stmt.options(selectinload(OrderModel.items))
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars())

    def list_orders_between(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
        statuses: tuple[str, ...],
    ) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(
                    OrderModel.user_id == user_id,
                    OrderModel.status.in_(statuses),
                    OrderModel.created_at >= start,
                    OrderModel.created_at < end,
                )
                .options(selectinload(OrderModel.items))
            ).scalars()
        )

    def update_order_status(self, order: OrderModel, status: str) -> OrderModel:
        order.status = status
        self.db.commit()
        self.db.refresh(order)
        return order

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
