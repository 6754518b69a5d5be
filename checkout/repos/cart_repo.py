# checkout/repos/cart_repo.py
from sqlalchemy import select, delete
from sqlalchemy.orm import Session, selectinload

from checkout.data.models.cart import CartModel
from checkout.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_active_cart_by_user(self, user_id: int) -> CartModel | None:
        #najnowszy aktywny koszyk razem z pozycjami
        return self.db.execute(
            select(CartModel)
            .where(CartModel.user_id == user_id, CartModel.status == "ACTIVE")
            .options(selectinload(CartModel.items))
            .order_by(CartModel.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def delete_cart_items(self, cart_id: int) -> int:
        # bez commita, wywolujacy decyduje o granicy transakcji
        result = self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id == cart_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
