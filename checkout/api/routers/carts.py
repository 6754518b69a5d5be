#checkout/api/routers/carts.py
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from checkout.api.deps import get_current_user_id
from checkout.data.database import get_db
from checkout.domain.schemas import CartOut
from checkout.repos.cart_repo import CartRepo

router = APIRouter(prefix="/carts", tags=["carts"])


@router.get("/me", response_model=CartOut)
def get_my_cart(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    cart = CartRepo(db).get_active_cart_by_user(user_id)
    if not cart:
        return {"user_id": user_id, "items": [], "total": Decimal("0.00")}

    items = cart.items
    total = sum((i.price * i.quantity for i in items), Decimal("0.00"))

    return {
        "cart_id": cart.id,
        "user_id": cart.user_id,
        "store_id": cart.store_id,
        "status": cart.status,
        "items": [
            {
                "product_id": i.product_id,
                "variant_id": i.variant_id,
                "quantity": i.quantity,
                "price": i.price,
            }
            for i in items
        ],
        "total": total,
    }
