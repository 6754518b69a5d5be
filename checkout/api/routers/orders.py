# checkout/api/routers/orders.py
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status as http_status

from checkout.api.deps import get_checkout_service, get_current_user_id, get_order_service
from checkout.domain.schemas import CheckoutIn, CheckoutOut, OrderListOut, OrderOut, OrderStatusIn
from checkout.services.checkout_service import CheckoutService
from checkout.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=CheckoutOut, status_code=201)
def create_order(
    payload: CheckoutIn,
    response: Response,
    user_id: int = Depends(get_current_user_id),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """
    Checkout: tworzy zamowienie z aktywnego koszyka uzytkownika.
    Powtorka z tym samym idempotency_key zwraca istniejace zamowienie (200).
    """
    result = svc.checkout(user_id, payload)
    if result.idempotent:
        response.status_code = http_status.HTTP_200_OK
    return {"order": result.order, "idempotent": result.idempotent}


@router.get("/", response_model=OrderListOut)
def list_orders(
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(24, ge=1, le=100),
    user_id: int = Depends(get_current_user_id),
    svc: OrderService = Depends(get_order_service),
):
    orders = svc.list_orders(user_id, status=status, page=page, limit=limit)
    return {
        "orders": svc.project_many(orders),
        "page": page,
        "limit": limit,
        "next_page": page + 1 if len(orders) == limit else None,
    }


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: int = Depends(get_current_user_id),
    svc: OrderService = Depends(get_order_service),
):
    try:
        return svc.project(svc.get_order(order_id, user_id))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.put("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    user_id: int = Depends(get_current_user_id),
    svc: OrderService = Depends(get_order_service),
):
    try:
        return svc.project(svc.cancel_order(order_id, user_id))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.put("/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: int,
    payload: OrderStatusIn,
    svc: OrderService = Depends(get_order_service),
):
    """Hook dla procesu realizacji zamowien (wewnetrzny)."""
    return svc.project(svc.update_status(order_id, payload.status))
