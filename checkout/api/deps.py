# checkout/api/deps.py
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from checkout.data.database import get_db
from checkout.services.cache_service import CacheService
from checkout.services.checkout_service import CheckoutService
from checkout.services.notification_service import NotificationService
from checkout.services.order_service import OrderService

_cache: CacheService | None = None


def get_cache() -> CacheService:
    #klient redisa ma wlasny pool polaczen, jeden na proces
    global _cache
    if _cache is None:
        _cache = CacheService()
    return _cache


def get_current_user_id(x_user_id: int = Header(..., gt=0)) -> int:
    """Id uzytkownika ustawiane przez warstwe auth przed tym serwisem."""
    return x_user_id


def get_order_service(
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
) -> OrderService:
    return OrderService(db, notification_service=NotificationService(cache))


def get_checkout_service(
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    order_service: OrderService = Depends(get_order_service),
) -> CheckoutService:
    return CheckoutService(db, cache, order_service=order_service)
