# checkout/services/notification_service.py
from kombu.exceptions import OperationalError

from checkout.celery_worker import celery_app
from checkout.services.cache_service import CacheService, CacheKeys
from checkout.utils.settings import NOTIFY_FAILURE_THRESHOLD, NOTIFY_BACKOFF_SECONDS
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Powiadomienia o zmianie statusu zamowienia, przez Celery.
    Licznik bledow i backoff trzymane w redisie, nie w procesie,
    zeby dzialalo przy wielu instancjach serwisu.
    """

    def __init__(self, cache: CacheService):
        self.cache = cache

    def send_order_status_notification(self, user_id: int, order_id: int, status: str) -> bool:
        if self.cache.get(CacheKeys.notify_backoff(user_id)):
            logger.info(f"Notification for user {user_id} suppressed (backoff)")
            return False

        try:
            send_order_status_task.delay(user_id, order_id, status)
            return True
        except OperationalError as e:
            failures = self.cache.increment(CacheKeys.notify_failures(user_id), NOTIFY_BACKOFF_SECONDS)
            logger.warning(f"Failed to enqueue notification for order {order_id} ({failures} failures): {e}")
            if failures >= NOTIFY_FAILURE_THRESHOLD:
                self.cache.set(CacheKeys.notify_backoff(user_id), True, NOTIFY_BACKOFF_SECONDS)
            return False


@celery_app.task(name="checkout.services.notification_service.send_order_status_task")
def send_order_status_task(user_id: int, order_id: int, status: str):
    """
    Celery task - kanal dostarczenia (push/email) jest poza tym serwisem,
    tu tylko logujemy.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: Order {order_id} is now {status.lower()}")
    return {"user_id": user_id, "order_id": order_id, "status": status}
