# checkout/celery_worker.py
from celery import Celery

from checkout.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND, CELERY_ALWAYS_EAGER

celery_app = Celery(
    "checkout",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# explicite importuj taski, zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "checkout.services.notification_service",
)

celery_app.conf.timezone = "UTC"
# w testach taski wykonuja sie lokalnie, bez brokera
celery_app.conf.task_always_eager = CELERY_ALWAYS_EAGER
celery_app.conf.task_ignore_result = True
