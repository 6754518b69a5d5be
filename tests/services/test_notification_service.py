"""Notification Service — tests for enqueueing and cache-backed backoff.

Tests cover:
    - a healthy enqueue runs the task (eager Celery)
    - enqueue failures are counted in the shared cache
    - reaching the threshold sets a backoff entry that suppresses sends
"""

from unittest.mock import MagicMock

from kombu.exceptions import OperationalError

from checkout.services import notification_service
from checkout.services.cache_service import CacheKeys
from checkout.services.notification_service import NotificationService, send_order_status_task
from checkout.utils.settings import NOTIFY_FAILURE_THRESHOLD


def test_task_returns_payload():
    assert send_order_status_task.run(1, 2, "READY") == {"user_id": 1, "order_id": 2, "status": "READY"}


def test_send_enqueues_task(cache, monkeypatch):
    task = MagicMock()
    monkeypatch.setattr(notification_service, "send_order_status_task", task)

    assert NotificationService(cache).send_order_status_notification(1, 10, "CONFIRMED") is True
    task.delay.assert_called_once_with(1, 10, "CONFIRMED")


def test_failures_lead_to_backoff(cache, monkeypatch):
    task = MagicMock()
    task.delay.side_effect = OperationalError("broker down")
    monkeypatch.setattr(notification_service, "send_order_status_task", task)
    svc = NotificationService(cache)

    for _ in range(NOTIFY_FAILURE_THRESHOLD):
        assert svc.send_order_status_notification(1, 10, "READY") is False

    assert cache.get(CacheKeys.notify_failures(1)) == NOTIFY_FAILURE_THRESHOLD
    assert cache.get(CacheKeys.notify_backoff(1)) is True

    task.delay.reset_mock()
    assert svc.send_order_status_notification(1, 10, "COMPLETED") is False
    task.delay.assert_not_called()


def test_backoff_is_per_user(cache, monkeypatch):
    task = MagicMock()
    monkeypatch.setattr(notification_service, "send_order_status_task", task)
    cache.set(CacheKeys.notify_backoff(1), True, 60)

    assert NotificationService(cache).send_order_status_notification(2, 11, "READY") is True
