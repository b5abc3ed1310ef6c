"""
Notification sinks.

Services emit notifications only after their transaction commits, and a
failing sink is logged, never raised: a lost notification must not undo a
bid or job change that already happened.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from django.db import transaction

from .models import Notification

logger = logging.getLogger(__name__)


BID_RECEIVED = 'bid_received'
BID_ACCEPTED = 'bid_accepted'
BID_REJECTED = 'bid_rejected'
JOB_ASSIGNED = 'job_assigned'
JOB_STATUS_CHANGED = 'job_status_changed'


class NotificationSink(Protocol):
    """Anything that can deliver a notification to one user."""

    def send(self, user_id: int, type: str, title: str, message: str,
             data: Optional[Dict[str, Any]] = None) -> None:
        ...


class DatabaseNotificationSink:
    """Stores notifications as ``Notification`` rows for the in-app inbox."""

    def send(self, user_id, type, title, message, data=None):
        Notification.objects.create(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data or {},
        )


class NullNotificationSink:
    """Drops every notification. Useful for scripts and tests."""

    def send(self, user_id, type, title, message, data=None):
        return None


def send_after_commit(sink, user_id, type, title, message, data=None):
    """
    Deliver a notification once the surrounding transaction commits.

    Outside a transaction the notification is delivered immediately.
    Delivery errors are logged with their traceback and swallowed.
    """
    def deliver():
        try:
            sink.send(user_id=user_id, type=type, title=title, message=message, data=data)
        except Exception:
            logger.exception(
                f"Failed to deliver '{type}' notification to user {user_id}"
            )

    transaction.on_commit(deliver)
