"""Services for the travel kernel (write side)."""

from travel_kernel.services.notification_hook import (
    CollectingNotificationSink,
    LoggingNotificationSink,
    NotificationHook,
    NotificationSink,
    build_notifications,
)
from travel_kernel.services.sequence_service import SequenceService
from travel_kernel.services.transition_service import TransitionService

__all__ = [
    "TransitionService",
    "SequenceService",
    "NotificationHook",
    "NotificationSink",
    "LoggingNotificationSink",
    "CollectingNotificationSink",
    "build_notifications",
]
