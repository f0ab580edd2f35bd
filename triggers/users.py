from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from analytics.aggregates import user_created_deltas
from config.settings import settings
from models.donation import UserRole
from notifications.dispatcher import NotificationDispatcher
from repos.analytics_repo import AnalyticsRepository

log = logging.getLogger("foodshare.triggers.users")

WELCOME_TITLE = "Welcome to Food Sharing Platform!"


class UserTriggers:
    def __init__(self, analytics: Optional[AnalyticsRepository] = None,
                 notifier: Optional[NotificationDispatcher] = None):
        self.analytics = analytics or AnalyticsRepository()
        self.notifier = notifier or NotificationDispatcher()

    def on_created(self, event_id: str, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if not user_id:
            log.error("user_missing_id", extra={"extra": {"event": "user_missing_id"}})
            return {"ok": False, "skipped": True, "reason": "missing_user_id"}

        role = str(data.get("role") or "").strip().lower()
        dedup_id = event_id if settings.EVENT_DEDUP_ENABLED and event_id else None
        if not self.analytics.apply(user_created_deltas(role), event_id=dedup_id, handler="user_created"):
            log.info("duplicate_event_skipped", extra={"extra": {"event": "duplicate_event_skipped",
                                                                 "handler": "user_created", "user_id": user_id}})
            return {"ok": True, "skipped": True, "reason": "duplicate_event"}

        name = data.get("displayName") or "User"
        link = "/donor/dashboard" if role == UserRole.DONOR.value else "/recipient/dashboard"
        # Not system generated: the notification-created trigger pushes it.
        notification_id = self.notifier.enqueue(
            user_id,
            WELCOME_TITLE,
            f"Thank you for joining our community, {name}! We're excited to have you with us.",
            notification_type="success",
            link=link,
        )
        log.info(
            "user_created_processed",
            extra={"extra": {"event": "user_created_processed", "user_id": user_id, "role": role,
                             "notification_id": notification_id}},
        )
        return {"ok": True, "user_id": user_id, "role": role, "notification_id": notification_id}
