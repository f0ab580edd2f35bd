from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from config.settings import settings
from notifications.dispatcher import NotificationDispatcher
from repos.analytics_repo import AnalyticsRepository

log = logging.getLogger("foodshare.triggers.notifications")


class NotificationTriggers:
    def __init__(self, notifier: Optional[NotificationDispatcher] = None,
                 analytics: Optional[AnalyticsRepository] = None):
        self.notifier = notifier or NotificationDispatcher()
        self.analytics = analytics or AnalyticsRepository()

    def on_created(self, event_id: str, notification_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        # Records written by NotificationDispatcher.notify were already pushed.
        if data.get("systemGenerated"):
            return {"ok": True, "skipped": True, "reason": "system_generated"}

        user_id = data.get("userId")
        if not user_id:
            log.error("notification_missing_user",
                      extra={"extra": {"event": "notification_missing_user", "notification_id": notification_id}})
            return {"ok": False, "skipped": True, "reason": "missing_user_id"}

        if settings.EVENT_DEDUP_ENABLED and event_id:
            if not self.analytics.claim_event(event_id, handler="notification_created"):
                return {"ok": True, "skipped": True, "reason": "duplicate_event"}

        try:
            result = self.notifier.push(
                user_id,
                data.get("title") or "",
                data.get("message") or "",
                {
                    "notificationId": notification_id,
                    "type": data.get("type") or "info",
                    "link": data.get("link") or "",
                    "userId": user_id,
                    "relatedEntityId": data.get("relatedEntityId") or "",
                    "relatedEntityType": data.get("relatedEntityType") or "",
                },
            )
        except Exception as e:
            # Push is best effort; the record itself already exists.
            log.error(
                "notification_push_failed",
                extra={"extra": {"event": "notification_push_failed", "notification_id": notification_id,
                                 "user_id": user_id, "error_type": type(e).__name__, "message": str(e)}},
                exc_info=True,
            )
            return {"ok": False, "notification_id": notification_id, "reason": "push_failed"}
        return {"ok": True, "notification_id": notification_id, **result}
