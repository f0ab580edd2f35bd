from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from messaging.dispatcher import PushDispatcher
from messaging.fcm import is_invalid_token_response
from ops.metrics import Timer
from repos.notification_repo import NotificationRepository
from repos.push_token_repo import PushTokenRepository
from utils.masking import dest_hint

log = logging.getLogger("foodshare.notifications")


class NotificationDispatcher:
    """
    Persisted in-app notification plus best-effort push to every active device.

    The notifications document is the record of whether a user was notified;
    push delivery may fail entirely without affecting it.
    """

    def __init__(self, notifications: Optional[NotificationRepository] = None,
                 tokens: Optional[PushTokenRepository] = None,
                 push: Optional[PushDispatcher] = None):
        self.notifications = notifications or NotificationRepository()
        self.tokens = tokens or PushTokenRepository()
        self.push_dispatcher = push or PushDispatcher()

    def _record(self, user_id: str, title: str, body: str, notification_type: str, link: str,
                related_entity_id: str, related_entity_type: str, system_generated: bool) -> str:
        data: Dict[str, Any] = {
            "userId": user_id,
            "title": title,
            "message": body,
            "type": notification_type,
            "systemGenerated": system_generated,
        }
        if link:
            data["link"] = link
        if related_entity_id:
            data["relatedEntityId"] = related_entity_id
            data["relatedEntityType"] = related_entity_type
        return self.notifications.create(data)

    def notify(self, user_id: str, title: str, body: str, data: Optional[Dict[str, Any]] = None,
               notification_type: str = "info", link: str = "",
               related_entity_id: str = "", related_entity_type: str = "") -> Dict[str, Any]:
        # systemGenerated keeps the notification-created trigger from pushing a second time.
        notification_id = self._record(user_id, title, body, notification_type, link,
                                       related_entity_id, related_entity_type, system_generated=True)
        payload = {
            "notificationId": notification_id,
            "type": notification_type,
            "link": link,
            "userId": user_id,
            "relatedEntityId": related_entity_id,
            "relatedEntityType": related_entity_type,
            **(data or {}),
        }
        out = self.push(user_id, title, body, payload)
        out["notification_id"] = notification_id
        return out

    def enqueue(self, user_id: str, title: str, body: str, notification_type: str = "info", link: str = "",
                related_entity_id: str = "", related_entity_type: str = "") -> str:
        """Persist only; the notification-created trigger delivers the push."""
        return self._record(user_id, title, body, notification_type, link,
                            related_entity_id, related_entity_type, system_generated=False)

    def push(self, user_id: str, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        t = Timer()
        tokens = self.tokens.list_active(user_id)
        sent = failed = pruned = 0

        for tok in tokens:
            resp = self.push_dispatcher.send_push(tok["token"], title, body, data)
            if resp.get("ok"):
                sent += 1
                continue
            failed += 1
            if not is_invalid_token_response(resp):
                continue
            try:
                self.tokens.deactivate(tok["token_id"])
                pruned += 1
                log.info(
                    "push_token_pruned",
                    extra={"extra": {"event": "push_token_pruned", "user_id": user_id,
                                     "dest": dest_hint(tok["token"]), "error_code": resp.get("error_code")}},
                )
            except Exception as e:
                log.error(
                    "push_token_prune_failed",
                    extra={"extra": {"event": "push_token_prune_failed", "user_id": user_id,
                                     "error_type": type(e).__name__, "message": str(e)}},
                    exc_info=True,
                )

        if not tokens:
            log.info("push_no_active_tokens", extra={"extra": {"event": "push_no_active_tokens", "user_id": user_id}})
        else:
            log.info(
                "push_user_result",
                extra={"extra": {"event": "push_user_result", "user_id": user_id, "tokens": len(tokens),
                                 "sent": sent, "failed": failed, "pruned": pruned, "duration_ms": t.ms()}},
            )
        return {"tokens": len(tokens), "sent": sent, "failed": failed, "pruned": pruned}
