from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from google.cloud import firestore

from config.settings import settings
from emails.templates import render
from messaging.email import SmtpEmailClient
from ops.metrics import Timer
from repos.email_queue_repo import EmailQueueRepository
from utils.masking import email_hint

log = logging.getLogger("foodshare.emails.processor")


def process_email_queue(queue: Optional[EmailQueueRepository] = None,
                        client: Optional[SmtpEmailClient] = None) -> Dict[str, Any]:
    t = Timer()
    queue = queue or EmailQueueRepository()
    pending = queue.list_pending(max_retries=settings.EMAIL_MAX_RETRIES, limit=settings.EMAIL_QUEUE_BATCH_SIZE)
    if not pending:
        log.info("email_queue_empty", extra={"extra": {"event": "email_queue_empty"}})
        return {"ok": True, "processed": 0, "sent": 0, "failed": 0}

    client = client or SmtpEmailClient()
    updates: List[Tuple[str, Dict[str, Any]]] = []
    sent = failed = 0

    for email in pending:
        email_id = email["email_id"]
        to = email.get("to") or ""
        try:
            html, text = render(email.get("templateId") or "", email.get("variables") or {})
            client.send(to=to, subject=email.get("subject") or "", html=html, text=text)
            updates.append((email_id, {
                "status": "sent",
                "sentAt": firestore.SERVER_TIMESTAMP,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            }))
            sent += 1
        except Exception as e:
            failed += 1
            retry_count = int(email.get("retryCount") or 0) + 1
            max_retries = int(email.get("maxRetries") or settings.EMAIL_MAX_RETRIES)
            update: Dict[str, Any] = {
                "retryCount": retry_count,
                "updatedAt": firestore.SERVER_TIMESTAMP,
                "lastError": f"{type(e).__name__}: {e}"[:500],
            }
            if retry_count >= max_retries:
                update["status"] = "failed"
                update["failedAt"] = firestore.SERVER_TIMESTAMP
            updates.append((email_id, update))
            log.error(
                "email_send_failed",
                extra={"extra": {"event": "email_send_failed", "email_id": email_id, "dest": email_hint(to),
                                 "retry_count": retry_count, "error_type": type(e).__name__, "message": str(e)}},
            )

    queue.commit_updates(updates)
    log.info(
        "email_queue_run_metrics",
        extra={"extra": {"event": "email_queue_run_metrics", "processed": len(pending), "sent": sent,
                         "failed": failed, "duration_ms": t.ms()}},
    )
    return {"ok": True, "processed": len(pending), "sent": sent, "failed": failed}
