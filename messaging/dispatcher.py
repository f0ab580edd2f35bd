from __future__ import annotations

import logging
import os
import threading
import time
from typing import Any, Dict, Optional

from messaging.fcm import FcmClient
from utils.masking import dest_hint

log = logging.getLogger("foodshare.dispatcher")


class PushDispatcher:
    """Sends one push message; never raises, failures come back as {"ok": False, ...}."""

    def __init__(self, fcm: Optional[FcmClient] = None):
        self.fcm = fcm
        self._lock = threading.Lock()

    def _client(self) -> FcmClient:
        # Fan-out workers share one dispatcher; build the client once.
        with self._lock:
            if self.fcm is None:
                self.fcm = FcmClient()
            return self.fcm

    def send_push(self, token: str, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        rev = os.getenv("K_REVISION") or ""
        t0 = time.time()
        log.info(
            "push_send_attempt",
            extra={"extra": {"event": "push_send_attempt", "channel": "fcm", "dest": dest_hint(token), "revision": rev}},
        )
        try:
            resp = self._client().send(token=token, title=title, body=body, data=data)
            dt_ms = int((time.time() - t0) * 1000)
            log.info(
                "push_send_result",
                extra={
                    "extra": {
                        "event": "push_send_result",
                        "channel": "fcm",
                        "dest": dest_hint(token),
                        "ok": bool(resp.get("ok", False)),
                        "error_code": resp.get("error_code") or "",
                        "latency_ms": dt_ms,
                        "revision": rev,
                    }
                },
            )
            return resp
        except Exception as e:
            dt_ms = int((time.time() - t0) * 1000)
            log.error(
                "push_send_exception",
                extra={
                    "extra": {
                        "event": "push_send_exception",
                        "channel": "fcm",
                        "dest": dest_hint(token),
                        "error_type": type(e).__name__,
                        "message": str(e),
                        "latency_ms": dt_ms,
                        "revision": rev,
                    }
                },
                exc_info=True,
            )
            return {"ok": False, "error_type": type(e).__name__, "message": str(e)}
