from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, List, Optional

import google.auth
import httpx
from google.auth.transport.requests import Request as GoogleAuthRequest

from config.settings import settings
from utils.masking import dest_hint

log = logging.getLogger("foodshare.fcm")

FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"
FCM_ERROR_TYPE = "type.googleapis.com/google.firebase.fcm.v1.FcmError"

# Codes meaning the token itself is dead. INVALID_ARGUMENT is left out: FCM also
# returns it for a bad message (oversized payload), which says nothing about the token.
INVALID_TOKEN_CODES = frozenset({
    "UNREGISTERED",
    "messaging/invalid-registration-token",
    "messaging/registration-token-not-registered",
})


def is_invalid_token_response(resp: Dict[str, Any]) -> bool:
    return (resp.get("error_code") or "") in INVALID_TOKEN_CODES


def _error_code(data: Dict[str, Any]) -> str:
    err = data.get("error") or {}
    if not isinstance(err, dict):
        return ""
    details: List[Dict[str, Any]] = err.get("details") or []
    for d in details:
        if isinstance(d, dict) and d.get("@type") == FCM_ERROR_TYPE and d.get("errorCode"):
            return str(d["errorCode"])
    return str(err.get("status") or "")


def _stringify_data(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    # FCM data payload values must be strings.
    return {str(k): "" if v is None else str(v) for k, v in (data or {}).items()}


class FcmClient:
    def __init__(self, project_id: Optional[str] = None, credentials=None, http: Optional[httpx.Client] = None):
        if credentials is None:
            credentials, adc_project = google.auth.default(scopes=[FCM_SCOPE])
        else:
            adc_project = None
        self.credentials = credentials
        self.project_id = project_id or settings.FCM_PROJECT_ID or settings.FIRESTORE_PROJECT_ID or adc_project
        if not self.project_id:
            raise RuntimeError("FCM project id not configured")
        self.http = http or httpx.Client(timeout=settings.FCM_TIMEOUT_SECONDS)

    def _access_token(self) -> str:
        if not self.credentials.valid:
            self.credentials.refresh(GoogleAuthRequest())
        return self.credentials.token

    def send(self, token: str, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        rev = os.getenv("K_REVISION") or ""
        url = f"https://fcm.googleapis.com/v1/projects/{self.project_id}/messages:send"
        payload = {
            "message": {
                "token": token,
                "notification": {"title": title, "body": body},
                "data": _stringify_data(data),
            }
        }

        t0 = time.time()
        r = self.http.post(url, json=payload, headers={"Authorization": f"Bearer {self._access_token()}"})
        try:
            data_out = r.json()
        except ValueError:
            data_out = {"text": (r.text or "")[:500]}

        dt_ms = int((time.time() - t0) * 1000)
        ok = 200 <= r.status_code < 300
        resp: Dict[str, Any] = {"ok": ok, "status_code": r.status_code, "latency_ms": dt_ms}
        if ok:
            resp["name"] = data_out.get("name", "")
        else:
            resp["error_code"] = _error_code(data_out)
            err = data_out.get("error") if isinstance(data_out.get("error"), dict) else {}
            resp["message"] = str(err.get("message") or data_out.get("text") or "")[:500]
            log.warning(
                "fcm_send_failed",
                extra={
                    "extra": {
                        "event": "fcm_send_failed",
                        "dest": dest_hint(token),
                        "status_code": r.status_code,
                        "error_code": resp["error_code"],
                        "revision": rev,
                    }
                },
            )
        return resp
