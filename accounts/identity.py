from __future__ import annotations

import logging
import time
from typing import Optional

import google.auth
import httpx
from google.auth.transport.requests import Request as GoogleAuthRequest

from config.settings import settings

log = logging.getLogger("foodshare.identity")

IDENTITY_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
USER_NOT_FOUND = "USER_NOT_FOUND"


class IdentityAdminError(RuntimeError):
    pass


class IdentityAdminClient:
    """Admin calls against the Identity Toolkit REST API behind Firebase Auth."""

    def __init__(self, project_id: Optional[str] = None, credentials=None, http: Optional[httpx.Client] = None):
        if credentials is None:
            credentials, adc_project = google.auth.default(scopes=[IDENTITY_SCOPE])
        else:
            adc_project = None
        self.credentials = credentials
        self.project_id = project_id or settings.FIRESTORE_PROJECT_ID or adc_project
        if not self.project_id:
            raise RuntimeError("identity project id not configured")
        self.http = http or httpx.Client(timeout=settings.IDENTITY_TIMEOUT_SECONDS)

    def _access_token(self) -> str:
        if not self.credentials.valid:
            self.credentials.refresh(GoogleAuthRequest())
        return self.credentials.token

    def delete_user(self, uid: str) -> bool:
        """
        Delete the auth account. Returns False when the account does not
        exist; any other failure raises IdentityAdminError.
        """
        url = f"https://identitytoolkit.googleapis.com/v1/projects/{self.project_id}/accounts:delete"
        t0 = time.time()
        r = self.http.post(url, json={"localId": uid}, headers={"Authorization": f"Bearer {self._access_token()}"})
        dt_ms = int((time.time() - t0) * 1000)
        if 200 <= r.status_code < 300:
            log.info("auth_user_deleted", extra={"extra": {"event": "auth_user_deleted", "user_id": uid, "latency_ms": dt_ms}})
            return True

        try:
            err = (r.json() or {}).get("error") or {}
        except ValueError:
            err = {}
        message = str(err.get("message") or r.text or "")[:500] if isinstance(err, dict) else ""
        if message.startswith(USER_NOT_FOUND):
            log.warning("auth_user_not_found", extra={"extra": {"event": "auth_user_not_found", "user_id": uid}})
            return False
        log.error(
            "auth_user_delete_failed",
            extra={"extra": {"event": "auth_user_delete_failed", "user_id": uid, "status_code": r.status_code,
                             "message": message, "latency_ms": dt_ms}},
        )
        raise IdentityAdminError(f"auth delete failed ({r.status_code}): {message}")
