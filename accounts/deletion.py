from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from accounts.identity import IdentityAdminClient
from ops.metrics import Timer
from repos.push_token_repo import PushTokenRepository
from repos.user_repo import UserRepository

log = logging.getLogger("foodshare.accounts.deletion")


class AccountDeleter:
    def __init__(self, identity: Optional[IdentityAdminClient] = None,
                 users: Optional[UserRepository] = None,
                 tokens: Optional[PushTokenRepository] = None):
        self._identity = identity
        self.users = users or UserRepository()
        self.tokens = tokens or PushTokenRepository()

    @property
    def identity(self) -> IdentityAdminClient:
        if self._identity is None:
            self._identity = IdentityAdminClient()
        return self._identity

    def delete(self, user_id: str) -> Dict[str, Any]:
        """
        Remove the auth account, the users/{id} profile and every push token
        bound to the user. An account already gone from auth still has its
        Firestore records cleaned up.
        """
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValueError("user_id must be a non-empty string")
        user_id = user_id.strip()
        t = Timer()

        auth_deleted = self.identity.delete_user(user_id)
        profile_deleted = self.users.delete(user_id)
        tokens_deleted = self.tokens.delete_for_user(user_id)

        result = {
            "ok": True,
            "user_id": user_id,
            "auth_deleted": auth_deleted,
            "profile_deleted": profile_deleted,
            "tokens_deleted": tokens_deleted,
        }
        log.info("user_account_deleted", extra={"extra": {"event": "user_account_deleted", **result, "duration_ms": t.ms()}})
        return result


def delete_user_account(user_id: str) -> Dict[str, Any]:
    return AccountDeleter().delete(user_id)
