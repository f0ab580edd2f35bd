from __future__ import annotations

from typing import Any, Dict, List, Optional

from google.cloud import firestore
from google.cloud.firestore import Client
from google.cloud.firestore_v1.base_query import FieldFilter

from models.schema import COL_FCM_TOKENS
from storage.firestore_client import get_firestore_client


class PushTokenRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def list_active(self, user_id: str) -> List[Dict[str, Any]]:
        q = self.db.collection(COL_FCM_TOKENS).where(filter=FieldFilter("userId", "==", user_id))
        out = []
        for snap in q.stream():
            d = snap.to_dict() or {}
            # Missing flag counts as active; only an explicit false is pruned.
            if d.get("active") is False or not d.get("token"):
                continue
            out.append({"token_id": snap.id, "token": d["token"]})
        return out

    def deactivate(self, token_id: str) -> None:
        # Soft delete: the record is kept for audit, never removed here.
        self.db.collection(COL_FCM_TOKENS).document(token_id).update(
            {"active": False, "invalidatedAt": firestore.SERVER_TIMESTAMP}
        )

    def delete_for_user(self, user_id: str) -> int:
        """Hard delete, used only when the account itself is removed."""
        q = self.db.collection(COL_FCM_TOKENS).where(filter=FieldFilter("userId", "==", user_id))
        refs = [snap.reference for snap in q.stream()]
        # A write batch holds at most 500 operations.
        for i in range(0, len(refs), 500):
            batch = self.db.batch()
            for ref in refs[i:i + 500]:
                batch.delete(ref)
            batch.commit()
        return len(refs)
