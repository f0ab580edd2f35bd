from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from google.cloud.firestore import Client
from google.cloud.firestore_v1.base_query import FieldFilter

from models.schema import COL_USERS
from storage.firestore_client import get_firestore_client


class UserRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        if not user_id:
            return None
        snap = self.db.collection(COL_USERS).document(user_id).get()
        if not snap.exists:
            return None
        d = snap.to_dict() or {}
        d["user_id"] = user_id
        return d

    def iter_ids_by_role(self, role: str, limit: int = 5000) -> Iterable[str]:
        q = self.db.collection(COL_USERS).where(filter=FieldFilter("role", "==", role)).limit(limit)
        for snap in q.stream():
            yield snap.id

    def delete(self, user_id: str) -> bool:
        ref = self.db.collection(COL_USERS).document(user_id)
        if not ref.get().exists:
            return False
        ref.delete()
        return True
