from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from google.cloud import firestore
from google.cloud.firestore import Client
from google.cloud.firestore_v1.base_query import FieldFilter

from models.schema import COL_EMAIL_QUEUE
from storage.firestore_client import get_firestore_client


class EmailQueueRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def add(self, data: Dict[str, Any]) -> str:
        ref = self.db.collection(COL_EMAIL_QUEUE).document()
        ref.set({**data, "createdAt": firestore.SERVER_TIMESTAMP}, merge=False)
        return ref.id

    def list_pending(self, max_retries: int, limit: int) -> List[Dict[str, Any]]:
        q = (
            self.db.collection(COL_EMAIL_QUEUE)
            .where(filter=FieldFilter("status", "==", "pending"))
            .where(filter=FieldFilter("retryCount", "<", max_retries))
            .limit(limit)
        )
        out = []
        for snap in q.stream():
            d = snap.to_dict() or {}
            d["email_id"] = snap.id
            out.append(d)
        return out

    def commit_updates(self, updates: Iterable[Tuple[str, Dict[str, Any]]]) -> int:
        batch = self.db.batch()
        n = 0
        for email_id, data in updates:
            batch.update(self.db.collection(COL_EMAIL_QUEUE).document(email_id), data)
            n += 1
        if n:
            batch.commit()
        return n
