from __future__ import annotations

from typing import Any, Dict, Optional

from google.cloud import firestore
from google.cloud.firestore import Client

from models.schema import COL_NOTIFICATIONS
from storage.firestore_client import get_firestore_client


class NotificationRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def create(self, data: Dict[str, Any]) -> str:
        ref = self.db.collection(COL_NOTIFICATIONS).document()
        ref.set({**data, "read": False, "createdAt": firestore.SERVER_TIMESTAMP}, merge=False)
        return ref.id
