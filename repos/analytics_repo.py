from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

from google.cloud import firestore
from google.cloud.firestore import Client, Transaction

from analytics.aggregates import clamp_deltas, has_decrement, nest
from models.schema import COL_ANALYTICS, COL_PROCESSED_EVENTS, DOC_ANALYTICS_SUMMARY
from storage.firestore_client import get_firestore_client

# Markers only need to outlive the platform's redelivery window; a TTL policy on expireAt reaps them.
MARKER_RETENTION = timedelta(days=7)


def increment_payload(deltas: Mapping[str, float]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {path: firestore.Increment(v) for path, v in deltas.items()}
    payload["updatedAt"] = firestore.SERVER_TIMESTAMP
    return nest(payload)


def marker_payload(handler: str) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {"handler": handler, "processedAt": firestore.SERVER_TIMESTAMP, "expireAt": now + MARKER_RETENTION}


@firestore.transactional
def _apply_in_transaction(transaction: Transaction, summary_ref, marker_ref, deltas: Dict[str, float], handler: str) -> bool:
    # Firestore transactions require every read before the first write.
    if marker_ref is not None:
        if marker_ref.get(transaction=transaction).exists:
            return False
    if has_decrement(deltas):
        snap = summary_ref.get(transaction=transaction)
        deltas = clamp_deltas(snap.to_dict() if snap.exists else {}, deltas)
    if deltas:
        transaction.set(summary_ref, increment_payload(deltas), merge=True)
    if marker_ref is not None:
        transaction.set(marker_ref, marker_payload(handler))
    return True


class AnalyticsRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def summary_ref(self):
        return self.db.collection(COL_ANALYTICS).document(DOC_ANALYTICS_SUMMARY)

    def apply(self, deltas: Mapping[str, float], event_id: Optional[str] = None, handler: str = "") -> bool:
        """
        Apply counter deltas to analytics/summary atomically.

        Returns False when event_id was already processed (nothing written).
        Raises on write failure; the summary is left unchanged.
        """
        deltas = {k: v for k, v in deltas.items() if v}
        if not event_id and not has_decrement(deltas):
            if deltas:
                # Blind server-side increments need no read.
                self.summary_ref().set(increment_payload(deltas), merge=True)
            return True

        marker_ref = self.db.collection(COL_PROCESSED_EVENTS).document(event_id) if event_id else None
        return _apply_in_transaction(self.db.transaction(), self.summary_ref(), marker_ref, deltas, handler)

    def claim_event(self, event_id: str, handler: str = "") -> bool:
        """Record event_id as processed; False if it already was."""
        return self.apply({}, event_id=event_id, handler=handler)
