from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from google.cloud import firestore
from google.cloud.firestore import Client, Transaction
from google.cloud.firestore_v1.base_query import FieldFilter

from analytics.aggregates import clamp_deltas, expired_sweep_deltas
from models.donation import DonationStatus
from models.schema import COL_ANALYTICS, COL_DONATIONS, DOC_ANALYTICS_SUMMARY, STATUS_CHANGED_BY_SWEEP
from repos.analytics_repo import increment_payload
from storage.firestore_client import get_firestore_client


@firestore.transactional
def _expire_in_transaction(transaction: Transaction, refs: List[Any], summary_ref, now: datetime) -> List[Tuple[str, Dict[str, Any]]]:
    # Re-read inside the transaction: a donation reserved since the query must not be expired.
    still_active: List[Tuple[Any, Dict[str, Any]]] = []
    for ref in refs:
        snap = ref.get(transaction=transaction)
        if not snap.exists:
            continue
        data = snap.to_dict() or {}
        if data.get("status") == DonationStatus.ACTIVE.value:
            still_active.append((ref, data))

    deltas = expired_sweep_deltas(len(still_active))
    if deltas:
        summary = summary_ref.get(transaction=transaction)
        deltas = clamp_deltas(summary.to_dict() if summary.exists else {}, deltas)

    for ref, _ in still_active:
        transaction.update(ref, {
            "status": DonationStatus.EXPIRED.value,
            "updatedAt": now,
            "statusChangedBy": STATUS_CHANGED_BY_SWEEP,
        })
    if deltas:
        transaction.set(summary_ref, increment_payload(deltas), merge=True)
    return [(ref.id, data) for ref, data in still_active]


class DonationRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def _col(self):
        return self.db.collection(COL_DONATIONS)

    def list_expired_active_ids(self, now: datetime, limit: int) -> List[str]:
        q = (
            self._col()
            .where(filter=FieldFilter("status", "==", DonationStatus.ACTIVE.value))
            .where(filter=FieldFilter("expiryDate", "<", now))
            .limit(limit)
        )
        return [snap.id for snap in q.stream()]

    def expire_active(self, donation_ids: Iterable[str], now: datetime) -> List[Tuple[str, Dict[str, Any]]]:
        """
        Transition still-active donations to expired and move the summary
        counters, all in one transaction. Returns (donation_id, data) of the
        donations actually expired.
        """
        refs = [self._col().document(d) for d in donation_ids]
        if not refs:
            return []
        summary_ref = self.db.collection(COL_ANALYTICS).document(DOC_ANALYTICS_SUMMARY)
        return _expire_in_transaction(self.db.transaction(), refs, summary_ref, now)
