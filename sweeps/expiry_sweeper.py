from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from config.settings import settings
from notifications.dispatcher import NotificationDispatcher
from notifications.fanout import fan_out
from ops.metrics import Timer
from repos.donation_repo import DonationRepository

log = logging.getLogger("foodshare.sweeps.expiry")

EXPIRED_TITLE = "Donation Expired"


class ExpirySweeper:
    def __init__(self, donations: Optional[DonationRepository] = None,
                 notifier: Optional[NotificationDispatcher] = None):
        self.donations = donations or DonationRepository()
        self.notifier = notifier or NotificationDispatcher()

    def _notify_donor(self, item: Tuple[str, Dict[str, Any]]) -> None:
        donation_id, data = item
        donor_id = data.get("donorId")
        if not donor_id:
            raise ValueError(f"donation {donation_id} has no donorId")
        self.notifier.notify(
            donor_id,
            EXPIRED_TITLE,
            f'Your donation "{data.get("title") or ""}" has expired.',
            data={"donationId": donation_id},
            notification_type="warning",
            link=f"/donor/donations/{donation_id}",
            related_entity_id=donation_id,
            related_entity_type="donation",
        )

    def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        t = Timer()
        sweep_id = str(uuid.uuid4())
        now = now or datetime.now(timezone.utc)
        cap = settings.MAX_SWEEP_ITEMS

        matched_ids = self.donations.list_expired_active_ids(now, limit=cap)
        if not matched_ids:
            log.info("no_expired_donations", extra={"extra": {"event": "no_expired_donations", "sweep_id": sweep_id}})
            return {"ok": True, "sweep_id": sweep_id, "matched": 0, "expired": 0, "notified": 0, "notify_failed": 0}

        if len(matched_ids) >= cap:
            # Remaining donations are picked up by the next scheduled run.
            log.warning(
                "expiry_sweep_cap_reached",
                extra={"extra": {"event": "expiry_sweep_cap_reached", "sweep_id": sweep_id, "cap": cap}},
            )

        # All transitions and the summary update commit together or not at all.
        expired = self.donations.expire_active(matched_ids, now)

        # Notifications are a separate, non-transactional side effect.
        fanout = fan_out(expired, self._notify_donor, key=lambda item: item[0], label="expiry_sweep")

        result = {
            "ok": True,
            "sweep_id": sweep_id,
            "matched": len(matched_ids),
            "expired": len(expired),
            "notified": fanout.succeeded,
            "notify_failed": len(fanout.failed),
        }
        log.info(
            "expiry_sweep_metrics",
            extra={"extra": {"event": "expiry_sweep_metrics", **result, "duration_ms": t.ms(),
                             "skipped_no_longer_active": len(matched_ids) - len(expired)}},
        )
        return result


def run_expiry_sweep(now: Optional[datetime] = None) -> Dict[str, Any]:
    return ExpirySweeper().run(now=now)
