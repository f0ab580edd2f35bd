from __future__ import annotations

import logging
from dataclasses import asdict
from itertools import islice
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from analytics.aggregates import created_deltas, transition_deltas
from analytics.impact import compute_impact
from config.settings import settings
from donations.lifecycle import is_legal_transition, lookup_transition
from emails.queue import StatusEmailQueue
from models.donation import Donation, DonationStatus, UserRole
from models.schema import STATUS_CHANGED_BY_SWEEP
from notifications.dispatcher import NotificationDispatcher
from notifications.fanout import fan_out
from ops.metrics import Timer
from repos.analytics_repo import AnalyticsRepository
from repos.user_repo import UserRepository

log = logging.getLogger("foodshare.triggers.donations")

NEW_DONATION_TITLE = "New Donation Available!"


def _skip(reason: str, ok: bool = True, **kw: Any) -> Dict[str, Any]:
    return {"ok": ok, "skipped": True, "reason": reason, **kw}


class DonationTriggers:
    def __init__(self, analytics: Optional[AnalyticsRepository] = None,
                 users: Optional[UserRepository] = None,
                 notifier: Optional[NotificationDispatcher] = None,
                 emails: Optional[StatusEmailQueue] = None):
        self.analytics = analytics or AnalyticsRepository()
        self.users = users or UserRepository()
        self.notifier = notifier or NotificationDispatcher()
        self.emails = emails or StatusEmailQueue(users=self.users)

    @staticmethod
    def _dedup_id(event_id: str) -> Optional[str]:
        return event_id if settings.EVENT_DEDUP_ENABLED and event_id else None

    def on_created(self, event_id: str, donation_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        t = Timer()
        try:
            donation = Donation.from_doc(donation_id, data)
        except ValidationError as e:
            # Every created donation is counted; an unreadable one just gets the default category and no impact.
            log.error(
                "donation_invalid",
                extra={"extra": {"event": "donation_invalid", "donation_id": donation_id, "errors": e.errors(include_url=False)}},
            )
            donation = Donation(donation_id=donation_id)

        impact = None
        if donation.quantity is not None and donation.quantity > 0:
            impact = compute_impact(donation.quantity, donation.category_key)
        else:
            log.warning(
                "donation_invalid_quantity",
                extra={"extra": {"event": "donation_invalid_quantity", "donation_id": donation_id, "quantity": data.get("quantity")}},
            )

        applied = self.analytics.apply(
            created_deltas(donation, impact), event_id=self._dedup_id(event_id), handler="donation_created"
        )
        if not applied:
            log.info("duplicate_event_skipped", extra={"extra": {"event": "duplicate_event_skipped",
                                                                 "handler": "donation_created", "donation_id": donation_id}})
            return _skip("duplicate_event")

        fanout = self._notify_recipients(donation)
        log.info(
            "donation_created_processed",
            extra={
                "extra": {
                    "event": "donation_created_processed",
                    "donation_id": donation_id,
                    "category": donation.category_key,
                    "meals": impact.meals if impact else 0,
                    "duration_ms": t.ms(),
                    **{f"fanout_{k}": v for k, v in fanout.items()},
                }
            },
        )
        return {"ok": True, "donation_id": donation_id, "impact": asdict(impact) if impact else None, "fanout": fanout}

    def _notify_recipients(self, donation: Donation) -> Dict[str, Any]:
        try:
            recipient_ids: List[str] = list(islice(
                self.users.iter_ids_by_role(UserRole.RECIPIENT.value, limit=settings.MAX_FANOUT_RECIPIENTS),
                settings.MAX_FANOUT_RECIPIENTS,
            ))
        except Exception as e:
            # Counters are already committed; a retry would be dropped as a duplicate anyway.
            log.error(
                "recipient_lookup_failed",
                extra={"extra": {"event": "recipient_lookup_failed", "donation_id": donation.donation_id,
                                 "error_type": type(e).__name__, "message": str(e)}},
                exc_info=True,
            )
            return {"attempted": 0, "succeeded": 0, "failed": 0, "error": type(e).__name__}

        if not recipient_ids:
            log.info("no_recipients_to_notify", extra={"extra": {"event": "no_recipients_to_notify",
                                                                 "donation_id": donation.donation_id}})
            return {"attempted": 0, "succeeded": 0, "failed": 0}

        donation_id = donation.donation_id
        body = f'A new donation "{donation.title}" has been listed. Check it out!'

        def _one(recipient_id: str) -> None:
            self.notifier.notify(
                recipient_id,
                NEW_DONATION_TITLE,
                body,
                data={"donationId": donation_id},
                notification_type="new_donation",
                link=f"/recipient/donations/{donation_id}",
                related_entity_id=donation_id,
                related_entity_type="donation",
            )

        return fan_out(recipient_ids, _one, label="new_donation").as_dict()

    def on_updated(self, event_id: str, donation_id: str,
                   before: Dict[str, Any], after: Dict[str, Any]) -> Dict[str, Any]:
        if not before or not after:
            log.error("donation_update_missing_snapshot",
                      extra={"extra": {"event": "donation_update_missing_snapshot", "donation_id": donation_id}})
            return _skip("missing_snapshot", ok=False)

        old = DonationStatus.parse(before.get("status"))
        new = DonationStatus.parse(after.get("status"))
        # "Expired" -> "expired" is an edit, not a transition.
        if before.get("status") == after.get("status") or (old is not None and old == new):
            return _skip("status_unchanged")

        if old is None or new is None:
            log.warning(
                "unknown_donation_status",
                extra={"extra": {"event": "unknown_donation_status", "donation_id": donation_id,
                                 "old_status": before.get("status"), "new_status": after.get("status")}},
            )
            return _skip("unknown_status")

        try:
            donation = Donation.from_doc(donation_id, after)
        except ValidationError as e:
            log.error(
                "donation_invalid",
                extra={"extra": {"event": "donation_invalid", "donation_id": donation_id, "errors": e.errors(include_url=False)}},
            )
            return _skip("invalid_donation", ok=False)

        if new == DonationStatus.EXPIRED and donation.status_changed_by == STATUS_CHANGED_BY_SWEEP:
            # The sweep already moved the counters and told the donor.
            return _skip("expired_by_sweep")

        transition = lookup_transition(new)
        if transition is None:
            log.info(
                "unrecognized_status_transition",
                extra={"extra": {"event": "unrecognized_status_transition", "donation_id": donation_id,
                                 "old_status": old.value, "new_status": new.value}},
            )
            return _skip("unrecognized_transition")

        legal = is_legal_transition(old, new)
        if not legal:
            log.warning(
                "illegal_status_transition",
                extra={"extra": {"event": "illegal_status_transition", "donation_id": donation_id,
                                 "old_status": old.value, "new_status": new.value}},
            )

        applied = self.analytics.apply(
            transition_deltas(old, new), event_id=self._dedup_id(event_id), handler="donation_updated"
        )
        if not applied:
            log.info("duplicate_event_skipped", extra={"extra": {"event": "duplicate_event_skipped",
                                                                 "handler": "donation_updated", "donation_id": donation_id}})
            return _skip("duplicate_event")

        log.info(
            "donation_status_changed",
            extra={"extra": {"event": "donation_status_changed", "donation_id": donation_id,
                             "old_status": old.value, "new_status": new.value, "legal": legal}},
        )

        if not donation.donor_id:
            log.error("donation_missing_donor", extra={"extra": {"event": "donation_missing_donor", "donation_id": donation_id}})
            return {"ok": False, "donation_id": donation_id, "transition": f"{old.value}->{new.value}",
                    "reason": "missing_donor", "notified": []}

        fmt = {"title": donation.title, "donation_id": donation_id}
        targets = [(donation.donor_id, transition.donor_title, transition.donor_body, transition.donor_link)]
        if transition.notifies_recipient and donation.reserved_by:
            targets.append((donation.reserved_by, transition.recipient_title, transition.recipient_body,
                            transition.recipient_link))

        notified: List[str] = []
        for user_id, title, body, link in targets:
            try:
                self.notifier.notify(
                    user_id,
                    title,
                    body.format(**fmt),
                    data={"donationId": donation_id},
                    notification_type=transition.notification_type,
                    link=link.format(**fmt),
                    related_entity_id=donation_id,
                    related_entity_type="donation",
                )
                notified.append(user_id)
            except Exception as e:
                log.error(
                    "status_notification_failed",
                    extra={"extra": {"event": "status_notification_failed", "donation_id": donation_id,
                                     "user_id": user_id, "error_type": type(e).__name__, "message": str(e)}},
                    exc_info=True,
                )

        try:
            self.emails.queue_status_emails(donation, after)
        except Exception as e:
            log.error(
                "status_email_queue_failed",
                extra={"extra": {"event": "status_email_queue_failed", "donation_id": donation_id,
                                 "error_type": type(e).__name__, "message": str(e)}},
                exc_info=True,
            )

        return {"ok": True, "donation_id": donation_id, "transition": f"{old.value}->{new.value}",
                "legal": legal, "notified": notified}
