from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config.settings import settings
from models.donation import Donation, DonationStatus
from repos.email_queue_repo import EmailQueueRepository
from repos.user_repo import UserRepository

log = logging.getLogger("foodshare.emails.queue")


def _fmt_date(v: Any) -> str:
    if isinstance(v, datetime):
        return v.strftime("%Y-%m-%d")
    return ""


class StatusEmailQueue:
    def __init__(self, queue: Optional[EmailQueueRepository] = None, users: Optional[UserRepository] = None):
        self.queue = queue or EmailQueueRepository()
        self.users = users or UserRepository()

    def _enqueue(self, to: str, subject: str, template_id: str, variables: Dict[str, Any]) -> str:
        return self.queue.add({
            "to": to,
            "subject": subject,
            "templateId": template_id,
            "variables": variables,
            "status": "pending",
            "retryCount": 0,
            "maxRetries": settings.EMAIL_MAX_RETRIES,
        })

    def queue_status_emails(self, donation: Donation, after: Dict[str, Any]) -> List[str]:
        status = donation.status_enum
        if status not in (DonationStatus.RESERVED, DonationStatus.COMPLETED):
            return []

        donor = self.users.get(donation.donor_id) or {}
        recipient = self.users.get(donation.reserved_by or "") or {}
        base = settings.APP_BASE_URL.rstrip("/")
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        common = {
            "donationTitle": donation.title,
            "quantity": "" if donation.quantity is None else f"{donation.quantity:g}",
            "quantityUnit": donation.quantity_unit,
            "category": donation.category_key,
        }
        donor_name = donor.get("displayName") or "Donor"
        recipient_name = recipient.get("displayName") or "Recipient"
        queued: List[str] = []

        if status == DonationStatus.RESERVED:
            if donor.get("email"):
                queued.append(self._enqueue(
                    donor["email"], f'Your donation "{donation.title}" has been reserved', "DONATION_RESERVED",
                    {**common, "donorName": donor_name, "recipientName": recipient_name, "reservedDate": today,
                     "donationUrl": f"{base}/donor/donations/{donation.donation_id}"},
                ))
            if recipient.get("email"):
                address = after.get("pickupAddress") or {}
                queued.append(self._enqueue(
                    recipient["email"], f'Reservation confirmed for "{donation.title}"', "RESERVATION_CONFIRMATION",
                    {**common, "recipientName": recipient_name, "donorName": donor_name,
                     "pickupAddress": (address.get("street") if isinstance(address, dict) else "") or "Address not provided",
                     "pickupInstructions": after.get("pickupInstructions") or "No special instructions",
                     "expiryDate": _fmt_date(donation.expiry_date),
                     "donationUrl": f"{base}/recipient/donations/{donation.donation_id}"},
                ))
        elif donor.get("email"):
            queued.append(self._enqueue(
                donor["email"], f'Your donation "{donation.title}" has been completed', "DONATION_COMPLETED",
                {**common, "donorName": donor_name, "recipientName": recipient_name, "completedDate": today,
                 "dashboardUrl": f"{base}/donor/dashboard"},
            ))

        log.info(
            "status_emails_queued",
            extra={"extra": {"event": "status_emails_queued", "donation_id": donation.donation_id,
                             "status": status.value, "queued": len(queued)}},
        )
        return queued
