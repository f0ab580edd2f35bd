from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from models.donation import DonationStatus

S = DonationStatus

# States counted in analytics/summary.activeDonations (every created donation starts here).
ACTIVE_STATES: FrozenSet[DonationStatus] = frozenset({S.PENDING, S.ACTIVE})
TERMINAL_STATES: FrozenSet[DonationStatus] = frozenset({S.COMPLETED, S.EXPIRED, S.CANCELLED})
NON_TERMINAL_STATES: FrozenSet[DonationStatus] = frozenset(set(S) - TERMINAL_STATES)

# Summary counter holding donations currently in a given state.
STATE_COUNTERS: Dict[DonationStatus, str] = {
    S.PENDING: "activeDonations",
    S.ACTIVE: "activeDonations",
    S.RESERVED: "reservedDonations",
    S.COMPLETED: "completedDonations",
    S.EXPIRED: "expiredDonations",
    S.CANCELLED: "cancelledDonations",
}


@dataclass(frozen=True)
class Transition:
    to: DonationStatus
    legal_from: FrozenSet[DonationStatus]
    notification_type: str
    donor_title: str
    donor_body: str
    recipient_title: Optional[str] = None
    recipient_body: Optional[str] = None
    recipient_link: str = "/recipient/donations/{donation_id}"
    donor_link: str = "/donor/donations/{donation_id}"

    @property
    def notifies_recipient(self) -> bool:
        return bool(self.recipient_title)


TRANSITIONS: Dict[DonationStatus, Transition] = {
    S.RESERVED: Transition(
        to=S.RESERVED,
        legal_from=ACTIVE_STATES,
        notification_type="success",
        donor_title="Donation Reserved!",
        donor_body='Your donation "{title}" has been reserved by a recipient.',
        recipient_title="Reservation Confirmed!",
        recipient_body='You have successfully reserved "{title}". Please arrange pickup soon.',
    ),
    S.COMPLETED: Transition(
        to=S.COMPLETED,
        legal_from=NON_TERMINAL_STATES,
        notification_type="success",
        donor_title="Donation Picked Up!",
        donor_body='Your donation "{title}" has been successfully picked up.',
        recipient_title="Pickup Completed!",
        recipient_body='You have successfully picked up "{title}". Thank you!',
        recipient_link="/recipient/donations/history",
    ),
    S.CANCELLED: Transition(
        to=S.CANCELLED,
        legal_from=NON_TERMINAL_STATES,
        notification_type="warning",
        donor_title="Donation Cancelled!",
        donor_body='The reservation for "{title}" has been cancelled.',
        recipient_title="Reservation Cancelled!",
        recipient_body='The reservation for "{title}" has been cancelled.',
        recipient_link="/recipient/donations/available",
    ),
    S.EXPIRED: Transition(
        to=S.EXPIRED,
        legal_from=NON_TERMINAL_STATES,
        notification_type="warning",
        donor_title="Donation Expired!",
        donor_body='Your donation "{title}" has expired.',
    ),
}


def is_legal_transition(old: DonationStatus, new: DonationStatus) -> bool:
    t = TRANSITIONS.get(new)
    if t is not None:
        return old in t.legal_from
    # pending -> active is the only forward move that is not a tracked transition.
    return old == S.PENDING and new == S.ACTIVE


def lookup_transition(new: Optional[DonationStatus]) -> Optional[Transition]:
    if new is None:
        return None
    return TRANSITIONS.get(new)
