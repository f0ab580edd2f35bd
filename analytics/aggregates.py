from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from analytics.impact import ImpactMetrics
from donations.lifecycle import STATE_COUNTERS
from models.donation import Donation, DonationStatus, UserRole

# Dotted field path in analytics/summary -> numeric delta.
Deltas = Dict[str, float]


def trend_key(ts: Optional[datetime] = None) -> str:
    # Matches the client dashboards' bucket labels, e.g. "Oct 2026".
    ts = ts or datetime.now(timezone.utc)
    return ts.strftime("%b %Y")


def created_deltas(donation: Donation, impact: Optional[ImpactMetrics], now: Optional[datetime] = None) -> Deltas:
    deltas: Deltas = {
        "totalDonations": 1,
        "activeDonations": 1,
        f"donationsByCategory.{donation.category_key}": 1,
        f"donationTrend.{trend_key(donation.created_at or now)}": 1,
    }
    if impact is not None:
        deltas["impactMetrics.mealsProvided"] = impact.meals
        deltas["impactMetrics.foodWasteSaved"] = impact.waste_saved_kg
        deltas["impactMetrics.carbonFootprint"] = impact.carbon_saved_kg
    return deltas


def transition_deltas(old: DonationStatus, new: DonationStatus) -> Deltas:
    """Move one donation from the counter of its old state to the counter of its new state."""
    src = STATE_COUNTERS[old]
    dst = STATE_COUNTERS[new]
    if src == dst:
        return {}
    return {src: -1, dst: 1}


def expired_sweep_deltas(n: int) -> Deltas:
    if n <= 0:
        return {}
    return {"activeDonations": -n, "expiredDonations": n}


def user_created_deltas(role: Any) -> Deltas:
    r = str(role or "").strip().lower()
    if r == UserRole.DONOR.value:
        return {"totalDonors": 1}
    if r == UserRole.RECIPIENT.value:
        return {"totalRecipients": 1}
    return {}


def has_decrement(deltas: Mapping[str, float]) -> bool:
    return any(v < 0 for v in deltas.values())


def _get_path(doc: Mapping[str, Any], path: str) -> Any:
    cur: Any = doc
    for part in path.split("."):
        if not isinstance(cur, Mapping):
            return None
        cur = cur.get(part)
    return cur


def clamp_deltas(current: Mapping[str, Any], deltas: Mapping[str, float]) -> Deltas:
    """
    Limit each decrement to the value currently stored so no counter goes below zero.
    Positive deltas pass through untouched. Zero deltas are dropped.
    """
    out: Deltas = {}
    for path, delta in deltas.items():
        if delta < 0:
            stored = _get_path(current, path)
            stored_num = stored if isinstance(stored, (int, float)) and not isinstance(stored, bool) else 0
            delta = -min(-delta, max(stored_num, 0))
        if delta:
            out[path] = delta
    return out


def nest(flat: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Turn dotted paths into nested maps for set(..., merge=True).

    Category names and trend labels become map keys as-is, so a category that
    itself contains a dot is stored one level deeper rather than rejected.
    """
    out: Dict[str, Any] = {}
    for path, value in flat.items():
        parts = path.split(".")
        cur = out
        for part in parts[:-1]:
            cur = cur.setdefault(part, {})
        cur[parts[-1]] = value
    return out
