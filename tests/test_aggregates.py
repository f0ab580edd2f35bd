from datetime import datetime, timezone

from analytics.aggregates import (
    clamp_deltas,
    created_deltas,
    expired_sweep_deltas,
    nest,
    transition_deltas,
    trend_key,
    user_created_deltas,
)
from analytics.impact import compute_impact
from models.donation import Donation, DonationStatus as S


def test_created_deltas_for_produce_donation():
    d = Donation.from_doc("d1", {"category": "Produce", "quantity": 10,
                                 "createdAt": datetime(2026, 10, 3, tzinfo=timezone.utc)})
    deltas = created_deltas(d, compute_impact(10, "Produce"))
    assert deltas == {
        "totalDonations": 1,
        "activeDonations": 1,
        "donationsByCategory.Produce": 1,
        "donationTrend.Oct 2026": 1,
        "impactMetrics.mealsProvided": 20,
        "impactMetrics.foodWasteSaved": 10,
        "impactMetrics.carbonFootprint": 25,
    }


def test_created_deltas_default_category_and_no_impact():
    d = Donation.from_doc("d1", {"category": None})
    deltas = created_deltas(d, None, now=datetime(2026, 1, 15, tzinfo=timezone.utc))
    assert deltas["donationsByCategory.Food"] == 1
    assert deltas["donationTrend.Jan 2026"] == 1
    assert not any(k.startswith("impactMetrics") for k in deltas)


def test_trend_key_format():
    assert trend_key(datetime(2025, 12, 31, tzinfo=timezone.utc)) == "Dec 2025"


def test_transition_deltas_move_between_counters():
    assert transition_deltas(S.ACTIVE, S.RESERVED) == {"activeDonations": -1, "reservedDonations": 1}
    assert transition_deltas(S.RESERVED, S.COMPLETED) == {"reservedDonations": -1, "completedDonations": 1}
    assert transition_deltas(S.PENDING, S.CANCELLED) == {"activeDonations": -1, "cancelledDonations": 1}
    assert transition_deltas(S.PENDING, S.ACTIVE) == {}


def test_expired_sweep_deltas():
    assert expired_sweep_deltas(3) == {"activeDonations": -3, "expiredDonations": 3}
    assert expired_sweep_deltas(0) == {}


def test_user_created_deltas():
    assert user_created_deltas("donor") == {"totalDonors": 1}
    assert user_created_deltas("Recipient") == {"totalRecipients": 1}
    assert user_created_deltas("admin") == {}
    assert user_created_deltas(None) == {}


def test_clamp_never_goes_below_zero():
    current = {"activeDonations": 1, "impactMetrics": {"mealsProvided": 4}}
    out = clamp_deltas(current, {"activeDonations": -3, "expiredDonations": 3, "reservedDonations": -1})
    assert out == {"activeDonations": -1, "expiredDonations": 3}


def test_clamp_reads_nested_paths():
    current = {"donationsByCategory": {"Produce": 2}}
    assert clamp_deltas(current, {"donationsByCategory.Produce": -5}) == {"donationsByCategory.Produce": -2}


def test_nest_builds_merge_maps():
    assert nest({"totalDonations": 1, "donationsByCategory.Produce": 1, "donationsByCategory.Dairy": 2}) == {
        "totalDonations": 1,
        "donationsByCategory": {"Produce": 1, "Dairy": 2},
    }
