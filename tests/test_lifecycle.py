import pytest

from donations.lifecycle import TERMINAL_STATES, TRANSITIONS, is_legal_transition, lookup_transition
from models.donation import DonationStatus as S


def test_forward_transitions_are_legal():
    assert is_legal_transition(S.ACTIVE, S.RESERVED)
    assert is_legal_transition(S.PENDING, S.RESERVED)
    assert is_legal_transition(S.RESERVED, S.COMPLETED)
    assert is_legal_transition(S.RESERVED, S.CANCELLED)
    assert is_legal_transition(S.ACTIVE, S.EXPIRED)
    assert is_legal_transition(S.PENDING, S.ACTIVE)


@pytest.mark.parametrize("old", sorted(TERMINAL_STATES))
@pytest.mark.parametrize("new", list(S))
def test_terminal_states_never_reopen(old, new):
    assert not is_legal_transition(old, new)


def test_backward_moves_are_illegal():
    assert not is_legal_transition(S.RESERVED, S.ACTIVE)
    assert not is_legal_transition(S.RESERVED, S.RESERVED)


def test_only_tracked_targets_have_transitions():
    assert set(TRANSITIONS) == {S.RESERVED, S.COMPLETED, S.CANCELLED, S.EXPIRED}
    assert lookup_transition(S.ACTIVE) is None
    assert lookup_transition(None) is None


def test_expired_transition_does_not_notify_recipient():
    assert not TRANSITIONS[S.EXPIRED].notifies_recipient
    assert TRANSITIONS[S.RESERVED].notifies_recipient


def test_status_parse_is_lenient():
    assert S.parse(" Active ") is S.ACTIVE
    assert S.parse("archived") is None
    assert S.parse(None) is None
