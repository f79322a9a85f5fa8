import pytest

from mealmatch.errors import InvalidState
from mealmatch.services.state_machine import ProposalAction, ProposalStatus, transition_status

ACCEPT = ProposalAction.ACCEPT
DECLINE = ProposalAction.DECLINE


def test_accept_moves_pending_to_accepted_then_matched():
    assert transition_status(ProposalStatus.PENDING, ACCEPT) is ProposalStatus.ACCEPTED
    assert transition_status(ProposalStatus.ACCEPTED, ACCEPT) is ProposalStatus.MATCHED


def test_decline_from_open_states_and_idempotent_repeat():
    assert transition_status(ProposalStatus.PENDING, DECLINE) is ProposalStatus.DECLINED
    assert transition_status(ProposalStatus.ACCEPTED, DECLINE) is ProposalStatus.DECLINED
    assert transition_status(ProposalStatus.DECLINED, DECLINE) is ProposalStatus.DECLINED


def test_declined_cannot_be_accepted():
    with pytest.raises(InvalidState) as exc:
        transition_status(ProposalStatus.DECLINED, ACCEPT)
    assert exc.value.detail == "This proposal was declined and cannot be accepted"


@pytest.mark.parametrize("action", [ACCEPT, DECLINE])
def test_matched_is_terminal(action):
    with pytest.raises(InvalidState):
        transition_status(ProposalStatus.MATCHED, action)


def test_no_transition_leaves_a_terminal_state():
    for current in ProposalStatus:
        for action in ProposalAction:
            try:
                nxt = transition_status(current, action)
            except InvalidState:
                continue
            if current.is_terminal:
                assert nxt is current
            assert nxt is not ProposalStatus.PENDING


def test_is_terminal_flags():
    assert ProposalStatus.MATCHED.is_terminal
    assert ProposalStatus.DECLINED.is_terminal
    assert not ProposalStatus.PENDING.is_terminal
    assert not ProposalStatus.ACCEPTED.is_terminal
