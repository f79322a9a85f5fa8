from enum import Enum

from ..errors import InvalidState


class ProposalStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    MATCHED = "matched"
    DECLINED = "declined"

    @property
    def is_terminal(self) -> bool:
        return self in (ProposalStatus.MATCHED, ProposalStatus.DECLINED)


class ProposalAction(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"


def transition_status(current: ProposalStatus, action: ProposalAction) -> ProposalStatus:
    """Next status for ``action`` applied to ``current``.

    Idempotent repeats (decline of a declined proposal) return ``current``.
    Anything that would leave a terminal status raises InvalidState.
    """
    if current is ProposalStatus.MATCHED:
        raise InvalidState(f"Cannot {action.value} a matched proposal")

    if current is ProposalStatus.DECLINED:
        if action is ProposalAction.DECLINE:
            return ProposalStatus.DECLINED
        raise InvalidState("This proposal was declined and cannot be accepted")

    if action is ProposalAction.ACCEPT:
        if current is ProposalStatus.PENDING:
            return ProposalStatus.ACCEPTED
        if current is ProposalStatus.ACCEPTED:
            return ProposalStatus.MATCHED

    if action is ProposalAction.DECLINE:
        if current in (ProposalStatus.PENDING, ProposalStatus.ACCEPTED):
            return ProposalStatus.DECLINED

    raise InvalidState(f"Unhandled transition {current.value} -> {action.value}")
