"""Read back contract state after a confirmed write.

Failures here are recorded on the report and logged; they never change the
outcome of the write that was already confirmed.
"""

import logging
from typing import Callable, Iterable, List, Optional

from .errors import BallotError, ViewReverted
from .ledger import LedgerClient
from .schemas import (
    ContractRef,
    ContractView,
    ProposalView,
    TokenBalanceView,
    VerificationReport,
    VotingPowerView,
)
from .validation import decode_proposal_name

logger = logging.getLogger(__name__)

# Upper bound when enumerating proposals of a ballot whose size is unknown
MAX_PROPOSALS = 256

ZERO_ADDRESS = "0x" + "0" * 40


def read_proposal(ledger: LedgerClient, ballot: ContractRef, index: int) -> ProposalView:
    name, vote_count = ledger.call_view(ballot, "proposals", [index])
    return ProposalView(index=index, name=decode_proposal_name(name), vote_count=int(vote_count))


def read_proposals(ledger: LedgerClient, ballot: ContractRef, count: Optional[int] = None) -> List[ProposalView]:
    """Read ``count`` proposals, or every proposal when ``count`` is None.

    The ballot exposes no length, so without a count proposals are read until
    the array index reverts.
    """
    if count is not None:
        return [read_proposal(ledger, ballot, i) for i in range(count)]
    views = []
    for index in range(MAX_PROPOSALS):
        try:
            views.append(read_proposal(ledger, ballot, index))
        except ViewReverted:
            break
    return views


def read_voting_power(ledger: LedgerClient, token: ContractRef, account: str) -> VotingPowerView:
    votes = ledger.call_view(token, "getVotes", [account])
    delegate = ledger.call_view(token, "delegates", [account])
    if delegate == ZERO_ADDRESS:
        delegate = None
    return VotingPowerView(account=account, votes=int(votes), delegate=delegate)


def read_ballot_vote_power(ledger: LedgerClient, ballot: ContractRef, account: str) -> VotingPowerView:
    votes = ledger.call_view(ballot, "getVotePower", [account])
    return VotingPowerView(account=account, votes=int(votes))


def read_balance(ledger: LedgerClient, token: ContractRef, account: str) -> TokenBalanceView:
    balance = ledger.call_view(token, "balanceOf", [account])
    return TokenBalanceView(account=account, balance=int(balance))


class PostActionVerifier:
    """Runs a set of reads and collects whatever succeeds into a report."""

    def __init__(self, ledger: LedgerClient):
        self.ledger = ledger

    def verify(self, reads: Iterable[Callable[[], object]]) -> VerificationReport:
        report = VerificationReport()
        for read in reads:
            try:
                result = read()
            except BallotError as exc:
                logger.warning("post-action read failed", extra={"error": str(exc)})
                report.errors.append(str(exc))
                continue
            if isinstance(result, list):
                report.views.extend(result)
            else:
                report.views.append(result)
        return report


def describe_view(view: ContractView) -> str:
    if isinstance(view, ProposalView):
        return f"#{view.index} {view.name}: {view.vote_count} votes"
    if isinstance(view, TokenBalanceView):
        return f"{view.account} balance: {view.balance}"
    text = f"{view.account} voting power: {view.votes}"
    if view.delegate:
        text += f" (delegated to {view.delegate})"
    return text
