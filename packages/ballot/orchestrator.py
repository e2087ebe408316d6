"""End-to-end flows: validate, read context, confirm, submit, wait, verify.

Every flow walks the same stages (see ``Stage``). A run either reaches
``DONE`` and returns a ``RunResult``, or stops in ``CANCELLED`` /
``FAILED`` by raising a ``BallotError`` whose ``stage`` names where it
stopped. Nothing is retried automatically.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence, Type

from .config import LedgerConfig
from .contracts import BALLOT_INTERFACE, TOKEN_INTERFACE
from .errors import BallotError, InputError, InvalidNumber, OperatorCancelled, ViewReverted
from .ledger import LedgerClient, connect_w3
from .prompt import OperatorPrompt
from .schemas import (
    ContractInterface,
    ContractRef,
    DelegateParams,
    DeployParams,
    PendingTransaction,
    RunResult,
    Stage,
    TokenAmountParams,
    TransactionOutcome,
    VoteParams,
)
from .submitter import TransactionSubmitter
from .utils.formatting import crop_address, format_ether
from .validation import encode_proposal_name, validate_params
from .verifier import (
    PostActionVerifier,
    read_balance,
    read_ballot_vote_power,
    read_proposal,
    read_proposals,
    read_voting_power,
)
from .waiter import ConfirmationWaiter

logger = logging.getLogger(__name__)


class LedgerSession:
    """The collaborators of a single run, bound to one config and one network."""

    def __init__(
        self,
        config: LedgerConfig,
        ledger: LedgerClient,
        submitter: TransactionSubmitter,
        waiter: ConfirmationWaiter,
        prompt: OperatorPrompt,
        ballot_interface: ContractInterface = BALLOT_INTERFACE,
        token_interface: ContractInterface = TOKEN_INTERFACE,
    ):
        self.config = config
        self.ledger = ledger
        self.submitter = submitter
        self.waiter = waiter
        self.prompt = prompt
        self.ballot_interface = ballot_interface
        self.token_interface = token_interface

    @classmethod
    def connect(cls, config: LedgerConfig, prompt: OperatorPrompt, **interfaces) -> "LedgerSession":
        w3 = connect_w3(config)
        return cls(
            config,
            LedgerClient(config, w3),
            TransactionSubmitter(config, w3),
            ConfirmationWaiter(config, w3),
            prompt,
            **interfaces,
        )

    def ballot(self, address: str) -> ContractRef:
        return ContractRef(address=address, interface=self.ballot_interface)

    def token(self, address: str) -> ContractRef:
        return ContractRef(address=address, interface=self.token_interface)


class Orchestrator(ABC):
    action: str = ""

    def __init__(self, session: LedgerSession, timeout: Optional[float] = None):
        self.session = session
        self.ledger = session.ledger
        self.submitter = session.submitter
        self.prompt = session.prompt
        self.verifier = PostActionVerifier(session.ledger)
        self.timeout = timeout
        self.stage = Stage.VALIDATING
        self.pending: Optional[PendingTransaction] = None
        self.outcome: Optional[TransactionOutcome] = None

    # --- hooks for each action ---

    def preflight(self, params) -> None:
        """Checks that need no ledger access; run before any read or prompt."""
        if self.timeout is not None and self.timeout < 0:
            raise InvalidNumber(f"Invalid confirmation timeout: must be non-negative, got {self.timeout}")

    def read_context(self, params) -> None:
        pass

    @abstractmethod
    def summary(self, params) -> str:
        ...

    @abstractmethod
    def submit(self, params) -> PendingTransaction:
        ...

    def verification_reads(self, params, outcome: TransactionOutcome) -> List[Callable[[], Any]]:
        return []

    def contract_address(self, outcome: TransactionOutcome) -> Optional[str]:
        return None

    # --- shared flow ---

    def run(self, args: Sequence[str]) -> RunResult:
        try:
            with self.prompt:
                return self._run(args)
        except BallotError as exc:
            if self.stage != Stage.CANCELLED:
                exc.stage = self.stage
                if exc.tx_hash is None and self.pending is not None:
                    exc.tx_hash = self.pending.tx_hash
                logger.error(
                    "run failed",
                    extra={
                        "action": self.action,
                        "stage": self.stage.value,
                        "error": type(exc).__name__,
                        "tx_hash": exc.tx_hash,
                    },
                )
                self._enter(Stage.FAILED)
            raise

    def _run(self, args: Sequence[str]) -> RunResult:
        self._enter(Stage.VALIDATING)
        params = validate_params(self.action, args)
        self.preflight(params)

        self._enter(Stage.READING_CONTEXT)
        self.read_context(params)
        summary = self.summary(params)

        self._enter(Stage.AWAITING_CONFIRMATION)
        if not self.prompt.confirm(summary):
            self._enter(Stage.CANCELLED)
            self.prompt.say("Operation cancelled")
            raise OperatorCancelled(f"Operation cancelled by operator: {summary}")

        self._enter(Stage.SUBMITTING)
        self.pending = self.submit(params)
        self.prompt.say(f"Transaction hash: {self.pending.tx_hash}")
        self.prompt.say("Waiting for confirmations...")

        self._enter(Stage.AWAITING_LEDGER_CONFIRMATION)
        self.outcome = self.session.waiter.wait(self.pending, self.timeout)
        self.outcome.raise_for_status()

        self._enter(Stage.VERIFYING)
        report = self.verifier.verify(self.verification_reads(params, self.outcome))

        self._enter(Stage.DONE)
        return RunResult(
            action=self.action,
            stage=self.stage,
            summary=summary,
            pending=self.pending,
            outcome=self.outcome,
            verification=report,
            contract_address=self.contract_address(self.outcome),
        )

    def _enter(self, stage: Stage) -> None:
        if stage != self.stage:
            logger.info(
                "stage transition",
                extra={"action": self.action, "from_stage": self.stage.value, "to_stage": stage.value},
            )
        self.stage = stage

    def _signer_context(self) -> int:
        """Block height, signer address and native balance, for the operator's eyes only."""
        height = self.ledger.current_height()
        signer = self.submitter.signer_address
        balance = self.ledger.account_balance(signer)
        currency = self.session.config.network.currency
        self.prompt.say(f"Last block number: {height}")
        self.prompt.say(f"Signer address: {signer}")
        self.prompt.say(f"Signer balance: {format_ether(balance, currency)}")
        return height

    def _diagnostic(self, read: Callable[[], Any], label: str) -> Optional[Any]:
        # reads that legitimately revert (e.g. a snapshot block still in the future)
        try:
            return read()
        except ViewReverted as exc:
            logger.warning("diagnostic read reverted", extra={"read": label, "error": str(exc)})
            self.prompt.say(f"{label}: unavailable ({exc})")
            return None


class DeployOrchestrator(Orchestrator):
    action = "deploy"

    def preflight(self, params: DeployParams) -> None:
        super().preflight(params)
        interface = self.session.ballot_interface
        if not interface.bytecode:
            raise InputError(
                f"{interface.name} has no bytecode; pass --ballot-artifact with the compiled artifact to deploy it"
            )

    def read_context(self, params: DeployParams) -> None:
        self.prompt.say("Proposals:")
        for number, name in enumerate(params.proposals, start=1):
            self.prompt.say(f"  Proposal #{number}: {name}")
        self.prompt.say(f"ERC20 token contract address: {params.token_address}")
        height = self._signer_context()
        self.target_block = height + params.duration

    def summary(self, params: DeployParams) -> str:
        names = ", ".join(params.proposals)
        return (
            f"Deploy {self.session.ballot_interface.name} with {len(params.proposals)} proposals "
            f"({names}) for token {crop_address(params.token_address)}, snapshot block {self.target_block}"
        )

    def submit(self, params: DeployParams) -> PendingTransaction:
        return self.submitter.deploy(
            self.session.ballot_interface,
            [
                [encode_proposal_name(name) for name in params.proposals],
                params.token_address,
                self.target_block,
            ],
        )

    def contract_address(self, outcome: TransactionOutcome) -> Optional[str]:
        return outcome.receipt.contract_address

    def verification_reads(self, params: DeployParams, outcome: TransactionOutcome):
        ballot = self.session.ballot(outcome.receipt.contract_address)
        token = self.session.token(params.token_address)
        signer = self.submitter.signer_address
        return [
            lambda: read_proposals(self.ledger, ballot, len(params.proposals)),
            lambda: read_voting_power(self.ledger, token, signer),
        ]


class VoteOrchestrator(Orchestrator):
    action = "vote"

    def read_context(self, params: VoteParams) -> None:
        ballot = self.session.ballot(params.ballot_address)
        try:
            self.proposal = read_proposal(self.ledger, ballot, params.proposal_index)
        except ViewReverted as exc:
            raise ViewReverted(
                f"Ballot {params.ballot_address} has no proposal #{params.proposal_index} ({exc})"
            ) from exc
        self._signer_context()
        signer = self.submitter.signer_address
        power = self._diagnostic(
            lambda: read_ballot_vote_power(self.ledger, ballot, signer), "Voting power"
        )
        if power is not None:
            self.prompt.say(f"Voting power of {signer}: {power.votes}")

    def summary(self, params: VoteParams) -> str:
        return f"Confirm cast {params.amount} to {self.proposal.name}"

    def submit(self, params: VoteParams) -> PendingTransaction:
        ballot = self.session.ballot(params.ballot_address)
        return self.submitter.invoke(ballot, "vote", [params.proposal_index, params.amount])

    def verification_reads(self, params: VoteParams, outcome: TransactionOutcome):
        ballot = self.session.ballot(params.ballot_address)
        signer = self.submitter.signer_address
        return [
            lambda: read_proposals(self.ledger, ballot),
            lambda: read_ballot_vote_power(self.ledger, ballot, signer),
        ]


class MintOrchestrator(Orchestrator):
    action = "mint"
    verb = "minting"
    function = "mint"

    def read_context(self, params: TokenAmountParams) -> None:
        self._signer_context()

    def summary(self, params: TokenAmountParams) -> str:
        return f"Confirm {self.verb} {params.amount} to {params.to_address}"

    def submit(self, params: TokenAmountParams) -> PendingTransaction:
        token = self.session.token(params.token_address)
        return self.submitter.invoke(token, self.function, [params.to_address, params.amount])

    def accounts_to_verify(self, params: TokenAmountParams) -> List[str]:
        return [params.to_address]

    def verification_reads(self, params: TokenAmountParams, outcome: TransactionOutcome):
        token = self.session.token(params.token_address)
        reads = []
        for account in self.accounts_to_verify(params):
            reads.append(lambda a=account: read_balance(self.ledger, token, a))
        reads.append(lambda: read_voting_power(self.ledger, token, params.to_address))
        return reads


class TransferOrchestrator(MintOrchestrator):
    action = "transfer"
    verb = "transferring"
    function = "transfer"

    def accounts_to_verify(self, params: TokenAmountParams) -> List[str]:
        return [params.to_address, self.submitter.signer_address]


class DelegateOrchestrator(Orchestrator):
    action = "delegate"

    def _delegatee(self, params: DelegateParams) -> str:
        return params.delegatee or self.submitter.signer_address

    def read_context(self, params: DelegateParams) -> None:
        token = self.session.token(params.token_address)
        delegatee = self._delegatee(params)
        current = read_voting_power(self.ledger, token, delegatee)
        self.prompt.say(f"Current voting power of {delegatee}: {current.votes}")

    def summary(self, params: DelegateParams) -> str:
        return (
            f"Confirm delegating voting power of {self.submitter.signer_address} "
            f"to {self._delegatee(params)}"
        )

    def submit(self, params: DelegateParams) -> PendingTransaction:
        token = self.session.token(params.token_address)
        return self.submitter.invoke(token, "delegate", [self._delegatee(params)])

    def verification_reads(self, params: DelegateParams, outcome: TransactionOutcome):
        token = self.session.token(params.token_address)
        signer = self.submitter.signer_address
        delegatee = self._delegatee(params)
        reads = [lambda: read_voting_power(self.ledger, token, delegatee)]
        if delegatee != signer:
            reads.append(lambda: read_voting_power(self.ledger, token, signer))
        return reads


ORCHESTRATORS: Dict[str, Type[Orchestrator]] = {
    cls.action: cls
    for cls in (
        DeployOrchestrator,
        VoteOrchestrator,
        MintOrchestrator,
        TransferOrchestrator,
        DelegateOrchestrator,
    )
}


def run_action(action: str, args: Sequence[str], session: LedgerSession, timeout: Optional[float] = None) -> RunResult:
    return ORCHESTRATORS[action](session, timeout=timeout).run(args)
