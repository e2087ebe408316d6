from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from .errors import ConfirmationTimedOut, TransactionReverted
from .utils.formatting import to_hex

# --- Contract interfaces ---

class ContractInterface(BaseModel):
    name: str = Field(..., description="Contract name, e.g. TokenizedBallot")
    abi: List[dict]
    bytecode: Optional[str] = None

    class Config:
        frozen = True

    def has_function(self, function_name: str) -> bool:
        return any(
            entry.get("type") == "function" and entry.get("name") == function_name
            for entry in self.abi
        )


class ContractRef(BaseModel):
    """A deployed contract: where it lives and how to talk to it."""

    address: str
    interface: ContractInterface

    class Config:
        frozen = True


# --- Validated command parameters ---

class DeployParams(BaseModel):
    proposals: Tuple[str, ...]
    token_address: str
    duration: int = Field(..., ge=1)

    class Config:
        frozen = True


class VoteParams(BaseModel):
    ballot_address: str
    proposal_index: int = Field(..., ge=0)
    amount: int = Field(..., ge=0)

    class Config:
        frozen = True


class TokenAmountParams(BaseModel):
    token_address: str
    to_address: str
    amount: int = Field(..., ge=0)

    class Config:
        frozen = True


class DelegateParams(BaseModel):
    token_address: str
    # None means "delegate to the signer"
    delegatee: Optional[str] = None

    class Config:
        frozen = True


# --- Transaction lifecycle ---

class PendingTransaction(BaseModel):
    tx_hash: str
    submitted_at: datetime
    target: Optional[str] = None
    function: str
    is_deployment: bool = False
    request: dict = Field(default_factory=dict)

    class Config:
        frozen = True


class Receipt(BaseModel):
    tx_hash: str
    block_number: int
    contract_address: Optional[str] = None
    success: bool
    gas_used: Optional[int] = None

    class Config:
        frozen = True

    @classmethod
    def from_ledger(cls, raw: Any) -> "Receipt":
        """Build a receipt from the mapping web3 returns for eth_getTransactionReceipt."""
        tx_hash = raw.get("transactionHash")
        return cls(
            tx_hash=to_hex(tx_hash) if tx_hash is not None else "",
            block_number=int(raw.get("blockNumber") or 0),
            contract_address=raw.get("contractAddress") or None,
            success=raw.get("status") in (1, True),
            gas_used=raw.get("gasUsed"),
        )


class OutcomeKind(str, Enum):
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    TIMED_OUT = "timed_out"


class TransactionOutcome(BaseModel):
    kind: OutcomeKind
    pending: PendingTransaction
    receipt: Optional[Receipt] = None
    reason: Optional[str] = None

    class Config:
        frozen = True

    @classmethod
    def confirmed(cls, pending: PendingTransaction, receipt: Receipt) -> "TransactionOutcome":
        return cls(kind=OutcomeKind.CONFIRMED, pending=pending, receipt=receipt)

    @classmethod
    def reverted(cls, pending: PendingTransaction, receipt: Receipt, reason: Optional[str] = None) -> "TransactionOutcome":
        return cls(kind=OutcomeKind.REVERTED, pending=pending, receipt=receipt, reason=reason)

    @classmethod
    def timed_out(cls, pending: PendingTransaction) -> "TransactionOutcome":
        return cls(kind=OutcomeKind.TIMED_OUT, pending=pending)

    @property
    def is_confirmed(self) -> bool:
        return self.kind == OutcomeKind.CONFIRMED

    def raise_for_status(self) -> "TransactionOutcome":
        """Return self when confirmed, otherwise raise the matching error."""
        tx_hash = self.pending.tx_hash
        if self.kind == OutcomeKind.REVERTED:
            detail = f": {self.reason}" if self.reason else ""
            block = self.receipt.block_number if self.receipt else "?"
            raise TransactionReverted(
                f"Transaction {tx_hash} reverted in block {block}{detail}",
                tx_hash=tx_hash,
                receipt=self.receipt,
                reason=self.reason,
            )
        if self.kind == OutcomeKind.TIMED_OUT:
            raise ConfirmationTimedOut(
                f"Gave up waiting for {tx_hash}; it may still be mined later",
                tx_hash=tx_hash,
            )
        return self


# --- Read-only contract views ---

class ProposalView(BaseModel):
    index: int
    name: str
    vote_count: int

    class Config:
        frozen = True


class VotingPowerView(BaseModel):
    account: str
    votes: int
    delegate: Optional[str] = None

    class Config:
        frozen = True


class TokenBalanceView(BaseModel):
    account: str
    balance: int

    class Config:
        frozen = True


ContractView = Union[ProposalView, VotingPowerView, TokenBalanceView]


class VerificationReport(BaseModel):
    views: List[ContractView] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def proposals(self) -> List[ProposalView]:
        return [v for v in self.views if isinstance(v, ProposalView)]


# --- Orchestrator runs ---

class Stage(str, Enum):
    VALIDATING = "validating"
    READING_CONTEXT = "reading_context"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    SUBMITTING = "submitting"
    AWAITING_LEDGER_CONFIRMATION = "awaiting_ledger_confirmation"
    VERIFYING = "verifying"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


class RunResult(BaseModel):
    action: str
    stage: Stage
    summary: str
    pending: Optional[PendingTransaction] = None
    outcome: Optional[TransactionOutcome] = None
    verification: Optional[VerificationReport] = None
    contract_address: Optional[str] = None
