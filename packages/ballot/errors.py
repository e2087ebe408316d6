"""Error taxonomy shared by every ballot command.

Each error carries the CLI exit code it maps to. Orchestrators record the
stage a run failed in on ``stage`` before re-raising.
"""

from typing import Optional

EXIT_ERROR = 1
EXIT_INPUT = 2
EXIT_CANCELLED = 3
EXIT_TIMED_OUT = 4


class BallotError(Exception):
    """Base class for all ballot command failures."""

    exit_code = EXIT_ERROR

    def __init__(self, message: str, *, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.stage = None


# --- Input ------------------------------------------------------------------

class InputError(BallotError):
    """Bad shape, arity or type of a user-supplied parameter."""

    exit_code = EXIT_INPUT


class InvalidArgumentCount(InputError):
    pass


class InvalidAddress(InputError):
    pass


class InvalidNumber(InputError):
    pass


class MissingProposals(InputError):
    pass


class InvalidProposalName(InputError):
    pass


class ConfigError(BallotError):
    """Missing or malformed ledger configuration."""

    exit_code = EXIT_INPUT


# --- Ledger -----------------------------------------------------------------

class LedgerUnavailable(BallotError):
    """A read against the ledger failed (unreachable node, bad response)."""


class ViewReverted(LedgerUnavailable):
    """The contract itself reverted a read-only call."""


class SubmissionRejected(BallotError):
    """The ledger refused a transaction before it entered the pending pool."""


class TransactionReverted(BallotError):
    """The transaction was included but executed with failure status."""

    def __init__(self, message: str, *, tx_hash: Optional[str] = None, receipt=None, reason: Optional[str] = None):
        super().__init__(message, tx_hash=tx_hash)
        self.receipt = receipt
        self.reason = reason


class ConfirmationTimedOut(BallotError):
    """Waiting for a receipt gave up; the transaction may still land."""

    exit_code = EXIT_TIMED_OUT


class DeploymentAddressMissing(BallotError):
    """A confirmed deployment receipt did not report a contract address."""


class OperatorCancelled(BallotError):
    """The operator answered "n" at the confirmation prompt."""

    exit_code = EXIT_CANCELLED
