import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Sequence

from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, Web3Exception

from .config import LedgerConfig
from .errors import ConfigError, InputError, LedgerUnavailable, SubmissionRejected
from .ledger import TRANSPORT_ERRORS, connect_w3, ledger_errors
from .schemas import ContractInterface, ContractRef, PendingTransaction
from .utils.formatting import to_hex

logger = logging.getLogger(__name__)

# RPC error fragments worth translating into an operator hint
_REJECTION_HINTS = {
    "nonce too low": "nonce too low; another transaction from this account was mined first",
    "replacement transaction underpriced": "a pending transaction with the same nonce has a higher fee",
    "insufficient funds": "the signer cannot pay for gas",
    "intrinsic gas too low": "gas limit below the intrinsic cost",
}


class TransactionSubmitter:
    """Signs and broadcasts exactly one state-changing transaction per call.

    Returns as soon as the node accepts the raw transaction; confirmation is
    the ConfirmationWaiter's job.
    """

    def __init__(self, config: LedgerConfig, w3: Optional[Web3] = None):
        self.config = config
        self.w3 = w3 if w3 is not None else connect_w3(config)
        self.account = Account.from_key(config.private_key.get_secret_value())

    @property
    def signer_address(self) -> str:
        return self.account.address

    def deploy(self, interface: ContractInterface, constructor_args: Sequence[Any]) -> PendingTransaction:
        if not interface.bytecode:
            raise InputError(
                f"{interface.name} has no bytecode; point the command at the compiled artifact to deploy it"
            )
        factory = self.w3.eth.contract(abi=interface.abi, bytecode=interface.bytecode)
        tx = self._build(
            lambda base: factory.constructor(*constructor_args).build_transaction(base),
            f"deploy {interface.name}",
        )
        return self._send(tx, target=None, function="constructor", is_deployment=True)

    def invoke(
        self,
        ref: ContractRef,
        function_name: str,
        args: Sequence[Any] = (),
        value: int = 0,
    ) -> PendingTransaction:
        if not ref.interface.has_function(function_name):
            raise ConfigError(
                f"Function {function_name!r} is not in the {ref.interface.name} ABI "
                f"(called against {ref.address})"
            )
        contract = self.w3.eth.contract(address=ref.address, abi=ref.interface.abi)
        # argument encoding errors surface inside _build as SubmissionRejected
        tx = self._build(
            lambda base: getattr(contract.functions, function_name)(*args).build_transaction(base),
            f"{ref.interface.name}.{function_name} at {ref.address}",
            value=value,
        )
        return self._send(tx, target=ref.address, function=function_name)

    # ------------------------------------------------------------------

    def _base_transaction(self, value: int = 0) -> Dict[str, Any]:
        with ledger_errors("get transaction count"):
            nonce = self.w3.eth.get_transaction_count(self.account.address, "pending")
        tx = {
            "from": self.account.address,
            "nonce": nonce,
            "chainId": self.config.chain_id,
        }
        if value:
            tx["value"] = value
        return tx

    def _build(self, build: Callable[[Dict[str, Any]], Dict[str, Any]], what: str, value: int = 0) -> Dict[str, Any]:
        base = self._base_transaction(value)
        # build_transaction estimates gas and fills EIP-1559 fees; a revert
        # during estimation means the call would fail on-chain.
        try:
            return build(base)
        except ContractLogicError as exc:
            raise SubmissionRejected(f"{what} would revert: {getattr(exc, 'message', None) or exc}") from exc
        except TRANSPORT_ERRORS as exc:
            raise LedgerUnavailable(f"{what}: node unreachable while preparing transaction ({exc})") from exc
        except (Web3Exception, ValueError, TypeError) as exc:
            raise SubmissionRejected(f"{what} could not be prepared: {_describe(exc)}") from exc

    def _send(self, tx: Dict[str, Any], target: Optional[str], function: str, is_deployment: bool = False) -> PendingTransaction:
        try:
            signed = self.account.sign_transaction(tx)
        except (TypeError, ValueError) as exc:
            raise SubmissionRejected(f"could not sign transaction: {exc}") from exc
        raw = signed.raw_transaction

        try:
            tx_hash = to_hex(self.w3.eth.send_raw_transaction(raw))
        except TRANSPORT_ERRORS as exc:
            raise LedgerUnavailable(f"node unreachable while submitting transaction ({exc})") from exc
        except (Web3Exception, ValueError) as exc:
            if "already known" in str(exc):
                # the node already holds this exact transaction in its pool
                tx_hash = to_hex(Web3.keccak(raw))
                logger.warning("transaction already known to node", extra={"tx_hash": tx_hash})
            else:
                raise SubmissionRejected(f"ledger rejected transaction: {_describe(exc)}") from exc

        pending = PendingTransaction(
            tx_hash=tx_hash,
            submitted_at=datetime.now(timezone.utc),
            target=target,
            function=function,
            is_deployment=is_deployment,
            request={
                "from": tx.get("from"),
                "to": tx.get("to"),
                "data": tx.get("data"),
                "value": tx.get("value", 0),
            },
        )
        logger.info(
            "transaction submitted",
            extra={
                "tx_hash": tx_hash,
                "target": target,
                "function": function,
                "nonce": tx.get("nonce"),
                "signer": self.account.address,
            },
        )
        return pending


def _describe(exc: Exception) -> str:
    text = str(exc)
    lowered = text.lower()
    for fragment, hint in _REJECTION_HINTS.items():
        if fragment in lowered:
            return f"{hint} ({text})"
    return text
