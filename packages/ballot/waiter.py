import logging
import time
from typing import Any, Callable, Optional

from web3 import Web3
from web3.exceptions import ContractLogicError, TransactionNotFound, Web3Exception

from .config import LedgerConfig
from .errors import DeploymentAddressMissing
from .ledger import TRANSPORT_ERRORS, connect_w3
from .schemas import PendingTransaction, Receipt, TransactionOutcome
from .utils.polling import poll_until

logger = logging.getLogger(__name__)


class ConfirmationWaiter:
    """Polls for a transaction receipt until it is terminal or the wait budget runs out.

    A receipt with failure status is always reported as reverted. Timing out
    only stops observing; the transaction itself may still be mined.
    """

    def __init__(
        self,
        config: LedgerConfig,
        w3: Optional[Web3] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.w3 = w3 if w3 is not None else connect_w3(config)
        self._sleep = sleep
        self._clock = clock

    def wait(self, pending: PendingTransaction, timeout: Optional[float] = None) -> TransactionOutcome:
        if timeout is None:
            timeout = self.config.confirmation_timeout
        logger.info("waiting for confirmation", extra={"tx_hash": pending.tx_hash, "timeout": timeout})

        raw = poll_until(
            lambda: self._fetch_receipt(pending),
            timeout=timeout,
            interval=self.config.poll_interval,
            backoff=self.config.poll_backoff,
            max_interval=self.config.max_poll_interval,
            sleep=self._sleep,
            clock=self._clock,
        )
        if raw is None:
            logger.warning("confirmation wait timed out", extra={"tx_hash": pending.tx_hash, "timeout": timeout})
            return TransactionOutcome.timed_out(pending)

        receipt = Receipt.from_ledger(raw)
        if not receipt.tx_hash:
            receipt = receipt.model_copy(update={"tx_hash": pending.tx_hash})

        if not receipt.success:
            reason = self.revert_reason(pending, receipt)
            logger.error(
                "transaction reverted",
                extra={"tx_hash": pending.tx_hash, "block": receipt.block_number, "reason": reason},
            )
            return TransactionOutcome.reverted(pending, receipt, reason)

        if pending.is_deployment and not receipt.contract_address:
            raise DeploymentAddressMissing(
                f"Deployment {pending.tx_hash} confirmed in block {receipt.block_number} "
                "but the receipt has no contract address",
                tx_hash=pending.tx_hash,
            )

        logger.info(
            "transaction confirmed",
            extra={
                "tx_hash": pending.tx_hash,
                "block": receipt.block_number,
                "contract_address": receipt.contract_address,
                "gas_used": receipt.gas_used,
            },
        )
        return TransactionOutcome.confirmed(pending, receipt)

    def _fetch_receipt(self, pending: PendingTransaction) -> Optional[Any]:
        try:
            return self.w3.eth.get_transaction_receipt(pending.tx_hash)
        except TransactionNotFound:
            return None
        except TRANSPORT_ERRORS + (Web3Exception, ValueError) as exc:
            logger.warning("receipt poll failed; will retry", extra={"tx_hash": pending.tx_hash, "error": str(exc)})
            return None

    def revert_reason(self, pending: PendingTransaction, receipt: Receipt) -> Optional[str]:
        """Replay the call at the receipt's block to recover the revert message."""
        request = {k: v for k, v in pending.request.items() if v not in (None, 0, "")}
        if not request.get("data") and not request.get("to"):
            return None
        try:
            self.w3.eth.call(request, block_identifier=receipt.block_number)
        except ContractLogicError as exc:
            return _clean_reason(getattr(exc, "message", None) or str(exc))
        except TRANSPORT_ERRORS + (Web3Exception, ValueError) as exc:
            logger.debug("could not replay reverted call", extra={"tx_hash": pending.tx_hash, "error": str(exc)})
        return None


def _clean_reason(message: str) -> Optional[str]:
    for marker in ("execution reverted:", "revert reason:"):
        if marker in message:
            return message.split(marker, 1)[1].strip() or None
    if message.strip() in ("", "execution reverted", "('execution reverted', 'no data')"):
        return None
    return message.strip()
