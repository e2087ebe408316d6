import logging
from contextlib import contextmanager
from typing import Any, Optional, Sequence

import requests
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception

from .config import LedgerConfig
from .errors import ConfigError, LedgerUnavailable, ViewReverted
from .schemas import ContractRef

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (requests.exceptions.RequestException, ConnectionError, TimeoutError)


def connect_w3(config: LedgerConfig) -> Web3:
    """Create a Web3 instance for the configured provider (no network I/O yet)."""
    return Web3(
        Web3.HTTPProvider(
            config.provider_url,
            request_kwargs={"timeout": config.request_timeout},
        )
    )


@contextmanager
def ledger_errors(what: str):
    """Translate web3/transport exceptions raised inside the block into LedgerUnavailable."""
    try:
        yield
    except ContractLogicError as exc:
        raise ViewReverted(f"{what} reverted: {getattr(exc, 'message', None) or exc}") from exc
    except BadFunctionCallOutput as exc:
        raise LedgerUnavailable(f"{what} returned no data; is there a contract at that address? ({exc})") from exc
    except TRANSPORT_ERRORS as exc:
        raise LedgerUnavailable(f"{what} failed: node unreachable ({exc})") from exc
    except (Web3Exception, ValueError) as exc:
        raise LedgerUnavailable(f"{what} failed: {exc}") from exc


class LedgerClient:
    """Read-only access to the ledger and to contract view functions."""

    def __init__(self, config: LedgerConfig, w3: Optional[Web3] = None):
        self.config = config
        self.w3 = w3 if w3 is not None else connect_w3(config)

    def current_height(self) -> int:
        with ledger_errors("get block number"):
            return int(self.w3.eth.block_number)

    def account_balance(self, address: str) -> int:
        with ledger_errors(f"get balance of {address}"):
            return int(self.w3.eth.get_balance(address))

    def chain_id(self) -> int:
        with ledger_errors("get chain id"):
            return int(self.w3.eth.chain_id)

    def contract(self, ref: ContractRef):
        return self.w3.eth.contract(address=ref.address, abi=ref.interface.abi)

    def call_view(self, ref: ContractRef, function_name: str, args: Sequence[Any] = ()) -> Any:
        """Call a non-mutating contract function and return its decoded result."""
        if not ref.interface.has_function(function_name):
            raise ConfigError(
                f"Function {function_name!r} is not in the {ref.interface.name} ABI "
                f"(called against {ref.address})"
            )
        with ledger_errors(f"{ref.interface.name}.{function_name} at {ref.address}"):
            fn = getattr(self.contract(ref).functions, function_name)
            result = fn(*args).call()
        logger.debug(
            "view call",
            extra={"contract": ref.address, "function": function_name, "args": [str(a) for a in args]},
        )
        return result
