"""Turn raw positional CLI arguments into typed, checked parameter bundles.

Everything here is pure: no network, no environment. Argument counts are
checked before any individual field so that a wrong invocation is reported
as such rather than as a confusing field error.
"""

import re
from typing import Optional, Sequence, Tuple, Union

from web3 import Web3

from .errors import (
    InvalidAddress,
    InvalidArgumentCount,
    InvalidNumber,
    InvalidProposalName,
    MissingProposals,
)
from .schemas import DelegateParams, DeployParams, TokenAmountParams, VoteParams

ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")
DIGITS_RE = re.compile(r"[0-9]+")
PROPOSAL_NAME_BYTES = 32
UINT256_MAX = 2 ** 256 - 1
UINT256_DIGITS = len(str(UINT256_MAX))

# action -> (min args, max args, usage)
ACTION_SHAPES = {
    "deploy": (2, None, "PROPOSAL... TOKEN_ADDRESS BLOCK_DURATION"),
    "vote": (3, 3, "BALLOT_ADDRESS PROPOSAL_INDEX AMOUNT"),
    "mint": (3, 3, "TOKEN_ADDRESS TO_ADDRESS AMOUNT"),
    "transfer": (3, 3, "TOKEN_ADDRESS TO_ADDRESS AMOUNT"),
    "delegate": (1, 2, "TOKEN_ADDRESS [DELEGATEE_ADDRESS]"),
}

Params = Union[DeployParams, VoteParams, TokenAmountParams, DelegateParams]


def parse_address(text: str, field: str = "address") -> str:
    """Validate a 0x-prefixed 40 hex digit address and return its checksum form."""
    if not isinstance(text, str) or not ADDRESS_RE.fullmatch(text):
        raise InvalidAddress(f"Invalid {field}: {text!r} is not a 0x-prefixed 40 hex digit address")
    return Web3.to_checksum_address(text.lower())


def parse_amount(text: str, field: str = "amount") -> int:
    """Parse a non-negative decimal integer that fits in a uint256."""
    if not isinstance(text, str) or not DIGITS_RE.fullmatch(text):
        raise InvalidNumber(f"Invalid {field}: {text!r} is not a non-negative integer")
    # length is checked before int() so huge inputs never reach the conversion
    digits = text.lstrip("0") or "0"
    if len(digits) > UINT256_DIGITS or int(digits) > UINT256_MAX:
        raise InvalidNumber(f"Invalid {field}: exceeds the uint256 maximum")
    return int(digits)


def parse_duration(text: str, field: str = "block duration") -> int:
    value = parse_amount(text, field)
    if value < 1:
        raise InvalidNumber(f"Invalid {field}: must be at least 1, got {value}")
    return value


def encode_proposal_name(name: str) -> bytes:
    """Encode a proposal name as the 32-byte right-padded value the ballot stores."""
    raw = name.encode("utf-8")
    if not raw:
        raise InvalidProposalName("Proposal names must not be empty")
    if len(raw) > PROPOSAL_NAME_BYTES:
        raise InvalidProposalName(
            f"Proposal name {name!r} is {len(raw)} bytes; the limit is {PROPOSAL_NAME_BYTES}"
        )
    return raw.ljust(PROPOSAL_NAME_BYTES, b"\x00")


def decode_proposal_name(raw: Union[bytes, str]) -> str:
    if isinstance(raw, str):
        raw = bytes.fromhex(raw[2:] if raw.startswith("0x") else raw)
    return bytes(raw).rstrip(b"\x00").decode("utf-8", errors="replace")


def parse_proposals(names: Sequence[str]) -> Tuple[str, ...]:
    if len(names) < 1:
        raise MissingProposals("At least one proposal name is required")
    for name in names:
        encode_proposal_name(name)
    return tuple(names)


def check_arity(action: str, args: Sequence[str]) -> None:
    try:
        minimum, maximum, usage = ACTION_SHAPES[action]
    except KeyError:
        raise ValueError(f"Unknown action {action!r}") from None
    count = len(args)
    if count < minimum or (maximum is not None and count > maximum):
        if maximum is None:
            expected = f"at least {minimum}"
        elif minimum == maximum:
            expected = str(minimum)
        else:
            expected = f"{minimum} to {maximum}"
        raise InvalidArgumentCount(
            f"Invalid number of parameters for {action}: expected {expected} ({usage}), got {count}"
        )


def validate_params(action: str, args: Sequence[str]) -> Params:
    """Validate ``args`` for ``action`` and return the typed parameter bundle."""
    args = list(args or [])
    check_arity(action, args)

    if action == "deploy":
        *names, token, duration = args
        proposals = parse_proposals(names)
        return DeployParams(
            proposals=proposals,
            token_address=parse_address(token, "token contract address"),
            duration=parse_duration(duration),
        )

    if action == "vote":
        ballot, index, amount = args
        return VoteParams(
            ballot_address=parse_address(ballot, "ballot contract address"),
            proposal_index=parse_amount(index, "proposal index"),
            amount=parse_amount(amount, "number of votes"),
        )

    if action in ("mint", "transfer"):
        token, to, amount = args
        return TokenAmountParams(
            token_address=parse_address(token, "token contract address"),
            to_address=parse_address(to, "receiver address"),
            amount=parse_amount(amount, f"amount to {action}"),
        )

    token = args[0]
    delegatee: Optional[str] = None
    if len(args) == 2:
        delegatee = parse_address(args[1], "delegatee address")
    return DelegateParams(
        token_address=parse_address(token, "token contract address"),
        delegatee=delegatee,
    )
