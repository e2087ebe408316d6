from decimal import Decimal
from typing import Any

from web3 import Web3


def to_hex(value: Any) -> str:
    """Render a hash/bytes value as a 0x-prefixed hex string."""
    if isinstance(value, str):
        return value if value.startswith("0x") else "0x" + value
    return Web3.to_hex(value)


def crop_address(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"


def format_ether(wei: int, symbol: str = "ETH") -> str:
    amount = Web3.from_wei(wei, "ether")
    # from_wei returns a Decimal; drop trailing zeros but keep at least "0"
    text = format(Decimal(amount).normalize(), "f") if amount else "0"
    return f"{text} {symbol}"
