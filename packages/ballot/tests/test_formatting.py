from hexbytes import HexBytes

from ballot.schemas import Receipt
from ballot.utils.formatting import crop_address, format_ether, to_hex


def test_to_hex():
    assert to_hex(HexBytes("0x" + "ab" * 32)) == "0x" + "ab" * 32
    assert to_hex("ab") == "0xab"
    assert to_hex("0xab") == "0xab"


def test_crop_address():
    assert crop_address("0x5aa7b1c2d3e4f5a6b7c8d9e0f1a2b3c4d5e6d58c") == "0x5aa7...d58c"


def test_format_ether():
    assert format_ether(10 ** 18, "SepoliaETH") == "1 SepoliaETH"
    assert format_ether(15 * 10 ** 17) == "1.5 ETH"
    assert format_ether(0) == "0 ETH"


def test_receipt_from_ledger():
    receipt = Receipt.from_ledger(
        {
            "transactionHash": HexBytes("0x" + "cd" * 32),
            "blockNumber": 7,
            "status": 1,
            "contractAddress": None,
            "gasUsed": 30000,
        }
    )
    assert receipt.tx_hash == "0x" + "cd" * 32
    assert receipt.success
    assert receipt.contract_address is None
