from unittest.mock import MagicMock

import pytest
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import ContractLogicError

from ballot.contracts import TOKEN_ABI, TOKEN_INTERFACE
from ballot.errors import ConfigError, InputError, LedgerUnavailable, SubmissionRejected
from ballot.schemas import ContractInterface, ContractRef
from ballot.submitter import TransactionSubmitter

TOKEN = ContractRef(address=Web3.to_checksum_address("0x" + "ab" * 20), interface=TOKEN_INTERFACE)
RECEIVER = Web3.to_checksum_address("0x" + "cd" * 20)
SENT_HASH = HexBytes("0x" + "12" * 32)


@pytest.fixture
def submitter(config, mock_w3):
    submitter = TransactionSubmitter(config, mock_w3)
    signer = submitter.signer_address
    submitter.account = MagicMock(address=signer)
    submitter.account.sign_transaction.return_value.raw_transaction = b"\x02signed"
    mock_w3.eth.get_transaction_count.return_value = 7
    mock_w3.eth.send_raw_transaction.return_value = SENT_HASH
    return submitter


def _mint_call(mock_w3):
    return mock_w3.eth.contract.return_value.functions.mint


def test_signer_address_from_private_key(config, mock_w3):
    submitter = TransactionSubmitter(config, mock_w3)
    assert Web3.is_checksum_address(submitter.signer_address)


def test_invoke_builds_signs_and_sends(submitter, mock_w3, config):
    build = _mint_call(mock_w3).return_value.build_transaction
    build.side_effect = lambda base: dict(base, to=TOKEN.address, data="0xdeadbeef", gas=50000)

    pending = submitter.invoke(TOKEN, "mint", [RECEIVER, 1000])

    mock_w3.eth.contract.assert_called_once_with(address=TOKEN.address, abi=TOKEN_ABI)
    _mint_call(mock_w3).assert_called_once_with(RECEIVER, 1000)
    mock_w3.eth.get_transaction_count.assert_called_once_with(submitter.signer_address, "pending")
    base = build.call_args[0][0]
    assert base["nonce"] == 7
    assert base["chainId"] == config.chain_id
    assert base["from"] == submitter.signer_address

    mock_w3.eth.send_raw_transaction.assert_called_once_with(b"\x02signed")
    assert pending.tx_hash == "0x" + "12" * 32
    assert pending.target == TOKEN.address
    assert pending.function == "mint"
    assert not pending.is_deployment
    assert pending.request["data"] == "0xdeadbeef"


def test_invoke_unknown_function(submitter, mock_w3):
    with pytest.raises(ConfigError):
        submitter.invoke(TOKEN, "burn", [1])
    mock_w3.eth.send_raw_transaction.assert_not_called()


def test_gas_estimation_revert_is_rejected_before_sending(submitter, mock_w3):
    _mint_call(mock_w3).return_value.build_transaction.side_effect = ContractLogicError(
        "execution reverted: Ownable: caller is not the owner"
    )
    with pytest.raises(SubmissionRejected) as exc:
        submitter.invoke(TOKEN, "mint", [RECEIVER, 1])
    assert "would revert" in str(exc.value)
    mock_w3.eth.send_raw_transaction.assert_not_called()


def test_nonce_too_low_hint(submitter, mock_w3):
    _mint_call(mock_w3).return_value.build_transaction.side_effect = lambda base: dict(base, to=TOKEN.address)
    mock_w3.eth.send_raw_transaction.side_effect = ValueError({"code": -32000, "message": "nonce too low"})
    with pytest.raises(SubmissionRejected) as exc:
        submitter.invoke(TOKEN, "mint", [RECEIVER, 1])
    assert "another transaction from this account" in str(exc.value)


def test_already_known_uses_local_hash(submitter, mock_w3):
    _mint_call(mock_w3).return_value.build_transaction.side_effect = lambda base: dict(base, to=TOKEN.address)
    mock_w3.eth.send_raw_transaction.side_effect = ValueError({"code": -32000, "message": "already known"})

    pending = submitter.invoke(TOKEN, "mint", [RECEIVER, 1])

    assert pending.tx_hash == Web3.to_hex(Web3.keccak(b"\x02signed"))


def test_unreachable_node_while_counting_nonce(submitter, mock_w3):
    mock_w3.eth.get_transaction_count.side_effect = ConnectionError("refused")
    with pytest.raises(LedgerUnavailable):
        submitter.invoke(TOKEN, "mint", [RECEIVER, 1])


def test_deploy_requires_bytecode(submitter):
    with pytest.raises(InputError):
        submitter.deploy(ContractInterface(name="TokenizedBallot", abi=[]), [])


def test_deploy(submitter, mock_w3):
    interface = ContractInterface(name="TokenizedBallot", abi=[], bytecode="0x6080")
    constructor = mock_w3.eth.contract.return_value.constructor
    constructor.return_value.build_transaction.side_effect = lambda base: dict(base, data="0x6080")

    pending = submitter.deploy(interface, [[b"A".ljust(32, b"\x00")], TOKEN.address, 110])

    mock_w3.eth.contract.assert_called_once_with(abi=[], bytecode="0x6080")
    constructor.assert_called_once_with([b"A".ljust(32, b"\x00")], TOKEN.address, 110)
    assert pending.is_deployment
    assert pending.target is None
    assert pending.function == "constructor"
