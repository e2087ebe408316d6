import pytest
import requests
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from ballot.contracts import BALLOT_ABI, BALLOT_INTERFACE
from ballot.errors import ConfigError, LedgerUnavailable, ViewReverted
from ballot.ledger import LedgerClient
from ballot.schemas import ContractRef

BALLOT = ContractRef(address="0x" + "ab" * 20, interface=BALLOT_INTERFACE)


def test_current_height(config, mock_w3):
    mock_w3.eth.block_number = 1234
    assert LedgerClient(config, mock_w3).current_height() == 1234


def test_account_balance(config, mock_w3):
    mock_w3.eth.get_balance.return_value = 10 ** 18
    assert LedgerClient(config, mock_w3).account_balance("0x" + "01" * 20) == 10 ** 18


def test_call_view_uses_ref_abi(config, mock_w3):
    fn = mock_w3.eth.contract.return_value.functions.proposals
    fn.return_value.call.return_value = (b"Cats".ljust(32, b"\x00"), 3)

    result = LedgerClient(config, mock_w3).call_view(BALLOT, "proposals", [0])

    assert result == (b"Cats".ljust(32, b"\x00"), 3)
    mock_w3.eth.contract.assert_called_once_with(address=BALLOT.address, abi=BALLOT_ABI)
    fn.assert_called_once_with(0)


def test_call_view_unknown_function(config, mock_w3):
    with pytest.raises(ConfigError):
        LedgerClient(config, mock_w3).call_view(BALLOT, "balanceOf", ["0x" + "01" * 20])
    mock_w3.eth.contract.assert_not_called()


def test_call_view_revert(config, mock_w3):
    fn = mock_w3.eth.contract.return_value.functions.proposals
    fn.return_value.call.side_effect = ContractLogicError("execution reverted")
    with pytest.raises(ViewReverted):
        LedgerClient(config, mock_w3).call_view(BALLOT, "proposals", [9])


def test_call_view_no_contract(config, mock_w3):
    fn = mock_w3.eth.contract.return_value.functions.winnerName
    fn.return_value.call.side_effect = BadFunctionCallOutput("could not decode")
    with pytest.raises(LedgerUnavailable) as exc:
        LedgerClient(config, mock_w3).call_view(BALLOT, "winnerName")
    assert not isinstance(exc.value, ViewReverted)


def test_unreachable_node(config, mock_w3):
    mock_w3.eth.get_balance.side_effect = requests.exceptions.ConnectionError("refused")
    with pytest.raises(LedgerUnavailable) as exc:
        LedgerClient(config, mock_w3).account_balance("0x" + "01" * 20)
    assert "unreachable" in str(exc.value)
