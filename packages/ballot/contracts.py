import json
import os
from typing import Optional

from .errors import ConfigError
from .schemas import ContractInterface

DEFAULT_BALLOT_ARTIFACT = os.path.join("artifacts", "contracts", "TokenizedBallot.sol", "TokenizedBallot.json")
DEFAULT_TOKEN_ARTIFACT = os.path.join("artifacts", "contracts", "MyToken.sol", "MyToken.json")


def _fn(name, inputs, outputs=(), mutability="view"):
    return {
        "type": "function",
        "name": name,
        "inputs": [{"internalType": t, "name": n, "type": t} for n, t in inputs],
        "outputs": [{"internalType": t, "name": n, "type": t} for n, t in outputs],
        "stateMutability": mutability,
    }


# minimal ABIs covering every call the commands make
BALLOT_ABI = [
    {
        "type": "constructor",
        "stateMutability": "nonpayable",
        "inputs": [
            {"internalType": "bytes32[]", "name": "_proposalNames", "type": "bytes32[]"},
            {"internalType": "address", "name": "_tokenContract", "type": "address"},
            {"internalType": "uint256", "name": "_targetBlockNumber", "type": "uint256"},
        ],
    },
    _fn("proposals", [("", "uint256")], [("name", "bytes32"), ("voteCount", "uint256")]),
    _fn("vote", [("proposal", "uint256"), ("amount", "uint256")], mutability="nonpayable"),
    _fn("getVotePower", [("voter", "address")], [("votePower_", "uint256")]),
    _fn("votePowerSpent", [("", "address")], [("", "uint256")]),
    _fn("targetBlockNumber", [], [("", "uint256")]),
    _fn("tokenContract", [], [("", "address")]),
    _fn("winningProposal", [], [("winningProposal_", "uint256")]),
    _fn("winnerName", [], [("winnerName_", "bytes32")]),
]

TOKEN_ABI = [
    _fn("mint", [("to", "address"), ("amount", "uint256")], mutability="nonpayable"),
    _fn("transfer", [("to", "address"), ("value", "uint256")], [("", "bool")], mutability="nonpayable"),
    _fn("delegate", [("delegatee", "address")], mutability="nonpayable"),
    _fn("balanceOf", [("account", "address")], [("", "uint256")]),
    _fn("getVotes", [("account", "address")], [("", "uint256")]),
    _fn("delegates", [("account", "address")], [("", "address")]),
    _fn("symbol", [], [("", "string")]),
    _fn("decimals", [], [("", "uint8")]),
]

BALLOT_INTERFACE = ContractInterface(name="TokenizedBallot", abi=BALLOT_ABI)
TOKEN_INTERFACE = ContractInterface(name="MyToken", abi=TOKEN_ABI)


def load_artifact(path: str, name: Optional[str] = None) -> ContractInterface:
    """Load a compiled contract artifact.

    Accepts Hardhat/Foundry artifact JSON (``{"abi": [...], "bytecode": ...}``,
    Foundry nests bytecode under ``{"object": ...}``) or a bare ABI list.
    """
    if not os.path.exists(path):
        raise ConfigError(f"Contract artifact not found at {path}")
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Contract artifact {path} is not valid JSON: {exc}") from exc

    if name is None:
        name = os.path.splitext(os.path.basename(path))[0]

    if isinstance(data, list):
        return ContractInterface(name=name, abi=data)
    if not isinstance(data, dict) or not isinstance(data.get("abi"), list):
        raise ConfigError(f"Contract artifact {path} has no ABI")

    bytecode = data.get("bytecode")
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object")
    if bytecode in ("", "0x"):
        bytecode = None
    if bytecode and not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode
    return ContractInterface(name=data.get("contractName") or name, abi=data["abi"], bytecode=bytecode)


def resolve_interface(path: Optional[str], default: ContractInterface, default_path: Optional[str] = None) -> ContractInterface:
    """Pick the artifact at ``path``, then ``default_path`` if present, else ``default``."""
    if path:
        return load_artifact(path, default.name)
    if default_path and os.path.exists(default_path):
        return load_artifact(default_path, default.name)
    return default
