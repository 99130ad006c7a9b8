"""
IBT token contract interface.

The token is an ERC-20 with owner-gated ``mint(address,uint256)`` and
``burn(address,uint256)``; the contract owner is the bridge authority on
the Ethereum side.
"""

from typing import Any, Dict, List, Optional

from web3.logs import DISCARD

from ....logging import get_logger
from .client import EthereumClient

logger = get_logger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _function(name: str, inputs: List[Dict[str, str]], outputs: List[Dict[str, str]], mutability: str) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs,
        "stateMutability": mutability,
    }


IBT_TOKEN_ABI: List[Dict[str, Any]] = [
    _function("owner", [], [{"name": "", "type": "address"}], "view"),
    _function("name", [], [{"name": "", "type": "string"}], "view"),
    _function("symbol", [], [{"name": "", "type": "string"}], "view"),
    _function("decimals", [], [{"name": "", "type": "uint8"}], "view"),
    _function(
        "balanceOf",
        [{"name": "account", "type": "address"}],
        [{"name": "", "type": "uint256"}],
        "view",
    ),
    _function(
        "mint",
        [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}],
        [],
        "nonpayable",
    ),
    _function(
        "burn",
        [{"name": "from", "type": "address"}, {"name": "amount", "type": "uint256"}],
        [],
        "nonpayable",
    ),
    _function(
        "transfer",
        [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}],
        [{"name": "", "type": "bool"}],
        "nonpayable",
    ),
    {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
    },
]


class IBTTokenContract:
    """IBT token contract interface."""

    def __init__(self, client: EthereumClient, address: str):
        self.client = client
        self.address = address
        self.contract = client.contract(address, IBT_TOKEN_ABI)

    def owner(self) -> str:
        return self.contract.functions.owner().call()

    def name(self) -> str:
        return self.contract.functions.name().call()

    def symbol(self) -> str:
        return self.contract.functions.symbol().call()

    def decimals(self) -> int:
        return self.contract.functions.decimals().call()

    def balance_of(self, address: str) -> int:
        return self.contract.functions.balanceOf(address).call()

    def build_mint(self, to: str, amount: int, sender: str) -> Dict[str, Any]:
        """Unsigned ``mint`` transaction; gas and fees are filled by web3."""
        return self.contract.functions.mint(to, amount).build_transaction(
            self._tx_params(sender)
        )

    def build_burn(self, from_address: str, amount: int, sender: str) -> Dict[str, Any]:
        """Unsigned ``burn`` transaction."""
        return self.contract.functions.burn(from_address, amount).build_transaction(
            self._tx_params(sender)
        )

    def transfer_events(self, receipt: Dict[str, Any]) -> List[Dict[str, Any]]:
        """``Transfer`` event arguments emitted by this contract in ``receipt``."""
        events = self.contract.events.Transfer().process_receipt(receipt, errors=DISCARD)
        return [dict(event["args"]) for event in events]

    def _tx_params(self, sender: str) -> Dict[str, Any]:
        return {
            "from": sender,
            "chainId": self.client.config.chain_id,
            "nonce": self.client.get_nonce(sender),
        }


def minted_amount(events: List[Dict[str, Any]], recipient: Optional[str] = None) -> int:
    """Sum of Transfer values minted (from the zero address), optionally to one recipient."""
    return sum(
        int(event["value"])
        for event in events
        if event["from"].lower() == ZERO_ADDRESS
        and (recipient is None or event["to"].lower() == recipient.lower())
    )


def burned_amount(events: List[Dict[str, Any]], owner: Optional[str] = None) -> int:
    """Sum of Transfer values burned (to the zero address), optionally from one owner."""
    return sum(
        int(event["value"])
        for event in events
        if event["to"].lower() == ZERO_ADDRESS
        and (owner is None or event["from"].lower() == owner.lower())
    )
