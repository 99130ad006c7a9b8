"""
Ethereum RPC client for the IBT bridge.

Thin synchronous wrapper around a web3 ``HTTPProvider``. The ledger adapter
runs these calls on the event loop's executor.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from web3 import Web3
from web3.exceptions import TransactionNotFound

from ....logging import get_logger

logger = get_logger(__name__)


@dataclass
class EthereumConfig:
    """Ethereum client configuration."""

    rpc_url: str = "http://127.0.0.1:8545"
    chain_id: int = 31337
    timeout: int = 30


class EthereumClient:
    """Ethereum blockchain client."""

    def __init__(self, config: EthereumConfig, web3: Optional[Web3] = None):
        self.config = config
        self.w3 = web3 or Web3(
            Web3.HTTPProvider(config.rpc_url, request_kwargs={"timeout": config.timeout})
        )

    def is_connected(self) -> bool:
        return self.w3.is_connected()

    def get_chain_id(self) -> int:
        return self.w3.eth.chain_id

    def get_block_number(self) -> int:
        return self.w3.eth.block_number

    def get_code(self, address: str) -> bytes:
        return bytes(self.w3.eth.get_code(Web3.to_checksum_address(address)))

    def get_nonce(self, address: str) -> int:
        return self.w3.eth.get_transaction_count(Web3.to_checksum_address(address), "pending")

    def get_gas_price(self) -> int:
        return self.w3.eth.gas_price

    def estimate_gas(self, transaction: Dict[str, Any]) -> int:
        return self.w3.eth.estimate_gas(transaction)

    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        """Broadcast a signed transaction and return its ``0x``-prefixed hash."""
        tx_hash = self.w3.eth.send_raw_transaction(raw_transaction)
        return Web3.to_hex(tx_hash)

    def get_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Transaction receipt, or None while the transaction is not mined."""
        try:
            return self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None

    def contract(self, address: str, abi: List[Dict[str, Any]]):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
