"""
Ethereum signer sessions.

The bridge never manages keys itself: a session supplies the connected
account and signs-and-broadcasts transactions built by the adapter.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from eth_account import Account

from ....logging import get_logger
from .client import EthereumClient

logger = get_logger(__name__)


class EthereumSession(ABC):
    """A connected Ethereum account able to sign and submit transactions."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Checksummed signer address."""

    @abstractmethod
    def sign_and_submit(self, client: EthereumClient, transaction: Dict[str, Any]) -> str:
        """Sign ``transaction``, broadcast it and return the transaction hash."""


class LocalAccountSession(EthereumSession):
    """Session backed by a local private key (e.g. an Anvil dev account)."""

    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    def sign_and_submit(self, client: EthereumClient, transaction: Dict[str, Any]) -> str:
        tx = dict(transaction)
        tx.setdefault("from", self.address)
        tx.setdefault("chainId", client.config.chain_id)
        if "nonce" not in tx:
            tx["nonce"] = client.get_nonce(self.address)
        if "gas" not in tx:
            tx["gas"] = client.estimate_gas(tx)
        if "gasPrice" not in tx and "maxFeePerGas" not in tx:
            tx["gasPrice"] = client.get_gas_price()

        signed = self._account.sign_transaction(tx)
        tx_hash = client.send_raw_transaction(signed.raw_transaction)
        logger.debug(
            "Transaction Signed",
            extra={"from": self.address, "nonce": tx["nonce"], "tx_hash": tx_hash},
        )
        return tx_hash
