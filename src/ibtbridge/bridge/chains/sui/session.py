"""
Sui signer sessions.

Sui signs an *intent message*: the three-byte intent prefix (transaction
data, version 0, Sui app) followed by the BCS transaction bytes, hashed with
Blake2b-256. The serialized signature is ``flag || signature || public key``
in base64; the address is Blake2b-256 of ``flag || public key``.
"""

import base64
import binascii
import hashlib
from abc import ABC, abstractmethod
from typing import Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from ....logging import get_logger
from .client import SuiClient

logger = get_logger(__name__)

ED25519_FLAG = 0x00
TRANSACTION_INTENT = bytes([0, 0, 0])


def blake2b_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def sui_address_from_public_key(public_key: bytes, flag: int = ED25519_FLAG) -> str:
    """Sui address of a public key for the given signature scheme flag."""
    return "0x" + blake2b_256(bytes([flag]) + public_key).hex()


class SuiSession(ABC):
    """A connected Sui account able to sign and execute transactions."""

    @property
    @abstractmethod
    def address(self) -> str:
        """``0x``-prefixed 32-byte Sui address."""

    @abstractmethod
    async def sign_and_submit(self, client: SuiClient, tx_bytes: str) -> str:
        """Sign base64 ``tx_bytes``, execute them and return the transaction digest."""


class Ed25519Session(SuiSession):
    """Session backed by a local Ed25519 key.

    ``private_key`` is either the raw 32-byte seed (bytes or hex) or a Sui
    keystore entry: base64 of the scheme flag followed by the seed.
    """

    def __init__(self, private_key: Union[bytes, str]):
        self._key = Ed25519PrivateKey.from_private_bytes(self._seed(private_key))
        self.public_key = self._key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw
        )
        self._address = sui_address_from_public_key(self.public_key)

    @staticmethod
    def _seed(private_key: Union[bytes, str]) -> bytes:
        if isinstance(private_key, (bytes, bytearray)):
            raw = bytes(private_key)
        else:
            text = private_key.strip()
            hex_text = text[2:] if text.lower().startswith("0x") else text
            try:
                raw = bytes.fromhex(hex_text)
            except ValueError:
                try:
                    raw = base64.b64decode(text, validate=True)
                except binascii.Error as e:
                    raise ValueError("Sui private key must be hex or base64") from e

        if len(raw) == 33:
            if raw[0] != ED25519_FLAG:
                raise ValueError(f"Unsupported Sui key scheme flag {raw[0]}")
            raw = raw[1:]
        if len(raw) != 32:
            raise ValueError(f"Ed25519 seed must be 32 bytes, got {len(raw)}")
        return raw

    @property
    def address(self) -> str:
        return self._address

    def sign_transaction(self, tx_bytes: str) -> str:
        """Serialized signature over the intent message for base64 ``tx_bytes``."""
        intent_message = TRANSACTION_INTENT + base64.b64decode(tx_bytes)
        signature = self._key.sign(blake2b_256(intent_message))
        return base64.b64encode(bytes([ED25519_FLAG]) + signature + self.public_key).decode(
            "ascii"
        )

    async def sign_and_submit(self, client: SuiClient, tx_bytes: str) -> str:
        result = await client.execute_transaction_block(tx_bytes, [self.sign_transaction(tx_bytes)])
        digest = result["digest"]
        logger.debug("Transaction Executed", extra={"sender": self.address, "digest": digest})
        return digest
