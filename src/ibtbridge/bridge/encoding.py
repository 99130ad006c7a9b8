"""Identifier encodings for the two chains.

Ethereum addresses are 20-byte hex strings (checksummed on output) and
transaction hashes 32-byte hex strings. Sui addresses and object ids are
32-byte hex strings; Sui transaction digests are base58-encoded 32-byte values.
"""

import re

from eth_utils import is_hex_address, to_checksum_address

# Base58 (Bitcoin alphabet), as used for Sui transaction digests
B58_ALPHABET = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
B58_MAP = {c: i for i, c in enumerate(B58_ALPHABET)}

SUI_ADDRESS_LENGTH = 32
SUI_DIGEST_LENGTH = 32
ETH_HASH_LENGTH = 32

_HEX = re.compile(r"^[0-9a-fA-F]*$")


def b58decode(s: str) -> bytes:
    """Decode a base58 string."""
    s_bytes = s.encode("ascii") if isinstance(s, str) else s
    num = 0
    for c in s_bytes:
        if c not in B58_MAP:
            raise ValueError("Invalid base58 character")
        num = num * 58 + B58_MAP[c]
    # Leading '1's encode leading zero bytes
    n_pad = 0
    for c in s_bytes:
        if c == B58_ALPHABET[0]:
            n_pad += 1
        else:
            break
    full = num.to_bytes((num.bit_length() + 7) // 8, "big") if num else b""
    return b"\x00" * n_pad + full


def b58encode(b: bytes) -> str:
    """Encode bytes as base58."""
    n_pad = 0
    for c in b:
        if c == 0:
            n_pad += 1
        else:
            break
    num = int.from_bytes(b, "big")
    out = bytearray()
    while num > 0:
        num, rem = divmod(num, 58)
        out.append(B58_ALPHABET[rem])
    out.extend(B58_ALPHABET[0:1] * n_pad)
    out.reverse()
    return out.decode("ascii")


def normalize_sui_address(value: str) -> str:
    """Return ``0x`` + 64 lowercase hex chars, padding short forms like ``0x2``."""
    if not isinstance(value, str):
        raise ValueError("Sui address must be a string")
    text = value.strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    if not text or len(text) > SUI_ADDRESS_LENGTH * 2 or not _HEX.match(text):
        raise ValueError(f"Invalid Sui address or object id: {value!r}")
    return "0x" + text.lower().rjust(SUI_ADDRESS_LENGTH * 2, "0")


def is_sui_address(value: str) -> bool:
    """Check whether ``value`` is a well-formed Sui address or object id."""
    try:
        normalize_sui_address(value)
    except ValueError:
        return False
    return True


def normalize_eth_address(value: str) -> str:
    """Return the EIP-55 checksummed form of an Ethereum address."""
    if not isinstance(value, str) or not is_hex_address(value.strip()):
        raise ValueError(f"Invalid Ethereum address: {value!r}")
    return to_checksum_address(value.strip())


def eth_address_bytes(value: str) -> bytes:
    """Raw 20 bytes of an Ethereum address."""
    return bytes.fromhex(normalize_eth_address(value)[2:])


def normalize_eth_hash(value: str) -> str:
    """Return ``0x`` + 64 lowercase hex chars for an Ethereum transaction hash."""
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).hex()
    if not isinstance(value, str):
        raise ValueError("Transaction hash must be a string")
    text = value.strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    if len(text) != ETH_HASH_LENGTH * 2 or not _HEX.match(text):
        raise ValueError(f"Invalid Ethereum transaction hash: {value!r}")
    return "0x" + text.lower()


def eth_hash_bytes(value: str) -> bytes:
    """Raw 32 bytes of an Ethereum transaction hash."""
    return bytes.fromhex(normalize_eth_hash(value)[2:])


def sui_digest_bytes(value: str) -> bytes:
    """Decode a Sui transaction digest, checking it is exactly 32 bytes."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Sui digest must be a non-empty string")
    raw = b58decode(value.strip())
    if len(raw) != SUI_DIGEST_LENGTH:
        raise ValueError(
            f"Sui digest {value!r} decodes to {len(raw)} bytes, expected {SUI_DIGEST_LENGTH}"
        )
    return raw
