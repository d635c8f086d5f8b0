# kyc_mailbox/cryptography/keys.py
"""
KYC Mailbox Cryptography: secp256k1 Key Handling

Public keys arrive in two SEC1 encodings:
    compressed      33B, prefix 0x02 / 0x03
    uncompressed    65B, prefix 0x04

Both normalize to one canonical form (0x04... lowercase hex) before use.
Private keys are 32-byte scalars in [1, n-1], given as bytes, hex text
(0x optional) or int.
"""

from __future__ import annotations

import os
from typing import Callable, Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ..errors import KeyFormatError


# =============================================================================
# Constants
# =============================================================================

CURVE = ec.SECP256K1()

# Group order n
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

COMPRESSED_SIZE = 33
UNCOMPRESSED_SIZE = 65
PRIVATE_KEY_SIZE = 32

PublicKeyInput = Union[bytes, bytearray, str]
PrivateKeyInput = Union[bytes, bytearray, str, int]

RandomSource = Callable[[int], bytes]


# =============================================================================
# Hex helpers
# =============================================================================

def strip_0x(value: str) -> str:
    """Drop a leading 0x / 0X."""
    return value[2:] if value[:2] in ("0x", "0X") else value


def hex_to_bytes(value: str) -> bytes:
    """Decode hex text with optional 0x prefix."""
    return bytes.fromhex(strip_0x(value.strip()))


# =============================================================================
# Public keys
# =============================================================================

def load_public_key(key: PublicKeyInput) -> ec.EllipticCurvePublicKey:
    """
    Decode a compressed or uncompressed secp256k1 public key.

    Raises:
        KeyFormatError: Wrong length, wrong prefix, or point not on curve
    """
    if isinstance(key, str):
        try:
            raw = hex_to_bytes(key)
        except ValueError:
            raise KeyFormatError("public key is not valid hex") from None
    else:
        raw = bytes(key)

    if len(raw) == COMPRESSED_SIZE and raw[0] in (0x02, 0x03):
        pass
    elif len(raw) == UNCOMPRESSED_SIZE and raw[0] == 0x04:
        pass
    else:
        raise KeyFormatError(
            f"unsupported secp256k1 public key encoding "
            f"({len(raw)} bytes, prefix {raw[:1].hex() or 'none'})"
        )

    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(CURVE, raw)
    except ValueError as e:
        raise KeyFormatError(f"public key is not a valid curve point: {e}") from None


def encode_public_key(key: ec.EllipticCurvePublicKey, compressed: bool = True) -> bytes:
    """SEC1 encoding of a public key."""
    fmt = (
        serialization.PublicFormat.CompressedPoint
        if compressed
        else serialization.PublicFormat.UncompressedPoint
    )
    return key.public_bytes(serialization.Encoding.X962, fmt)


def normalize_public_key(key: PublicKeyInput) -> str:
    """
    Canonical form of a public key: uncompressed, 0x-prefixed lowercase hex.

    A compressed key and its uncompressed equivalent normalize identically.
    """
    point = load_public_key(key)
    return "0x" + encode_public_key(point, compressed=False).hex()


def compress_public_key(key: PublicKeyInput) -> bytes:
    """33-byte compressed encoding."""
    return encode_public_key(load_public_key(key), compressed=True)


# =============================================================================
# Private keys
# =============================================================================

def _scalar_from_input(key: PrivateKeyInput) -> int:
    if isinstance(key, bool):
        raise KeyFormatError("private key must be bytes, hex or int")
    if isinstance(key, int):
        return key
    if isinstance(key, str):
        try:
            raw = hex_to_bytes(key)
        except ValueError:
            raise KeyFormatError("private key is not valid hex") from None
    elif isinstance(key, (bytes, bytearray)):
        raw = bytes(key)
    else:
        raise KeyFormatError("private key must be bytes, hex or int")

    if len(raw) != PRIVATE_KEY_SIZE:
        raise KeyFormatError(f"private key must be {PRIVATE_KEY_SIZE} bytes, got {len(raw)}")
    return int.from_bytes(raw, "big")


def load_private_key(key: PrivateKeyInput) -> ec.EllipticCurvePrivateKey:
    """
    Decode a secp256k1 private scalar.

    Raises:
        KeyFormatError: Wrong size or scalar outside [1, n-1]
    """
    scalar = _scalar_from_input(key)
    if not 1 <= scalar < SECP256K1_ORDER:
        raise KeyFormatError("private key scalar out of range")
    return ec.derive_private_key(scalar, CURVE)


def private_key_bytes(key: ec.EllipticCurvePrivateKey) -> bytes:
    """32-byte big-endian scalar."""
    return key.private_numbers().private_value.to_bytes(PRIVATE_KEY_SIZE, "big")


def generate_private_key(random_bytes: RandomSource = os.urandom) -> ec.EllipticCurvePrivateKey:
    """
    Draw a private key from `random_bytes` by rejection sampling.

    Args:
        random_bytes: Callable returning n secure random bytes
    """
    while True:
        candidate = random_bytes(PRIVATE_KEY_SIZE)
        if len(candidate) != PRIVATE_KEY_SIZE:
            raise ValueError("random source returned wrong number of bytes")
        scalar = int.from_bytes(candidate, "big")
        if 1 <= scalar < SECP256K1_ORDER:
            return ec.derive_private_key(scalar, CURVE)


def public_key_from_private(key: PrivateKeyInput, compressed: bool = False) -> bytes:
    """Public key bytes for a private scalar."""
    return encode_public_key(load_private_key(key).public_key(), compressed=compressed)
