# kyc_mailbox/cryptography/ecies.py
"""
KYC Mailbox Cryptography: ECIES over secp256k1

Hybrid public-key encryption used to seal a submission for one recipient.

Construction:
    eph_sk      fresh random scalar per seal
    eph_pk      compressed SEC1 encoding of eph_sk * G (33B)
    shared_x    x-coordinate of eph_sk * recipient_pk (32B)
    ikm         SHA-256(shared_x)
    okm         HKDF-SHA256(ikm, salt=eph_pk, info=ECIES_INFO, L=44)
    key, iv     okm[:32], okm[32:44]
    ct          AES-256-GCM(key, iv, plaintext, aad)  (16B tag appended)

Wire Format:
    offset  size  field
    0       33    eph_pk
    33      12    iv
    45      rest  ct || tag

    Minimum length 61 bytes (empty plaintext).

Text transport is base64 or base64url; base64url is recognised by the
presence of '-' or '_' and re-padded before decoding.

Usage:
    sealed = seal(recipient_pk_hex, b'{"signer": ...}', aad=b"kyc:v1")
    text = encode_sealed(sealed)
    ...
    plaintext = open_sealed(decode_sealed(text), recipient_sk_hex, aad=b"kyc:v1")
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import os
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..errors import AuthenticationError, FormatError
from .keys import (
    CURVE,
    COMPRESSED_SIZE,
    PrivateKeyInput,
    PublicKeyInput,
    RandomSource,
    encode_public_key,
    generate_private_key,
    load_private_key,
    load_public_key,
)


# =============================================================================
# Constants
# =============================================================================

ECIES_INFO = b"ecies-secp256k1:aes-gcm:v1"

EPHEMERAL_KEY_SIZE = COMPRESSED_SIZE   # 33
IV_SIZE = 12
TAG_SIZE = 16
AES_KEY_SIZE = 32
OKM_SIZE = AES_KEY_SIZE + IV_SIZE      # 44

MIN_SEALED_SIZE = EPHEMERAL_KEY_SIZE + IV_SIZE + TAG_SIZE  # 61

AadInput = Optional[Union[bytes, str]]


# =============================================================================
# Parsed form
# =============================================================================

@dataclass(frozen=True)
class SealedParts:
    """The three fields of a sealed buffer."""
    ephemeral_public_key: bytes
    iv: bytes
    ciphertext: bytes  # includes the 16B tag

    @classmethod
    def parse(cls, sealed: bytes) -> SealedParts:
        """
        Split a sealed buffer.

        Raises:
            FormatError: Buffer shorter than 61 bytes
        """
        sealed = bytes(sealed)
        if len(sealed) < MIN_SEALED_SIZE:
            raise FormatError(
                f"sealed envelope too short: {len(sealed)} < {MIN_SEALED_SIZE} bytes"
            )
        return cls(
            ephemeral_public_key=sealed[:EPHEMERAL_KEY_SIZE],
            iv=sealed[EPHEMERAL_KEY_SIZE:EPHEMERAL_KEY_SIZE + IV_SIZE],
            ciphertext=sealed[EPHEMERAL_KEY_SIZE + IV_SIZE:],
        )

    def to_bytes(self) -> bytes:
        return self.ephemeral_public_key + self.iv + self.ciphertext


# =============================================================================
# Key schedule
# =============================================================================

def _aad_bytes(aad: AadInput) -> Optional[bytes]:
    if aad is None:
        return None
    if isinstance(aad, str):
        return aad.encode("utf-8")
    return bytes(aad)


def derive_key_iv(shared_x: bytes, ephemeral_public_key: bytes) -> Tuple[bytes, bytes]:
    """
    Derive the AES key and IV from an ECDH x-coordinate.

    SHA-256 flattens the raw coordinate into uniform IKM; the HKDF salt
    binds the output to this one-time sender key.
    """
    ikm = hashlib.sha256(shared_x).digest()
    okm = HKDF(
        algorithm=hashes.SHA256(),
        length=OKM_SIZE,
        salt=ephemeral_public_key,
        info=ECIES_INFO,
    ).derive(ikm)
    return okm[:AES_KEY_SIZE], okm[AES_KEY_SIZE:]


# =============================================================================
# Seal / Open
# =============================================================================

def seal(
    recipient_public_key: PublicKeyInput,
    plaintext: bytes,
    aad: AadInput = None,
    random_bytes: RandomSource = os.urandom,
) -> bytes:
    """
    Encrypt `plaintext` for the holder of `recipient_public_key`.

    Args:
        recipient_public_key: 33B compressed or 65B uncompressed key (bytes or hex)
        plaintext: Payload bytes
        aad: Associated data the opener must present
        random_bytes: Secure random source for the ephemeral key

    Returns:
        eph_pk(33) || iv(12) || ciphertext+tag

    Raises:
        KeyFormatError: Recipient key does not decode
    """
    recipient = load_public_key(recipient_public_key)

    ephemeral = generate_private_key(random_bytes)
    eph_pk = encode_public_key(ephemeral.public_key(), compressed=True)

    shared_x = ephemeral.exchange(ec.ECDH(), recipient)
    key, iv = derive_key_iv(shared_x, eph_pk)

    ciphertext = AESGCM(key).encrypt(iv, bytes(plaintext), _aad_bytes(aad))
    return eph_pk + iv + ciphertext


def open_sealed(
    sealed: bytes,
    recipient_private_key: PrivateKeyInput,
    aad: AadInput = None,
) -> bytes:
    """
    Decrypt a sealed buffer.

    Args:
        sealed: Output of seal()
        recipient_private_key: 32-byte scalar (bytes, hex or int)
        aad: Associated data used when sealing

    Returns:
        Plaintext bytes

    Raises:
        FormatError: Buffer too short or ephemeral key not on the curve
        KeyFormatError: Private key does not decode
        AuthenticationError: Wrong key, wrong AAD or tampered ciphertext
    """
    parts = SealedParts.parse(sealed)
    recipient = load_private_key(recipient_private_key)

    try:
        eph_point = ec.EllipticCurvePublicKey.from_encoded_point(
            CURVE, parts.ephemeral_public_key
        )
    except ValueError:
        raise FormatError("sealed envelope carries an invalid ephemeral key") from None

    shared_x = recipient.exchange(ec.ECDH(), eph_point)
    key, _ = derive_key_iv(shared_x, parts.ephemeral_public_key)

    try:
        return AESGCM(key).decrypt(parts.iv, parts.ciphertext, _aad_bytes(aad))
    except InvalidTag:
        pass
    # Raised outside the handler so no cause is chained.
    raise AuthenticationError()


# =============================================================================
# Text transport
# =============================================================================

def encode_sealed(sealed: bytes, urlsafe: bool = True) -> str:
    """base64url without padding (default) or standard base64."""
    if urlsafe:
        return base64.urlsafe_b64encode(sealed).rstrip(b"=").decode("ascii")
    return base64.b64encode(sealed).decode("ascii")


def decode_sealed(text: str) -> bytes:
    """
    Decode base64 or base64url transport text.

    Raises:
        FormatError: Text is not valid base64 of either flavour
    """
    text = "".join(text.split())
    if "-" in text or "_" in text:
        text = text.replace("-", "+").replace("_", "/")
    text += "=" * (-len(text) % 4)
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        raise FormatError("sealed envelope is not valid base64") from None


def seal_to_text(
    recipient_public_key: PublicKeyInput,
    plaintext: bytes,
    aad: AadInput = None,
    random_bytes: RandomSource = os.urandom,
) -> str:
    """seal() followed by encode_sealed()."""
    return encode_sealed(seal(recipient_public_key, plaintext, aad, random_bytes))


def open_text(
    sealed_text: str,
    recipient_private_key: PrivateKeyInput,
    aad: AadInput = None,
) -> bytes:
    """decode_sealed() followed by open_sealed()."""
    return open_sealed(decode_sealed(sealed_text), recipient_private_key, aad)
