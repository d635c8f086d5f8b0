# kyc_mailbox/cryptography/__init__.py
"""
KYC Mailbox Cryptography

ECIES (secp256k1 ECDH + HKDF-SHA256 + AES-256-GCM) for sealing
submissions to a single recipient.

Modules:
    keys:   secp256k1 key decoding, normalization, generation
    ecies:  seal / open, wire parsing, base64 transport

Usage:
    from kyc_mailbox.cryptography import seal, open_sealed

    sealed = seal(recipient_pk, b"payload", aad=b"kyc:v1")
    plaintext = open_sealed(sealed, recipient_sk, aad=b"kyc:v1")
"""

from .keys import (
    CURVE,
    SECP256K1_ORDER,
    load_public_key,
    load_private_key,
    encode_public_key,
    normalize_public_key,
    compress_public_key,
    generate_private_key,
    private_key_bytes,
    public_key_from_private,
)

from .ecies import (
    ECIES_INFO,
    EPHEMERAL_KEY_SIZE,
    IV_SIZE,
    TAG_SIZE,
    MIN_SEALED_SIZE,
    SealedParts,
    derive_key_iv,
    seal,
    open_sealed,
    encode_sealed,
    decode_sealed,
    seal_to_text,
    open_text,
)

__all__ = [
    # Keys
    "CURVE",
    "SECP256K1_ORDER",
    "load_public_key",
    "load_private_key",
    "encode_public_key",
    "normalize_public_key",
    "compress_public_key",
    "generate_private_key",
    "private_key_bytes",
    "public_key_from_private",

    # ECIES
    "ECIES_INFO",
    "EPHEMERAL_KEY_SIZE",
    "IV_SIZE",
    "TAG_SIZE",
    "MIN_SEALED_SIZE",
    "SealedParts",
    "derive_key_iv",
    "seal",
    "open_sealed",
    "encode_sealed",
    "decode_sealed",
    "seal_to_text",
    "open_text",
]
