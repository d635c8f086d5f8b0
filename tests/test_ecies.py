# tests/test_ecies.py
"""
ECIES seal/open tests

Covers:
- Round trip for compressed and uncompressed recipients, with and without AAD
- Single-bit tampering anywhere in the IV / ciphertext / tag
- AAD binding and wrong-key rejection with an indistinguishable error
- Minimum-length rejection before any AEAD work
- Key normalization and key format errors
- base64 / base64url transport
"""

import base64

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from kyc_mailbox.cryptography import ecies
from kyc_mailbox.cryptography.ecies import (
    EPHEMERAL_KEY_SIZE,
    IV_SIZE,
    MIN_SEALED_SIZE,
    SealedParts,
    decode_sealed,
    derive_key_iv,
    encode_sealed,
    open_sealed,
    open_text,
    seal,
    seal_to_text,
)
from kyc_mailbox.cryptography.keys import (
    SECP256K1_ORDER,
    compress_public_key,
    generate_private_key,
    load_private_key,
    normalize_public_key,
    private_key_bytes,
    public_key_from_private,
)
from kyc_mailbox.errors import AuthenticationError, FormatError, KeyFormatError


def fixed_random(n):
    return b"\x07" * n


# =============================================================================
# Round trip
# =============================================================================

@pytest.mark.parametrize("plaintext", [
    b"",
    b"x",
    b'{"form":{"ssn":"123-45-6789"}}',
    "Jånë Dœ".encode("utf-8"),
    bytes(range(256)) * 8,
])
@pytest.mark.parametrize("aad", [None, b"kyc:v1", "kyc:v1"])
def test_round_trip(recipient_pk, recipient_sk, plaintext, aad):
    sealed = seal(recipient_pk, plaintext, aad)
    assert len(sealed) == MIN_SEALED_SIZE + len(plaintext)
    assert open_sealed(sealed, recipient_sk, aad) == plaintext


def test_round_trip_compressed_recipient(recipient_pk_compressed, recipient_sk):
    sealed = seal(recipient_pk_compressed, b"hello", b"kyc:v1")
    assert open_sealed(sealed, recipient_sk, b"kyc:v1") == b"hello"


def test_round_trip_hex_keys(recipient_pk, recipient_sk):
    sealed = seal("0x" + recipient_pk.hex(), b"hello")
    assert open_sealed(sealed, bytes.fromhex(recipient_sk[2:])) == b"hello"
    assert open_sealed(sealed, int(recipient_sk, 16)) == b"hello"


def test_layout(recipient_pk):
    sealed = seal(recipient_pk, b"abc")
    parts = SealedParts.parse(sealed)
    assert len(parts.ephemeral_public_key) == EPHEMERAL_KEY_SIZE
    assert parts.ephemeral_public_key[0] in (0x02, 0x03)
    assert len(parts.iv) == IV_SIZE
    assert len(parts.ciphertext) == 3 + 16
    assert parts.to_bytes() == sealed


def test_fresh_ephemeral_per_seal(recipient_pk):
    a = seal(recipient_pk, b"same")
    b = seal(recipient_pk, b"same")
    assert a[:EPHEMERAL_KEY_SIZE] != b[:EPHEMERAL_KEY_SIZE]
    assert a != b


def test_injected_random_is_deterministic(recipient_pk):
    assert seal(recipient_pk, b"same", random_bytes=fixed_random) == \
        seal(recipient_pk, b"same", random_bytes=fixed_random)


def test_iv_derived_from_shared_secret(recipient_pk, recipient_sk):
    sealed = seal(recipient_pk, b"payload")
    parts = SealedParts.parse(sealed)

    eph = ec.EllipticCurvePublicKey.from_encoded_point(
        ec.SECP256K1(), parts.ephemeral_public_key
    )
    shared_x = load_private_key(recipient_sk).exchange(ec.ECDH(), eph)
    key, iv = derive_key_iv(shared_x, parts.ephemeral_public_key)

    assert len(key) == 32
    assert iv == parts.iv


# =============================================================================
# Tampering
# =============================================================================

def test_every_bit_flip_after_ephemeral_key_fails(recipient_pk, recipient_sk):
    sealed = seal(recipient_pk, b"8 bytes!", b"kyc:v1")

    for index in range(EPHEMERAL_KEY_SIZE, len(sealed)):
        for bit in range(8):
            tampered = bytearray(sealed)
            tampered[index] ^= 1 << bit
            with pytest.raises(AuthenticationError):
                open_sealed(bytes(tampered), recipient_sk, b"kyc:v1")


def test_ephemeral_key_tamper_fails(recipient_pk, recipient_sk):
    sealed = seal(recipient_pk, b"payload")

    for index in range(EPHEMERAL_KEY_SIZE):
        tampered = bytearray(sealed)
        tampered[index] ^= 0x01
        with pytest.raises((AuthenticationError, FormatError)):
            open_sealed(bytes(tampered), recipient_sk)


def test_invalid_ephemeral_point_is_format_error(recipient_pk, recipient_sk):
    sealed = bytearray(seal(recipient_pk, b"payload"))
    sealed[0] = 0x05
    with pytest.raises(FormatError):
        open_sealed(bytes(sealed), recipient_sk)


def test_truncated_tag_fails(recipient_pk, recipient_sk):
    sealed = seal(recipient_pk, b"payload")
    with pytest.raises(AuthenticationError):
        open_sealed(sealed[:-1], recipient_sk)


# =============================================================================
# AAD and key binding
# =============================================================================

def test_aad_mismatch(recipient_pk, recipient_sk):
    sealed = seal(recipient_pk, b"payload", b"kyc:v1")
    with pytest.raises(AuthenticationError):
        open_sealed(sealed, recipient_sk, b"kyc:v2")
    with pytest.raises(AuthenticationError):
        open_sealed(sealed, recipient_sk)


def test_aad_required_when_absent_at_seal(recipient_pk, recipient_sk):
    sealed = seal(recipient_pk, b"payload")
    with pytest.raises(AuthenticationError):
        open_sealed(sealed, recipient_sk, b"kyc:v1")


def test_wrong_key_is_indistinguishable_from_tamper(recipient_pk, recipient_sk):
    sealed = seal(recipient_pk, b"payload", b"kyc:v1")

    with pytest.raises(AuthenticationError) as wrong_key:
        open_sealed(sealed, "0x" + "22" * 32, b"kyc:v1")

    tampered = bytearray(sealed)
    tampered[-1] ^= 0x80
    with pytest.raises(AuthenticationError) as bad_tag:
        open_sealed(bytes(tampered), recipient_sk, b"kyc:v1")

    assert str(wrong_key.value) == str(bad_tag.value)
    assert wrong_key.value.__cause__ is None
    assert wrong_key.value.__context__ is None


# =============================================================================
# Length checks
# =============================================================================

def test_short_buffers_rejected_without_aead(recipient_sk, monkeypatch):
    class ExplodingAESGCM:
        def __init__(self, key):
            raise AssertionError("AEAD must not run on short input")

    monkeypatch.setattr(ecies, "AESGCM", ExplodingAESGCM)
    for size in range(MIN_SEALED_SIZE):
        with pytest.raises(FormatError):
            open_sealed(b"\x02" * size, recipient_sk)


def test_minimum_size_buffer_opens_to_empty(recipient_pk, recipient_sk):
    sealed = seal(recipient_pk, b"")
    assert len(sealed) == MIN_SEALED_SIZE
    assert open_sealed(sealed, recipient_sk) == b""


# =============================================================================
# Keys
# =============================================================================

def test_compressed_and_uncompressed_normalize_identically(recipient_pk, recipient_pk_compressed):
    expected = "0x" + recipient_pk.hex()
    assert normalize_public_key(recipient_pk) == expected
    assert normalize_public_key(recipient_pk_compressed) == expected
    assert normalize_public_key(recipient_pk_compressed.hex().upper()) == expected
    assert normalize_public_key("0x" + recipient_pk.hex()) == expected


def test_compress_public_key(recipient_pk, recipient_pk_compressed):
    assert compress_public_key(recipient_pk) == recipient_pk_compressed
    assert len(recipient_pk_compressed) == 33


@pytest.mark.parametrize("bad", [
    b"",
    b"\x04" + b"\x01" * 63,
    b"\x02" + b"\x01" * 64,
    b"\x04" + b"\x01" * 32,
    b"\x04" + b"\x00" * 64,
    b"\x05" + b"\x01" * 32,
    "0xnothex",
])
def test_bad_public_keys(bad):
    with pytest.raises(KeyFormatError):
        normalize_public_key(bad)
    with pytest.raises(KeyFormatError):
        seal(bad, b"payload")


@pytest.mark.parametrize("bad", [
    0,
    SECP256K1_ORDER,
    b"\x00" * 32,
    b"\x01" * 31,
    "0xzz",
    True,
    1.5,
])
def test_bad_private_keys(bad):
    with pytest.raises(KeyFormatError):
        load_private_key(bad)


def test_public_key_from_private_lengths(recipient_sk):
    assert len(public_key_from_private(recipient_sk)) == 65
    assert len(public_key_from_private(recipient_sk, compressed=True)) == 33


# =============================================================================
# Text transport
# =============================================================================

def test_text_round_trip_is_urlsafe(recipient_pk, recipient_sk):
    text = seal_to_text(recipient_pk, b"payload" * 10, "kyc:v1")
    assert "=" not in text
    assert "+" not in text and "/" not in text
    assert open_text(text, recipient_sk, "kyc:v1") == b"payload" * 10


def test_standard_base64_accepted(recipient_pk, recipient_sk):
    sealed = seal(recipient_pk, b"payload")
    assert open_text(encode_sealed(sealed, urlsafe=False), recipient_sk) == b"payload"
    assert decode_sealed(base64.b64encode(sealed).decode()) == sealed


def test_base64url_with_dash_and_underscore():
    raw = b"\xfb\xff\xfe" * 30
    text = encode_sealed(raw)
    assert "-" in text or "_" in text
    assert decode_sealed(text) == raw


def test_whitespace_is_ignored():
    raw = bytes(range(90))
    text = encode_sealed(raw)
    wrapped = "\n".join(text[i:i + 20] for i in range(0, len(text), 20))
    assert decode_sealed(wrapped) == raw


@pytest.mark.parametrize("bad", ["***", "ab$c", "a"])
def test_invalid_text_is_format_error(bad):
    with pytest.raises(FormatError):
        decode_sealed(bad)


def test_generate_private_key_rejects_out_of_range_draws():
    draws = iter([b"\x00" * 32, b"\xff" * 32, b"\x05" * 32])
    key = generate_private_key(lambda n: next(draws))
    assert private_key_bytes(key) == b"\x05" * 32


def test_generate_private_key_default_source():
    a = private_key_bytes(generate_private_key())
    b = private_key_bytes(generate_private_key())
    assert len(a) == 32 and a != b
