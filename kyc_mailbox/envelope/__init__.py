# kyc_mailbox/envelope/__init__.py
"""
KYC Mailbox Envelope

Canonical serialization and EIP-191 signature binding for the plaintext
carried inside a sealed submission.

Modules:
    canonical:  deterministic JSON (sorted keys at every level)
    signer:     PlaintextEnvelope, build_envelope, verify_envelope

Usage:
    from kyc_mailbox.envelope import build_envelope, verify_envelope

    envelope = build_envelope({"form": {"name": "Ada"}}, private_key)
    signer = verify_envelope(envelope)
"""

from .canonical import (
    canonicalize,
    to_canonical_json,
    to_canonical_bytes,
    is_canonical,
    parse_json,
    json_depth,
    MAX_JSON_DEPTH,
)

from .signer import (
    ALGO_EIP191,
    ADDRESS_FORMAT_ETHEREUM,
    Signature,
    SignerInfo,
    PlaintextEnvelope,
    recover_signer,
    verify_envelope,
    build_envelope,
)

__all__ = [
    # Canonical JSON
    "canonicalize",
    "to_canonical_json",
    "to_canonical_bytes",
    "is_canonical",
    "parse_json",
    "json_depth",
    "MAX_JSON_DEPTH",

    # Signing
    "ALGO_EIP191",
    "ADDRESS_FORMAT_ETHEREUM",
    "Signature",
    "SignerInfo",
    "PlaintextEnvelope",
    "recover_signer",
    "verify_envelope",
    "build_envelope",
]
