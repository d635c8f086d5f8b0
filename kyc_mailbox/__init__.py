# kyc_mailbox/__init__.py
"""
KYC Mailbox: Sealed Identity Submissions with On-Chain Attestation

A submitter signs and encrypts identity-verification data for a single
provider; the provider verifies it and publishes an attestation tier to
an append-only Mailbox contract; anyone can later check an address's
attestation from chain logs alone, without seeing plaintext.

Modules:
    cryptography/  ECIES over secp256k1 (ECDH + HKDF-SHA256 + AES-256-GCM)
    envelope/      Canonical JSON + EIP-191 signature binding
    schema         Attestation tier selection
    block/         Mailbox events, log providers, ProofScanner, publishing
    pipeline       Submitter / provider flows
    config         ScanConfig / MailboxConfig (env-driven)
    errors         Error taxonomy

Quick Start:
    from kyc_mailbox import prepare_submission, process_submission

    # Submitter
    sealed = prepare_submission(
        {"form": {"name": "Ada", "ssn": "123-45-6789"}},
        signer_private_key=user_key,
        recipient_public_key=provider_pubkey_hex,
        aad=b"kyc:v1",
    )

    # Provider
    attestation = process_submission(sealed, provider_private_key, aad=b"kyc:v1")
    attestation.schema   # "kyc-level-2"

    # Verifier
    from kyc_mailbox import ProofScanner, Web3LogProvider, ScanConfig
    scanner = ProofScanner(Web3LogProvider(rpc_url), ScanConfig(mailbox_address=MAILBOX))
    scanner.verify(user_address).level
"""

from .errors import (
    KycMailboxError,
    FormatError,
    KeyFormatError,
    AuthenticationError,
    EnvelopeMalformedError,
    SignatureMismatchError,
    ValidationError,
    ScanError,
    ScanTimeoutError,
    MailboxError,
)

from .config import (
    ScanConfig,
    MailboxConfig,
    WindowErrorPolicy,
)

from .cryptography import (
    seal,
    open_sealed,
    encode_sealed,
    decode_sealed,
    seal_to_text,
    open_text,
    normalize_public_key,
    compress_public_key,
    public_key_from_private,
    MIN_SEALED_SIZE,
)

from .envelope import (
    canonicalize,
    to_canonical_json,
    Signature,
    SignerInfo,
    PlaintextEnvelope,
    build_envelope,
    verify_envelope,
)

from .schema import (
    SchemaTag,
    select_schema,
)

from .block import (
    MailboxEvent,
    LogProvider,
    Web3LogProvider,
    MockLogProvider,
    ProofScanner,
    ScanResult,
    verify_address,
    MailboxClient,
    MockMailbox,
    PublishReceipt,
)

from .pipeline import (
    Attestation,
    prepare_submission,
    process_submission,
    attest,
)

__all__ = [
    # === Errors ===
    "KycMailboxError",
    "FormatError",
    "KeyFormatError",
    "AuthenticationError",
    "EnvelopeMalformedError",
    "SignatureMismatchError",
    "ValidationError",
    "ScanError",
    "ScanTimeoutError",
    "MailboxError",

    # === Config ===
    "ScanConfig",
    "MailboxConfig",
    "WindowErrorPolicy",

    # === Cryptography ===
    "seal",
    "open_sealed",
    "encode_sealed",
    "decode_sealed",
    "seal_to_text",
    "open_text",
    "normalize_public_key",
    "compress_public_key",
    "public_key_from_private",
    "MIN_SEALED_SIZE",

    # === Envelope ===
    "canonicalize",
    "to_canonical_json",
    "Signature",
    "SignerInfo",
    "PlaintextEnvelope",
    "build_envelope",
    "verify_envelope",

    # === Schema ===
    "SchemaTag",
    "select_schema",

    # === Block ===
    "MailboxEvent",
    "LogProvider",
    "Web3LogProvider",
    "MockLogProvider",
    "ProofScanner",
    "ScanResult",
    "verify_address",
    "MailboxClient",
    "MockMailbox",
    "PublishReceipt",

    # === Pipeline ===
    "Attestation",
    "prepare_submission",
    "process_submission",
    "attest",
]

__version__ = "0.1.0"
