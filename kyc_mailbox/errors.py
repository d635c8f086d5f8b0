# kyc_mailbox/errors.py
"""
KYC Mailbox: Error Taxonomy

Every failure the core can report is a subclass of KycMailboxError.

    FormatError             malformed sealed buffer or transport text
    KeyFormatError          unrecognized / invalid secp256k1 key encoding
    AuthenticationError     AEAD tag failure (never distinguished from wrong key)
    EnvelopeMalformedError  decrypted envelope missing or mis-typed fields
    SignatureMismatchError  recovered signer != declared signer
    ValidationError         malformed address input
    ScanError               log scan RPC failure (policy-dependent)
    ScanTimeoutError        scan deadline exceeded
    MailboxError            publish call rejected or failed
"""

from __future__ import annotations

from typing import Optional


class KycMailboxError(Exception):
    """Base error."""
    pass


# =============================================================================
# Codec
# =============================================================================

class FormatError(KycMailboxError):
    """Sealed buffer is structurally invalid."""
    pass


class KeyFormatError(KycMailboxError):
    """Key bytes do not decode to a valid secp256k1 key."""
    pass


class AuthenticationError(KycMailboxError):
    """AEAD authentication failed."""

    MESSAGE = "sealed envelope failed authentication"

    def __init__(self):
        super().__init__(self.MESSAGE)


# =============================================================================
# Envelope
# =============================================================================

class EnvelopeMalformedError(KycMailboxError):
    """Decrypted envelope is missing required fields."""
    pass


class SignatureMismatchError(KycMailboxError):
    """Recovered address does not match the declared signer."""
    def __init__(self, declared: str, recovered: Optional[str] = None):
        self.declared = declared
        self.recovered = recovered
        if recovered is None:
            message = f"signature does not recover to {declared}"
        else:
            message = f"recovered {recovered} does not match signer {declared}"
        super().__init__(message)


# =============================================================================
# Scan / Mailbox
# =============================================================================

class ValidationError(KycMailboxError):
    """Caller input failed syntactic validation."""
    pass


class ScanError(KycMailboxError):
    """Log scan failed."""
    def __init__(
        self,
        message: str,
        from_block: Optional[int] = None,
        to_block: Optional[int] = None,
    ):
        super().__init__(message)
        self.from_block = from_block
        self.to_block = to_block


class ScanTimeoutError(ScanError):
    """Scan did not finish before its deadline."""
    pass


class MailboxError(KycMailboxError):
    """Mailbox publish failed."""
    pass
