# kyc_mailbox/envelope/signer.py
"""
KYC Mailbox Envelope: Signature Binding

The plaintext carried inside a sealed submission:

    {
        "signer":    {"address": "0x...", "accountId"?, "addressFormat"?, "algo"?},
        "message":   "<canonical JSON the user signed>",
        "signature": {"r": "<32B hex>", "s": "<32B hex>", "v": "<1B hex>"}
    }

`message` is signed with EIP-191 personal_sign. Verification hashes the
exact `message` string (never a re-serialization), recovers the signer
from 0x || r || s || v and compares it case-insensitively with
`signer.address`.

Decoded JSON is validated once, here, into a PlaintextEnvelope; code
past this boundary never touches the raw dict.

Usage:
    envelope = build_envelope({"form": {...}}, private_key)
    address = verify_envelope(PlaintextEnvelope.from_json(plaintext))
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as EthKeysValidationError

from ..errors import EnvelopeMalformedError, SignatureMismatchError
from .canonical import parse_json, to_canonical_json


# =============================================================================
# Constants
# =============================================================================

ALGO_EIP191 = "eip191_personal_sign"
ADDRESS_FORMAT_ETHEREUM = "ADDRESS_FORMAT_ETHEREUM"

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


def _strip_0x(value: str) -> str:
    return value[2:] if value[:2] in ("0x", "0X") else value


def _hex_field(name: str, value: Any, size: int) -> str:
    if not isinstance(value, str):
        raise EnvelopeMalformedError(f"signature.{name} must be a hex string")
    digits = _strip_0x(value)
    if not digits or not _HEX_RE.match(digits) or len(digits) > size * 2:
        raise EnvelopeMalformedError(f"signature.{name} is not {size}-byte hex")
    return digits.lower().rjust(size * 2, "0")


# =============================================================================
# Types
# =============================================================================

@dataclass(frozen=True)
class Signature:
    """
    secp256k1 recoverable signature.

    Attributes:
        r: 64 lowercase hex digits
        s: 64 lowercase hex digits
        v: Recovery byte (0/1 or 27/28)
    """
    r: str
    s: str
    v: int

    @classmethod
    def from_value(cls, value: Any) -> Signature:
        """
        Accept {r, s, v} (hex strings, v may also be int) or a 65-byte hex string.

        Raises:
            EnvelopeMalformedError: Missing or mis-typed components
        """
        if isinstance(value, str):
            digits = _strip_0x(value)
            if len(digits) != 130 or not _HEX_RE.match(digits):
                raise EnvelopeMalformedError("signature hex must be 65 bytes")
            return cls(r=digits[:64].lower(), s=digits[64:128].lower(), v=int(digits[128:], 16))

        if not isinstance(value, dict):
            raise EnvelopeMalformedError("signature must be an object or hex string")
        for name in ("r", "s", "v"):
            if name not in value:
                raise EnvelopeMalformedError(f"signature.{name} is missing")

        v = value["v"]
        if isinstance(v, bool):
            raise EnvelopeMalformedError("signature.v must be hex or int")
        if isinstance(v, int):
            if not 0 <= v <= 0xFF:
                raise EnvelopeMalformedError("signature.v out of range")
        else:
            v = int(_hex_field("v", v, 1), 16)

        return cls(
            r=_hex_field("r", value["r"], 32),
            s=_hex_field("s", value["s"], 32),
            v=v,
        )

    def to_hex(self) -> str:
        """Recovery string: 0x || r || s || v."""
        return f"0x{self.r}{self.s}{self.v:02x}"

    def to_dict(self) -> Dict[str, str]:
        return {"r": self.r, "s": self.s, "v": f"{self.v:02x}"}


@dataclass(frozen=True)
class SignerInfo:
    """Declared signer identity."""
    address: str
    account_id: Optional[str] = None
    address_format: Optional[str] = None
    algo: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> SignerInfo:
        if not isinstance(data, dict):
            raise EnvelopeMalformedError("signer must be an object")
        address = data.get("address")
        if not isinstance(address, str) or not address:
            raise EnvelopeMalformedError("signer.address is missing")

        optional = {}
        for key, attr in (("accountId", "account_id"),
                          ("addressFormat", "address_format"),
                          ("algo", "algo")):
            item = data.get(key)
            if item is not None and not isinstance(item, str):
                raise EnvelopeMalformedError(f"signer.{key} must be a string")
            optional[attr] = item
        return cls(address=address, **optional)

    def to_dict(self) -> Dict[str, str]:
        out = {"address": self.address}
        if self.account_id is not None:
            out["accountId"] = self.account_id
        if self.address_format is not None:
            out["addressFormat"] = self.address_format
        if self.algo is not None:
            out["algo"] = self.algo
        return out


@dataclass(frozen=True)
class PlaintextEnvelope:
    """Validated decrypted submission."""
    signer: SignerInfo
    message: str
    signature: Signature

    @classmethod
    def from_dict(cls, data: Any) -> PlaintextEnvelope:
        """
        Validate decoded JSON.

        Raises:
            EnvelopeMalformedError: Required field missing or mis-typed
        """
        if not isinstance(data, dict):
            raise EnvelopeMalformedError("envelope must be a JSON object")

        message = data.get("message")
        if not isinstance(message, str) or not message:
            raise EnvelopeMalformedError("message is missing")
        if data.get("signature") is None:
            raise EnvelopeMalformedError("signature is missing")
        if data.get("signer") is None:
            raise EnvelopeMalformedError("signer.address is missing")

        return cls(
            signer=SignerInfo.from_dict(data["signer"]),
            message=message,
            signature=Signature.from_value(data["signature"]),
        )

    @classmethod
    def from_json(cls, raw: Union[bytes, str]) -> PlaintextEnvelope:
        """Decode UTF-8 JSON (nesting bounded by MAX_JSON_DEPTH) and validate."""
        try:
            data = parse_json(raw)
        except (TypeError, ValueError) as e:
            raise EnvelopeMalformedError(f"envelope is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signer": self.signer.to_dict(),
            "message": self.message,
            "signature": self.signature.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)


# =============================================================================
# Sign / Verify
# =============================================================================

def recover_signer(message: str, signature: Signature) -> str:
    """
    Recover the EIP-191 personal_sign signer of `message`.

    Raises:
        ValueError, BadSignature, eth_keys ValidationError: Unrecoverable signature
    """
    return Account.recover_message(encode_defunct(text=message), signature=signature.to_hex())


def verify_envelope(envelope: Union[PlaintextEnvelope, Dict[str, Any]]) -> str:
    """
    Check that `envelope.signature` over `envelope.message` recovers `signer.address`.

    Returns:
        Recovered (checksummed) signer address

    Raises:
        EnvelopeMalformedError: Required fields missing
        SignatureMismatchError: Recovery failed or address differs
    """
    if not isinstance(envelope, PlaintextEnvelope):
        envelope = PlaintextEnvelope.from_dict(envelope)

    declared = envelope.signer.address
    try:
        recovered = recover_signer(envelope.message, envelope.signature)
    except (ValueError, BadSignature, EthKeysValidationError):
        raise SignatureMismatchError(declared) from None

    if recovered.lower() != declared.lower():
        raise SignatureMismatchError(declared, recovered)
    return recovered


def build_envelope(
    payload: Any,
    private_key: Union[bytes, str, int],
    account_id: Optional[str] = None,
    address_format: str = ADDRESS_FORMAT_ETHEREUM,
) -> PlaintextEnvelope:
    """
    Canonicalize `payload` and sign it with EIP-191 personal_sign.

    Stands in for the external wallet signer when the submitter holds
    the key locally.
    """
    message = to_canonical_json(payload)
    account = Account.from_key(private_key)
    signed = account.sign_message(encode_defunct(text=message))

    return PlaintextEnvelope(
        signer=SignerInfo(
            address=account.address,
            account_id=account_id,
            address_format=address_format,
            algo=ALGO_EIP191,
        ),
        message=message,
        signature=Signature(r=f"{signed.r:064x}", s=f"{signed.s:064x}", v=signed.v),
    )
