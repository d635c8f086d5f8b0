# kyc_mailbox/pipeline.py
"""
KYC Mailbox: Submission Pipeline

Wires the components into the two halves of a submission.

Submitter:
    payload -> canonical JSON -> EIP-191 sign -> envelope JSON -> seal -> base64url

Provider:
    base64(url) -> open -> PlaintextEnvelope -> verify signer -> select tier
        -> (attest) Mailbox.sendJson(to=signer, schema=tier, json=signature hex)

The recipient private key comes from an external custody service; this
module only receives it as an argument and never stores it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional, Union

from .block.mailbox import MailboxSender, PublishReceipt
from .cryptography.ecies import AadInput, open_text, seal_to_text
from .cryptography.keys import PrivateKeyInput, PublicKeyInput, RandomSource
from .envelope.signer import PlaintextEnvelope, build_envelope, verify_envelope
from .schema import select_schema


logger = logging.getLogger("kyc-mailbox.pipeline")


@dataclass(frozen=True)
class Attestation:
    """
    A verified, decrypted submission ready to publish.

    Attributes:
        signer: Recovered signer address (checksummed)
        schema: Selected tier tag
        message: Canonical JSON the signer signed
        signature_hex: 0x || r || s || v
    """
    signer: str
    schema: str
    message: str
    signature_hex: str


def prepare_submission(
    payload: Any,
    signer_private_key: Union[bytes, str, int],
    recipient_public_key: PublicKeyInput,
    aad: AadInput = None,
    account_id: Optional[str] = None,
    random_bytes: RandomSource = os.urandom,
) -> str:
    """
    Sign `payload` and seal it for the recipient.

    Returns:
        base64url sealed envelope
    """
    envelope = build_envelope(payload, signer_private_key, account_id=account_id)
    plaintext = envelope.to_json().encode("utf-8")
    return seal_to_text(recipient_public_key, plaintext, aad, random_bytes)


def process_submission(
    sealed_text: str,
    recipient_private_key: PrivateKeyInput,
    aad: AadInput = None,
    fallback_schema: Optional[str] = None,
) -> Attestation:
    """
    Open, validate and verify a sealed submission.

    Raises:
        FormatError, KeyFormatError, AuthenticationError: Opening failed
        EnvelopeMalformedError: Decrypted JSON lacks required fields
        SignatureMismatchError: Signature does not recover the declared signer
    """
    plaintext = open_text(sealed_text, recipient_private_key, aad)
    envelope = PlaintextEnvelope.from_json(plaintext)
    signer = verify_envelope(envelope)
    schema = select_schema(envelope.message, fallback_schema)

    logger.info(f"Verified submission from {signer}, tier {schema}")
    return Attestation(
        signer=signer,
        schema=schema,
        message=envelope.message,
        signature_hex=envelope.signature.to_hex(),
    )


def attest(
    sealed_text: str,
    recipient_private_key: PrivateKeyInput,
    mailbox: MailboxSender,
    aad: AadInput = None,
    to: Optional[str] = None,
) -> PublishReceipt:
    """
    process_submission() then publish the attestation.

    The event is addressed to `to`, defaulting to the recovered signer.
    The published JSON body is the signature recovery string, so the
    chain carries proof of consent without any form data.
    """
    attestation = process_submission(sealed_text, recipient_private_key, aad)
    return mailbox.send_json(
        to=to or attestation.signer,
        schema=attestation.schema,
        json_text=attestation.signature_hex,
    )
