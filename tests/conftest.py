# tests/conftest.py
"""Shared keys and chain fixtures."""

import pytest
from eth_account import Account

from kyc_mailbox.block.mailbox import MockMailbox
from kyc_mailbox.cryptography.keys import public_key_from_private


# Fixed test keys (never use outside tests)
RECIPIENT_SK_HEX = "0x" + "11" * 32
SIGNER_SK_HEX = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
OTHER_SK_HEX = "0x" + "22" * 32
PUBLISHER_SK_HEX = "0x" + "33" * 32

MAILBOX_ADDRESS = "0x" + "4d" * 20


@pytest.fixture
def recipient_sk():
    return RECIPIENT_SK_HEX


@pytest.fixture
def recipient_pk():
    """65-byte uncompressed public key."""
    return public_key_from_private(RECIPIENT_SK_HEX, compressed=False)


@pytest.fixture
def recipient_pk_compressed():
    return public_key_from_private(RECIPIENT_SK_HEX, compressed=True)


@pytest.fixture
def signer_sk():
    return SIGNER_SK_HEX


@pytest.fixture
def signer_address():
    return Account.from_key(SIGNER_SK_HEX).address


@pytest.fixture
def other_address():
    return Account.from_key(OTHER_SK_HEX).address


@pytest.fixture
def publisher_address():
    return Account.from_key(PUBLISHER_SK_HEX).address


@pytest.fixture
def kyc_payload():
    return {
        "form": {
            "name": "Jånë Dœ",
            "ssn": "123-45-6789",
            "homeAddress": "1 Main St",
            "country": "US",
            "state": "CA",
            "city": "San Francisco",
        },
        "submittedAt": 1735689600,
    }


@pytest.fixture
def mailbox(publisher_address):
    return MockMailbox(mailbox_address=MAILBOX_ADDRESS, sender=publisher_address)
