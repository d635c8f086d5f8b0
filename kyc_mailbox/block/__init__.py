# kyc_mailbox/block/__init__.py
"""
KYC Mailbox Block: Chain Integration Layer

Reads and writes the external Mailbox contract.

Submodules:
    events      Mailbox ABI, topics, log decoding (MailboxEvent)
    provider    Read-only log providers (Web3LogProvider, MockLogProvider)
    scanner     ProofScanner: bounded backward scan for prior attestations
    mailbox     MailboxClient / MockMailbox: publishing attestations

Quick Start:
    from kyc_mailbox.block import ProofScanner, Web3LogProvider
    from kyc_mailbox.config import ScanConfig

    scanner = ProofScanner(
        Web3LogProvider("https://rpc.example.com"),
        ScanConfig(mailbox_address="0x...", start_block=1_000_000),
    )
    result = scanner.verify("0x...")
"""

from .events import (
    MAILBOX_ABI,
    MESSAGE_JSON_TOPIC,
    MESSAGE_KV_TOPIC,
    EVENT_TOPICS,
    EventKind,
    MailboxEvent,
    EventDecodeError,
    decode_log,
    is_address,
    validate_address,
    address_topic,
)

from .provider import (
    LogProvider,
    Web3LogProvider,
    MockLogProvider,
)

from .scanner import (
    FALLBACK_LEVEL,
    ProofScanner,
    ScanResult,
    verify_address,
)

from .mailbox import (
    PublishReceipt,
    MailboxSender,
    MailboxClient,
    MockMailbox,
    check_kv,
)

__all__ = [
    # Events
    "MAILBOX_ABI",
    "MESSAGE_JSON_TOPIC",
    "MESSAGE_KV_TOPIC",
    "EVENT_TOPICS",
    "EventKind",
    "MailboxEvent",
    "EventDecodeError",
    "decode_log",
    "is_address",
    "validate_address",
    "address_topic",

    # Providers
    "LogProvider",
    "Web3LogProvider",
    "MockLogProvider",

    # Scanner
    "FALLBACK_LEVEL",
    "ProofScanner",
    "ScanResult",
    "verify_address",

    # Mailbox
    "PublishReceipt",
    "MailboxSender",
    "MailboxClient",
    "MockMailbox",
    "check_kv",
]
