# kyc_mailbox/block/events.py
"""
KYC Mailbox Block: Mailbox Event ABI

The Mailbox contract is an external, append-only log. Two events:

    MessageJSON(address indexed from, address indexed to, string schema, string json)
    MessageKV(address indexed from, address indexed to, string schema,
              string[] fieldKeys, string[] fieldValues)

Log layout:
    topics[0]   keccak256(event signature)
    topics[1]   from, left-padded to 32 bytes
    topics[2]   to, left-padded to 32 bytes
    data        ABI-encoded non-indexed arguments

The contract rejects sendKV calls with mismatched key/value lengths, but
logs read from a chain are foreign data: decoding never assumes the two
arrays line up.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from ..errors import ValidationError


# =============================================================================
# Constants
# =============================================================================

MESSAGE_JSON_SIGNATURE = "MessageJSON(address,address,string,string)"
MESSAGE_KV_SIGNATURE = "MessageKV(address,address,string,string[],string[])"

MESSAGE_JSON_TOPIC = Web3.to_hex(Web3.keccak(text=MESSAGE_JSON_SIGNATURE))
MESSAGE_KV_TOPIC = Web3.to_hex(Web3.keccak(text=MESSAGE_KV_SIGNATURE))

EVENT_TOPICS = [MESSAGE_JSON_TOPIC, MESSAGE_KV_TOPIC]

_JSON_DATA_TYPES = ["string", "string"]
_KV_DATA_TYPES = ["string", "string[]", "string[]"]

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def _event_abi(name: str, extra: List[Tuple[str, str]]) -> Dict[str, Any]:
    inputs = [
        {"indexed": True, "name": "from", "type": "address"},
        {"indexed": True, "name": "to", "type": "address"},
        {"indexed": False, "name": "schema", "type": "string"},
    ]
    inputs += [{"indexed": False, "name": n, "type": t} for n, t in extra]
    return {"anonymous": False, "inputs": inputs, "name": name, "type": "event"}


MAILBOX_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "schema", "type": "string"},
            {"name": "json", "type": "string"},
        ],
        "name": "sendJson",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "schema", "type": "string"},
            {"name": "fieldKeys", "type": "string[]"},
            {"name": "fieldValues", "type": "string[]"},
        ],
        "name": "sendKV",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    _event_abi("MessageJSON", [("json", "string")]),
    _event_abi("MessageKV", [("fieldKeys", "string[]"), ("fieldValues", "string[]")]),
]


# =============================================================================
# Address helpers
# =============================================================================

def is_address(value: Any) -> bool:
    """Fixed-width 0x + 40 hex check (no checksum enforcement)."""
    return isinstance(value, str) and bool(_ADDRESS_RE.fullmatch(value))


def validate_address(value: Any, field: str = "address") -> str:
    """
    Return `value` checksummed.

    Raises:
        ValidationError: Not 0x followed by 40 hex digits
    """
    if not is_address(value):
        raise ValidationError(f"Invalid EVM {field}: {value!r}")
    return Web3.to_checksum_address(value)


def address_topic(address: str) -> str:
    """Indexed address topic: 12 zero bytes + 20 address bytes."""
    return "0x" + "00" * 12 + validate_address(address)[2:].lower()


def _as_bytes(value: Union[bytes, bytearray, str]) -> bytes:
    if isinstance(value, str):
        return bytes.fromhex(value[2:] if value[:2] in ("0x", "0X") else value)
    return bytes(value)


def _topic_address(topic: Union[bytes, str]) -> str:
    raw = _as_bytes(topic)
    if len(raw) != 32:
        raise EventDecodeError("address topic must be 32 bytes")
    return Web3.to_checksum_address(raw[-20:])


# =============================================================================
# Types
# =============================================================================

class EventDecodeError(ValueError):
    """Log does not decode as a Mailbox event."""
    pass


class EventKind(Enum):
    MESSAGE_JSON = "MessageJSON"
    MESSAGE_KV = "MessageKV"


@dataclass(frozen=True)
class MailboxEvent:
    """
    Decoded Mailbox event.

    `json` is set for MessageJSON; `field_keys` / `field_values` for MessageKV.
    """
    kind: EventKind
    sender: str
    recipient: str
    schema: str
    json: Optional[str] = None
    field_keys: Tuple[str, ...] = ()
    field_values: Tuple[str, ...] = ()
    block_number: Optional[int] = None
    transaction_hash: Optional[str] = None
    log_index: Optional[int] = None

    @property
    def fields(self) -> Dict[str, str]:
        """Key/value pairs; unmatched trailing entries are dropped."""
        return dict(zip(self.field_keys, self.field_values))

    @property
    def fields_consistent(self) -> bool:
        return len(self.field_keys) == len(self.field_values)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "event": self.kind.value,
            "from": self.sender,
            "to": self.recipient,
            "schema": self.schema,
            "blockNumber": self.block_number,
            "transactionHash": self.transaction_hash,
        }
        if self.kind is EventKind.MESSAGE_JSON:
            out["json"] = self.json
        else:
            out["fieldKeys"] = list(self.field_keys)
            out["fieldValues"] = list(self.field_values)
        return out


# =============================================================================
# Decode / Encode
# =============================================================================

def decode_log(log: Mapping[str, Any]) -> MailboxEvent:
    """
    Decode a raw log (web3 AttributeDict or plain dict).

    Raises:
        EventDecodeError: Unknown topic, short topics, or bad ABI data
    """
    try:
        topics = [_as_bytes(t) for t in log["topics"]]
        data = _as_bytes(log.get("data", b""))
    except (KeyError, TypeError, ValueError) as e:
        raise EventDecodeError(f"malformed log: {e}") from e

    if len(topics) < 3:
        raise EventDecodeError("Mailbox events carry three topics")

    topic0 = "0x" + topics[0].hex()
    try:
        if topic0 == MESSAGE_JSON_TOPIC:
            schema, json_text = abi_decode(_JSON_DATA_TYPES, data)
            extra = {"json": json_text}
            kind = EventKind.MESSAGE_JSON
        elif topic0 == MESSAGE_KV_TOPIC:
            schema, keys, values = abi_decode(_KV_DATA_TYPES, data)
            extra = {"field_keys": tuple(keys), "field_values": tuple(values)}
            kind = EventKind.MESSAGE_KV
        else:
            raise EventDecodeError(f"unknown event topic {topic0}")
    except (DecodingError, UnicodeDecodeError, OverflowError) as e:
        raise EventDecodeError(f"cannot decode {topic0} data: {e}") from e

    tx_hash = log.get("transactionHash")
    return MailboxEvent(
        kind=kind,
        sender=_topic_address(topics[1]),
        recipient=_topic_address(topics[2]),
        schema=schema,
        block_number=log.get("blockNumber"),
        transaction_hash="0x" + _as_bytes(tx_hash).hex() if tx_hash is not None else None,
        log_index=log.get("logIndex"),
        **extra,
    )


def encode_message_json_data(schema: str, json_text: str) -> bytes:
    return abi_encode(_JSON_DATA_TYPES, [schema, json_text])


def encode_message_kv_data(
    schema: str,
    field_keys: Sequence[str],
    field_values: Sequence[str],
) -> bytes:
    return abi_encode(_KV_DATA_TYPES, [schema, list(field_keys), list(field_values)])


def build_log(
    kind: EventKind,
    sender: str,
    recipient: str,
    data: bytes,
    mailbox_address: str,
    block_number: int,
    log_index: int = 0,
    transaction_hash: Optional[bytes] = None,
) -> Dict[str, Any]:
    """Raw log dict shaped like eth_getLogs output."""
    topic0 = MESSAGE_JSON_TOPIC if kind is EventKind.MESSAGE_JSON else MESSAGE_KV_TOPIC
    return {
        "address": validate_address(mailbox_address, "mailbox address"),
        "topics": [
            _as_bytes(topic0),
            _as_bytes(address_topic(sender)),
            _as_bytes(address_topic(recipient)),
        ],
        "data": data,
        "blockNumber": block_number,
        "logIndex": log_index,
        "transactionHash": transaction_hash,
    }
