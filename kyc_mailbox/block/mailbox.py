# kyc_mailbox/block/mailbox.py
"""
KYC Mailbox Block: Mailbox Publishing

Python interface to the Mailbox contract's write side:

    sendJson(address to, string schema, string json)
    sendKV(address to, string schema, string[] fieldKeys, string[] fieldValues)

The contract reverts sendKV when the arrays differ in length; calls built
here are checked up front so a bad call never costs gas.

Implementations:
    MailboxClient   web3.py + eth_account signed transactions
    MockMailbox     in-memory chain: publishes become ABI-encoded logs
                    served through the LogProvider interface

Usage:
    client = MailboxClient(MailboxConfig.from_env(), private_key="0x...")
    receipt = client.send_json(to=user_address, schema="kyc-level-2", json_text=sig_hex)
"""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

from eth_account import Account
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from ..config import MailboxConfig
from ..errors import MailboxError
from .events import (
    MAILBOX_ABI,
    EventKind,
    build_log,
    encode_message_json_data,
    encode_message_kv_data,
    validate_address,
)
from .provider import MockLogProvider


logger = logging.getLogger("kyc-mailbox.publish")

LENGTH_MISMATCH = "keys/values length mismatch"


# =============================================================================
# Types
# =============================================================================

@dataclass(frozen=True)
class PublishReceipt:
    """Outcome of a Mailbox publish."""
    transaction_hash: str
    block_number: int
    schema: str
    recipient: str


def check_kv(field_keys: Sequence[str], field_values: Sequence[str]) -> None:
    """
    Reject a sendKV call the contract would revert.

    Raises:
        MailboxError: Lengths differ
    """
    if len(field_keys) != len(field_values):
        raise MailboxError(
            f"{LENGTH_MISMATCH}: {len(field_keys)} keys, {len(field_values)} values"
        )


class MailboxSender(ABC):
    """Write side of the Mailbox."""

    @abstractmethod
    def send_json(self, to: str, schema: str, json_text: str) -> PublishReceipt:
        pass

    @abstractmethod
    def send_kv(
        self,
        to: str,
        schema: str,
        field_keys: Sequence[str],
        field_values: Sequence[str],
    ) -> PublishReceipt:
        pass


# =============================================================================
# MailboxClient
# =============================================================================

class MailboxClient(MailboxSender):
    """Mailbox contract client signing with a local key."""

    def __init__(
        self,
        config: MailboxConfig,
        private_key: str,
        w3: Optional[Web3] = None,
    ):
        """
        Args:
            config: Endpoint, contract address, gas settings
            private_key: Publisher key (hex)
            w3: Pre-built Web3 instance (built from config.rpc_url if None)
        """
        self._config = config
        self._w3 = w3 or Web3(Web3.HTTPProvider(config.rpc_url))
        self._contract = self._w3.eth.contract(
            address=validate_address(config.mailbox_address, "mailbox address"),
            abi=MAILBOX_ABI,
        )
        self._account = Account.from_key(private_key)
        self._chain_id = config.chain_id

    @property
    def publisher_address(self) -> str:
        return self._account.address

    def _chain(self) -> int:
        if self._chain_id is None:
            self._chain_id = self._w3.eth.chain_id
        return self._chain_id

    def _transact(self, call, schema: str, to: str) -> PublishReceipt:
        try:
            tx = call.build_transaction({
                "from": self._account.address,
                "chainId": self._chain(),
                "nonce": self._w3.eth.get_transaction_count(self._account.address),
                "gas": self._config.gas_limit,
                "gasPrice": self._w3.eth.gas_price,
            })
            signed = self._account.sign_transaction(tx)
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._config.receipt_timeout
            )
        except TimeExhausted as e:
            raise MailboxError(f"no receipt within {self._config.receipt_timeout}s") from e
        except (Web3Exception, ValueError) as e:
            raise MailboxError(f"publish failed: {e}") from e

        tx_hex = Web3.to_hex(tx_hash)
        if receipt["status"] != 1:
            raise MailboxError(f"Transaction failed: {tx_hex}")

        logger.info(f"Published {schema} to {to} in block {receipt['blockNumber']} ({tx_hex})")
        return PublishReceipt(
            transaction_hash=tx_hex,
            block_number=receipt["blockNumber"],
            schema=schema,
            recipient=to,
        )

    def send_json(self, to: str, schema: str, json_text: str) -> PublishReceipt:
        to = validate_address(to, "recipient")
        call = self._contract.functions.sendJson(to, schema, json_text)
        return self._transact(call, schema, to)

    def send_kv(
        self,
        to: str,
        schema: str,
        field_keys: Sequence[str],
        field_values: Sequence[str],
    ) -> PublishReceipt:
        to = validate_address(to, "recipient")
        check_kv(field_keys, field_values)
        call = self._contract.functions.sendKV(to, schema, list(field_keys), list(field_values))
        return self._transact(call, schema, to)


# =============================================================================
# MockMailbox (for testing without blockchain)
# =============================================================================

class MockMailbox(MockLogProvider, MailboxSender):
    """
    In-memory Mailbox.

    Every publish mines one block holding one log, so scans see the same
    shape a node would return.
    """

    def __init__(
        self,
        mailbox_address: str = "0x" + "4d" * 20,
        sender: str = "0x" + "1" * 40,
        head: int = 0,
    ):
        super().__init__(head=head)
        self.mailbox_address = validate_address(mailbox_address, "mailbox address")
        self._sender = validate_address(sender, "sender")

    def set_account(self, address: str) -> None:
        """Set the msg.sender for subsequent publishes."""
        self._sender = validate_address(address, "sender")

    def mine(self, blocks: int = 1) -> int:
        """Advance the head without emitting logs."""
        self.head += blocks
        return self.head

    def _emit(self, kind: EventKind, to: str, schema: str, data: bytes) -> PublishReceipt:
        block = self.head + 1
        tx_hash = hashlib.sha256(
            b"mock-mailbox-tx" + block.to_bytes(8, "big") + data
        ).digest()
        self.add_log(build_log(
            kind=kind,
            sender=self._sender,
            recipient=to,
            data=data,
            mailbox_address=self.mailbox_address,
            block_number=block,
            transaction_hash=tx_hash,
        ))
        return PublishReceipt(
            transaction_hash="0x" + tx_hash.hex(),
            block_number=block,
            schema=schema,
            recipient=to,
        )

    def send_json(self, to: str, schema: str, json_text: str) -> PublishReceipt:
        to = validate_address(to, "recipient")
        return self._emit(EventKind.MESSAGE_JSON, to, schema,
                          encode_message_json_data(schema, json_text))

    def send_kv(
        self,
        to: str,
        schema: str,
        field_keys: Sequence[str],
        field_values: Sequence[str],
    ) -> PublishReceipt:
        to = validate_address(to, "recipient")
        check_kv(field_keys, field_values)
        return self._emit(EventKind.MESSAGE_KV, to, schema,
                          encode_message_kv_data(schema, field_keys, field_values))
