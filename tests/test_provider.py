# tests/test_provider.py
"""
Web3LogProvider tests

Covers:
- Filter pass-through to w3.eth.get_logs (address, block range, topics)
- Head reads
- HTTPProvider construction with a per-request timeout
- Scanner driven end to end through a mocked web3 client
"""

from unittest.mock import MagicMock

import pytest
from web3 import Web3

from kyc_mailbox.block import provider as provider_module
from kyc_mailbox.block.events import (
    EVENT_TOPICS,
    EventKind,
    address_topic,
    build_log,
    encode_message_json_data,
)
from kyc_mailbox.block.provider import Web3LogProvider
from kyc_mailbox.block.scanner import ProofScanner
from kyc_mailbox.config import ScanConfig

MAILBOX_ADDRESS = "0x" + "4d" * 20


def _mock_w3(head=123, logs=None):
    w3 = MagicMock()
    w3.eth.block_number = head
    w3.eth.get_logs.return_value = list(logs or [])
    return w3


# =============================================================================
# Reads
# =============================================================================

def test_block_number_is_int():
    provider = Web3LogProvider(w3=_mock_w3(head=123))
    assert provider.block_number() == 123
    assert type(provider.block_number()) is int


def test_filters_pass_through_unchanged(signer_address, publisher_address):
    w3 = _mock_w3()
    provider = Web3LogProvider(w3=w3)
    scanner = ProofScanner(provider, ScanConfig(
        mailbox_address=MAILBOX_ADDRESS,
        trusted_publisher=publisher_address,
    ))

    filters = scanner.build_filters(signer_address, 90, 99)
    assert len(filters) == 1
    assert provider.get_logs(filters[0]) == []

    sent = w3.eth.get_logs.call_args.args[0]
    assert sent == {
        "address": Web3.to_checksum_address(MAILBOX_ADDRESS),
        "fromBlock": 90,
        "toBlock": 99,
        "topics": [list(EVENT_TOPICS), address_topic(publisher_address),
                   address_topic(signer_address)],
    }
    assert type(sent) is dict


def test_get_logs_returns_list():
    log = {"blockNumber": 5, "topics": []}
    w3 = _mock_w3(logs=[log])
    w3.eth.get_logs.return_value = iter([log])
    assert Web3LogProvider(w3=w3).get_logs({"fromBlock": 0, "toBlock": 5}) == [log]


# =============================================================================
# Construction
# =============================================================================

def test_http_provider_gets_request_timeout(monkeypatch):
    fake_web3 = MagicMock()
    monkeypatch.setattr(provider_module, "Web3", fake_web3)

    provider = Web3LogProvider(rpc_url="http://node.test:8545", request_timeout=2.5)

    fake_web3.HTTPProvider.assert_called_once_with(
        "http://node.test:8545", request_kwargs={"timeout": 2.5}
    )
    fake_web3.assert_called_once_with(fake_web3.HTTPProvider.return_value)
    assert provider.w3 is fake_web3.return_value


def test_default_request_timeout(monkeypatch):
    fake_web3 = MagicMock()
    monkeypatch.setattr(provider_module, "Web3", fake_web3)

    Web3LogProvider(rpc_url="http://node.test:8545")
    assert fake_web3.HTTPProvider.call_args.kwargs == {"request_kwargs": {"timeout": 10.0}}


@pytest.mark.parametrize("rpc_url", [None, ""])
def test_requires_url_or_client(rpc_url):
    with pytest.raises(ValueError):
        Web3LogProvider(rpc_url=rpc_url)


# =============================================================================
# Scanner over web3
# =============================================================================

def test_scan_through_web3_client(signer_address, publisher_address):
    log = build_log(
        kind=EventKind.MESSAGE_JSON,
        sender=publisher_address,
        recipient=signer_address,
        data=encode_message_json_data("kyc-level-2", "0xsig"),
        mailbox_address=MAILBOX_ADDRESS,
        block_number=20,
    )
    w3 = _mock_w3(head=25, logs=[log])
    scanner = ProofScanner(Web3LogProvider(w3=w3), ScanConfig(
        mailbox_address=MAILBOX_ADDRESS,
        start_block=0,
        max_span=10,
        trusted_publisher=publisher_address,
    ))

    result = scanner.verify(signer_address)

    assert result.verified
    assert result.level == "kyc-level-2"
    assert result.head == 25
    sent = w3.eth.get_logs.call_args.args[0]
    assert (sent["fromBlock"], sent["toBlock"]) == (16, 25)
    assert sent["address"] == Web3.to_checksum_address(MAILBOX_ADDRESS)
