# tests/test_cli.py
"""Command line entry points (no network)."""

import json

import pytest

from kyc_mailbox import cli
from kyc_mailbox.block.mailbox import MockMailbox
from kyc_mailbox.cryptography.keys import public_key_from_private

ENV_VARS = (
    "RPC_URL",
    "MAILBOX_ADDRESS",
    "NEXT_PUBLIC_MAILBOX_ADDRESS",
    "MAILBOX_START_BLOCK",
    "MAX_LOG_BLOCK_SPAN",
    "TRUSTED_PUBLISHER",
    "SCAN_TIMEOUT",
    "SCAN_LOOKBACK_BLOCKS",
    "SCAN_ON_WINDOW_ERROR",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_normalize_key(capsys):
    compressed = public_key_from_private("0x" + "11" * 32, compressed=True)
    assert cli.main(["normalize-key", compressed.hex()]) == 0
    out = capsys.readouterr().out.strip()
    assert out == "0x" + public_key_from_private("0x" + "11" * 32).hex()


def test_normalize_bad_key(capsys):
    assert cli.main(["normalize-key", "0x1234"]) == 2
    assert "Error" in capsys.readouterr().err


def test_schema(capsys):
    assert cli.main(["schema", '{"form":{"ssn":"1"}}']) == 0
    assert capsys.readouterr().out.strip() == "kyc-level-2"

    assert cli.main(["schema", "nope", "--fallback", "kyc-level-0"]) == 0
    assert capsys.readouterr().out.strip() == "kyc-level-0"


def test_verify_without_mailbox(capsys):
    assert cli.main(["verify", "0x" + "11" * 20, "--rpc-url", "http://localhost:8545"]) == 2
    out = json.loads(capsys.readouterr().out)
    assert out["ok"] is False


def test_verify_without_rpc(capsys):
    assert cli.main(["verify", "0x" + "11" * 20, "--mailbox", "0x" + "4d" * 20]) == 2
    assert "RPC_URL" in json.loads(capsys.readouterr().out)["error"]


def _patch_provider(monkeypatch, provider):
    monkeypatch.setattr(cli, "Web3LogProvider", lambda rpc_url: provider)


def test_verify_attested(monkeypatch, capsys, signer_address):
    mailbox = MockMailbox()
    mailbox.send_json(signer_address, "kyc-level-2", "0xsig")
    _patch_provider(monkeypatch, mailbox)
    monkeypatch.setenv("RPC_URL", "http://localhost:8545")
    monkeypatch.setenv("MAILBOX_ADDRESS", mailbox.mailbox_address)

    assert cli.main(["verify", signer_address, "--start-block", "0"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["ok"] is True
    assert out["isVerified"] is True
    assert out["level"] == "kyc-level-2"


def test_verify_not_attested(monkeypatch, capsys, signer_address):
    mailbox = MockMailbox(head=100)
    _patch_provider(monkeypatch, mailbox)
    monkeypatch.setenv("RPC_URL", "http://localhost:8545")

    argv = ["verify", signer_address, "--mailbox", mailbox.mailbox_address, "--max-span", "50"]
    assert cli.main(argv) == 1
    out = json.loads(capsys.readouterr().out)
    assert out["isVerified"] is False
    assert out["windowsScanned"] == 3


def test_verify_invalid_address(monkeypatch, capsys):
    _patch_provider(monkeypatch, MockMailbox())
    monkeypatch.setenv("RPC_URL", "http://localhost:8545")
    monkeypatch.setenv("MAILBOX_ADDRESS", "0x" + "4d" * 20)

    assert cli.main(["verify", "0x123"]) == 2
    assert "Invalid EVM address" in json.loads(capsys.readouterr().out)["error"]


def test_verify_abort_on_error(monkeypatch, capsys, signer_address):
    mailbox = MockMailbox(head=10)
    mailbox.fail_when = lambda f: True
    _patch_provider(monkeypatch, mailbox)
    monkeypatch.setenv("RPC_URL", "http://localhost:8545")
    monkeypatch.setenv("MAILBOX_ADDRESS", mailbox.mailbox_address)

    assert cli.main(["verify", signer_address, "--start-block", "0", "--abort-on-error"]) == 2
    assert cli.main(["verify", signer_address, "--start-block", "0"]) == 1
