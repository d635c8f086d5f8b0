#!/usr/bin/env python3
"""
KYC Mailbox Command Line Interface

Usage:
    kyc-mailbox verify <address> [--rpc-url URL] [--mailbox ADDR] [--start-block N]
                                 [--max-span N] [--trusted-publisher ADDR]
                                 [--timeout S] [--abort-on-error]
    kyc-mailbox normalize-key <pubkey-hex>
    kyc-mailbox schema <message-json>

Settings not given as flags are read from the environment (see
kyc_mailbox.config). `verify` exits 0 when attested, 1 when not, 2 on error.
"""

import argparse
import json
import logging
import sys

from .block.provider import Web3LogProvider
from .block.scanner import ProofScanner
from .config import ScanConfig, WindowErrorPolicy
from .cryptography.keys import normalize_public_key
from .errors import KycMailboxError
from .schema import select_schema


def cmd_verify(args) -> int:
    """Scan the Mailbox for an attestation."""
    overrides = {
        "mailbox_address": args.mailbox,
        "start_block": args.start_block,
        "max_span": args.max_span,
        "trusted_publisher": args.trusted_publisher,
        "timeout": args.timeout,
        "rpc_url": args.rpc_url,
    }
    if args.abort_on_error:
        overrides["on_window_error"] = WindowErrorPolicy.ABORT

    try:
        config = ScanConfig.from_env(**overrides)
    except ValueError as e:
        print(json.dumps({"ok": False, "error": str(e)}))
        return 2
    if not config.rpc_url:
        print(json.dumps({"ok": False, "error": "RPC_URL is not set"}))
        return 2

    try:
        scanner = ProofScanner(Web3LogProvider(config.rpc_url), config)
        result = scanner.verify(args.address)
    except KycMailboxError as e:
        print(json.dumps({"ok": False, "error": str(e)}))
        return 2

    print(json.dumps({"ok": True, **result.to_dict()}, indent=2))
    return 0 if result.verified else 1


def cmd_normalize_key(args) -> int:
    """Print the canonical uncompressed form of a public key."""
    try:
        print(normalize_public_key(args.key))
    except KycMailboxError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    return 0


def cmd_schema(args) -> int:
    """Print the tier a signed message would be published under."""
    print(select_schema(args.message, args.fallback))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kyc-mailbox",
        description="Sealed KYC submissions and on-chain attestation checks",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("verify", help="Check whether an address has been attested")
    p.add_argument("address")
    p.add_argument("--rpc-url")
    p.add_argument("--mailbox", help="Mailbox contract address")
    p.add_argument("--start-block", type=int)
    p.add_argument("--max-span", type=int)
    p.add_argument("--trusted-publisher")
    p.add_argument("--timeout", type=float)
    p.add_argument("--abort-on-error", action="store_true",
                   help="Fail the scan on the first RPC error instead of skipping the window")
    p.set_defaults(func=cmd_verify)

    p = sub.add_parser("normalize-key", help="Canonical secp256k1 public key form")
    p.add_argument("key")
    p.set_defaults(func=cmd_normalize_key)

    p = sub.add_parser("schema", help="Attestation tier for a signed message")
    p.add_argument("message")
    p.add_argument("--fallback")
    p.set_defaults(func=cmd_schema)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
