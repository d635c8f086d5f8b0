# kyc_mailbox/config.py
"""
KYC Mailbox: Configuration

Opaque inputs supplied by the deployment: chain endpoint, Mailbox
address, scan start block, per-call block span and an optional trusted
publisher. Values come from constructor arguments or the environment.

Environment:
    RPC_URL                 JSON-RPC endpoint
    MAILBOX_ADDRESS         Mailbox contract (NEXT_PUBLIC_MAILBOX_ADDRESS also read)
    MAILBOX_START_BLOCK     first block worth scanning
    MAX_LOG_BLOCK_SPAN      blocks per eth_getLogs call (default 30)
    TRUSTED_PUBLISHER       only accept attestations sent by this address
    SCAN_TIMEOUT            whole-scan deadline in seconds (default 60)
    SCAN_LOOKBACK_BLOCKS    range scanned when no start block is set
    SCAN_ON_WINDOW_ERROR    "skip" (default) or "abort"
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_MAX_SPAN = 30
DEFAULT_TIMEOUT = 60.0
DEFAULT_LOOKBACK_BLOCKS = 50_000


class WindowErrorPolicy(Enum):
    """What a scan does when one window's log query fails."""
    SKIP = "skip"
    ABORT = "abort"


def _env_int(env: Mapping[str, str], name: str) -> Optional[int]:
    raw = env.get(name, "").strip()
    if not raw:
        return None
    try:
        if raw[:2] in ("0x", "0X"):
            return int(raw[2:], 16)
        return int(raw, 10)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(env: Mapping[str, str], name: str) -> Optional[float]:
    raw = env.get(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


# =============================================================================
# ScanConfig
# =============================================================================

@dataclass(frozen=True)
class ScanConfig:
    """
    Settings for ProofScanner.

    Attributes:
        mailbox_address: Mailbox contract address
        start_block: Oldest block to scan (None = head - lookback_blocks + 1)
        max_span: Maximum blocks per log query
        trusted_publisher: Restrict matches to events sent by this address
        timeout: Whole-scan deadline in seconds
        lookback_blocks: Range covered when start_block is None
        on_window_error: Policy for a failed window query
        rpc_url: Endpoint used by the CLI to build a provider
    """
    mailbox_address: str
    start_block: Optional[int] = None
    max_span: int = DEFAULT_MAX_SPAN
    trusted_publisher: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    lookback_blocks: int = DEFAULT_LOOKBACK_BLOCKS
    on_window_error: WindowErrorPolicy = WindowErrorPolicy.SKIP
    rpc_url: Optional[str] = None

    def __post_init__(self):
        if self.max_span < 1:
            raise ValueError("max_span must be >= 1")
        if self.start_block is not None and self.start_block < 0:
            raise ValueError("start_block must be >= 0")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.lookback_blocks < 1:
            raise ValueError("lookback_blocks must be >= 1")
        if not isinstance(self.on_window_error, WindowErrorPolicy):
            object.__setattr__(
                self, "on_window_error", WindowErrorPolicy(self.on_window_error)
            )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> ScanConfig:
        """Build from environment variables; keyword overrides win."""
        env = os.environ if env is None else env

        mailbox = env.get("MAILBOX_ADDRESS") or env.get("NEXT_PUBLIC_MAILBOX_ADDRESS")
        values = {
            "mailbox_address": mailbox,
            "start_block": _env_int(env, "MAILBOX_START_BLOCK"),
            "max_span": _env_int(env, "MAX_LOG_BLOCK_SPAN"),
            "trusted_publisher": env.get("TRUSTED_PUBLISHER") or None,
            "timeout": _env_float(env, "SCAN_TIMEOUT"),
            "lookback_blocks": _env_int(env, "SCAN_LOOKBACK_BLOCKS"),
            "on_window_error": env.get("SCAN_ON_WINDOW_ERROR", "").strip().lower() or None,
            "rpc_url": env.get("RPC_URL") or None,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        values = {k: v for k, v in values.items() if v is not None}

        if "mailbox_address" not in values:
            raise ValueError("MAILBOX_ADDRESS is not set")
        return cls(**values)


# =============================================================================
# MailboxConfig
# =============================================================================

@dataclass(frozen=True)
class MailboxConfig:
    """
    Settings for publishing attestations.

    Attributes:
        rpc_url: JSON-RPC endpoint
        mailbox_address: Mailbox contract address
        chain_id: Chain ID (read from the node when None)
        gas_limit: Gas limit per publish transaction
        receipt_timeout: Seconds to wait for a receipt
    """
    rpc_url: str
    mailbox_address: str
    chain_id: Optional[int] = None
    gas_limit: int = 500_000
    receipt_timeout: float = 120.0

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> MailboxConfig:
        env = os.environ if env is None else env
        rpc_url = env.get("RPC_URL") or env.get("NEXT_PUBLIC_CHAIN_RPC")
        mailbox = env.get("MAILBOX_ADDRESS") or env.get("MAILBOX_CONTRACT_ADDRESS")
        if not rpc_url or not mailbox:
            raise ValueError("RPC_URL and MAILBOX_ADDRESS must be set")
        return cls(
            rpc_url=rpc_url,
            mailbox_address=mailbox,
            chain_id=_env_int(env, "CHAIN_ID"),
        )
