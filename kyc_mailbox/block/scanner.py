# kyc_mailbox/block/scanner.py
"""
KYC Mailbox Block: Proof Scanner

Answers "has address X been attested, and at what level?" from Mailbox
logs alone.

Algorithm:
    head = provider.block_number()
    walk backward from head to start_block in windows of <= max_span blocks
    per window, concurrently:
        from-query   topics [event_sigs, X]
        to-query     topics [event_sigs, publisher|None, X]
    merged = from-logs + to-logs
    first window with any log wins: decode merged[0], schema -> level

Ordering:
    The most recent window containing a match wins. Inside that window the
    merged list is in query order (from-query first), not chronological
    order, so `level` is taken from *a* matching event of that window, not
    necessarily the newest one.

Trusted publisher:
    The to-query also pins topic1 (from) to the publisher. The from-query
    can only match when X is the publisher, so it is skipped otherwise.

Failure policy (per window):
    SKIP   (default) log a warning, record the window, keep scanning older
    ABORT  raise ScanError
    Reading the head always raises ScanError on failure.

Resource bounds:
    - start_block=None scans at most `lookback_blocks` below head, never
      full history.
    - `timeout` is a whole-scan deadline; expiry raises ScanTimeoutError.
      The per-scan worker pool is shut down with pending work cancelled.
      A request already in flight finishes under the provider's own HTTP
      timeout and its thread exits.

Usage:
    scanner = ProofScanner(Web3LogProvider(rpc_url), ScanConfig(mailbox_address=MAILBOX))
    result = scanner.verify("0x...")
    if result.verified:
        print(result.level)
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from ..config import ScanConfig, WindowErrorPolicy
from ..errors import ScanError, ScanTimeoutError
from .events import (
    EVENT_TOPICS,
    EventDecodeError,
    MailboxEvent,
    address_topic,
    decode_log,
    validate_address,
)
from .provider import LogProvider


logger = logging.getLogger("kyc-mailbox.scan")

# Level reported when a matching log cannot be decoded
FALLBACK_LEVEL = "1"


# =============================================================================
# Types
# =============================================================================

@dataclass
class ScanResult:
    """
    Outcome of a verification scan.

    Attributes:
        address: Queried address (checksummed)
        verified: True if any Mailbox event names the address
        level: Attestation schema of the matching event
        event: Decoded matching event (None if decoding failed)
        head: Chain height when the scan started
        start_block: Oldest block covered
        windows_scanned: Window round-trips performed
        skipped_windows: (fromBlock, toBlock) windows lost to RPC errors
    """
    address: str
    verified: bool
    level: Optional[str] = None
    event: Optional[MailboxEvent] = None
    head: Optional[int] = None
    start_block: Optional[int] = None
    windows_scanned: int = 0
    skipped_windows: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        """True when every window in range was actually read."""
        return not self.skipped_windows

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "address": self.address,
            "isVerified": self.verified,
            "head": self.head,
            "startBlock": self.start_block,
            "windowsScanned": self.windows_scanned,
        }
        if self.level is not None:
            out["level"] = self.level
        if self.event is not None:
            out["event"] = self.event.to_dict()
        if self.skipped_windows:
            out["skippedWindows"] = [list(w) for w in self.skipped_windows]
        return out


# =============================================================================
# ProofScanner
# =============================================================================

class ProofScanner:
    """
    Bounded backward scan over Mailbox logs.

    Stateless between calls; one scanner may serve concurrent verify() calls.
    """

    def __init__(self, provider: LogProvider, config: ScanConfig):
        """
        Args:
            provider: Read-only log source
            config: Mailbox address, range, span, policy, deadline

        Raises:
            ValidationError: Mailbox or trusted publisher address malformed
        """
        self._provider = provider
        self._config = config
        self._mailbox = validate_address(config.mailbox_address, "mailbox address")
        self._publisher = (
            validate_address(config.trusted_publisher, "trusted publisher")
            if config.trusted_publisher
            else None
        )

    @property
    def config(self) -> ScanConfig:
        return self._config

    # =========================================================================
    # Range
    # =========================================================================

    def resolve_start(self, head: int) -> int:
        """Oldest block to scan for a given head."""
        if self._config.start_block is not None:
            return self._config.start_block
        return max(0, head - self._config.lookback_blocks + 1)

    def windows(self, head: int, start: int) -> Iterator[Tuple[int, int]]:
        """(fromBlock, toBlock) pairs from head down to start, newest first."""
        to_block = head
        while to_block >= start:
            span = min(self._config.max_span, to_block - start + 1)
            from_block = to_block - span + 1
            yield from_block, to_block
            to_block = from_block - 1

    # =========================================================================
    # Filters
    # =========================================================================

    def build_filters(self, address: str, from_block: int, to_block: int) -> List[Dict[str, Any]]:
        """Log filters for one window: from-query (if applicable) then to-query."""
        target = address_topic(address)
        base = {"address": self._mailbox, "fromBlock": from_block, "toBlock": to_block}

        filters = []
        if self._publisher is None or self._publisher == address:
            filters.append({**base, "topics": [list(EVENT_TOPICS), target]})

        sender = address_topic(self._publisher) if self._publisher else None
        filters.append({**base, "topics": [list(EVENT_TOPICS), sender, target]})
        return filters

    # =========================================================================
    # Scan
    # =========================================================================

    @staticmethod
    def _remaining(deadline: float) -> float:
        return deadline - time.monotonic()

    def _await(self, futures: List[Future], deadline: float, what: str) -> None:
        remaining = self._remaining(deadline)
        if remaining <= 0:
            raise ScanTimeoutError(f"scan deadline exceeded before {what}")
        done, pending = wait(futures, timeout=remaining, return_when=FIRST_EXCEPTION)
        failed = any(f.exception() is not None for f in done)
        if pending and not failed:
            raise ScanTimeoutError(f"scan deadline exceeded during {what}")

    def _read_head(self, executor: ThreadPoolExecutor, deadline: float) -> int:
        future = executor.submit(self._provider.block_number)
        self._await([future], deadline, "reading chain head")
        try:
            return int(future.result())
        except Exception as e:
            raise ScanError(f"cannot read chain head: {e}") from e

    def _query_window(
        self,
        executor: ThreadPoolExecutor,
        filters: List[Dict[str, Any]],
        deadline: float,
        window: Tuple[int, int],
    ) -> List[Mapping[str, Any]]:
        futures = [executor.submit(self._provider.get_logs, f) for f in filters]
        self._await(futures, deadline, f"window {window[0]}-{window[1]}")
        for future in futures:
            if future.done() and future.exception() is not None:
                raise future.exception()
        logs: List[Mapping[str, Any]] = []
        for future in futures:
            logs.extend(future.result())
        return logs

    def _result_from_log(self, result: ScanResult, log: Mapping[str, Any]) -> ScanResult:
        result.verified = True
        try:
            event = decode_log(log)
        except EventDecodeError as e:
            logger.warning(f"Matching log for {result.address} did not decode: {e}")
            result.level = FALLBACK_LEVEL
            return result
        result.event = event
        result.level = event.schema or FALLBACK_LEVEL
        return result

    def verify(self, address: str) -> ScanResult:
        """
        Scan for a Mailbox event naming `address`.

        Raises:
            ValidationError: `address` is not 0x + 40 hex (before any RPC)
            ScanError: Head unreadable, or window failure under ABORT
            ScanTimeoutError: Deadline exceeded
        """
        address = validate_address(address)
        config = self._config
        deadline = time.monotonic() + config.timeout

        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="kyc-scan")
        try:
            head = self._read_head(executor, deadline)
            start = self.resolve_start(head)
            result = ScanResult(address=address, verified=False, head=head, start_block=start)

            logger.info(
                f"Scanning {self._mailbox} for {address}: blocks {start}-{head}, "
                f"span {config.max_span}"
            )

            for window in self.windows(head, start):
                filters = self.build_filters(address, *window)
                result.windows_scanned += 1
                try:
                    logs = self._query_window(executor, filters, deadline, window)
                except ScanTimeoutError:
                    raise
                except Exception as e:
                    if config.on_window_error is WindowErrorPolicy.ABORT:
                        raise ScanError(
                            f"log query failed for blocks {window[0]}-{window[1]}: {e}",
                            from_block=window[0],
                            to_block=window[1],
                        ) from e
                    logger.warning(
                        f"Skipping blocks {window[0]}-{window[1]} after RPC error: {e}"
                    )
                    result.skipped_windows.append(window)
                    continue

                if logs:
                    logger.info(
                        f"Found {len(logs)} Mailbox log(s) for {address} "
                        f"in blocks {window[0]}-{window[1]}"
                    )
                    return self._result_from_log(result, logs[0])

            logger.info(
                f"No Mailbox events for {address} after {result.windows_scanned} window(s)"
            )
            return result
        finally:
            executor.shutdown(wait=False, cancel_futures=True)


# =============================================================================
# Functional entry point
# =============================================================================

def verify_address(
    address: str,
    provider: LogProvider,
    mailbox_address: str,
    start_block: Optional[int] = None,
    max_span: int = 30,
    trusted_publisher: Optional[str] = None,
    **config_kwargs,
) -> ScanResult:
    """One-shot ProofScanner(provider, ScanConfig(...)).verify(address)."""
    config = ScanConfig(
        mailbox_address=mailbox_address,
        start_block=start_block,
        max_span=max_span,
        trusted_publisher=trusted_publisher,
        **config_kwargs,
    )
    return ProofScanner(provider, config).verify(address)
