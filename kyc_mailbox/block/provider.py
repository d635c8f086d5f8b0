# kyc_mailbox/block/provider.py
"""
KYC Mailbox Block: Read-Only Chain Log Providers

The scanner only needs two reads from a chain:

    block_number()        current head
    get_logs(filter)      eth_getLogs with address / block range / topics

Implementations:
    Web3LogProvider   JSON-RPC via web3.py
    MockLogProvider   in-memory logs with node-like filter semantics,
                      call recording and injectable window failures

Filter format (eth_getLogs):
    {
        "address": "0x...",
        "fromBlock": int,
        "toBlock": int,
        "topics": [topic0 | [alternatives] | None, ...],
    }
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from web3 import Web3


# =============================================================================
# Interface
# =============================================================================

class LogProvider(ABC):
    """Read-only chain log access."""

    @abstractmethod
    def block_number(self) -> int:
        """Current chain height."""
        pass

    @abstractmethod
    def get_logs(self, filter_params: Mapping[str, Any]) -> List[Mapping[str, Any]]:
        """Logs matching an eth_getLogs filter."""
        pass


# =============================================================================
# Web3LogProvider
# =============================================================================

class Web3LogProvider(LogProvider):
    """
    eth_getLogs over web3.py.

    `request_timeout` bounds every HTTP call, so a worker thread blocked
    in a request always finishes.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        w3: Optional[Web3] = None,
        request_timeout: float = 10.0,
    ):
        if w3 is None:
            if not rpc_url:
                raise ValueError("rpc_url or w3 required")
            w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout}))
        self._w3 = w3

    @property
    def w3(self) -> Web3:
        return self._w3

    def block_number(self) -> int:
        return int(self._w3.eth.block_number)

    def get_logs(self, filter_params: Mapping[str, Any]) -> List[Mapping[str, Any]]:
        return list(self._w3.eth.get_logs(dict(filter_params)))


# =============================================================================
# MockLogProvider (for testing without a chain)
# =============================================================================

def _norm_hex(value: Any) -> str:
    if isinstance(value, str):
        return value.lower() if value[:2] in ("0x", "0X") else "0x" + value.lower()
    return "0x" + bytes(value).hex()


def _topic_matches(wanted: Any, actual: Optional[str]) -> bool:
    if wanted is None:
        return True
    if actual is None:
        return False
    if isinstance(wanted, (list, tuple)):
        return any(_norm_hex(w) == actual for w in wanted)
    return _norm_hex(wanted) == actual


def log_matches(log: Mapping[str, Any], filter_params: Mapping[str, Any]) -> bool:
    """eth_getLogs matching rules for one log."""
    address = filter_params.get("address")
    if address is not None and _norm_hex(log["address"]) != _norm_hex(address):
        return False

    block = log["blockNumber"]
    if block < filter_params.get("fromBlock", 0):
        return False
    to_block = filter_params.get("toBlock")
    if to_block is not None and block > to_block:
        return False

    topics = [_norm_hex(t) for t in log["topics"]]
    for i, wanted in enumerate(filter_params.get("topics") or []):
        actual = topics[i] if i < len(topics) else None
        if not _topic_matches(wanted, actual):
            return False
    return True


class MockLogProvider(LogProvider):
    """
    In-memory log source.

    Records every get_logs filter in `calls`. `fail_when(filter)` returning
    True makes that query raise, to exercise window error policies.
    """

    def __init__(
        self,
        head: int,
        logs: Optional[Sequence[Mapping[str, Any]]] = None,
        fail_when: Optional[Callable[[Mapping[str, Any]], bool]] = None,
    ):
        self.head = head
        self.logs: List[Mapping[str, Any]] = list(logs or [])
        self.fail_when = fail_when
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def add_log(self, log: Mapping[str, Any]) -> None:
        with self._lock:
            self.logs.append(log)
            self.head = max(self.head, log["blockNumber"])

    def block_number(self) -> int:
        return self.head

    def get_logs(self, filter_params: Mapping[str, Any]) -> List[Mapping[str, Any]]:
        with self._lock:
            self.calls.append(dict(filter_params))
            snapshot = list(self.logs)
        if self.fail_when is not None and self.fail_when(filter_params):
            raise ConnectionError(
                f"mock RPC failure for blocks "
                f"{filter_params.get('fromBlock')}-{filter_params.get('toBlock')}"
            )
        return [log for log in snapshot if log_matches(log, filter_params)]

    @property
    def windows_queried(self) -> List[Tuple[int, int]]:
        """Distinct (fromBlock, toBlock) pairs in query order."""
        seen: List[Tuple[int, int]] = []
        for call in self.calls:
            window = (call["fromBlock"], call["toBlock"])
            if window not in seen:
                seen.append(window)
        return seen
