# kyc_mailbox/envelope/canonical.py
"""
Canonical JSON

The canonical string is exactly what the submitter signs, so
structurally equal payloads must serialize to identical bytes however
they were built:

    - object keys sorted at every nesting level (code point order)
    - arrays keep element order
    - compact separators, no whitespace
    - UTF-8 text, non-ASCII characters left unescaped
    - NaN / Infinity rejected

Untrusted text goes through parse_json(), which refuses input nested
deeper than MAX_JSON_DEPTH before the decoder sees it. web3's import
chain raises the interpreter recursion limit far enough that the C
decoder can exhaust the native stack on deep input instead of raising
RecursionError.
"""

import json
from typing import Any, Dict, Union


# Maximum array/object nesting accepted from untrusted text
MAX_JSON_DEPTH = 64


def canonicalize(value: Any, _depth: int = 0) -> Any:
    """Return a copy of `value` with every object's keys in sorted order."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    elif _depth >= MAX_JSON_DEPTH:
        raise ValueError(f"Nesting deeper than {MAX_JSON_DEPTH} levels")
    elif isinstance(value, dict):
        return _canonicalize_object(value, _depth + 1)
    elif isinstance(value, (list, tuple)):
        return [canonicalize(item, _depth + 1) for item in value]
    else:
        raise ValueError(f"Cannot canonicalize type: {type(value).__name__}")


def _canonicalize_object(obj: Dict[Any, Any], depth: int) -> Dict[str, Any]:
    for key in obj:
        if not isinstance(key, str):
            raise ValueError(f"Object keys must be strings, got {type(key).__name__}")
    return {k: canonicalize(obj[k], depth) for k in sorted(obj)}


def to_canonical_json(value: Any) -> str:
    """Canonical JSON text of `value`."""
    return json.dumps(
        canonicalize(value),
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def to_canonical_bytes(value: Any) -> bytes:
    return to_canonical_json(value).encode("utf-8")


# =============================================================================
# Parsing untrusted text
# =============================================================================

def json_depth(text: str) -> int:
    """Maximum [ / { nesting of JSON text, ignoring string contents."""
    depth = deepest = 0
    in_string = escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "[" or ch == "{":
            depth += 1
            if depth > deepest:
                deepest = depth
        elif ch == "]" or ch == "}":
            depth -= 1
    return deepest


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def parse_json(raw: Union[str, bytes, bytearray], max_depth: int = MAX_JSON_DEPTH) -> Any:
    """
    Decode untrusted JSON text.

    Raises:
        TypeError: `raw` is not text or bytes
        ValueError: Invalid UTF-8 or JSON, NaN / Infinity, or nesting
            deeper than `max_depth`
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8")
    if not isinstance(raw, str):
        raise TypeError(f"JSON input must be str or bytes, got {type(raw).__name__}")
    if json_depth(raw) > max_depth:
        raise ValueError(f"JSON nested deeper than {max_depth} levels")
    return json.loads(raw, parse_constant=_reject_constant)


def is_canonical(text: Union[str, bytes]) -> bool:
    """True when `text` is already in canonical form."""
    try:
        if isinstance(text, bytes):
            text = text.decode("utf-8")
        return to_canonical_json(parse_json(text)) == text
    except ValueError:
        return False
