# kyc_mailbox/schema.py
"""
KYC Mailbox: Attestation Tier Selection

Tiers are an explicit, versioned enumeration. The selector maps a signed
message to a tier:

    form.ssn present and non-empty  ->  KYC_LEVEL_2 (elevated)
    otherwise                       ->  KYC_LEVEL_1 (baseline)
    message not parseable           ->  fallback, else KYC_LEVEL_1
    (invalid JSON, NaN / Infinity, or nesting past MAX_JSON_DEPTH)

select_schema never raises.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from .envelope.canonical import parse_json


class SchemaTag(str, Enum):
    """Published attestation tiers."""
    KYC_LEVEL_1 = "kyc-level-1"
    KYC_LEVEL_2 = "kyc-level-2"


BASELINE_TAG = SchemaTag.KYC_LEVEL_1
ELEVATED_TAG = SchemaTag.KYC_LEVEL_2

# form.<field> that lifts a submission to the elevated tier
SENSITIVE_FIELD = ("form", "ssn")


def _lookup(obj: Any, path) -> Any:
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _has_value(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, dict)):
        return len(value) > 0
    if isinstance(value, (int, float)):
        return value != 0
    return True


def select_schema(decoded_message: Any, fallback: Optional[str] = None) -> str:
    """
    Choose the tier tag for a signed message.

    Args:
        decoded_message: Canonical JSON text (str or bytes)
        fallback: Tag returned when the message cannot be parsed

    Returns:
        Tier tag string
    """
    try:
        obj = parse_json(decoded_message)
    except (TypeError, ValueError):
        return fallback if fallback is not None else BASELINE_TAG.value

    if _has_value(_lookup(obj, SENSITIVE_FIELD)):
        return ELEVATED_TAG.value
    return BASELINE_TAG.value
