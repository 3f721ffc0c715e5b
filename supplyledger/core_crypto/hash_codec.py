"""
Hash Codec

Canonical serialization and SHA-256 digest of block fields.

The digest is taken over the UTF-8 encoding of the plain concatenation

    str(index) + timestamp_iso + canonical_json(data) + previous_hash + str(nonce)

Determinism requirements:
- JSON object keys are always sorted (never rely on dict insertion order)
- Timestamps are always rendered in UTC with millisecond precision
"""

import hashlib
import json
from datetime import datetime, timezone
from typing import Any


ISO_FORMAT = "%Y-%m-%dT%H:%M:%S"


# ============================================================================
# Canonical Forms
# ============================================================================

def canonical_json(data: Any) -> str:
    """
    Serialize data to canonical JSON.

    Keys are sorted at every nesting level and separators are compact, so
    equal mappings always produce byte-identical output.
    """
    return json.dumps(data, sort_keys=True, separators=(',', ':'), ensure_ascii=False)


def truncate_to_millis(dt: datetime) -> datetime:
    """Drop sub-millisecond precision (the timestamp format carries millis only)."""
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def format_timestamp(dt: datetime) -> str:
    """
    Render an aware datetime as ISO-8601 UTC with milliseconds.

    Example: 2024-01-01T00:00:00.000Z

    Raises:
        ValueError: If dt is naive
    """
    if dt.tzinfo is None:
        raise ValueError("Timestamp must be timezone-aware")
    utc = dt.astimezone(timezone.utc)
    return f"{utc.strftime(ISO_FORMAT)}.{utc.microsecond // 1000:03d}Z"


def parse_timestamp(text: str) -> datetime:
    """Parse a timestamp produced by format_timestamp (or any ISO-8601 form)."""
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def epoch_millis(dt: datetime) -> int:
    """Milliseconds since the Unix epoch for an aware datetime."""
    return int(dt.timestamp() * 1000)


# ============================================================================
# Digest
# ============================================================================

def _prefix(index: int, timestamp_iso: str, data_json: str, previous_hash: str) -> str:
    return f"{index}{timestamp_iso}{data_json}{previous_hash}"


def digest(
    index: int,
    timestamp_iso: str,
    data_json: str,
    previous_hash: str,
    nonce: int
) -> str:
    """
    Compute the block digest.

    Args:
        index: Block index
        timestamp_iso: Block timestamp from format_timestamp
        data_json: Payload from canonical_json
        previous_hash: Hash of the preceding block ("0" for genesis)
        nonce: Proof-of-work counter

    Returns:
        Hex-encoded SHA-256 digest (64 characters)
    """
    material = _prefix(index, timestamp_iso, data_json, previous_hash) + str(nonce)
    return hashlib.sha256(material.encode('utf-8')).hexdigest()


def prefix_state(
    index: int,
    timestamp_iso: str,
    data_json: str,
    previous_hash: str
) -> 'hashlib._Hash':
    """
    SHA-256 state pre-fed with everything except the nonce.

    Copying this state and feeding str(nonce) gives the same result as
    digest(), without re-hashing the payload on every mining attempt.
    """
    return hashlib.sha256(
        _prefix(index, timestamp_iso, data_json, previous_hash).encode('utf-8')
    )


def block_digest(
    index: int,
    timestamp: datetime,
    data: Any,
    previous_hash: str,
    nonce: int
) -> str:
    """
    Digest block fields given as native objects.

    `data` may be a mapping or any object with a to_dict() method.
    """
    payload = data.to_dict() if hasattr(data, 'to_dict') else data
    return digest(
        index,
        format_timestamp(timestamp),
        canonical_json(payload),
        previous_hash,
        nonce
    )
