"""
Canonical field encoding and SHA-256 digests

Naively concatenating variable-length strings before hashing is ambiguous:
("ab", "c") and ("a", "bc") produce the same bytes. Every field here is
encoded as

    tag (1 byte) || length (8 bytes, big-endian) || body

and the whole tuple is prefixed with its field count, so the encoding is
injective and any two different tuples hash differently (up to SHA-256
collisions).

Tags:
    I  int       decimal ASCII, optional leading '-'
    S  str       UTF-8
    B  bytes     raw
    T  datetime  UTC microseconds since the epoch, decimal ASCII
    Z  bool      b"\\x01" / b"\\x00"
"""

import hashlib
from datetime import datetime, timedelta
from typing import Any

from rights_provenance.kernel.time import EPOCH, as_utc

DIGEST_SIZE = 32
ZERO_DIGEST = "0" * (DIGEST_SIZE * 2)


def _encode_field(value: Any) -> bytes:
    # bool is checked before int because bool is a subclass of int
    if isinstance(value, bool):
        tag, body = b"Z", b"\x01" if value else b"\x00"
    elif isinstance(value, int):
        tag, body = b"I", str(value).encode("ascii")
    elif isinstance(value, str):
        tag, body = b"S", value.encode("utf-8")
    elif isinstance(value, (bytes, bytearray)):
        tag, body = b"B", bytes(value)
    elif isinstance(value, datetime):
        micros = (as_utc(value) - EPOCH) // timedelta(microseconds=1)
        tag, body = b"T", str(micros).encode("ascii")
    else:
        raise TypeError(f"Cannot canonically encode {type(value).__name__}")
    return tag + len(body).to_bytes(8, "big") + body


def canonical_bytes(*fields: Any) -> bytes:
    """Deterministic, unambiguous encoding of an ordered field tuple"""
    parts = [len(fields).to_bytes(4, "big")]
    parts.extend(_encode_field(f) for f in fields)
    return b"".join(parts)


def digest_bytes(*fields: Any) -> bytes:
    """Raw 32-byte SHA-256 digest of the canonical encoding"""
    return hashlib.sha256(canonical_bytes(*fields)).digest()


def digest_fields(*fields: Any) -> str:
    """Hex SHA-256 digest of the canonical encoding"""
    return digest_bytes(*fields).hex()


def sha256_hex(data: bytes) -> str:
    """Hex SHA-256 digest of raw bytes"""
    return hashlib.sha256(data).hexdigest()
