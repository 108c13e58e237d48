# ara_mpp/codec.py
"""
Envelope framing: one newline-terminated UTF-8 JSON document per datagram.
"""

from __future__ import annotations

import json
from typing import Any


class EnvelopeDecodeError(ValueError):
    """Raised when a datagram payload is not a single JSON document."""


class EnvelopeEncodeError(ValueError):
    """Raised when an envelope cannot be serialized as JSON."""


def encode_envelope(envelope: Any) -> bytes:
    """Serialize compactly, preserving key order, and append the delimiter."""
    try:
        text = json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)
        return (text + "\n").encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EnvelopeEncodeError(str(e)) from e


def decode_envelope(payload: bytes) -> Any:
    try:
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise EnvelopeDecodeError(str(e)) from e
