"""
Self-describing ciphertext wire format.

Enveloped blob:  ``#`` base64(key_name) ``#`` ciphertext
Legacy blob:     ciphertext (first byte is not ``#``), static secret
Empty blob:      nothing to decrypt

The key name is encoded with the standard base64 alphabet without padding.
The empty key name yields ``##`` followed by the ciphertext; it still routes
through data key resolution and resolves to the static secret.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Optional

from .errors import MalformedEnvelopeError

DELIMITER: bytes = b"#"


@dataclass(frozen=True)
class Envelope:
    """Decoded blob. ``key_name`` is None for legacy (pre-envelope) blobs."""

    key_name: Optional[str]
    ciphertext: bytes

    @property
    def is_legacy(self) -> bool:
        return self.key_name is None


def _b64encode_raw(data: bytes) -> bytes:
    return base64.standard_b64encode(data).rstrip(b"=")


def _b64decode_raw(data: bytes) -> bytes:
    # Unpadded input only; a remainder of one character can never be valid.
    if b"=" in data or len(data) % 4 == 1:
        raise MalformedEnvelopeError("Invalid base64 key name in envelope")
    padded = data + b"=" * (-len(data) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except binascii.Error as e:
        raise MalformedEnvelopeError(f"Invalid base64 key name in envelope: {e}") from e


def encode_envelope(key_name: str, ciphertext: bytes) -> bytes:
    """Prefix ``ciphertext`` with a header naming the data key used."""
    return DELIMITER + _b64encode_raw(key_name.encode("utf-8")) + DELIMITER + ciphertext


def decode_envelope(blob: bytes) -> Envelope:
    """
    Split a blob into key name and ciphertext.

    Returns:
        Envelope(None, b"") for an empty blob, Envelope(None, blob) for a
        legacy blob, otherwise the embedded key name and the remainder.

    Raises:
        MalformedEnvelopeError: If the closing delimiter is missing or the
            key name is not valid unpadded base64 / UTF-8
    """
    if not blob:
        return Envelope(key_name=None, ciphertext=b"")

    if blob[:1] != DELIMITER:
        return Envelope(key_name=None, ciphertext=bytes(blob))

    body = blob[1:]
    end = body.find(DELIMITER)
    if end == -1:
        raise MalformedEnvelopeError("Could not find valid key in encrypted payload")

    raw_name = _b64decode_raw(bytes(body[:end]))
    try:
        key_name = raw_name.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedEnvelopeError("Envelope key name is not valid UTF-8") from e

    return Envelope(key_name=key_name, ciphertext=bytes(body[end + 1:]))
