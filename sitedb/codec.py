"""
Binary codec for database images.

Converts between the raw SQLite image and base64 text, the form used for the
local cache slot and for the remote contents envelope.

Invariants:
    - decode(encode(data)) == data for every byte string, including b""
    - decode never returns a partial result
"""

from __future__ import annotations

import base64
import binascii

from .errors import CorruptEncodingError


def encode(data: bytes) -> str:
    """Encode bytes as standard base64 text."""
    return base64.b64encode(data).decode("ascii")


def decode(text: str) -> bytes:
    """Decode standard base64 text.

    Args:
        text: Base64 text without line wrapping

    Returns:
        Decoded bytes

    Raises:
        CorruptEncodingError: If the text is not valid base64
    """
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise CorruptEncodingError(f"Invalid base64 payload: {e}", length=len(text)) from e


def strip_wrapping(text: str) -> str:
    """Remove line breaks inserted by wrapped base64 encoders."""
    return "".join(text.split())
