"""
SigilSessions - Token assembly.

Wire format::

    base64url(payload) "." base64url(signature)

Both segments use unpadded base64url, so ``.`` never occurs inside a
segment and the whole token is valid in a ``Cookie``/``Set-Cookie`` header
without quoting.
"""

from __future__ import annotations

import base64
import binascii
import re

from .faults import MalformedTokenFault, TokenTooLargeFault

DELIMITER = "."

# Browsers commonly cap a cookie (name, value and attributes) at 4096 bytes.
DEFAULT_MAX_TOKEN_LENGTH = 4096

_SEGMENT = re.compile(r"[A-Za-z0-9_-]+")


def b64encode(raw: bytes) -> str:
    """Encode bytes as unpadded base64url."""
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def b64decode(segment: str) -> bytes:
    """
    Decode a canonical unpadded base64url segment.

    Raises:
        MalformedTokenFault: If the segment is not the canonical encoding of
            some byte string
    """
    if not _SEGMENT.fullmatch(segment):
        raise MalformedTokenFault("segment outside base64url alphabet")

    if len(segment) % 4 == 1:
        raise MalformedTokenFault("segment has impossible length")

    padded = segment + "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise MalformedTokenFault("segment is not valid base64url") from e

    # Unused trailing bits would let two different strings decode to the
    # same bytes.
    if b64encode(raw) != segment:
        raise MalformedTokenFault("segment is not canonically encoded")

    return raw


class TokenAssembler:
    """
    Joins and splits payload/signature pairs.

    Example:
        >>> assembler = TokenAssembler(max_length=4096)
        >>> token = assembler.assemble(b'{"a":1}', b"\\x00" * 32)
        >>> assembler.disassemble(token)[0]
        b'{"a":1}'
    """

    __slots__ = ("max_length",)

    def __init__(self, max_length: int = DEFAULT_MAX_TOKEN_LENGTH):
        if max_length <= len(DELIMITER):
            raise ValueError("max_length must leave room for both segments")
        self.max_length = max_length

    def assemble(self, payload: bytes, signature: bytes) -> str:
        """
        Build the wire token.

        Args:
            payload: Encoded session payload
            signature: Signature over ``payload``

        Returns:
            Cookie-safe token string

        Raises:
            TokenTooLargeFault: If the token exceeds ``max_length``
        """
        token = f"{b64encode(payload)}{DELIMITER}{b64encode(signature)}"
        if len(token) > self.max_length:
            raise TokenTooLargeFault(len(token), self.max_length)
        return token

    def disassemble(self, token: str) -> tuple[bytes, bytes]:
        """
        Split a wire token into payload and signature.

        Args:
            token: Raw cookie value

        Returns:
            Tuple of (payload, signature)

        Raises:
            MalformedTokenFault: If the token is structurally invalid
        """
        if len(token) > self.max_length:
            raise MalformedTokenFault("token exceeds maximum length")

        parts = token.split(DELIMITER)
        if len(parts) != 2:
            raise MalformedTokenFault(f"expected 2 segments, found {len(parts)}")

        payload_segment, signature_segment = parts
        if not payload_segment or not signature_segment:
            raise MalformedTokenFault("empty segment")

        return b64decode(payload_segment), b64decode(signature_segment)

    def payload_budget(self, signature_size: int) -> int:
        """
        Largest payload (in bytes) whose token still fits ``max_length``.

        Args:
            signature_size: Signature length in bytes
        """
        signature_chars = len(b64encode(b"\x00" * signature_size))
        available = self.max_length - signature_chars - len(DELIMITER)
        if available <= 0:
            return 0
        # Every 4 characters carry 3 bytes; a 2/3 character tail carries 1/2.
        full, rest = divmod(available, 4)
        return full * 3 + max(rest - 1, 0)
