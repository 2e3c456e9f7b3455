"""
SigilSessions - Payload signing.

HMAC tags over session payloads using ``cryptography``'s primitives:

- ``SecretKey``: a raw secret whose repr never shows the bytes
- ``KeyRing``: ordered secrets, newest first (rotation)
- ``Signer``: signs with the newest key, verifies against all of them

Each raw secret is stretched with HKDF bound to a salt, so the same
application secret used for another purpose never yields interchangeable
tags.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Sequence, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .faults import SessionConfigFault

DEFAULT_ALGORITHM = "sha256"
DEFAULT_SALT = "sigil.session"

ALGORITHMS: dict[str, type[hashes.HashAlgorithm]] = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}

# Secrets shorter than this are refused outright.
MIN_SECRET_LENGTH = 16

_HKDF_INFO = b"sigil signed cookie"


# ============================================================================
# SecretKey / KeyRing
# ============================================================================

class SecretKey:
    """
    Process-wide signing secret.

    Holds the raw bytes and hides them from ``repr``/``str`` so a key never
    ends up in a log line or a traceback.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: Union[str, bytes]):
        if isinstance(raw, str):
            raw = raw.encode("utf-8")
        if len(raw) < MIN_SECRET_LENGTH:
            raise SessionConfigFault(
                f"secret key must be at least {MIN_SECRET_LENGTH} bytes"
            )
        self._raw = raw

    @property
    def raw(self) -> bytes:
        """Get raw bytes (use with caution)."""
        return self._raw

    def __repr__(self) -> str:
        return "SecretKey(****)"

    __str__ = __repr__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecretKey):
            return False
        return self._raw == other._raw

    def __hash__(self) -> int:
        return hash(self._raw)


class KeyRing:
    """
    Ordered collection of secrets, newest first.

    Rotation: prepend the new secret and keep the old ones until every
    cookie signed with them has been reissued.

    Example:
        >>> ring = KeyRing(["new-secret-value-1234", "old-secret-value-1234"])
        >>> ring.current
        SecretKey(****)
        >>> len(ring)
        2
    """

    __slots__ = ("_keys",)

    def __init__(self, keys: Iterable[Union[str, bytes, SecretKey]]):
        ring = tuple(k if isinstance(k, SecretKey) else SecretKey(k) for k in keys)
        if not ring:
            raise SessionConfigFault("at least one secret key is required")
        self._keys = ring

    @property
    def current(self) -> SecretKey:
        """Key used for signing."""
        return self._keys[0]

    def __iter__(self) -> Iterator[SecretKey]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"KeyRing(keys={len(self._keys)})"

    def rotated(self, new_key: Union[str, bytes, SecretKey], keep: int | None = None) -> KeyRing:
        """
        Return a new ring with ``new_key`` in front.

        Args:
            new_key: Secret to sign with from now on
            keep: Maximum number of keys retained (None = all)
        """
        keys = [new_key, *self._keys]
        if keep is not None:
            keys = keys[:keep]
        return KeyRing(keys)


# ============================================================================
# Signer
# ============================================================================

class Signer:
    """
    HMAC signer for session payloads.

    Pure and thread-safe: derived keys are computed once at construction and
    never mutated.

    Example:
        >>> signer = Signer(KeyRing(["a-very-long-secret-key"]))
        >>> tag = signer.sign(b'{"count":1}')
        >>> signer.verify(b'{"count":1}', tag)
        True
    """

    __slots__ = ("algorithm", "salt", "_hash", "_derived")

    def __init__(
        self,
        keys: Union[KeyRing, Sequence[Union[str, bytes, SecretKey]]],
        algorithm: str = DEFAULT_ALGORITHM,
        salt: str = DEFAULT_SALT,
    ):
        """
        Initialize signer.

        Args:
            keys: Key ring, or secrets newest first
            algorithm: Hash algorithm (sha256, sha384, sha512)
            salt: Purpose label mixed into key derivation
        """
        if algorithm not in ALGORITHMS:
            raise SessionConfigFault(f"unsupported signing algorithm {algorithm!r}")

        ring = keys if isinstance(keys, KeyRing) else KeyRing(keys)

        self.algorithm = algorithm
        self.salt = salt
        self._hash = ALGORITHMS[algorithm]
        self._derived = tuple(self._derive(key) for key in ring)

    @property
    def signature_size(self) -> int:
        """Length in bytes of every signature this signer produces."""
        return self._hash.digest_size

    def _derive(self, key: SecretKey) -> bytes:
        hkdf = HKDF(
            algorithm=self._hash(),
            length=self._hash.digest_size,
            salt=self.salt.encode("utf-8"),
            info=_HKDF_INFO,
        )
        return hkdf.derive(key.raw)

    def _mac(self, derived: bytes, payload: bytes) -> hmac.HMAC:
        mac = hmac.HMAC(derived, self._hash())
        mac.update(payload)
        return mac

    def sign(self, payload: bytes) -> bytes:
        """
        Sign payload with the newest key.

        Args:
            payload: Encoded session payload

        Returns:
            Signature bytes (``signature_size`` long)
        """
        return self._mac(self._derived[0], payload).finalize()

    def verify(self, payload: bytes, signature: bytes) -> bool:
        """
        Verify signature against every key in the ring.

        Comparison is constant time with respect to the signature bytes.

        Args:
            payload: Encoded session payload
            signature: Signature taken from the token

        Returns:
            True if any key validates the signature
        """
        for derived in self._derived:
            try:
                self._mac(derived, payload).verify(signature)
            except InvalidSignature:
                continue
            return True
        return False

    def needs_resign(self, payload: bytes, signature: bytes) -> bool:
        """Check whether a valid signature was made with a retired key."""
        try:
            self._mac(self._derived[0], payload).verify(signature)
        except InvalidSignature:
            return True
        return False
