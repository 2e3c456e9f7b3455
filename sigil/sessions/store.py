"""
SigilSessions - Request-scoped session store.

``SessionStore`` is the object application code reads and writes during a
request. It owns one snapshot of session data, tracks whether that snapshot
changed, and refuses writes that would outgrow the cookie.

Lifecycle::

    NotLoaded -> Loaded(valid) | Loaded(empty) -> [mutations]*
              -> Finalized(unchanged) | Finalized(reissued)
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Iterator, Literal, Mapping

from . import codec
from .faults import (
    SessionFinalizedFault,
    SessionTooLargeFault,
    SignatureMismatchFault,
    UnsupportedValueKindFault,
    VerificationFault,
)
from .policy import DEFAULT_MAX_SIZE
from .signer import Signer
from .token import TokenAssembler

LoadState = Literal["new", "loaded", "rejected"]

_MISSING = object()

logger = logging.getLogger("sigil.sessions")


class SessionStore:
    """
    Map-like session state for a single request.

    Values are copied on the way in and on the way out, so the only way to
    change the stored snapshot is through the store's own mutators (which
    keep the dirty flag and the size ceiling honest).

    Example:
        >>> store = SessionStore()
        >>> store.set("cart", [1, 2, 3])
        >>> store.get("cart")
        [1, 2, 3]
        >>> store.is_dirty
        True
    """

    __slots__ = (
        "_data",
        "_dirty",
        "_finalized",
        "_lock",
        "max_size",
        "load_state",
        "rejection_code",
    )

    def __init__(
        self,
        data: Mapping[str, Any] | None = None,
        *,
        max_size: int = DEFAULT_MAX_SIZE,
        load_state: LoadState = "new",
        rejection_code: str | None = None,
    ):
        """
        Initialize store.

        Args:
            data: Initial session data (checked against value kinds and
                ``max_size``)
            max_size: Encoded payload ceiling in bytes
            load_state: How the data was obtained (for logging/metrics only)
            rejection_code: Fault code when ``load_state`` is "rejected"

        Raises:
            UnsupportedValueKindFault: If ``data`` holds an unsupported value
            SessionTooLargeFault: If ``data`` encodes past ``max_size``
        """
        self._data: dict[str, Any] = {}
        if data:
            snapshot = dict(data)
            size = codec.encoded_size(snapshot)
            if size > max_size:
                raise SessionTooLargeFault(size, max_size)
            self._data = copy.deepcopy(snapshot)
        self._dirty = False
        self._finalized = False
        self._lock = threading.RLock()
        self.max_size = max_size
        self.load_state = load_state
        self.rejection_code = rejection_code

    # ========================================================================
    # Construction from a token
    # ========================================================================

    @classmethod
    def from_token(
        cls,
        token: str | None,
        signer: Signer,
        assembler: TokenAssembler | None = None,
        *,
        max_size: int = DEFAULT_MAX_SIZE,
        reissue_on_rotation: bool = False,
    ) -> SessionStore:
        """
        Materialize a store from an inbound token.

        Runs disassemble -> verify -> decode. Any failure at any stage yields
        a fresh empty store; nothing from a rejected token is kept.

        Args:
            token: Raw cookie value (None or "" = no cookie)
            signer: Signer holding the verification keys
            assembler: Token assembler (defaults to a 4096-char ceiling)
            max_size: Encoded payload ceiling for later writes
            reissue_on_rotation: Mark the store dirty when the token was
                signed with a retired key

        Returns:
            SessionStore (never raises for bad input)
        """
        if not token:
            return cls(max_size=max_size)

        assembler = assembler or TokenAssembler()

        try:
            payload, signature = assembler.disassemble(token)
            if not signer.verify(payload, signature):
                raise SignatureMismatchFault()
            data = codec.decode(payload)
        except VerificationFault as fault:
            # Code only; the token itself is attacker-controlled.
            logger.debug(f"Discarding session cookie: {fault.code}")
            return cls(max_size=max_size, load_state="rejected", rejection_code=fault.code)

        store = cls(max_size=max_size, load_state="loaded")
        store._data = data
        if reissue_on_rotation and signer.needs_resign(payload, signature):
            store._dirty = True
        return store

    # ========================================================================
    # Read access
    # ========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Get a copy of the value stored under ``key``."""
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def __getitem__(self, key: str) -> Any:
        with self._lock:
            return copy.deepcopy(self._data[key])

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def keys(self) -> list[str]:
        return list(self._data)

    def items(self) -> list[tuple[str, Any]]:
        with self._lock:
            return [(k, copy.deepcopy(v)) for k, v in self._data.items()]

    def to_dict(self) -> dict[str, Any]:
        """Get a deep copy of all session data."""
        with self._lock:
            return copy.deepcopy(self._data)

    def __repr__(self) -> str:
        # Keys only; values may be sensitive.
        return (
            f"SessionStore(keys={sorted(self._data)!r}, dirty={self._dirty}, "
            f"state={self.load_state!r})"
        )

    # ========================================================================
    # Mutations
    # ========================================================================

    def set(self, key: str, value: Any) -> None:
        """
        Store ``value`` under ``key`` (marks dirty).

        Raises:
            UnsupportedValueKindFault: If key or value cannot be encoded
            SessionTooLargeFault: If the encoded session would exceed
                ``max_size``; the store is left unchanged
        """
        self.update({key: value})

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def update(self, values: Mapping[str, Any]) -> None:
        """Store several values at once; all or nothing."""
        with self._lock:
            self._check_open()

            candidate = dict(self._data)
            for key, value in values.items():
                if not isinstance(key, str):
                    raise UnsupportedValueKindFault("$", f"{type(key).__name__} key")
                codec.check_value(value, f"$.{key}")
                candidate[key] = copy.deepcopy(value)

            size = codec.encoded_size(candidate)
            if size > self.max_size:
                raise SessionTooLargeFault(size, self.max_size)

            self._data = candidate
            self._dirty = True

    def delete(self, key: str) -> None:
        """Remove ``key``; marks dirty only if it existed."""
        with self._lock:
            self._check_open()
            if key in self._data:
                del self._data[key]
                self._dirty = True

    def __delitem__(self, key: str) -> None:
        with self._lock:
            if key not in self._data:
                raise KeyError(key)
            self.delete(key)

    def pop(self, key: str, default: Any = _MISSING) -> Any:
        """Remove ``key`` and return its value."""
        with self._lock:
            self._check_open()
            if key not in self._data:
                if default is _MISSING:
                    raise KeyError(key)
                return default
            value = self._data.pop(key)
            self._dirty = True
            return value

    def clear(self) -> None:
        """Remove all data; marks dirty only if there was any."""
        with self._lock:
            self._check_open()
            if self._data:
                self._data = {}
                self._dirty = True

    # ========================================================================
    # State Management
    # ========================================================================

    @property
    def is_dirty(self) -> bool:
        """Check if the cookie must be reissued."""
        return self._dirty

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def mark_dirty(self) -> None:
        """Force the cookie to be reissued even without a data change."""
        with self._lock:
            self._check_open()
            self._dirty = True

    def payload(self) -> bytes:
        """Encode the current snapshot."""
        with self._lock:
            payload = codec.encode(self._data)
            if len(payload) > self.max_size:
                raise SessionTooLargeFault(len(payload), self.max_size)
            return payload

    def finalize(self) -> None:
        """Close the store to further mutation (called by the adapter)."""
        with self._lock:
            self._check_open()
            self._finalized = True
            self._dirty = False

    def _check_open(self) -> None:
        if self._finalized:
            raise SessionFinalizedFault()
