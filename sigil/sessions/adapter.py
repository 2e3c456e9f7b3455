"""
SigilSessions - Request/response adapter.

The adapter is the seam between an HTTP layer and the signed session core:

1. ``extract``        - Cookie header -> raw token
2. ``begin_request``  - raw token -> SessionStore (empty on any failure)
3. handler reads/writes the store
4. ``finalize_response`` - dirty store -> new token, clean store -> None
5. ``set_cookie_header`` - token -> Set-Cookie value

The adapter is app-scoped and holds no per-request state, so one instance
serves every concurrent request.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from email.utils import formatdate
from typing import Any, Callable, Sequence, Union

from .faults import SessionFinalizedFault
from .policy import DEFAULT_POLICY, SessionPolicy
from .signer import KeyRing, SecretKey, Signer
from .store import SessionStore
from .token import TokenAssembler

EventHandler = Callable[[dict[str, Any]], None]


class SessionAdapter:
    """
    Signed-cookie session lifecycle for one application.

    Example:
        >>> adapter = SessionAdapter(["a-very-long-secret-key"])
        >>> session = adapter.begin_request(None)
        >>> session.set("cart", [1, 2, 3])
        >>> token = adapter.finalize_response(session)
        >>> adapter.begin_request(token).get("cart")
        [1, 2, 3]
    """

    def __init__(
        self,
        keys: Union[Signer, KeyRing, Sequence[Union[str, bytes, SecretKey]]],
        policy: SessionPolicy = DEFAULT_POLICY,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize session adapter.

        Args:
            keys: Signer, key ring, or secrets newest first
            policy: Session policy (limits, algorithm, cookie attributes)
            logger: Optional logger
        """
        if isinstance(keys, Signer):
            self.signer = keys
        else:
            self.signer = Signer(keys, algorithm=policy.algorithm, salt=policy.salt)

        self.policy = policy
        self.assembler = TokenAssembler(policy.max_token_length)
        self.logger = logger or logging.getLogger("sigil.sessions")

        # Coarse per-code counter; rejected tokens are never logged.
        self.rejections: Counter[str] = Counter()
        self._event_handlers: list[EventHandler] = []

        budget = self.assembler.payload_budget(self.signer.signature_size)
        self.max_size = budget if policy.max_size is None else policy.max_size
        if self.max_size > budget:
            self.logger.warning(
                f"max_size={self.max_size} allows payloads whose tokens exceed "
                f"max_token_length={policy.max_token_length}; payloads over "
                f"{budget} bytes will fail at commit"
            )

    @property
    def cookie_name(self) -> str:
        return self.policy.cookie.name

    # ========================================================================
    # Inbound
    # ========================================================================

    def extract(self, cookie_header: str | None) -> str | None:
        """
        Extract the session cookie value from a ``Cookie`` header.

        Args:
            cookie_header: Raw ``Cookie`` request header

        Returns:
            Cookie value if present, None otherwise
        """
        if not cookie_header:
            return None

        # Browsers send the most specific path first; keep the first match.
        for part in cookie_header.split(";"):
            name, sep, value = part.strip().partition("=")
            if sep and name.strip() == self.cookie_name:
                return value.strip().strip('"')

        return None

    def begin_request(self, raw_cookie: str | None) -> SessionStore:
        """
        Materialize the session for a new request.

        Args:
            raw_cookie: Session cookie value (None = no cookie sent)

        Returns:
            SessionStore; empty if no cookie was sent or it failed
            verification
        """
        store = SessionStore.from_token(
            raw_cookie,
            self.signer,
            self.assembler,
            max_size=self.max_size,
            reissue_on_rotation=self.policy.reissue_on_rotation,
        )

        if store.load_state == "rejected":
            self.rejections[store.rejection_code] += 1
            self._emit_event("session_rejected", store, reason=store.rejection_code)
        elif store.load_state == "loaded":
            self._emit_event("session_loaded", store)
        else:
            self._emit_event("session_created", store)

        return store

    # ========================================================================
    # Outbound
    # ========================================================================

    def finalize_response(self, store: SessionStore, force: bool = False) -> str | None:
        """
        Close the store and produce a token if the cookie must change.

        Args:
            store: Store returned by :meth:`begin_request`
            force: Reissue the token even if nothing changed

        Returns:
            New token, or None when the browser's cookie is still current

        Raises:
            SessionFinalizedFault: If the store was already finalized
            SessionTooLargeFault: If the snapshot exceeds ``max_size``
            TokenTooLargeFault: If the token exceeds ``max_token_length``
        """
        if store.is_finalized:
            raise SessionFinalizedFault()

        if not (store.is_dirty or force):
            store.finalize()
            self._emit_event("session_unchanged", store)
            return None

        payload = store.payload()
        token = self.assembler.assemble(payload, self.signer.sign(payload))
        store.finalize()
        self._emit_event("session_committed", store, size=len(payload))
        return token

    def set_cookie_header(self, token: str) -> str:
        """
        Render a ``Set-Cookie`` header value carrying ``token``.

        Args:
            token: Token from :meth:`finalize_response`
        """
        cookie = self.policy.cookie
        cookie_parts = [f"{cookie.name}={token}"]

        if cookie.max_age is not None:
            max_age = int(cookie.max_age.total_seconds())
            cookie_parts.append(f"Max-Age={max_age}")
            cookie_parts.append(f"Expires={formatdate(time.time() + max_age, usegmt=True)}")

        cookie_parts.append(f"Path={cookie.path}")

        if cookie.domain:
            cookie_parts.append(f"Domain={cookie.domain}")

        if cookie.secure:
            cookie_parts.append("Secure")

        if cookie.httponly:
            cookie_parts.append("HttpOnly")

        if cookie.samesite:
            cookie_parts.append(f"SameSite={cookie.samesite.capitalize()}")

        return "; ".join(cookie_parts)

    def expire_cookie_header(self) -> str:
        """Render a ``Set-Cookie`` header value that deletes the cookie."""
        cookie = self.policy.cookie
        cookie_parts = [
            f"{cookie.name}=",
            "Max-Age=0",
            "Expires=Thu, 01 Jan 1970 00:00:00 GMT",
            f"Path={cookie.path}",
        ]

        if cookie.domain:
            cookie_parts.append(f"Domain={cookie.domain}")

        if cookie.secure:
            cookie_parts.append("Secure")

        if cookie.httponly:
            cookie_parts.append("HttpOnly")

        if cookie.samesite:
            cookie_parts.append(f"SameSite={cookie.samesite.capitalize()}")

        return "; ".join(cookie_parts)

    def commit(self, store: SessionStore, force: bool = False) -> str | None:
        """
        Finalize ``store`` and render the header to attach, if any.

        A session emptied during the request deletes the cookie instead of
        carrying a signed empty mapping.

        Returns:
            ``Set-Cookie`` header value, or None when no header is needed
        """
        token = self.finalize_response(store, force=force)
        if token is None:
            return None
        if not len(store):
            return self.expire_cookie_header()
        return self.set_cookie_header(token)

    # ========================================================================
    # Observability
    # ========================================================================

    def on_event(self, handler: EventHandler) -> None:
        """
        Register event handler for observability.

        Args:
            handler: Callable that receives event dict
        """
        self._event_handlers.append(handler)

    def _emit_event(self, event_name: str, store: SessionStore, **extra: Any) -> None:
        # Keys and sizes only, never values.
        event_data = {
            "event": event_name,
            "state": store.load_state,
            "keys": len(store),
            **extra,
        }

        for handler in self._event_handlers:
            try:
                handler(event_data)
            except Exception as e:
                self.logger.error(f"Event handler error: {e}")

        self.logger.debug(f"Session event: {event_name}", extra={"session_event": event_data})
