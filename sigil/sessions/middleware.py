"""
SigilSessions - ASGI middleware.

Wraps any ASGI 3 application so each HTTP request gets a ``SessionStore`` at
``scope["session"]`` and each response carries a ``Set-Cookie`` header when
(and only when) the store changed.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, MutableMapping

from .adapter import SessionAdapter
from .faults import SessionFault

Scope = MutableMapping[str, Any]
Message = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

SCOPE_KEY = "session"


class SessionMiddleware:
    """
    ASGI middleware driving a :class:`SessionAdapter`.

    The session is committed when the wrapped app starts its response. If
    the app raises before that point, the store is discarded and no cookie
    is emitted.

    Example:
        >>> adapter = SessionAdapter(["a-very-long-secret-key"])
        >>> app = SessionMiddleware(inner_app, adapter)
    """

    def __init__(
        self,
        app: ASGIApp,
        adapter: SessionAdapter,
        logger: logging.Logger | None = None,
    ):
        self.app = app
        self.adapter = adapter
        self.logger = logger or logging.getLogger("sigil.sessions.middleware")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        raw_cookie = self.adapter.extract(self._cookie_header(scope))
        store = self.adapter.begin_request(raw_cookie)
        scope[SCOPE_KEY] = store

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                try:
                    header = self.adapter.commit(store)
                except SessionFault as e:
                    self.logger.error(f"Session commit failed: {e.code}")
                    raise
                if header is not None:
                    headers = list(message.get("headers", []))
                    headers.append((b"set-cookie", header.encode("latin-1")))
                    message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_wrapper)

    @staticmethod
    def _cookie_header(scope: Scope) -> str | None:
        """Join every ``Cookie`` header of the request (HTTP/2 may split it)."""
        values = [
            value.decode("latin-1")
            for name, value in scope.get("headers", [])
            if name.lower() == b"cookie"
        ]
        if not values:
            return None
        return "; ".join(values)
