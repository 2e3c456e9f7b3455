"""
Shared test fixtures and helpers for the Sigil test suite.
"""

import pytest
from typing import Any, Dict, List, Optional

from sigil.sessions import (
    KeyRing,
    SessionAdapter,
    SessionPolicy,
    CookiePolicy,
    Signer,
    TokenAssembler,
)


SECRET = "test-secret-key-0123456789abcdef"
OTHER_SECRET = "other-secret-key-fedcba9876543210"


# ============================================================================
# Signing Fixtures
# ============================================================================


@pytest.fixture
def signer() -> Signer:
    return Signer(KeyRing([SECRET]))


@pytest.fixture
def other_signer() -> Signer:
    return Signer(KeyRing([OTHER_SECRET]))


@pytest.fixture
def assembler() -> TokenAssembler:
    return TokenAssembler()


@pytest.fixture
def policy() -> SessionPolicy:
    return SessionPolicy(cookie=CookiePolicy(name="app_session"))


@pytest.fixture
def adapter(policy) -> SessionAdapter:
    return SessionAdapter([SECRET], policy=policy)


@pytest.fixture
def events(adapter) -> List[Dict[str, Any]]:
    """Capture adapter events."""
    captured: List[Dict[str, Any]] = []
    adapter.on_event(captured.append)
    return captured


# ============================================================================
# Token Helpers
# ============================================================================


def flip_char(token: str, index: int) -> str:
    """Replace one character of ``token`` with a different one."""
    replacement = "A" if token[index] != "A" else "B"
    return token[:index] + replacement + token[index + 1:]


# ============================================================================
# ASGI Helpers
# ============================================================================


def make_scope(
    method: str = "GET",
    path: str = "/",
    headers: Optional[List[tuple]] = None,
    scope_type: str = "http",
) -> dict:
    """Build a minimal ASGI scope."""
    raw_headers = []
    for name, value in headers or []:
        raw_headers.append((name.encode("latin-1"), value.encode("latin-1")))
    return {
        "type": scope_type,
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": b"",
        "headers": raw_headers,
        "scheme": "https",
        "server": ("127.0.0.1", 8000),
        "client": ("127.0.0.1", 12345),
        "root_path": "",
    }


async def empty_receive() -> dict:
    return {"type": "http.request", "body": b"", "more_body": False}


class SendRecorder:
    """ASGI send callable that records every message."""

    def __init__(self):
        self.messages: List[dict] = []

    async def __call__(self, message: dict) -> None:
        self.messages.append(message)

    @property
    def set_cookies(self) -> List[str]:
        start = next(m for m in self.messages if m["type"] == "http.response.start")
        return [
            value.decode("latin-1")
            for name, value in start.get("headers", [])
            if name == b"set-cookie"
        ]


@pytest.fixture
def flip():
    return flip_char


@pytest.fixture
def scope_factory():
    return make_scope


@pytest.fixture
def receive():
    return empty_receive


@pytest.fixture
def recorder() -> SendRecorder:
    return SendRecorder()
