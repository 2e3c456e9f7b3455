"""
Sigil - Tamper-proof client-side sessions for Python web services.

Sessions are serialized into a signed cookie: the client stores the state,
the server only verifies it.
"""

from .config import (
    SessionConfig,
    ConfigLoader,
    load_session_config,
    create_adapter,
)

from .sessions import (
    SessionAdapter,
    SessionMiddleware,
    SessionStore,
    SessionPolicy,
    CookiePolicy,
    KeyRing,
    Signer,
)

__version__ = "0.1.0"

__all__ = [
    "SessionConfig",
    "ConfigLoader",
    "load_session_config",
    "create_adapter",
    "SessionAdapter",
    "SessionMiddleware",
    "SessionStore",
    "SessionPolicy",
    "CookiePolicy",
    "KeyRing",
    "Signer",
    "__version__",
]
