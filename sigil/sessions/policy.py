"""
SigilSessions - Policy types.

Declares how signed sessions behave:
- CookiePolicy: name and attributes of the session cookie
- SessionPolicy: size limits, algorithm and reissue behaviour
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Literal

from .faults import SessionConfigFault
from .signer import ALGORITHMS, DEFAULT_ALGORITHM, DEFAULT_SALT
from .token import DEFAULT_MAX_TOKEN_LENGTH

DEFAULT_COOKIE_NAME = "sigil_session"
DEFAULT_MAX_SIZE = 4096

_SAMESITE_VALUES = ("strict", "lax", "none")


# ============================================================================
# CookiePolicy
# ============================================================================

@dataclass(frozen=True)
class CookiePolicy:
    """
    Controls the session cookie's name and transport attributes.

    Attributes:
        name: Cookie name
        httponly: HttpOnly flag (no script access)
        secure: Secure flag (HTTPS only)
        samesite: SameSite policy (CSRF mitigation)
        path: Cookie path
        domain: Cookie domain (None = host-only)
        max_age: Cookie lifetime (None = browser-session cookie)

    Example:
        >>> policy = CookiePolicy(
        ...     name="shop_session",
        ...     samesite="strict",
        ...     max_age=timedelta(days=14),
        ... )
    """

    name: str = DEFAULT_COOKIE_NAME
    httponly: bool = True
    secure: bool = True
    samesite: Literal["strict", "lax", "none"] | None = "lax"
    path: str = "/"
    domain: str | None = None
    max_age: timedelta | None = None

    def __post_init__(self):
        if not self.name or any(c in self.name for c in ' =;,\t\r\n"'):
            raise SessionConfigFault(f"invalid cookie name {self.name!r}")

        if self.samesite is not None and self.samesite.lower() not in _SAMESITE_VALUES:
            raise SessionConfigFault(f"invalid SameSite value {self.samesite!r}")

        # Browsers drop SameSite=None cookies without Secure.
        if self.samesite is not None and self.samesite.lower() == "none" and not self.secure:
            raise SessionConfigFault("SameSite=None requires the Secure flag")

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> CookiePolicy:
        """
        Create cookie policy from configuration dictionary.

        ``max_age`` is given in seconds.
        """
        max_age = None
        if config.get("max_age") is not None:
            max_age = timedelta(seconds=int(config["max_age"]))

        return cls(
            name=config.get("name", DEFAULT_COOKIE_NAME),
            httponly=config.get("httponly", True),
            secure=config.get("secure", True),
            samesite=config.get("samesite", "lax"),
            path=config.get("path", "/"),
            domain=config.get("domain"),
            max_age=max_age,
        )


# ============================================================================
# SessionPolicy
# ============================================================================

@dataclass(frozen=True)
class SessionPolicy:
    """
    Master policy for signed client-side sessions.

    Attributes:
        max_size: Ceiling for the encoded payload, in bytes (None = the
            largest payload whose token fits ``max_token_length``)
        max_token_length: Ceiling for the assembled token, in characters
        algorithm: MAC hash algorithm identifier
        salt: Key-derivation label (changing it invalidates every cookie)
        reissue_on_rotation: Reissue cookies verified with a retired key
            even when the request did not mutate the session
        cookie: Cookie sub-policy

    Example:
        >>> policy = SessionPolicy(
        ...     max_size=2048,
        ...     algorithm="sha256",
        ...     cookie=CookiePolicy(name="cart"),
        ... )
    """

    max_size: int | None = None
    max_token_length: int = DEFAULT_MAX_TOKEN_LENGTH
    algorithm: str = DEFAULT_ALGORITHM
    salt: str = DEFAULT_SALT
    reissue_on_rotation: bool = False
    cookie: CookiePolicy = field(default_factory=CookiePolicy)

    def __post_init__(self):
        if self.max_size is not None and self.max_size <= 0:
            raise SessionConfigFault("max_size must be positive")

        if self.max_token_length <= 0:
            raise SessionConfigFault("max_token_length must be positive")

        if self.algorithm not in ALGORITHMS:
            raise SessionConfigFault(f"unsupported signing algorithm {self.algorithm!r}")

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> SessionPolicy:
        """
        Create policy from configuration dictionary.

        Args:
            config: Configuration dict; ``cookie`` holds the cookie sub-policy

        Returns:
            SessionPolicy instance
        """
        max_size = config.get("max_size")
        return cls(
            max_size=int(max_size) if max_size is not None else None,
            max_token_length=int(config.get("max_token_length", DEFAULT_MAX_TOKEN_LENGTH)),
            algorithm=config.get("algorithm", DEFAULT_ALGORITHM),
            salt=config.get("salt", DEFAULT_SALT),
            reissue_on_rotation=bool(config.get("reissue_on_rotation", False)),
            cookie=CookiePolicy.from_dict(config.get("cookie", {})),
        )


DEFAULT_POLICY = SessionPolicy()
