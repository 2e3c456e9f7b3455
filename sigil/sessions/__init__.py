"""
SigilSessions - Signed client-side sessions.

Session state lives entirely in a cookie. The server keeps nothing but the
signing keys; the cookie carries a canonical JSON payload plus an HMAC tag,
and anything that fails verification is silently treated as "no session".

Pipeline:
    Cookie -> TokenAssembler -> Signer.verify -> codec.decode -> SessionStore
    SessionStore -> codec.encode -> Signer.sign -> TokenAssembler -> Set-Cookie
"""

from . import codec

from .signer import (
    SecretKey,
    KeyRing,
    Signer,
)

from .token import TokenAssembler

from .store import SessionStore

from .policy import (
    SessionPolicy,
    CookiePolicy,
    DEFAULT_POLICY,
)

from .adapter import SessionAdapter

from .middleware import SessionMiddleware

from .faults import (
    SessionFault,
    VerificationFault,
    MalformedTokenFault,
    SignatureMismatchFault,
    MalformedPayloadFault,
    SessionTooLargeFault,
    TokenTooLargeFault,
    UnsupportedValueKindFault,
    SessionFinalizedFault,
    SessionConfigFault,
)

__all__ = [
    # Codec
    "codec",
    # Signing
    "SecretKey",
    "KeyRing",
    "Signer",
    # Wire format
    "TokenAssembler",
    # Store
    "SessionStore",
    # Policy
    "SessionPolicy",
    "CookiePolicy",
    "DEFAULT_POLICY",
    # Adapters
    "SessionAdapter",
    "SessionMiddleware",
    # Faults
    "SessionFault",
    "VerificationFault",
    "MalformedTokenFault",
    "SignatureMismatchFault",
    "MalformedPayloadFault",
    "SessionTooLargeFault",
    "TokenTooLargeFault",
    "UnsupportedValueKindFault",
    "SessionFinalizedFault",
    "SessionConfigFault",
]
