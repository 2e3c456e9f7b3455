"""
SigilSessions - Fault definitions.

Two families:

- Verification faults (``MalformedTokenFault``, ``SignatureMismatchFault``,
  ``MalformedPayloadFault``) are raised by the codec, signer and token
  layers and always caught by ``SessionStore.from_token``. Application code
  never sees them.
- Write faults (``SessionTooLargeFault``, ``TokenTooLargeFault``,
  ``UnsupportedValueKindFault``, ``SessionFinalizedFault``) signal a
  programming error and propagate to the caller.

Fault messages never contain token or payload contents.
"""

from __future__ import annotations

from sigil.faults import Fault, FaultDomain, Severity


# ============================================================================
# Session Fault Base
# ============================================================================

class SessionFault(Fault):
    """Base class for session-related faults."""

    domain = FaultDomain.SESSION


class VerificationFault(SessionFault):
    """
    Base class for faults raised while reading an inbound token.

    Treated as "no prior session" by the store constructor.
    """

    domain = FaultDomain.SECURITY
    severity = Severity.WARN
    public = False
    retryable = False


# ============================================================================
# Verification Faults
# ============================================================================

class MalformedTokenFault(VerificationFault):
    """Token is structurally invalid (delimiter, alphabet, encoding, length)."""

    code = "SESSION_MALFORMED_TOKEN"
    message = "Session token is malformed"

    def __init__(self, reason: str, **kwargs):
        super().__init__(**kwargs)
        self.reason = reason
        self.message = f"Session token is malformed: {reason}"


class SignatureMismatchFault(VerificationFault):
    """
    Token is well-formed but its signature does not verify.

    Either the payload was tampered with or it was signed with a key that is
    no longer in the key ring.
    """

    code = "SESSION_SIGNATURE_MISMATCH"
    message = "Session signature does not match"


class MalformedPayloadFault(VerificationFault):
    """Payload bytes do not decode to a session mapping."""

    code = "SESSION_MALFORMED_PAYLOAD"
    message = "Session payload is malformed"

    def __init__(self, reason: str, **kwargs):
        super().__init__(**kwargs)
        self.reason = reason
        self.message = f"Session payload is malformed: {reason}"


# ============================================================================
# Write Faults
# ============================================================================

class SessionTooLargeFault(SessionFault):
    """
    Encoded session would exceed the configured size ceiling.

    The mutation that triggered it has not been applied.
    """

    code = "SESSION_TOO_LARGE"
    message = "Session data exceeds the size limit"
    severity = Severity.ERROR
    public = False

    def __init__(self, size: int, max_size: int, **kwargs):
        super().__init__(**kwargs)
        self.size = size
        self.max_size = max_size
        self.message = f"Encoded session is {size} bytes, limit is {max_size}"


class TokenTooLargeFault(SessionFault):
    """Assembled token would exceed the cookie length ceiling."""

    code = "SESSION_TOKEN_TOO_LARGE"
    message = "Session token exceeds the length limit"
    severity = Severity.ERROR
    public = False

    def __init__(self, length: int, max_length: int, **kwargs):
        super().__init__(**kwargs)
        self.length = length
        self.max_length = max_length
        self.message = f"Session token is {length} characters, limit is {max_length}"


class UnsupportedValueKindFault(SessionFault):
    """Application tried to store a value the codec cannot represent."""

    code = "SESSION_UNSUPPORTED_VALUE"
    message = "Value cannot be stored in the session"
    severity = Severity.ERROR
    public = False

    def __init__(self, path: str, kind: str, **kwargs):
        super().__init__(**kwargs)
        self.path = path
        self.kind = kind
        self.message = f"Cannot store value of type {kind} at {path}"


class SessionFinalizedFault(SessionFault):
    """Session was already committed for this request."""

    code = "SESSION_FINALIZED"
    message = "Session has already been finalized for this request"
    severity = Severity.ERROR
    public = False


class SessionConfigFault(SessionFault):
    """Session configuration is missing or invalid."""

    code = "SESSION_CONFIG_INVALID"
    message = "Invalid session configuration"
    domain = FaultDomain.CONFIG
    public = False

    def __init__(self, reason: str, **kwargs):
        super().__init__(**kwargs)
        self.reason = reason
        self.message = f"Invalid session configuration: {reason}"
