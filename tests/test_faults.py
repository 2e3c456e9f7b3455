"""
Faults system (faults/ and sessions/faults.py).

Tests Fault, FaultDomain, Severity and the session fault taxonomy.
"""

import pytest

from sigil.faults import DOMAIN_DEFAULTS, Fault, FaultDomain, Severity
from sigil.sessions.faults import (
    MalformedPayloadFault,
    MalformedTokenFault,
    SessionConfigFault,
    SessionFault,
    SessionFinalizedFault,
    SessionTooLargeFault,
    SignatureMismatchFault,
    TokenTooLargeFault,
    UnsupportedValueKindFault,
    VerificationFault,
)


# ============================================================================
# Severity
# ============================================================================

class TestSeverity:

    def test_values(self):
        assert Severity.INFO == "info"
        assert Severity.WARN == "warn"
        assert Severity.ERROR == "error"
        assert Severity.FATAL == "fatal"


# ============================================================================
# FaultDomain
# ============================================================================

class TestFaultDomain:

    def test_standard_domains(self):
        assert FaultDomain.CONFIG.name == "config"
        assert FaultDomain.SECURITY.name == "security"
        assert FaultDomain.SESSION.name == "session"

    def test_custom_domain(self):
        custom = FaultDomain("cart", "Cart errors")
        assert custom.name == "cart"
        assert custom.description == "Cart errors"

    def test_domain_equality(self):
        assert FaultDomain("test") == FaultDomain("test")
        assert FaultDomain("test") != FaultDomain("other")
        assert FaultDomain("session") == "session"

    def test_hashable(self):
        assert FaultDomain.SESSION in DOMAIN_DEFAULTS


# ============================================================================
# Fault
# ============================================================================

class TestFault:

    def test_explicit_fields(self):
        fault = Fault(code="CART_EMPTY", message="Cart has no items", domain=FaultDomain.SESSION)
        assert fault.code == "CART_EMPTY"
        assert str(fault) == "[CART_EMPTY] Cart has no items"
        assert fault.severity == Severity.ERROR
        assert fault.retryable is False
        assert fault.public is False

    def test_domain_default_severity(self):
        fault = Fault(code="X", message="x", domain=FaultDomain.CONFIG)
        assert fault.severity == Severity.FATAL

    def test_explicit_severity_wins(self):
        fault = Fault(code="X", message="x", domain=FaultDomain.CONFIG, severity=Severity.INFO)
        assert fault.severity == Severity.INFO

    def test_missing_fields(self):
        with pytest.raises(TypeError):
            Fault(code="X")

    def test_to_dict(self):
        fault = Fault(
            code="X",
            message="x",
            domain=FaultDomain.SESSION,
            metadata={"key": "cart"},
        )
        assert fault.to_dict() == {
            "code": "X",
            "message": "x",
            "domain": "session",
            "severity": "error",
            "retryable": False,
            "public": False,
            "metadata": {"key": "cart"},
        }

    def test_repr(self):
        fault = Fault(code="X", message="x", domain=FaultDomain.SESSION)
        assert "code='X'" in repr(fault)

    def test_is_exception(self):
        with pytest.raises(Fault):
            raise Fault(code="X", message="x", domain=FaultDomain.SESSION)


# ============================================================================
# Session faults
# ============================================================================

class TestSessionFaults:

    @pytest.mark.parametrize("fault,code", [
        (MalformedTokenFault("missing delimiter"), "SESSION_MALFORMED_TOKEN"),
        (SignatureMismatchFault(), "SESSION_SIGNATURE_MISMATCH"),
        (MalformedPayloadFault("not a mapping"), "SESSION_MALFORMED_PAYLOAD"),
        (SessionTooLargeFault(5000, 4096), "SESSION_TOO_LARGE"),
        (TokenTooLargeFault(5000, 4096), "SESSION_TOKEN_TOO_LARGE"),
        (UnsupportedValueKindFault("$.when", "datetime"), "SESSION_UNSUPPORTED_VALUE"),
        (SessionFinalizedFault(), "SESSION_FINALIZED"),
        (SessionConfigFault("no secret"), "SESSION_CONFIG_INVALID"),
    ])
    def test_codes(self, fault, code):
        assert fault.code == code
        assert isinstance(fault, SessionFault)
        assert fault.public is False

    def test_verification_family(self):
        for fault in (MalformedTokenFault("x"), SignatureMismatchFault(), MalformedPayloadFault("x")):
            assert isinstance(fault, VerificationFault)
            assert fault.domain == FaultDomain.SECURITY
            assert fault.severity == Severity.WARN

    def test_write_faults_are_not_verification(self):
        for fault in (SessionTooLargeFault(1, 0), TokenTooLargeFault(1, 0), SessionFinalizedFault()):
            assert not isinstance(fault, VerificationFault)
            assert fault.domain == FaultDomain.SESSION

    def test_config_domain(self):
        fault = SessionConfigFault("no secret")
        assert fault.domain == FaultDomain.CONFIG
        assert fault.severity == Severity.FATAL
        assert "no secret" in str(fault)

    def test_context_in_message(self):
        fault = SessionTooLargeFault(5000, 4096)
        assert fault.size == 5000
        assert "5000" in fault.message
        assert "4096" in fault.message

        fault = UnsupportedValueKindFault("$.when", "datetime")
        assert fault.path == "$.when"
        assert "datetime" in str(fault)
