"""
SigilFaults - Structured fault signals.

Errors in Sigil are typed faults carrying a stable code, a domain and a
severity, so callers can branch on ``fault.code`` and log ``fault.to_dict()``.
"""

from .core import (
    DOMAIN_DEFAULTS,
    Fault,
    FaultDomain,
    Severity,
)

__all__ = [
    "DOMAIN_DEFAULTS",
    "Fault",
    "FaultDomain",
    "Severity",
]
