"""
Verification module for lexcite.

Provides citation validation against the reference tables and audit
logging of every validation outcome.
"""

from lexcite.verification.models import (
    ValidationStatus,
    ValidationResult,
)
from lexcite.verification.validator import CitationValidator
from lexcite.verification.audit import (
    get_audit_logger,
    configure_audit_logging,
    AuditEvent,
    log_validation_outcome,
)

__all__ = [
    # Status enums
    "ValidationStatus",
    # Result models
    "ValidationResult",
    # Validator
    "CitationValidator",
    # Audit logging
    "get_audit_logger",
    "configure_audit_logging",
    "AuditEvent",
    "log_validation_outcome",
]
