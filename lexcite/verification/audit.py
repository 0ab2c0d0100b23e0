"""
Audit trail for citation processing.

Every stage of the pipeline leaves one structured event:

    citation_validation   one per citation checked (module="validator");
                          result VALID | WARNING | INVALID plus issue codes
    citations_extracted   count, flagged, style             (module="engine")
    short_forms_resolved  count, resolutions by form         (module="engine")
    toa_built             sections, entries                  (module="engine")

All events carry duration_ms. Rendering is JSON lines on stdout unless the
engine is configured with LEXCITE_LOG_JSON=false.

Usage:
    configure_audit_logging("INFO")
    logger = get_audit_logger("engine")
    start_time = time.time()
    ...
    logger.info("toa_built", entries=12, duration_ms=elapsed_ms(start_time))
"""

import logging
import time
import structlog
from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field

from lexcite.citations.models import Citation
from lexcite.verification.models import ValidationResult, ValidationStatus


def configure_audit_logging(level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog for the citation audit trail.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ...); citation_validation
            events for INVALID citations are the only ones logged above INFO
        json_output: JSON lines when True, the structlog console renderer
            (for reading a document's trail by hand) when False
    """
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_audit_logger(name: str) -> structlog.BoundLogger:
    """Logger whose events carry module=name ("validator" or "engine")."""
    return structlog.get_logger(module=name)


def elapsed_ms(start_time: float) -> int:
    """Whole milliseconds since start_time (a time.time() reading)."""
    return int((time.time() - start_time) * 1000)


class AuditEvent(BaseModel):
    """One citation_validation event."""

    event_type: str = Field(
        description="Type of audit event (e.g., 'citation_validation')"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp of the event"
    )
    input_data: dict = Field(
        description="The citation checked: raw text, kind and span"
    )
    result: str = Field(
        description="ValidationStatus value (VALID, WARNING, INVALID)"
    )
    duration_ms: int = Field(
        ge=0,
        description="Time spent checking the citation"
    )
    authority_key: Optional[str] = Field(
        default=None,
        description="Authority key of the checked citation; None for unbound short forms"
    )
    reason: Optional[str] = Field(
        default=None,
        description="Comma-separated issue codes behind a WARNING or INVALID result"
    )
    suggestions: List[str] = Field(
        default_factory=list,
        description="Fix-it hints attached to the issues, in issue order"
    )

    @classmethod
    def for_validation(cls, citation: Citation, result: ValidationResult) -> "AuditEvent":
        """Build the event recording how citation fared in validation."""
        return cls(
            event_type="citation_validation",
            input_data={
                "raw_text": citation.raw_text,
                "kind": citation.kind.value if citation.kind else None,
                "span": list(citation.span),
            },
            result=result.status.value,
            duration_ms=result.validation_time_ms,
            authority_key=citation.authority_key,
            reason=", ".join(code.value for code in result.codes()) or None,
            suggestions=[issue.suggestion for issue in result.issues if issue.suggestion],
        )


def log_validation_outcome(
    logger: structlog.BoundLogger,
    event: AuditEvent
) -> None:
    """
    Log a citation_validation event.

    INVALID citations (fatal errors, left unformatted) log at WARNING;
    VALID and WARNING results log at INFO.
    """
    event_dict = event.model_dump()
    event_dict["timestamp"] = event.timestamp.isoformat()

    if event.result == ValidationStatus.INVALID.value:
        logger.warning("citation_validation", **event_dict)
    else:
        logger.info("citation_validation", **event_dict)
