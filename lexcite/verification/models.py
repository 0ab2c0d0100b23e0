"""
Pydantic models for the validation system.

Provides data structures for:
- Validation status codes
- Validation results for a single citation
"""

from enum import Enum
from typing import List
from pydantic import BaseModel, Field, computed_field

from lexcite.citations.models import CitationIssue, IssueCode


class ValidationStatus(str, Enum):
    """Status codes for validation operations."""
    VALID = "VALID"         # No issues found
    WARNING = "WARNING"     # Only non-fatal issues
    INVALID = "INVALID"     # At least one fatal error; citation kept but not formatted


class ValidationResult(BaseModel):
    """Result of validating one citation."""
    warnings: List[CitationIssue] = Field(
        default_factory=list,
        description="Non-fatal issues"
    )
    errors: List[CitationIssue] = Field(
        default_factory=list,
        description="Fatal issues"
    )
    validation_time_ms: int = Field(
        default=0,
        ge=0,
        description="Time taken for validation in milliseconds"
    )

    @computed_field
    @property
    def status(self) -> ValidationStatus:
        if self.errors:
            return ValidationStatus.INVALID
        if self.warnings:
            return ValidationStatus.WARNING
        return ValidationStatus.VALID

    @property
    def issues(self) -> List[CitationIssue]:
        return [*self.warnings, *self.errors]

    def codes(self) -> List[IssueCode]:
        return [issue.code for issue in self.issues]
