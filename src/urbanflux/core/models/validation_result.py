"""
ValidationResult model representing the outcome of validating a record (ephemeral).
"""

from pydantic import BaseModel, Field, field_validator


class ValidationResult(BaseModel):
    """
    Outcome of validating a ServiceRequest (in-memory only).

    Attributes:
        unique_key: Which record was validated
        passed: Overall validation status
        passed_rules: Rules that succeeded
        failed_rules: Rules that failed
        errors: One message per failed rule
    """

    unique_key: int
    passed: bool
    passed_rules: list[str] = Field(default_factory=list)
    failed_rules: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @field_validator("failed_rules")
    @classmethod
    def check_passed_consistency(cls, v, info):
        """Validate that passed=True implies failed_rules is empty."""
        if info.data.get("passed") and len(v) > 0:
            raise ValueError("passed=True but failed_rules is not empty")
        return v
