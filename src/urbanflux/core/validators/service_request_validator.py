"""
Applies every domain rule to a ServiceRequest and collects the outcome.
"""

from urbanflux.core.errors import SemanticError
from urbanflux.core.models import ServiceRequest, ValidationResult

from .base_validator import BaseValidator
from .rules import (
    BoroughValidator,
    ClosedAfterCreatedValidator,
    CoordinatesValidator,
    PositiveKeyValidator,
    RequiredTextValidator,
)


def default_validators() -> list[BaseValidator]:
    return [
        PositiveKeyValidator(),
        RequiredTextValidator("complaint_type"),
        BoroughValidator(),
        CoordinatesValidator(),
        ClosedAfterCreatedValidator(),
    ]


class ServiceRequestValidator:
    """
    Runs a fixed list of validators over a record.

    All rules are evaluated so a rejected record reports every failure,
    not just the first one.
    """

    def __init__(self, validators: list[BaseValidator] | None = None):
        self.validators = validators if validators is not None else default_validators()

    def validate(self, record: ServiceRequest) -> ValidationResult:
        """
        Validate a record against all rules.

        Args:
            record: The record to validate

        Returns:
            ValidationResult with passed/failed rules and error messages
        """
        passed_rules = []
        failed_rules = []
        errors = []

        for validator in self.validators:
            try:
                validator.validate(record)
                passed_rules.append(validator.rule_name)
            except SemanticError as e:
                failed_rules.append(validator.rule_name)
                errors.append(str(e))

        return ValidationResult(
            unique_key=record.unique_key,
            passed=not failed_rules,
            passed_rules=passed_rules,
            failed_rules=failed_rules,
            errors=errors,
        )
