"""
Base validator interface for service request rules.

All validators must inherit from BaseValidator and implement the validate() method.
"""

from abc import ABC, abstractmethod

from urbanflux.core.errors import SemanticError
from urbanflux.core.models import ServiceRequest


class BaseValidator(ABC):
    """
    Abstract base class for all validators.

    Each validator checks one domain rule on a decoded ServiceRequest.
    """

    def __init__(self, field_name: str):
        """
        Initialize validator.

        Args:
            field_name: Name of the field the rule applies to
        """
        self.field_name = field_name

    @abstractmethod
    def validate(self, record: ServiceRequest) -> None:
        """
        Validate a record against this rule.

        Args:
            record: The record to validate

        Raises:
            SemanticError: If validation fails
        """
        pass

    @property
    @abstractmethod
    def rule_name(self) -> str:
        """Return the rule identifier."""
        pass

    def fail(self, message: str) -> None:
        raise SemanticError(message, field_name=self.field_name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(field={self.field_name})"
