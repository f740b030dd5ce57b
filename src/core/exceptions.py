"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries. Every exception raised while
triaging a request is terminal for that request: there is no retry and no
partial result.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class LLMException(ExternalServiceException):
    """Exception for LLM API failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM Service", message, details)


class ApprovalServiceException(ExternalServiceException):
    """Exception when the approval collaborator cannot produce a decision."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Approval Gate", message, details)


class ClassificationError(ExternalServiceException):
    """The classifier returned no usable category label."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Category Classifier", message, details)


class ResponderEmptyOutputError(ExternalServiceException):
    """A diagnostic or remediation responder produced no content."""

    def __init__(self, responder: str, details: Optional[dict] = None):
        self.responder = responder
        super().__init__(
            f"{responder.title()} Responder",
            "no output generated",
            details or {"responder": responder}
        )


class UnhandledTopicGapError(DomainException):
    """
    A gated category was assigned but the text carries none of its topic keywords.

    Only raised when the topic gap policy is ``raise``; under the default
    ``report`` policy the same situation is returned as a ``topic_gap`` outcome.
    """

    def __init__(self, category: str, details: Optional[dict] = None):
        self.category = category
        super().__init__(
            f"No {category} topic keywords found in request",
            details or {"category": category}
        )
