"""
Core Exceptions
================

Errors raised by the triage engine, grouped by how a caller should react:

- ValidationException: bad input to an event; nothing was written
- ResourceNotFoundException: an action names a message that is not stored
- RepositoryException: the store failed; the operation did not happen
- ExternalServiceException / LLMException: an upstream model call failed
  where there is no neutral fallback (summaries, search phrases)
- ConfigurationException: the process cannot start as configured

The HTTP layer maps each group to a status code.
"""

from typing import Any, Dict, Optional


class ApplicationException(Exception):
    """Root of every error the engine reports to a requester."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class RepositoryException(ApplicationException):
    """The message, follow-up or summary store could not complete a statement."""


class ValidationException(ApplicationException):
    """Rejected before any side effect (missing id, bad snooze hours, blank phrase)."""


class ResourceNotFoundException(ApplicationException):

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        if resource_id:
            message = f"{resource_type} '{resource_id}' does not exist"
        else:
            message = f"{resource_type} does not exist"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Missing or inconsistent settings, e.g. no OpenAI key outside mock mode."""


class ExternalServiceException(ApplicationException):
    """An upstream call failed; `service_name` says which one."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class LLMException(ExternalServiceException):
    """Chat or embedding call to the model provider failed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("openai", message, details)
