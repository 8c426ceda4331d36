"""
tiny-robots error types.

TransportError and APIError are transient and retried by the poll loop,
DecodeError is scoped to a single event, ValidationError is a caller bug.
"""

from typing import Any, Optional


class TinyRobotsError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class TransportError(TinyRobotsError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("transport_error", message, details)


class APIError(TinyRobotsError):
    """The platform answered with a non-success envelope."""

    def __init__(self, operation: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("api_error", message, details)
        self.operation = operation

    def __str__(self) -> str:
        return f"{self.operation}: {self.message}"


class DecodeError(TinyRobotsError):
    def __init__(self, message: str, event_type: Optional[str] = None, event_id: Optional[str] = None):
        super().__init__("decode_error", message)
        self.event_type = event_type
        self.event_id = event_id

    @property
    def id(self) -> Optional[str]:
        return self.event_id


class ValidationError(TinyRobotsError):
    def __init__(self, message: str):
        super().__init__("validation_error", message)


class ConfigError(TinyRobotsError):
    def __init__(self, message: str):
        super().__init__("config_error", message)
