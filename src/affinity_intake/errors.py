"""Exceptions raised by the submission pipeline.

Each exception carries the HTTP status the API answers with, so the
pipeline can be driven from the CLI and the web layer alike.
"""


class IntakeError(Exception):
    """Base exception for submission failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(IntakeError):
    """Raised when required server settings are absent."""

    status_code = 500


class AuthenticationError(IntakeError):
    """Raised when the bearer token is missing or rejected."""

    status_code = 401


class InputValidationError(IntakeError):
    """Raised when uploaded files or form fields are unusable."""

    status_code = 400


class StoreError(IntakeError):
    """Raised when a store query or insert fails."""

    status_code = 500
