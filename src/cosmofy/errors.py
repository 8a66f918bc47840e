"""
Error taxonomy shared by the source adapters, the orchestrator and the service.
"""

from typing import Optional


class CosmofyError(Exception):
    """Base class for every error raised by this package."""


class SourceError(CosmofyError):
    """One upstream source failed (network, HTTP status, payload or credential)."""

    kind = "source"

    def __init__(self, source_id, cause, label: Optional[str] = None):
        self.source_id = source_id
        self.cause = cause
        self.label = label
        super().__init__(f"{label or getattr(source_id, 'value', source_id)}: {cause}")

    @property
    def message(self) -> str:
        return str(self.cause)


class ConfigurationError(SourceError):
    """A credential required by a source is not configured."""

    kind = "configuration"


class InputValidationError(CosmofyError, ValueError):
    """The caller supplied a malformed query. Raised before any network call."""
