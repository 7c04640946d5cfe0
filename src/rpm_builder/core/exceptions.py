from __future__ import annotations

from typing import Any


class RPMBuilderError(Exception):
    """Base exception for all RPM builder errors.

    Attributes:
        code: Optional machine-readable error code (e.g. ``"404"``).
        details: Arbitrary key/value context about the error.
        status_code: HTTP status code when the error originates from a
            cluster API response (``None`` when not applicable).
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.status_code = status_code

    @property
    def is_retryable(self) -> bool:
        """Whether the operation that raised this error can be retried."""
        return False


class ConfigurationError(RPMBuilderError): ...


class ValidationError(RPMBuilderError):
    """The build request is missing required fields.

    Raised before any cluster call is made.
    """


class PayloadTooLargeError(ValidationError):
    """A source payload would not fit into a single ConfigMap."""


class NamespaceError(RPMBuilderError):
    """No namespace could be resolved for the operation.  Never retried."""


class GatewayError(RPMBuilderError): ...


class BuildNotFoundError(RPMBuilderError):
    """No PipelineRun exists for the requested build identifier."""


# ---------------------------------------------------------------------------
# Gateway failure classification
# ---------------------------------------------------------------------------


class ResourceNotFoundError(GatewayError):
    """The cluster API answered 404 for the requested path."""


class ConflictError(GatewayError):
    """A resource with the same name already exists (HTTP 409)."""


class AuthenticationError(GatewayError):
    """Authentication / authorisation failure (HTTP 401/403).

    Never retryable.
    """

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return False


class ServerError(GatewayError):
    """The cluster API returned a 5xx response."""

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


class APIConnectionError(GatewayError):
    """A transport-level failure (DNS, TCP, TLS, timeout).

    Always retryable.
    """

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


class BuildSubmissionError(GatewayError):
    """Creating the resources of a build failed part-way.

    ``details["created"]`` lists the resource names that were created
    before the failure; they are left in place.
    """
