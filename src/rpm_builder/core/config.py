from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, Field

from rpm_builder.core.constants import DEFAULT_PIPELINE_NAME
from rpm_builder.resilience.retry import RetryPolicy

_TRUTHY = {"1", "true", "yes", "on"}


class BuilderConfig(BaseModel):
    api_url: str | None = None
    """Base URL of the cluster API or of the console proxy in front of it."""
    token: str | None = None
    """Bearer token sent as ``Authorization: Bearer <token>``."""
    verify_ssl: bool = True
    default_namespace: str | None = None
    pipeline_name: str = DEFAULT_PIPELINE_NAME
    poll_interval: float = Field(default=5.0, ge=0.1, le=300)
    timeout: float = Field(default=30.0, ge=1, le=600)
    candidate_base_paths: list[str] = Field(
        default_factory=lambda: ["/api/kubernetes", ""]
    )
    """Path prefixes probed, in order, by the direct-request fallback.

    ``"/api/kubernetes"`` is the console proxy prefix; ``""`` is the bare
    API server.
    """
    csrf_cookie_name: str = "csrf-token"
    csrf_header_name: str = "X-CSRFToken"
    retry_policy: RetryPolicy | None = None
    """Optional retry policy for idempotent cluster reads."""
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @classmethod
    def from_env(cls) -> BuilderConfig:
        """Create a :class:`BuilderConfig` from ``RPM_BUILDER_*`` environment variables.

        Reads the following env vars (all optional):

        * ``RPM_BUILDER_API_URL`` → ``api_url``
        * ``RPM_BUILDER_TOKEN`` → ``token``
        * ``RPM_BUILDER_NAMESPACE`` → ``default_namespace``
        * ``RPM_BUILDER_PIPELINE_NAME`` → ``pipeline_name``
        * ``RPM_BUILDER_POLL_INTERVAL`` → ``poll_interval`` (float seconds)
        * ``RPM_BUILDER_TIMEOUT`` → ``timeout`` (float seconds)
        * ``RPM_BUILDER_VERIFY_SSL`` → ``verify_ssl`` (``1``/``true``/``yes``/``on``)
        * ``RPM_BUILDER_LOG_LEVEL`` → ``log_level``

        Any variable that is not set or is empty is left at its default value.
        """
        kwargs: dict[str, Any] = {}

        api_url = os.environ.get("RPM_BUILDER_API_URL")
        if api_url:
            kwargs["api_url"] = api_url

        token = os.environ.get("RPM_BUILDER_TOKEN")
        if token:
            kwargs["token"] = token

        namespace = os.environ.get("RPM_BUILDER_NAMESPACE")
        if namespace:
            kwargs["default_namespace"] = namespace

        pipeline_name = os.environ.get("RPM_BUILDER_PIPELINE_NAME")
        if pipeline_name:
            kwargs["pipeline_name"] = pipeline_name

        poll_interval = os.environ.get("RPM_BUILDER_POLL_INTERVAL")
        if poll_interval:
            kwargs["poll_interval"] = float(poll_interval)

        timeout_str = os.environ.get("RPM_BUILDER_TIMEOUT")
        if timeout_str:
            kwargs["timeout"] = float(timeout_str)

        verify_ssl = os.environ.get("RPM_BUILDER_VERIFY_SSL")
        if verify_ssl:
            kwargs["verify_ssl"] = verify_ssl.strip().lower() in _TRUTHY

        log_level = os.environ.get("RPM_BUILDER_LOG_LEVEL")
        if log_level:
            kwargs["log_level"] = log_level.upper()

        return cls(**kwargs)
