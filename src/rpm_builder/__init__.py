"""RPM Builder SDK: submit RPM builds to Tekton and follow them to completion."""

from rpm_builder.__version__ import __version__
from rpm_builder.core.client import RPMBuilderClient
from rpm_builder.core.config import BuilderConfig
from rpm_builder.core.constants import BuildPhase, SourceType
from rpm_builder.core.exceptions import (
    APIConnectionError,
    AuthenticationError,
    BuildNotFoundError,
    BuildSubmissionError,
    ConfigurationError,
    ConflictError,
    GatewayError,
    NamespaceError,
    PayloadTooLargeError,
    ResourceNotFoundError,
    RPMBuilderError,
    ServerError,
    ValidationError,
)
from rpm_builder.core.ids import BuildIdGenerator, generate_build_id
from rpm_builder.core.namespace import NamespaceResolver
from rpm_builder.core.service import RPMBuildService
from rpm_builder.core.status import classify_status, phase_for, translate
from rpm_builder.core.types import (
    BuildJob,
    BuildJobStatus,
    BuildRequest,
    Condition,
    SourceFile,
)
from rpm_builder.gateway.base import ClusterGateway, GatewayProtocol
from rpm_builder.gateway.fallback import FallbackGateway
from rpm_builder.gateway.http import HttpClusterGateway
from rpm_builder.gateway.mock import MockClusterGateway
from rpm_builder.polling.poller import BuildPoller, PollHandle
from rpm_builder.resilience.retry import RetryPolicy
from rpm_builder.utils.logging import build_context, configure_logging

__all__ = [
    "__version__",
    # Client
    "RPMBuilderClient",
    "RPMBuildService",
    "BuilderConfig",
    # Models
    "BuildJob",
    "BuildJobStatus",
    "BuildPhase",
    "BuildRequest",
    "Condition",
    "SourceFile",
    "SourceType",
    # Identity / namespace / status
    "BuildIdGenerator",
    "generate_build_id",
    "NamespaceResolver",
    "classify_status",
    "phase_for",
    "translate",
    # Gateways
    "ClusterGateway",
    "FallbackGateway",
    "GatewayProtocol",
    "HttpClusterGateway",
    "MockClusterGateway",
    # Polling
    "BuildPoller",
    "PollHandle",
    # Resilience / logging
    "RetryPolicy",
    "build_context",
    "configure_logging",
    # Exceptions
    "RPMBuilderError",
    "APIConnectionError",
    "AuthenticationError",
    "BuildNotFoundError",
    "BuildSubmissionError",
    "ConfigurationError",
    "ConflictError",
    "GatewayError",
    "NamespaceError",
    "PayloadTooLargeError",
    "ResourceNotFoundError",
    "ServerError",
    "ValidationError",
]
