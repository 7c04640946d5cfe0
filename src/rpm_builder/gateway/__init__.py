from rpm_builder.gateway.base import (
    CONFIG_MAP,
    PIPELINE_RUN,
    POD,
    ClusterGateway,
    GatewayProtocol,
    ResourceModel,
)
from rpm_builder.gateway.fallback import (
    DirectRequestStrategy,
    FallbackGateway,
    PrimaryClientStrategy,
    StrategyChain,
)
from rpm_builder.gateway.http import HttpClusterGateway
from rpm_builder.gateway.mock import MockClusterGateway

__all__ = [
    "CONFIG_MAP",
    "PIPELINE_RUN",
    "POD",
    "ClusterGateway",
    "DirectRequestStrategy",
    "FallbackGateway",
    "GatewayProtocol",
    "HttpClusterGateway",
    "MockClusterGateway",
    "PrimaryClientStrategy",
    "ResourceModel",
    "StrategyChain",
]
