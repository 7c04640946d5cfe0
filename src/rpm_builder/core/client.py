from __future__ import annotations

from typing import Any

from rpm_builder.core.config import BuilderConfig
from rpm_builder.core.exceptions import ConfigurationError
from rpm_builder.core.service import RPMBuildService
from rpm_builder.gateway.base import ClusterGateway
from rpm_builder.gateway.fallback import FallbackGateway
from rpm_builder.gateway.http import HttpClusterGateway
from rpm_builder.polling.poller import BuildPoller
from rpm_builder.resources.images import OSImageMap, build_image_map


class RPMBuilderClient:
    """Top-level client for submitting and following RPM builds.

    Create via the :meth:`connect` factory method::

        client = await RPMBuilderClient.connect(
            api_url="https://console.example.com",
            default_namespace="rpm-builds",
        )
        job = await client.builds.create_build_job(request)
        final = await client.poller.poll_until_complete(job.build_id)

    Or use as an async context manager::

        async with await RPMBuilderClient.connect() as client:
            jobs = await client.builds.list_build_jobs()
    """

    def __init__(
        self,
        *,
        config: BuilderConfig,
        gateway: ClusterGateway,
        image_map: OSImageMap | None = None,
    ) -> None:
        self._config = config
        self._gateway = gateway
        self._image_map = image_map

        self._builds: RPMBuildService | None = None
        self._poller: BuildPoller | None = None

    # ------------------------------------------------------------------ #
    # Factory
    # ------------------------------------------------------------------ #

    @classmethod
    async def connect(cls, **kwargs: Any) -> RPMBuilderClient:
        """Build a gateway from configuration and connect it.

        Any :class:`BuilderConfig` field can be passed as a keyword
        argument; fields not given are read from ``RPM_BUILDER_*``
        environment variables.  Two special kwargs are accepted:

        * ``gateway``: a ready :class:`ClusterGateway` (skips gateway
          construction, used with :class:`MockClusterGateway` in tests)
        * ``image_overrides``: extra target-OS → image entries

        Raises:
            ConfigurationError: When no API URL is configured and no
                gateway was given.
        """
        config_fields = set(BuilderConfig.model_fields)
        config_kwargs = {k: v for k, v in kwargs.items() if k in config_fields}
        from_env = BuilderConfig.from_env().model_dump(exclude_unset=True)
        config = BuilderConfig(**{**from_env, **config_kwargs})

        gateway: ClusterGateway | None = kwargs.get("gateway")
        if gateway is None:
            gateway = cls._build_gateway(config)

        overrides = kwargs.get("image_overrides")
        image_map = build_image_map(overrides) if overrides else None

        await gateway.connect()
        return cls(config=config, gateway=gateway, image_map=image_map)

    @staticmethod
    def _build_gateway(config: BuilderConfig) -> ClusterGateway:
        """HTTP gateway wrapped in the create fallback chain."""
        if config.api_url is None:
            raise ConfigurationError(
                "No cluster API configured. "
                "Set RPM_BUILDER_API_URL or pass api_url=..."
            )
        primary = HttpClusterGateway(
            config.api_url,
            token=config.token,
            timeout=config.timeout,
            verify_ssl=config.verify_ssl,
            retry_policy=config.retry_policy,
        )
        return FallbackGateway(
            primary,
            candidate_base_paths=config.candidate_base_paths,
            csrf_header_name=config.csrf_header_name,
            csrf_cookie_name=config.csrf_cookie_name,
        )

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> BuilderConfig:
        return self._config

    @property
    def gateway(self) -> ClusterGateway:
        return self._gateway

    @property
    def builds(self) -> RPMBuildService:
        """Build submission, lookup, cancellation and logs."""
        if self._builds is None:
            self._builds = RPMBuildService(
                self._gateway, config=self._config, image_map=self._image_map
            )
        return self._builds

    @property
    def poller(self) -> BuildPoller:
        """Status poller using ``config.poll_interval``."""
        if self._poller is None:
            self._poller = BuildPoller(self.builds, self._config.poll_interval)
        return self._poller

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def close(self) -> None:
        await self._gateway.close()

    async def __aenter__(self) -> RPMBuilderClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
