"""Reconciliation poller: re-reads a build until it reaches a terminal phase."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError as ModelValidationError

from rpm_builder.core.exceptions import BuildNotFoundError, GatewayError
from rpm_builder.core.types import BuildJob
from rpm_builder.utils.logging import build_context

if TYPE_CHECKING:
    from rpm_builder.core.service import RPMBuildService

logger = structlog.get_logger(__name__)

UpdateCallback = Callable[[BuildJob], Awaitable[None] | None]


async def _notify(on_update: UpdateCallback | None, job: BuildJob) -> None:
    if on_update is None:
        return
    result = on_update(job)
    if inspect.isawaitable(result):
        await result


class PollHandle:
    """A running poll loop started by :meth:`BuildPoller.start`.

    Cancelling the handle stops further reads for the build; the build
    itself keeps running on the cluster.
    """

    def __init__(self, build_id: str, task: asyncio.Task[BuildJob]) -> None:
        self.build_id = build_id
        self._task = task

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    def cancel(self) -> None:
        self._task.cancel()

    async def wait(self) -> BuildJob:
        """Wait for the terminal job.  Raises ``CancelledError`` after :meth:`cancel`."""
        return await self._task


class BuildPoller:
    """Fixed-cadence status reconciliation for submitted builds.

    Each tick fetches the build, then sleeps *interval* seconds.  A failed
    fetch (gateway error, a not-yet-visible build, or a PipelineRun that
    does not read back as a job) is logged and retried on the next tick;
    it never ends the poll.  There is no backoff.

    Example::

        poller = BuildPoller(service, interval=5.0)
        async for job in poller.watch(build_id):
            print(job.phase)
    """

    def __init__(self, service: RPMBuildService, interval: float | None = None) -> None:
        self._service = service
        self._interval = (
            interval if interval is not None else service.config.poll_interval
        )
        if self._interval < 0:
            raise ValueError("interval must be >= 0")

    @property
    def interval(self) -> float:
        return self._interval

    async def watch(
        self,
        build_id: str,
        namespace: str | None = None,
        *,
        context_path: str | None = None,
    ) -> AsyncIterator[BuildJob]:
        """Yield the build on every successful fetch; stop after a terminal phase."""
        ns = self._service.resolve_namespace(namespace, context_path=context_path)
        log = logger.bind(build_id=build_id, namespace=ns)
        while True:
            try:
                with build_context(build_id, ns):
                    job = await self._service.get_build_job(build_id, ns)
            except (GatewayError, BuildNotFoundError) as exc:
                log.warning("build_poll_failed", error=str(exc))
            except ModelValidationError as exc:
                log.warning("build_poll_failed", error=str(exc), unreadable=True)
            else:
                log.debug("build_polled", phase=job.phase)
                yield job
                if job.is_terminal:
                    log.info("build_finished", phase=job.phase)
                    return
            await asyncio.sleep(self._interval)

    async def poll_until_complete(
        self,
        build_id: str,
        namespace: str | None = None,
        on_update: UpdateCallback | None = None,
        *,
        context_path: str | None = None,
    ) -> BuildJob:
        """Poll until the build is terminal and return the final job.

        *on_update* (sync or async) receives every fetched job, the
        terminal one included.
        """
        job: BuildJob | None = None
        async for job in self.watch(build_id, namespace, context_path=context_path):
            await _notify(on_update, job)
        assert job is not None  # noqa: S101
        return job

    def start(
        self,
        build_id: str,
        namespace: str | None = None,
        on_update: UpdateCallback | None = None,
        *,
        context_path: str | None = None,
    ) -> PollHandle:
        """Run :meth:`poll_until_complete` as a background task."""
        task = asyncio.create_task(
            self.poll_until_complete(
                build_id, namespace, on_update, context_path=context_path
            ),
            name=f"poll-{build_id}",
        )
        return PollHandle(build_id, task)
