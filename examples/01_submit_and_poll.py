# RUN: python examples/01_submit_and_poll.py
"""Submit a build against MockClusterGateway and poll it to completion.

Demonstrates: RPMBuilderClient.connect() with an injected gateway,
create_build_job(), the poller's on_update callback, logs and cancel.
"""

import asyncio

from rpm_builder import (
    BuildJob,
    BuildRequest,
    MockClusterGateway,
    RPMBuilderClient,
    SourceFile,
    configure_logging,
)

SUCCEEDED = {"conditions": [{"type": "Succeeded", "status": "True"}]}


async def main() -> None:
    # 1. In-memory cluster standing in for the API server
    mock = MockClusterGateway()
    client = await RPMBuilderClient.connect(
        gateway=mock, default_namespace="rpm-builds", poll_interval=0.5
    )
    configure_logging(client.config.log_level, json=False)

    # 2. Submit an upload build
    request = BuildRequest(
        name="hello",
        version="2.10",
        description="GNU hello world",
        files=[SourceFile.from_bytes("hello-2.10.tar.gz", b"not really a tarball")],
        target_os="centos-stream-9",
        architecture="x86_64",
        dependencies=["gcc", "make"],
    )
    job = await client.builds.create_build_job(request)
    print(f"Submitted {job.name} in {job.namespace} ({job.phase})")

    # 3. Play the pipeline engine: report success on the second poll
    polls = 0

    def on_update(update: BuildJob) -> None:
        nonlocal polls
        polls += 1
        print(f"  poll {polls}: {update.phase}")
        if polls == 1:
            mock.set_status(update.name, update.namespace, {"conditions": []})
        elif polls == 2:
            mock.set_status(update.name, update.namespace, SUCCEEDED)

    final = await client.poller.poll_until_complete(job.build_id, on_update=on_update)
    print(f"Final phase: {final.phase}")

    # 4. Logs (none recorded in the mock) and a no-op cancel of a finished build
    print(await client.builds.get_build_logs(job.build_id))
    print(f"Cancelled: {await client.builds.cancel_build_job(job.build_id)}")

    await client.close()


if __name__ == "__main__":
    asyncio.run(main())
