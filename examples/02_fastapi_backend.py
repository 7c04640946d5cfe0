# RUN: uvicorn examples.02_fastapi_backend:app --reload
"""FastAPI backend: the build router backed by a real cluster.

Reads RPM_BUILDER_API_URL, RPM_BUILDER_TOKEN and RPM_BUILDER_NAMESPACE.

Then test with:
    curl -X POST http://localhost:8000/builds/ \
         -H "Content-Type: application/json" \
         -H "X-Namespace: rpm-builds" \
         -d '{"name": "tool", "sourceType": "git",
              "gitRepository": "https://github.com/example/tool.git"}'
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from rpm_builder import RPMBuilderClient, configure_logging

try:
    from fastapi import FastAPI

    from rpm_builder.integrations.fastapi import create_build_router

    _FASTAPI_AVAILABLE = True
except ImportError:
    _FASTAPI_AVAILABLE = False


if _FASTAPI_AVAILABLE:

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        client = await RPMBuilderClient.connect()
        configure_logging(client.config.log_level)
        app.include_router(create_build_router(client.builds, prefix="/builds"))
        yield
        await client.close()

    app = FastAPI(title="RPM Builder", version="0.3.0", lifespan=lifespan)
else:
    print("FastAPI not installed. Run: pip install rpm-builder-sdk[fastapi]")
