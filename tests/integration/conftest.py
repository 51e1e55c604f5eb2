"""
API fixtures: the FastAPI app over the shared test container.

ASGITransport does not run the lifespan, so the container is attached to
app.state directly and no workers are started.
"""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from barberly.api.main import create_app


@pytest_asyncio.fixture
async def app(container, settings):
    app = create_app(settings)
    app.state.container = container
    return app


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
