import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from sqlgate.db.session import Store
from sqlgate.main import create_app


@pytest_asyncio.fixture
async def store(tmp_path):
    s = Store(str(tmp_path / "gateway.sqlite"))
    await s.open()
    yield s
    await s.close()


@pytest_asyncio.fixture
async def client(store):
    transport = ASGITransport(app=create_app(store=store))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
