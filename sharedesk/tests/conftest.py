import os
import pytest
import pytest_asyncio
from contextlib import AsyncExitStack

# Configure test environment before the application modules read it
os.environ.setdefault('DATABASE_URL', 'sqlite+aiosqlite:///:memory:')
os.environ.setdefault('ADMIN_USERNAME', 'admin')
os.environ.setdefault('ADMIN_PASSWORD', 'admin-pass')
os.environ.setdefault('BLOB_BACKEND', 'local')

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from sharedesk.auth import ADMIN_USERNAME, ADMIN_PASSWORD  # noqa: E402
from sharedesk.main import create_app  # noqa: E402
from sharedesk.models import Base  # noqa: E402
from sharedesk.storage import BlobStore, BlobNotFound, BlobStoreError  # noqa: E402


class MemoryBlobStore(BlobStore):
    """In-process blob store; ``fail_put``/``fail_delete`` simulate an outage."""

    def __init__(self):
        self.blobs = {}
        self.fail_put = False
        self.fail_delete = False

    async def put(self, key, data, content_type):
        if self.fail_put:
            raise BlobStoreError('put unavailable')
        self.blobs[key] = (data, content_type)

    async def get(self, key):
        try:
            return self.blobs[key][0]
        except KeyError:
            raise BlobNotFound(key)

    async def delete(self, key):
        if self.fail_delete:
            raise BlobStoreError('delete unavailable')
        self.blobs.pop(key, None)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        'sqlite+aiosqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def blob_store():
    return MemoryBlobStore()


@pytest.fixture
def app(session_factory, blob_store):
    return create_app(session_factory=session_factory, blob_store=blob_store)


@pytest_asyncio.fixture
async def client_factory(app):
    """Each client keeps its own cookie jar, i.e. acts as a separate browser."""
    async with AsyncExitStack() as stack:
        async def make_client():
            transport = ASGITransport(app=app, raise_app_exceptions=False)
            return await stack.enter_async_context(AsyncClient(transport=transport, base_url='http://test'))
        yield make_client


@pytest_asyncio.fixture
async def client(client_factory):
    return await client_factory()


async def login(client, username, password):
    return await client.post('/login', json={'username': username, 'password': password})


@pytest_asyncio.fixture
async def admin_client(client_factory):
    ac = await client_factory()
    res = await login(ac, ADMIN_USERNAME, ADMIN_PASSWORD)
    assert res.status_code == 200, res.text
    return ac


@pytest_asyncio.fixture
async def make_user(admin_client, client_factory):
    """Create a user through /add-user and return a client logged in as them."""
    async def _make(username, password='secret'):
        res = await admin_client.post('/add-user', json={'username': username, 'password': password})
        assert res.status_code == 200, res.text
        ac = await client_factory()
        res = await login(ac, username, password)
        assert res.status_code == 200, res.text
        return ac
    return _make
