import os
import typing
from http import HTTPStatus

os.environ['DATABASE_URL'] = 'sqlite+aiosqlite://'
os.environ['ENABLE_RATE_LIMITING'] = 'false'
os.environ['ENABLE_CACHE'] = 'false'
os.environ['NOTIFICATIONS_ENABLED'] = 'false'
os.environ['PASSWORD_HASH_ROUNDS'] = '4'

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from crowd_ticketing.database import get_db
from crowd_ticketing.main import app
from crowd_ticketing.models import Base, User, UserRole
from crowd_ticketing.utils.auth import get_password_hash
from tests.utils import PASSWORD, bearer, future


@pytest.fixture(scope='session')
def anyio_backend() -> str:
    return 'asyncio'


@pytest.fixture
async def session_factory(
    anyio_backend: typing.Literal['asyncio']
) -> typing.AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    async_engine = create_async_engine(
        'sqlite+aiosqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=True,
    )

    await async_engine.dispose()


@pytest.fixture
async def async_session(
    session_factory: async_sessionmaker[AsyncSession]
) -> typing.AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(
    session_factory: async_sessionmaker[AsyncSession]
) -> typing.AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> typing.AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    _transport = ASGITransport(app=app)

    async with AsyncClient(
        transport=_transport, base_url='http://test', follow_redirects=True
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def register(async_client: AsyncClient):
    async def _register(
        email: str, is_organizer: bool = False, password: str = PASSWORD
    ) -> dict:
        response = await async_client.post(
            '/api/auth/register',
            json={
                'email': email,
                'password': password,
                'first_name': 'Test',
                'last_name': email.split('@')[0].title(),
                'is_organizer': is_organizer,
            },
        )
        assert response.status_code == HTTPStatus.CREATED, response.text
        return response.json()

    return _register


@pytest.fixture
async def user_headers(register) -> dict:
    data = await register('buyer@example.com')
    return bearer(data['access_token'])


@pytest.fixture
async def organizer_headers(register) -> dict:
    data = await register('organizer@example.com', is_organizer=True)
    return bearer(data['access_token'])


@pytest.fixture
async def admin_headers(async_session: AsyncSession, async_client: AsyncClient) -> dict:
    admin = User(
        email='admin@example.com',
        first_name='Site',
        last_name='Admin',
        password_hash=get_password_hash(PASSWORD),
        role=UserRole.ADMIN,
        is_verified=True,
    )
    async_session.add(admin)
    await async_session.commit()

    response = await async_client.post(
        '/api/auth/login', json={'email': 'admin@example.com', 'password': PASSWORD}
    )
    assert response.status_code == HTTPStatus.OK, response.text
    return bearer(response.json()['access_token'])


@pytest.fixture
def event_payload() -> typing.Callable[..., dict]:
    def _payload(**overrides) -> dict:
        payload = {
            'title': 'Summer Rooftop Jazz',
            'description': 'An evening of live jazz above the city.',
            'category': 'music',
            'start_date': future(30),
            'end_date': future(30, hours=4),
            'location': {
                'type': 'physical',
                'venue': 'Skyline Terrace',
                'address': {'city': 'Austin', 'country': 'US'},
            },
            'tags': ['Jazz', 'live', 'jazz'],
            'ticket_types': [
                {'name': 'General Admission', 'price': '50.00', 'quantity': 100, 'max_per_order': 10},
                {'name': 'VIP', 'price': '120.00', 'quantity': 2, 'max_per_order': 4},
            ],
            'publish': True,
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
async def published_event(
    async_client: AsyncClient, organizer_headers: dict, event_payload
) -> dict:
    response = await async_client.post(
        '/api/events/', json=event_payload(), headers=organizer_headers
    )
    assert response.status_code == HTTPStatus.CREATED, response.text
    return response.json()
