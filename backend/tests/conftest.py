"""
SOP Manager - Test Configuration and Fixtures
"""
import os
from datetime import datetime
from typing import AsyncGenerator, Callable
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment before the app reads its settings
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['RATE_LIMIT_STORAGE_URI'] = 'memory://'
os.environ['CACHE_ENABLED'] = 'false'
os.environ['PIN_HASH_ROUNDS'] = '4'
os.environ['LOG_FILE'] = ''

from sopmanager.main import app
from sopmanager.core.database import Base, get_db, json_serializer
from sopmanager.core.security import hash_pin
from sopmanager.models import Restaurant, User, UserRole, SOPCategory

fake = Faker()

ADMIN_PIN = '7294'
MANAGER_PIN = '5083'
STAFF_PIN = '3916'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(
    TEST_DATABASE_URL, echo=False, poolclass=NullPool, json_serializer=json_serializer
)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def restaurant(db_session: AsyncSession) -> Restaurant:
    restaurant = Restaurant(
        name='Krong Thai Restaurant',
        name_th='ร้านกรองไทย',
        timezone='Asia/Bangkok',
        settings={},
        is_active=True,
    )
    db_session.add(restaurant)
    await db_session.commit()
    return restaurant


@pytest.fixture
async def other_restaurant(db_session: AsyncSession) -> Restaurant:
    restaurant = Restaurant(name='Siam Garden', name_th='สยามการ์เด้น', settings={}, is_active=True)
    db_session.add(restaurant)
    await db_session.commit()
    return restaurant


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable:
    """Factory for staff accounts with a known PIN"""
    async def _make(
        restaurant: Restaurant,
        role: UserRole = UserRole.STAFF,
        pin: str = STAFF_PIN,
        **overrides
    ) -> User:
        fields = dict(
            email=f'{fake.user_name()}.{fake.random_int(1000, 9999)}@krongthai.com'.lower(),
            pin_hash=hash_pin(pin),
            role=role,
            full_name=fake.name(),
            full_name_th='พนักงานทดสอบ',
            restaurant_id=restaurant.id,
            is_active=True,
            pin_changed_at=datetime.utcnow(),
            pin_attempts=0,
        )
        fields.update(overrides)
        user = User(**fields)
        db_session.add(user)
        await db_session.commit()
        return user
    return _make


@pytest.fixture
async def admin_user(make_user, restaurant) -> User:
    return await make_user(restaurant, UserRole.ADMIN, ADMIN_PIN)


@pytest.fixture
async def manager_user(make_user, restaurant) -> User:
    return await make_user(restaurant, UserRole.MANAGER, MANAGER_PIN)


@pytest.fixture
async def staff_user(make_user, restaurant) -> User:
    return await make_user(restaurant, UserRole.STAFF, STAFF_PIN)


@pytest.fixture
def login(client: AsyncClient) -> Callable:
    """Sign in through the API and return bearer headers"""
    async def _login(user: User, pin: str) -> dict:
        response = await client.post('/api/v1/auth/login', json={'email': user.email, 'pin': pin})
        assert response.status_code == 200, response.text
        # Bearer headers only; tests that need the cookie read it from the response
        client.cookies.clear()
        return {'Authorization': f"Bearer {response.json()['access_token']}"}
    return _login


@pytest.fixture
async def admin_headers(login, admin_user) -> dict:
    return await login(admin_user, ADMIN_PIN)


@pytest.fixture
async def manager_headers(login, manager_user) -> dict:
    return await login(manager_user, MANAGER_PIN)


@pytest.fixture
async def staff_headers(login, staff_user) -> dict:
    return await login(staff_user, STAFF_PIN)


@pytest.fixture
async def category(db_session: AsyncSession) -> SOPCategory:
    category = SOPCategory(
        code='FOOD_SAFETY',
        name='Food Safety & Hygiene',
        name_th='ความปลอดภัยและสุขอนามัยอาหาร',
        icon='shield-check',
        color='#e74c3c',
        sort_order=1,
        is_active=True,
    )
    db_session.add(category)
    await db_session.commit()
    return category


def sop_payload(category_id: str, **overrides) -> dict:
    payload = {
        'category_id': category_id,
        'title': 'Hand Washing Procedure',
        'title_th': 'ขั้นตอนการล้างมือ',
        'content': 'Wash hands with soap for twenty seconds before handling food.',
        'content_th': 'ล้างมือด้วยสบู่ยี่สิบวินาทีก่อนสัมผัสอาหาร',
        'steps': [{'step': 1, 'text': 'Wet hands'}, {'step': 2, 'text': 'Apply soap'}],
        'steps_th': [{'step': 1, 'text': 'ทำให้มือเปียก'}, {'step': 2, 'text': 'ใช้สบู่'}],
        'tags': ['hygiene', 'hands'],
        'tags_th': ['สุขอนามัย'],
        'priority': 'critical',
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_sop(client: AsyncClient) -> Callable:
    """Create an SOP through the API, optionally walking it to approved"""
    async def _create(headers: dict, category_id: str, approve: bool = False, **overrides) -> dict:
        response = await client.post(
            '/api/v1/sop/documents', json=sop_payload(category_id, **overrides), headers=headers
        )
        assert response.status_code == 201, response.text
        document = response.json()
        if approve:
            for target in ('review', 'approved'):
                response = await client.post(
                    f"/api/v1/sop/documents/{document['id']}/status",
                    json={'status': target},
                    headers=headers,
                )
                assert response.status_code == 200, response.text
            document = response.json()
        return document
    return _create
