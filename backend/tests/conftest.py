"""
Excel Analytics - Test Configuration and Fixtures
"""
import io
import os
from typing import AsyncGenerator, Callable, List, Optional
import pytest
import pandas as pd
from httpx import AsyncClient, ASGITransport
from faker import Faker

# Set testing environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['STORAGE_MODE'] = 'memory'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['ANTHROPIC_API_KEY'] = ''
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['ADMIN_EMAILS_STR'] = 'boss@example.com'

from app.main import app
from app.core.database import set_storage
from app.core.security import get_password_hash, create_user_token
from app.models.user import User, UserRole
from app.models.analysis import Analysis
from app.storage import MemoryStorage

fake = Faker()

TEST_PASSWORD = 'Secret#Pass1'

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

SALES_ROWS = [
    {'Region': 'North', 'Sales': 120, 'Units': 10},
    {'Region': 'South', 'Sales': 80, 'Units': 7},
    {'Region': 'North', 'Sales': 40, 'Units': 3},
    {'Region': 'East', 'Sales': 200, 'Units': 15},
]


def build_xlsx(rows: List[dict], columns: Optional[List[str]] = None, sheet_name: str = 'Sheet1') -> bytes:
    """Serialize rows into an .xlsx workbook"""
    frame = pd.DataFrame(rows, columns=columns)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        frame.to_excel(writer, sheet_name=sheet_name, index=False)
    return buffer.getvalue()


@pytest.fixture
def storage() -> MemoryStorage:
    """Fresh in-memory storage installed as the active store"""
    store = MemoryStorage()
    set_storage(store)
    yield store
    set_storage(None)


@pytest.fixture
async def client(storage: MemoryStorage) -> AsyncGenerator[AsyncClient, None]:
    """Create test client bound to the in-memory storage"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def test_user_data() -> dict:
    return {
        'name': fake.name(),
        'email': fake.unique.email(),
        'password': TEST_PASSWORD,
    }


@pytest.fixture
async def test_user(storage: MemoryStorage) -> User:
    """Create a test user"""
    return await storage.users.create(
        name=fake.name(),
        email=fake.unique.email(),
        hashed_password=get_password_hash(TEST_PASSWORD),
    )


@pytest.fixture
async def other_user(storage: MemoryStorage) -> User:
    """A second regular user"""
    return await storage.users.create(
        name=fake.name(),
        email=fake.unique.email(),
        hashed_password=get_password_hash(TEST_PASSWORD),
    )


@pytest.fixture
async def admin_user(storage: MemoryStorage) -> User:
    """Create an admin test user"""
    return await storage.users.create(
        name=fake.name(),
        email=fake.unique.email(),
        hashed_password=get_password_hash(TEST_PASSWORD),
        role=UserRole.ADMIN,
    )


def headers_for(user: User) -> dict:
    return {'Authorization': f'Bearer {create_user_token(user.id, user.email)}'}


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user"""
    return headers_for(test_user)


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    """Generate authentication headers for admin user"""
    return headers_for(admin_user)


@pytest.fixture
def sales_xlsx() -> bytes:
    return build_xlsx(SALES_ROWS)


@pytest.fixture
async def sales_analysis(storage: MemoryStorage, test_user: User) -> Analysis:
    """An analysis owned by test_user"""
    analysis = await storage.analyses.create(
        user_id=test_user.id,
        filename='1700000000000_sales.xlsx',
        original_name='sales.xlsx',
        data=[dict(row) for row in SALES_ROWS],
        columns=['Region', 'Sales', 'Units'],
    )
    await storage.users.add_upload(test_user.id, analysis.id)
    return analysis


@pytest.fixture
def upload_file() -> Callable[..., dict]:
    """Build the multipart `files` argument for an upload"""
    def _build(content: bytes, filename: str = 'sales.xlsx', content_type: str = XLSX_CONTENT_TYPE) -> dict:
        return {'excel': (filename, content, content_type)}
    return _build


@pytest.fixture
def test_password() -> str:
    return TEST_PASSWORD


@pytest.fixture
def make_xlsx() -> Callable[..., bytes]:
    return build_xlsx


@pytest.fixture
def other_auth_headers(other_user: User) -> dict:
    return headers_for(other_user)
