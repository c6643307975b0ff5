import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import Mock, MagicMock
from fastapi.testclient import TestClient

from main import app
from app.database import get_db
from app.auth.dependencies import get_current_user, get_optional_user
from app.models.course import Course
from app.models.user import User, UserRole


@pytest.fixture
def mock_db():
    """Mock database session"""
    db = MagicMock()
    db.query.return_value = db
    db.filter.return_value = db
    db.join.return_value = db
    db.order_by.return_value = db
    db.offset.return_value = db
    db.limit.return_value = db
    db.first.return_value = None
    db.all.return_value = []
    db.count.return_value = 0
    return db


def make_user(id=1, address="0x" + "a" * 40, role=UserRole.MEMBER, is_creator=False, referral_code=None):
    user = Mock(spec=User)
    user.id = id
    user.address = address
    user.username = None
    user.avatar = None
    user.role = role
    user.is_creator = is_creator
    user.creator_registered_at = None
    user.referral_code = referral_code
    user.created_at = datetime(2024, 1, 1)
    return user


def make_course(id=10, creator_id=1, price_usd="20.00", is_free=False, on_chain_id=None, title="Solidity 101"):
    course = Mock(spec=Course)
    course.id = id
    course.creator_id = creator_id
    course.title = title
    course.description = None
    course.price_usd = Decimal(price_usd)
    course.is_free = is_free
    course.on_chain_id = on_chain_id
    course.is_published = True
    course.created_at = datetime(2024, 1, 1)
    course.effective_price = Decimal("0") if is_free else Decimal(price_usd)
    return course


@pytest.fixture
def mock_buyer():
    return make_user(id=2, address="0x" + "b" * 40)


@pytest.fixture
def mock_creator():
    return make_user(id=1, address="0x" + "c" * 40, is_creator=True, referral_code="CREATOR1")


@pytest.fixture
def mock_admin():
    return make_user(id=3, address="0x" + "d" * 40, role=UserRole.ADMIN)


def _client(mock_db, user):
    app.dependency_overrides[get_db] = lambda: mock_db
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_optional_user] = lambda: user
    return TestClient(app)


@pytest.fixture
def client_with_buyer(mock_db, mock_buyer):
    """TestClient authenticated as a buyer, with mocked DB"""
    client = _client(mock_db, mock_buyer)
    yield client, mock_db, mock_buyer
    app.dependency_overrides.clear()


@pytest.fixture
def client_with_creator(mock_db, mock_creator):
    client = _client(mock_db, mock_creator)
    yield client, mock_db, mock_creator
    app.dependency_overrides.clear()


@pytest.fixture
def client_with_admin(mock_db, mock_admin):
    client = _client(mock_db, mock_admin)
    yield client, mock_db, mock_admin
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(mock_db):
    """TestClient with mocked DB and no authenticated user"""
    app.dependency_overrides[get_db] = lambda: mock_db
    app.dependency_overrides[get_optional_user] = lambda: None
    client = TestClient(app)
    yield client, mock_db
    app.dependency_overrides.clear()


TX_A = "0x" + "a" * 64
TX_B = "0x" + "b" * 64
