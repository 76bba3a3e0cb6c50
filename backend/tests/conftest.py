# backend/tests/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
import models.company, models.users, models.category, models.stock, models.log  # noqa: F401
from models.company import Company
from models.category import Category
from models.users import User, UserPermission
from utils.hashing import get_password_hash
from utils.tokenJWT import create_access_token
from utils.permissions import Capability, Role
from utils import ledger
from main import app


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_company(db, name="Acme"):
    company = Company(name=name)
    db.add(company)
    db.commit()
    return company


def make_user(db, email, company=None, role=Role.USER, capabilities=()):
    """Create a user with the given capabilities; dashboard access is always granted."""
    flags = {cap.value: True for cap in capabilities}
    flags[Capability.ACCESS_DASHBOARD.value] = True
    user = User(
        email=email, name=email.split("@")[0], password_hash=get_password_hash("secret123"),
        role=role.value, company_id=company.id if company else None,
    )
    user.permission = UserPermission(**flags)
    db.add(user)
    db.commit()
    return user


def auth_header(user):
    token = create_access_token({"sub": user.email, "role": user.role, "company_id": user.company_id})
    return {"Authorization": f"Bearer {token}"}


def make_category(db, company, name, parent=None):
    category = Category(name=name, company_id=company.id, parent_id=parent.id if parent else None)
    db.add(category)
    db.commit()
    return category


def make_item(db, company, user, **attributes):
    attributes.setdefault("name", "Hammer")
    return ledger.create_item(db, company.id, user.id, attributes)


@pytest.fixture
def company(db):
    return make_company(db)


@pytest.fixture
def manager(db, company):
    return make_user(db, "manager@acme.com", company, role=Role.MANAGER)
