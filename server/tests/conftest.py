from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "text")

from collections.abc import Generator
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth import roles
from app.auth.deps import get_current_user
from app.core.db import Base, get_db
from app.main import app
from app.models.cell import Cell
from app.models.member import Member
from app.models.ministry import Ministry
from app.models.role import Role
from app.models.user import User

SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def override_get_db() -> Generator[Session, None, None]:
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app.dependency_overrides.clear()
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def authorize(client: TestClient):
    def _apply(user: User):
        app.dependency_overrides[get_current_user] = lambda: user

    yield _apply
    app.dependency_overrides.pop(get_current_user, None)


def _ensure_role(session: Session, name: str) -> Role:
    role = session.query(Role).filter_by(name=name).first()
    if role is None:
        role = Role(name=name)
        session.add(role)
        session.commit()
        session.refresh(role)
    return role


def make_user(session: Session, email: str, role_name: str, full_name: str | None = None) -> User:
    role = _ensure_role(session, role_name)
    user = User(email=email, full_name=full_name or role_name.title(), hashed_password="hash", is_active=True)
    user.roles.append(role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture()
def super_admin_user(db_session: Session) -> User:
    return make_user(db_session, "superadmin@example.com", roles.SUPER_ADMIN, "Super Admin")


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    return make_user(db_session, "admin@example.com", roles.ADMIN, "Admin")


@pytest.fixture()
def leader_user(db_session: Session) -> User:
    return make_user(db_session, "leader@example.com", roles.LEADER, "Leader")


@pytest.fixture()
def member_user(db_session: Session) -> User:
    return make_user(db_session, "member@example.com", roles.MEMBER, "Member")


@pytest.fixture()
def ministry_leader_user(db_session: Session) -> User:
    return make_user(db_session, "ministry@example.com", roles.MINISTRY_LEADER, "Ministry Leader")


@pytest.fixture()
def event_organizer_user(db_session: Session) -> User:
    return make_user(db_session, "events@example.com", roles.EVENT_ORGANIZER, "Event Organizer")


@pytest.fixture()
def treasurer_user(db_session: Session) -> User:
    return make_user(db_session, "treasurer@example.com", roles.TREASURER, "Treasurer")


@pytest.fixture()
def finance_user(db_session: Session) -> User:
    return make_user(db_session, "finance@example.com", roles.FINANCE, "Finance")


@pytest.fixture()
def content_creator_user(db_session: Session) -> User:
    return make_user(db_session, "content@example.com", roles.CONTENT_CREATOR, "Content Creator")


@pytest.fixture()
def sample_cell(db_session: Session) -> Cell:
    cell = Cell(name="Bethel", number=1, meeting_day="WEDNESDAY", location="North Hall")
    db_session.add(cell)
    db_session.commit()
    db_session.refresh(cell)
    return cell


@pytest.fixture()
def sample_member(db_session: Session, sample_cell: Cell) -> Member:
    member = Member(
        first_name="Abeba",
        last_name="Tesfaye",
        email="abeba@example.com",
        age=30,
        gender="FEMALE",
        cell_id=sample_cell.id,
        join_date=date(2023, 1, 1),
    )
    db_session.add(member)
    db_session.commit()
    db_session.refresh(member)
    return member


@pytest.fixture()
def sample_ministry(db_session: Session) -> Ministry:
    ministry = Ministry(name="Praise Team", slug="praise-team", type="WORSHIP")
    db_session.add(ministry)
    db_session.commit()
    db_session.refresh(ministry)
    return ministry
