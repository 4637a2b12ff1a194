from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from engagement.core.principal import Principal
from engagement.core.security import create_access_token
from engagement.db.session import get_db, init_db
from engagement.main import app
from engagement.models import Bid, Project, User, UserRole
from engagement.schemas.project import ProjectCreate
from engagement.services import bids as bid_service
from engagement.services import projects as project_service
from engagement.services.notifications import Notifier


DEFAULT_MILESTONES = [
    {"title": "Draft", "due": "10/01/2025", "deliverables": [{"name": "Wireframe", "required": True}]},
    {"title": "Final", "due": "2025-11-01", "deliverables": [
        {"name": "Source", "required": True},
        {"name": "Docs", "required": False},
    ]},
]


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    init_db(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="api")
def api_fixture(session: Session):
    def get_db_override():
        return session

    app.dependency_overrides[get_db] = get_db_override
    yield TestClient(app)
    app.dependency_overrides.clear()


def _user(session: Session, email: str, name: str, roles: List[UserRole]) -> User:
    user = User(email=email, full_name=name, roles=roles, primary_role=roles[0])
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def client_user(session: Session) -> User:
    return _user(session, "client@example.com", "Carla Client", [UserRole.CLIENT])


@pytest.fixture
def contributor(session: Session) -> User:
    return _user(session, "dev@example.com", "Dana Dev", [UserRole.CONTRIBUTOR])


@pytest.fixture
def other_contributor(session: Session) -> User:
    return _user(session, "dev2@example.com", "Omar Other", [UserRole.CONTRIBUTOR])


@pytest.fixture
def dual_user(session: Session) -> User:
    return _user(session, "both@example.com", "Bea Both", [UserRole.CONTRIBUTOR, UserRole.CLIENT])


@pytest.fixture
def admin_user(session: Session) -> User:
    return _user(session, "admin@example.com", "Ada Admin", [UserRole.ADMIN])


def principal(user: User, active_role: Optional[UserRole] = None) -> Principal:
    return Principal.from_user(user, active_role=active_role)


def auth_headers(user: User, active_role: Optional[str] = None) -> Dict[str, str]:
    headers = {"Authorization": f"Bearer {create_access_token(user.email)}"}
    if active_role:
        headers["X-Active-Role"] = active_role
    return headers


def make_project(session: Session, owner: User, milestones=None, **overrides) -> Project:
    data = {
        "title": "Landing page",
        "description": "Build a landing page.",
        "budget_min": 500,
        "budget_max": 1500,
        "deadline": "2025-12-01",
        "skills": ["html", "css"],
        "milestones": DEFAULT_MILESTONES if milestones is None else milestones,
    }
    data.update(overrides)
    return project_service.create_project(
        session, principal(owner, UserRole.CLIENT), ProjectCreate(**data)
    )


def make_bid(session: Session, bidder: User, project: Project, amount: float = 900) -> Bid:
    notifier = Notifier(session)
    bid = bid_service.place_bid(
        session, principal(bidder), project.id, amount, 14, "I can build this.", notifier
    )
    notifier.dispatch()
    return bid
