"""Test configuration."""
import os
from collections.abc import AsyncIterator, Callable, Iterator
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session, sessionmaker

# --- Default environment, set before the settings object is built
os.environ.setdefault("CF_ENV", "dev")
os.environ.setdefault("DATABASE_URL", "sqlite:///./crowdfund_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("PAYMENT_SIGNATURE_SECRET", "test-signature-secret")

from crowdfund.config import get_settings  # noqa: E402
from crowdfund.db import Database, get_db  # noqa: E402
from crowdfund.main import app  # noqa: E402
from crowdfund.models import (  # noqa: E402
    ApiKey,
    Campaign,
    CampaignStatus,
    Milestone,
    User,
    UserRole,
)
from crowdfund.services import sequencer  # noqa: E402
from crowdfund.services.payment_verifier import compute_signature  # noqa: E402
from crowdfund.utils.apikey import hash_key  # noqa: E402


@pytest.fixture(autouse=True)
def database(tmp_path) -> Iterator[Database]:
    """A fresh SQLite store per test, installed as the app's store handle."""

    test_database = Database(f"sqlite:///{tmp_path / 'crowdfund_test.db'}")
    test_database.create_all()
    app.state.database = test_database
    yield test_database
    test_database.dispose()


@pytest.fixture
def session_factory(database: Database) -> sessionmaker[Session]:
    return database.sessionmaker


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def override_db_dependency(db_session: Session) -> Iterator[None]:
    def _get_db() -> Iterator[Session]:
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    def _factory(role: UserRole = UserRole.DONOR, *, username: str | None = None) -> User:
        name = username or f"{role.value.lower()}-{uuid4().hex[:8]}"
        user = User(username=name, email=f"{name}@example.com", role=role, is_active=True)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _factory


@pytest.fixture
def headers_for(db_session: Session) -> Callable[[User], dict[str, str]]:
    """Issue an API key for ``user`` and return the matching auth header."""

    def _factory(user: User) -> dict[str, str]:
        token = f"test-{uuid4().hex}"
        api_key = ApiKey(
            name=f"key-{uuid4().hex}",
            prefix="test",
            key_hash=hash_key(token),
            user_id=user.id,
            is_active=True,
        )
        db_session.add(api_key)
        db_session.commit()
        return {"Authorization": f"Bearer {token}"}

    return _factory


@pytest.fixture
def admin(make_user) -> User:
    return make_user(UserRole.ADMIN)


@pytest.fixture
def creator(make_user) -> User:
    return make_user(UserRole.CAMPAIGN_CREATOR)


@pytest.fixture
def donor(make_user) -> User:
    return make_user(UserRole.DONOR)


@pytest.fixture
def admin_headers(admin, headers_for) -> dict[str, str]:
    return headers_for(admin)


@pytest.fixture
def creator_headers(creator, headers_for) -> dict[str, str]:
    return headers_for(creator)


@pytest.fixture
def donor_headers(donor, headers_for) -> dict[str, str]:
    return headers_for(donor)


@pytest.fixture
def make_campaign(db_session: Session) -> Callable[..., Campaign]:
    """Create a campaign with milestones in the given order.

    Approved campaigns get their first milestone activated, the same way the
    approval endpoint does it.
    """

    def _factory(
        owner: User,
        *,
        goal: int = 1000,
        milestone_goals: tuple[int, ...] = (500, 400),
        status: CampaignStatus = CampaignStatus.APPROVED,
    ) -> Campaign:
        campaign = Campaign(
            user_id=owner.id,
            title=f"campaign-{uuid4().hex[:8]}",
            goal_amount=goal,
            amount_raised=0,
            status=status,
            is_active=True,
        )
        db_session.add(campaign)
        db_session.flush()
        for index, milestone_goal in enumerate(milestone_goals, start=1):
            db_session.add(
                Milestone(
                    campaign_id=campaign.id,
                    title=f"Milestone {index}",
                    goal_amount=milestone_goal,
                    amount=0,
                )
            )
            db_session.flush()
        if status == CampaignStatus.APPROVED:
            sequencer.activate_first(db_session, campaign.id)
        db_session.commit()
        db_session.refresh(campaign)
        return campaign

    return _factory


@pytest.fixture
def sign() -> Callable[[str, str], str]:
    def _sign(order_id: str, payment_id: str) -> str:
        return compute_signature(get_settings().payment_signature_secret, order_id, payment_id)

    return _sign
