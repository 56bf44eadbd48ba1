"""
prepdesk/tests/conftest.py
Shared fixtures: in-memory database, seeded catalog, authenticated clients
"""
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from prepdesk.main import app
from prepdesk.database import get_db
from prepdesk.orm.base import Base
from prepdesk.orm.user import User
from prepdesk.orm.exam_type import ExamType
from prepdesk.orm.subject import Subject
from prepdesk.orm.topic import Topic, TopicPrerequisite
from prepdesk.orm.learning_objective import LearningObjective
from prepdesk.routes.auth import create_access_token
from prepdesk.routes.ai_plan import limiter
from prepdesk.services.gemini_client import get_plan_client

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class StubPlanClient:
    """Stands in for Gemini. Returns `reply` or raises `error`."""

    def __init__(self, reply: Optional[str] = None, error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls = []

    def is_configured(self) -> bool:
        return True

    async def generate(self, system_prompt: str, user_message: str) -> str:
        self.calls.append(user_message)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def catalog(db_session: AsyncSession) -> dict:
    """
    One exam type, three subjects.

    Mathematics: Numbers -> Functions (hard prerequisite) -> Derivatives
    Physics: Motion, Forces (soft prerequisite on Motion)
    Chemistry: Atoms
    """
    exam_type = ExamType(name="TYT", sort_order=1)
    db_session.add(exam_type)
    await db_session.flush()

    math = Subject(exam_type_id=exam_type.id, name="Mathematics", question_count=40, sort_order=1)
    physics = Subject(exam_type_id=exam_type.id, name="Physics", question_count=14, sort_order=2)
    chemistry = Subject(exam_type_id=exam_type.id, name="Chemistry", question_count=13, sort_order=3)
    db_session.add_all([math, physics, chemistry])
    await db_session.flush()

    numbers = Topic(subject_id=math.id, name="Numbers", curriculum_order=1, difficulty=1, estimated_hours=2)
    functions = Topic(subject_id=math.id, name="Functions", curriculum_order=2, difficulty=3, estimated_hours=3)
    derivatives = Topic(subject_id=math.id, name="Derivatives", curriculum_order=3, difficulty=5, estimated_hours=4)
    motion = Topic(subject_id=physics.id, name="Motion", curriculum_order=1, difficulty=2, estimated_hours=2)
    forces = Topic(subject_id=physics.id, name="Forces", curriculum_order=2, difficulty=3, estimated_hours=2)
    atoms = Topic(subject_id=chemistry.id, name="Atoms", curriculum_order=1, difficulty=2, estimated_hours=2)
    db_session.add_all([numbers, functions, derivatives, motion, forces, atoms])
    await db_session.flush()

    db_session.add_all([
        TopicPrerequisite(topic_id=functions.id, prerequisite_id=numbers.id, strength="hard"),
        TopicPrerequisite(topic_id=derivatives.id, prerequisite_id=functions.id, strength="hard"),
        TopicPrerequisite(topic_id=forces.id, prerequisite_id=motion.id, strength="soft"),
    ])

    objectives = [
        LearningObjective(topic_id=functions.id, code=f"F{i}", description=f"Functions objective {i}", sort_order=i)
        for i in range(1, 4)
    ]
    db_session.add_all(objectives)
    await db_session.commit()

    return {
        "exam_type_id": exam_type.id,
        "subjects": {"math": math.id, "physics": physics.id, "chemistry": chemistry.id},
        "topics": {
            "numbers": numbers.id,
            "functions": functions.id,
            "derivatives": derivatives.id,
            "motion": motion.id,
            "forces": forces.id,
            "atoms": atoms.id,
        },
        "objectives": [o.id for o in objectives],
    }


async def _make_user(db: AsyncSession, email: str, ai_enabled: bool = False) -> User:
    user = User(email=email, full_name=email.split("@")[0], ai_enabled=ai_enabled)
    db.add(user)
    await db.commit()
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user.email})}"}


@pytest_asyncio.fixture
async def student(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "student@test.com")


@pytest_asyncio.fixture
async def other_student(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "other@test.com")


@pytest_asyncio.fixture
async def ai_student(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "ai@test.com", ai_enabled=True)


@pytest.fixture
def headers(student: User) -> dict:
    return auth_headers(student)


@pytest.fixture
def other_headers(other_student: User) -> dict:
    return auth_headers(other_student)


@pytest.fixture
def ai_headers(ai_student: User) -> dict:
    return auth_headers(ai_student)


@pytest.fixture
def plan_client() -> StubPlanClient:
    return StubPlanClient(error=RuntimeError("no reply configured"))


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, plan_client: StubPlanClient) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_plan_client] = lambda: plan_client
    limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
