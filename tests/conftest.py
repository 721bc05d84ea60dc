import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import resume_chat.models  # noqa: F401  registers tables on Base.metadata
from resume_chat.database import Base, get_db
from resume_chat.dependencies import get_benefits_provider, get_current_user_id, get_resume_ai
from resume_chat.main import app
from resume_chat.schemas.resume import Education, Experience, ResumeSnapshot
from resume_chat.services.benefits import StaticBenefitsProvider
from resume_chat.services.chat_enhancement_service import ChatEnhancementService

USER_ID = "user-1"


class FakeResumeAI:
    """Records every capability call. Set `error` to make enhance/extract fail."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []
        self.enhanced: ResumeSnapshot | None = None
        self.error: Exception | None = None
        self.title = "Generated Title"
        self.title_error: Exception | None = None
        self.extracted = ResumeSnapshot(name="Extracted Person", skills=["Python"])

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    async def enhance_resume(self, resume, instruction):
        self.calls.append(("enhance_resume", instruction))
        if self.error:
            raise self.error
        return self.enhanced or resume.model_copy(update={"summary": f"Enhanced: {resume.summary}"})

    async def enhance_html(self, html, resume, instruction):
        self.calls.append(("enhance_html", instruction))
        if self.error:
            raise self.error
        return html, self.enhanced or resume.model_copy(update={"summary": f"Enhanced: {resume.summary}"})

    async def generate_title(self, instruction):
        self.calls.append(("generate_title", instruction))
        if self.title_error:
            raise self.title_error
        return self.title

    async def extract_resume(self, text=None, image=None):
        self.calls.append(("extract_resume", text if text is not None else "<image>"))
        if self.error:
            raise self.error
        return self.extracted


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def fake_ai() -> FakeResumeAI:
    return FakeResumeAI()


@pytest.fixture
def service(db, fake_ai) -> ChatEnhancementService:
    return ChatEnhancementService(db, fake_ai)


@pytest.fixture
def resume_r0() -> ResumeSnapshot:
    return ResumeSnapshot(
        name="Ada Lovelace",
        role="Backend Engineer",
        email="ada@example.com",
        summary="Engineer who builds APIs.",
        experience=[
            Experience(company="ACME", position="Engineer", from_="2021", to="Present", description="Built services."),
        ],
        education=[Education(degree="BS", field="CS", institution="State U", year="2020")],
        skills=["Python", "SQL"],
    )


@pytest.fixture
def benefits() -> StaticBenefitsProvider:
    return StaticBenefitsProvider(daily_token_limit=1000, chat_session_limit=3)


@pytest.fixture
def client(db, fake_ai, benefits):
    def _db_override():
        yield db

    app.dependency_overrides[get_db] = _db_override
    app.dependency_overrides[get_current_user_id] = lambda: USER_ID
    app.dependency_overrides[get_resume_ai] = lambda: fake_ai
    app.dependency_overrides[get_benefits_provider] = lambda: benefits
    yield TestClient(app)
    app.dependency_overrides.clear()
