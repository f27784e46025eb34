"""
Shared test fixtures.

Provides an in-memory database, a fake Gemini client, row factories
and a TestClient wired to both through dependency overrides.
"""

import os
import tempfile
from datetime import datetime, timedelta
from typing import Any, List, Optional

# Must be set before hackhyre.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOADS_DIR", tempfile.mkdtemp(prefix="hackhyre-uploads-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from hackhyre.database import get_session
from hackhyre.models import (
    Application,
    ApplicationStatus,
    CandidateProfile,
    Company,
    Job,
    JobStatus,
    User,
    UserRole,
)
from hackhyre.schemas import JobDraft, ParsedResume, RelevanceAssessment


# ============ Fake LLM ============

class FakeLLM:
    """Stands in for LLMClient; records calls and returns canned results."""

    def __init__(self, assessment: Optional[RelevanceAssessment] = None):
        self.assessment = assessment or RelevanceAssessment(
            match_percentage=82,
            strengths=["Strong React experience"],
            gaps=["No Go experience"],
            recommendation="Worth interviewing.",
        )
        self.parsed_resume = ParsedResume(headline="Frontend Engineer", skills=["React", "TypeScript"])
        self.parsed_job: Optional[JobDraft] = JobDraft(title="Backend Engineer", skills=["Go"])
        self.recruiter_calls: List[Any] = []
        self.candidate_calls: List[Any] = []
        self.chat = None

    async def generate_recruiter_relevance(self, candidate, job):
        self.recruiter_calls.append((candidate, job))
        return self.assessment

    async def generate_candidate_relevance(self, resume, job):
        self.candidate_calls.append((resume, job))
        return self.assessment

    async def parse_resume(self, content, mime_type):
        return self.parsed_resume

    def parse_job_description(self, text):
        return self.parsed_job

    def start_chat(self, system_instruction, tools, history):
        self.chat.system_instruction = system_instruction
        self.chat.tools = {fn.__name__: fn for fn in tools}
        self.chat.history = history
        return self.chat


# ============ Database ============

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def fake_llm():
    return FakeLLM()


# ============ Factories ============

class Factory:
    """Creates committed rows with sensible defaults."""

    BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)

    def __init__(self, session: Session):
        self.session = session
        self._count = 0

    def _save(self, row):
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def user(self, name="Ada Lovelace", email=None, role=UserRole.candidate, **kwargs) -> User:
        self._count += 1
        email = email or f"user{self._count}@example.com"
        return self._save(User(name=name, email=email, role=role, **kwargs))

    def recruiter(self, name="Grace Hopper", **kwargs) -> User:
        return self.user(name=name, role=UserRole.recruiter, **kwargs)

    def profile(self, user: User, **kwargs) -> CandidateProfile:
        return self._save(CandidateProfile(user_id=user.id, **kwargs))

    def company(self, owner: User, name="Acme", **kwargs) -> Company:
        return self._save(Company(name=name, created_by=owner.id, **kwargs))

    def job(self, recruiter: User, title="Frontend Engineer", company: Optional[Company] = None, **kwargs) -> Job:
        kwargs.setdefault("status", JobStatus.open)
        kwargs.setdefault("description", f"{title} role")
        return self._save(Job(
            recruiter_id=recruiter.id,
            company_id=company.id if company else None,
            title=title,
            slug=title.lower().replace(" ", "-"),
            **kwargs,
        ))

    def application(
        self,
        job: Job,
        email="candidate@example.com",
        name="Candidate",
        candidate: Optional[User] = None,
        status=ApplicationStatus.not_reviewed,
        score: Optional[float] = None,
        days: int = 0,
        **kwargs,
    ) -> Application:
        return self._save(Application(
            job_id=job.id,
            candidate_id=candidate.id if candidate else None,
            candidate_name=name,
            candidate_email=email,
            status=status,
            relevance_score=score,
            created_at=self.BASE_TIME + timedelta(days=days),
            **kwargs,
        ))


@pytest.fixture
def factory(session):
    return Factory(session)


# ============ API ============

@pytest.fixture
def client(session, fake_llm):
    from main import app, get_llm_client

    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    yield TestClient(app)
    app.dependency_overrides.clear()
