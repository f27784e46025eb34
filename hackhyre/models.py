import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    # SQLite drops tzinfo on read, so timestamps are stored as naive UTC everywhere
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class UserRole(str, Enum):
    candidate = "candidate"
    recruiter = "recruiter"


class ApplicationStatus(str, Enum):
    not_reviewed = "not_reviewed"
    under_review = "under_review"
    interviewing = "interviewing"
    rejected = "rejected"
    hired = "hired"


class JobStatus(str, Enum):
    draft = "draft"
    open = "open"
    closed = "closed"


class EmploymentType(str, Enum):
    full_time = "full_time"
    part_time = "part_time"
    contract = "contract"
    internship = "internship"


class ExperienceLevel(str, Enum):
    entry = "entry"
    mid = "mid"
    senior = "senior"
    lead = "lead"
    executive = "executive"


class User(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    image: Optional[str] = None
    role: UserRole = Field(default=UserRole.candidate)
    created_at: datetime = Field(default_factory=utcnow)


class CandidateProfile(SQLModel, table=True):
    __tablename__ = "candidate_profile"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True, unique=True)
    headline: Optional[str] = None
    bio: Optional[str] = None
    skills: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    experience_years: Optional[int] = None
    location: Optional[str] = None

    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    twitter_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    resume_url: Optional[str] = None


class Company(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    created_by: str = Field(foreign_key="user.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)


class Job(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    recruiter_id: str = Field(foreign_key="user.id", index=True)
    company_id: Optional[str] = Field(default=None, foreign_key="company.id")

    title: str
    slug: str = Field(index=True)
    description: str
    employment_type: EmploymentType = Field(default=EmploymentType.full_time)
    experience_level: ExperienceLevel = Field(default=ExperienceLevel.mid)
    status: JobStatus = Field(default=JobStatus.draft, index=True)

    location: Optional[str] = None
    is_remote: bool = False
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: str = "USD"

    requirements: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    responsibilities: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    skills: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    # Soft delete: recruiter views ignore jobs with a deleted_at
    deleted_at: Optional[datetime] = None


class Application(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("job_id", "candidate_email"),)

    id: str = Field(default_factory=new_id, primary_key=True)
    job_id: str = Field(foreign_key="job.id", index=True)
    # Null for guest submissions
    candidate_id: Optional[str] = Field(default=None, foreign_key="user.id", index=True)
    candidate_name: str
    candidate_email: str = Field(index=True)

    resume_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    cover_letter: Optional[str] = None
    talent_pool_opt_in: bool = False

    status: ApplicationStatus = Field(default=ApplicationStatus.not_reviewed)
    # 0-1, written once by the background scoring task
    relevance_score: Optional[float] = None
    match_analysis: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow, index=True)


class RecruiterRelevance(SQLModel, table=True):
    __tablename__ = "recruiter_relevance"
    __table_args__ = (UniqueConstraint("application_id", "recruiter_id"),)

    id: str = Field(default_factory=new_id, primary_key=True)
    application_id: str = Field(foreign_key="application.id", index=True)
    recruiter_id: str = Field(foreign_key="user.id", index=True)

    score: float
    feedback: str
    strengths: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    gaps: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class GoogleOAuthToken(SQLModel, table=True):
    __tablename__ = "google_oauth_tokens"

    user_id: str = Field(foreign_key="user.id", primary_key=True)
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_at: datetime
    scope: str

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Interview(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    application_id: str = Field(foreign_key="application.id", index=True)
    recruiter_id: str = Field(foreign_key="user.id", index=True)

    scheduled_at: datetime
    duration_minutes: int = 30
    interview_type: str = "video"
    meet_link: Optional[str] = None
    calendar_event_id: Optional[str] = None
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
