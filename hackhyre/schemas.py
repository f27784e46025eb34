from datetime import datetime, timezone
from typing import Optional, List, Dict, Literal

from pydantic import BaseModel, Field, field_validator

from hackhyre.models import ApplicationStatus, EmploymentType, ExperienceLevel, JobStatus


# LLM outputs

class RelevanceAssessment(BaseModel):
    '''
    Structured output of a relevance generation call.
    '''
    match_percentage: int = Field(ge=0, le=100)
    strengths: List[str] = []
    gaps: List[str] = []
    recommendation: str


class ParsedResume(BaseModel):
    headline: Optional[str] = None
    bio: Optional[str] = None
    skills: List[str] = []
    experience_years: Optional[int] = None
    location: Optional[str] = None


class JobDraft(BaseModel):
    '''
    Partial job listing collected by the job-creation agent.
    '''
    title: Optional[str] = None
    description: Optional[str] = None
    employment_type: Optional[EmploymentType] = None
    experience_level: Optional[ExperienceLevel] = None
    location: Optional[str] = None
    is_remote: Optional[bool] = None
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: Optional[str] = None
    requirements: Optional[List[str]] = None
    responsibilities: Optional[List[str]] = None
    skills: Optional[List[str]] = None


# Relevance inputs

class CandidateSummary(BaseModel):
    name: Optional[str] = None
    headline: Optional[str] = None
    bio: Optional[str] = None
    skills: List[str] = []
    experience_years: Optional[int] = None
    location: Optional[str] = None


class JobSummary(BaseModel):
    id: Optional[str] = None
    title: str
    description: str
    skills: List[str] = []
    requirements: List[str] = []
    experience_level: str
    location: Optional[str] = None
    is_remote: bool = False
    employment_type: str
    company: Optional[str] = None


class RelevanceRequest(BaseModel):
    resume_data: CandidateSummary
    job_data: JobSummary


# Recruiter views

class RecruiterRelevanceResult(BaseModel):
    score: float
    feedback: str
    strengths: List[str]
    gaps: List[str]


class RecruiterCandidateListItem(BaseModel):
    best_application_id: str
    name: str
    email: str
    headline: Optional[str] = None
    location: Optional[str] = None
    experience_years: Optional[int] = None
    skills: List[str] = []
    best_match_score: float
    application_count: int
    best_status: ApplicationStatus
    best_match_job_title: Optional[str] = None
    latest_application_date: datetime
    # More than one registered account behind the same email
    distinct_account_count: int = 0


class RecruiterCandidateDetail(BaseModel):
    name: str
    email: str
    headline: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    experience_years: Optional[int] = None
    skills: List[str] = []
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    twitter_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    resume_url: Optional[str] = None
    image: Optional[str] = None
    best_application_id: str
    relevance: Optional[RecruiterRelevanceResult] = None
    all_job_skills: List[str] = []


SkillCategory = Literal["shared", "unique", "partial"]


class CandidateComparison(BaseModel):
    candidates: List[RecruiterCandidateDetail]
    skill_overlaps: Dict[str, SkillCategory] = {}


class RecruiterApplicationListItem(BaseModel):
    id: str
    candidate_id: Optional[str] = None
    candidate_name: str
    candidate_email: str
    job_title: str
    status: ApplicationStatus
    relevance_score: Optional[float] = None
    created_at: datetime


class RecruiterJobListItem(BaseModel):
    id: str
    title: str
    status: JobStatus
    employment_type: EmploymentType
    experience_level: ExperienceLevel
    location: Optional[str] = None
    is_remote: bool
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: str
    application_count: int
    created_at: datetime


class StatusUpdate(BaseModel):
    status: ApplicationStatus


# Public jobs

class CompanySnapshot(BaseModel):
    id: str
    name: str
    logo_url: Optional[str] = None


class PublicJobListItem(BaseModel):
    id: str
    title: str
    slug: str
    description: str
    location: Optional[str] = None
    is_remote: bool
    employment_type: EmploymentType
    experience_level: ExperienceLevel
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: str
    skills: List[str] = []
    requirements: List[str] = []
    responsibilities: List[str] = []
    created_at: datetime
    updated_at: datetime
    company: Optional[CompanySnapshot] = None


class JobFilters(BaseModel):
    q: Optional[str] = None
    location: Optional[Literal["any", "remote", "onsite", "hybrid"]] = None
    experience: Optional[Literal["any", "entry", "mid", "senior", "lead", "executive"]] = None
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    recruiter: Optional[str] = None
    sort: Optional[Literal["updated", "salary-high", "salary-low"]] = None


class CompanyProfile(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    created_at: datetime
    job_count: int


class TopCompany(BaseModel):
    id: str
    name: str
    logo_url: Optional[str] = None
    job_count: int


# Candidate applications

class ApplicationSubmit(BaseModel):
    job_id: str
    candidate_name: str = Field(min_length=1)
    candidate_email: str = Field(min_length=3)
    resume_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    cover_letter: Optional[str] = None
    talent_pool_opt_in: bool = False


class SubmitApplicationResult(BaseModel):
    success: bool
    application_id: Optional[str] = None
    error: Optional[str] = None


class ApplicationJob(BaseModel):
    title: str
    description: str
    location: Optional[str] = None
    is_remote: bool
    employment_type: EmploymentType
    experience_level: ExperienceLevel
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: str
    requirements: List[str] = []
    responsibilities: List[str] = []
    skills: List[str] = []


class ApplicationCompany(BaseModel):
    name: str
    website: Optional[str] = None
    logo_url: Optional[str] = None


class CandidateApplicationListItem(BaseModel):
    id: str
    status: ApplicationStatus
    relevance_score: Optional[float] = None
    applied_at: datetime
    cover_letter: Optional[str] = None
    resume_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    job: ApplicationJob
    company: Optional[ApplicationCompany] = None


class MatchAnalysis(BaseModel):
    feedback: str
    strengths: List[str] = []
    gaps: List[str] = []


class CandidateApplicationDetail(CandidateApplicationListItem):
    match_analysis: Optional[MatchAnalysis] = None


class ApplicationStats(BaseModel):
    total: int
    active: int
    interviewing: int
    offers: int


class CandidateApplications(BaseModel):
    applications: List[CandidateApplicationListItem]
    stats: ApplicationStats


# Dashboard

class ChartDataPoint(BaseModel):
    date: str
    applications: int


class DerivedActivity(BaseModel):
    id: str
    type: Literal["applied", "status_change", "interview"]
    title: str
    description: str
    timestamp: datetime


class StatTrends(BaseModel):
    applications: str
    active: str
    interviews: str
    saved: str


class CandidateDashboard(BaseModel):
    chart: List[ChartDataPoint]
    activity: List[DerivedActivity]
    trends: StatTrends
    stats: ApplicationStats


# Job-creation chat

class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage]


class ChatReply(BaseModel):
    reply: str
    draft: Optional[JobDraft] = None
    saved_job_id: Optional[str] = None
    completed: bool = False
    # Set when the model call failed; tool side effects before the failure still stand
    error: Optional[str] = None


# Interviews

def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class InterviewCreate(BaseModel):
    application_id: str
    scheduled_at: datetime
    duration_minutes: int = Field(default=30, gt=0, le=480)
    interview_type: str = "video"
    notes: Optional[str] = None

    naive_scheduled_at = field_validator("scheduled_at")(to_naive_utc)


class InterviewReschedule(BaseModel):
    scheduled_at: datetime
    duration_minutes: Optional[int] = Field(default=None, gt=0, le=480)

    naive_scheduled_at = field_validator("scheduled_at")(to_naive_utc)


class InterviewResult(BaseModel):
    id: str
    application_id: str
    scheduled_at: datetime
    duration_minutes: int
    meet_link: Optional[str] = None
    calendar_event_id: Optional[str] = None
