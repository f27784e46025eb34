import os
import uuid
from typing import List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, File, Header, HTTPException, Query, UploadFile
from fastapi.staticfiles import StaticFiles
from sqlmodel import Session

from hackhyre.analysis.dashboard_metrics import build_weekly_chart_data, compute_stat_trends, derive_activity_feed
from hackhyre.config import UPLOADS_DIR
from hackhyre.constants import ALLOWED_UPLOAD_TYPES, MAX_UPLOAD_SIZE
from hackhyre.database import create_db_and_tables, get_session
from hackhyre.log import get_logger
from hackhyre.models import Application, User, UserRole
from hackhyre.schemas import (
    ApplicationSubmit,
    CandidateApplicationDetail,
    CandidateApplications,
    CandidateComparison,
    CandidateDashboard,
    ChatReply,
    ChatRequest,
    CompanyProfile,
    InterviewCreate,
    InterviewReschedule,
    InterviewResult,
    JobFilters,
    ParsedResume,
    PublicJobListItem,
    RecruiterApplicationListItem,
    RecruiterCandidateDetail,
    RecruiterCandidateListItem,
    RecruiterJobListItem,
    RecruiterRelevanceResult,
    RelevanceAssessment,
    RelevanceRequest,
    StatusUpdate,
    SubmitApplicationResult,
    TopCompany,
)
from hackhyre.services import application_service, candidate_service, job_service
from hackhyre.services.google_calendar import GoogleCalendarClient, is_connected, save_tokens
from hackhyre.services.interview_service import cancel_interview, reschedule_interview, schedule_interview
from hackhyre.services.job_creation_agent import run_job_creation_chat
from hackhyre.services.llm_client import LLMClient
from hackhyre.services.relevance_service import get_or_generate_recruiter_relevance, score_application

logger = get_logger(__name__)

os.makedirs(UPLOADS_DIR, exist_ok=True)

app = FastAPI(title="HackHyre")
llm_client = LLMClient()
calendar_client = GoogleCalendarClient()

app.mount("/uploads", StaticFiles(directory=UPLOADS_DIR), name="uploads")


@app.on_event("startup")
def on_startup():
    create_db_and_tables()


# Dependencies

def get_llm_client() -> LLMClient:
    return llm_client


def get_calendar_client() -> GoogleCalendarClient:
    return calendar_client


def get_optional_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_user_id or None


def get_current_user_id(user_id: Optional[str] = Depends(get_optional_user_id)) -> str:
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


def get_current_recruiter(
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
) -> User:
    '''
    The signed-in user, who must hold the recruiter role.
    '''
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if user.role != UserRole.recruiter:
        raise HTTPException(status_code=403, detail="Recruiter access required")
    return user


def validate_upload(file: UploadFile, contents: bytes):
    '''
    Validate an uploaded resume.

    Args:
        file (UploadFile): The uploaded file.
        contents (bytes): Its bytes.
    '''
    if file.content_type not in ALLOWED_UPLOAD_TYPES:
        raise HTTPException(status_code=400, detail="Invalid file type. Only PDF, DOC, and DOCX are allowed.")
    if len(contents) > MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=400, detail="File too large. Maximum size is 5MB.")
    if not contents:
        raise HTTPException(status_code=400, detail="Empty file.")


# Public jobs and companies

@app.get("/api/jobs", response_model=List[PublicJobListItem])
def search_jobs(filters: JobFilters = Depends(), session: Session = Depends(get_session)):
    return job_service.search_public_jobs(session, filters)


@app.get("/api/jobs/featured", response_model=List[PublicJobListItem])
def featured_jobs(session: Session = Depends(get_session)):
    return job_service.get_featured_jobs(session)


@app.get("/api/jobs/{job_id}", response_model=PublicJobListItem)
def get_job(job_id: str, session: Session = Depends(get_session)):
    job = job_service.get_job_by_id(session, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@app.get("/api/companies/top", response_model=List[TopCompany])
def top_companies(session: Session = Depends(get_session)):
    return job_service.get_top_companies(session)


@app.get("/api/companies/{name}", response_model=CompanyProfile)
def get_company(name: str, session: Session = Depends(get_session)):
    company = job_service.get_company_by_name(session, name)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@app.get("/api/companies/{name}/jobs", response_model=List[PublicJobListItem])
def company_jobs(name: str, session: Session = Depends(get_session)):
    return job_service.get_company_jobs(session, name)


# Applications

@app.post("/api/applications", response_model=SubmitApplicationResult)
def submit_application(
    payload: ApplicationSubmit,
    background_tasks: BackgroundTasks,
    candidate_id: Optional[str] = Depends(get_optional_user_id),
    session: Session = Depends(get_session),
    llm: LLMClient = Depends(get_llm_client),
):
    '''
    Submit an application, as a guest or a signed-in candidate.
    Relevance scoring runs after the response is sent.
    '''
    result = application_service.submit_application(session, payload, candidate_id)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)

    background_tasks.add_task(score_application, result.application_id, llm, session.get_bind())
    return result


@app.post("/api/applications/upload")
async def upload_resume(file: UploadFile = File(...)):
    '''
    Store a resume and return its public URL.
    '''
    contents = await file.read()
    validate_upload(file, contents)

    ext = os.path.splitext(file.filename or "")[1].lower()
    filename = f"{uuid.uuid4().hex}{ext}"
    with open(os.path.join(UPLOADS_DIR, filename), "wb") as f:
        f.write(contents)

    logger.info("Stored resume upload %s (%d bytes)", filename, len(contents))
    return {"url": f"/uploads/{filename}", "name": file.filename}


# Candidate area

@app.get("/api/me/applications", response_model=CandidateApplications)
def my_applications(user_id: str = Depends(get_current_user_id), session: Session = Depends(get_session)):
    return application_service.get_candidate_applications(session, user_id)


@app.get("/api/me/applications/{application_id}", response_model=CandidateApplicationDetail)
def my_application(
    application_id: str,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    application = application_service.get_candidate_application(session, user_id, application_id)
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    return application


@app.get("/api/me/badges")
def my_badges(user_id: str = Depends(get_current_user_id), session: Session = Depends(get_session)):
    return application_service.get_candidate_sidebar_badges(session, user_id)


@app.get("/api/me/dashboard", response_model=CandidateDashboard)
def my_dashboard(
    saved: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    '''
    Dashboard data for a candidate. Saved jobs live client-side, so their count is passed in.
    '''
    data = application_service.get_candidate_applications(session, user_id)
    return CandidateDashboard(
        chart=build_weekly_chart_data(data.applications),
        activity=derive_activity_feed(data.applications),
        trends=compute_stat_trends(data.applications, saved),
        stats=data.stats,
    )


# Relevance

@app.post("/api/relevance/generate", response_model=RelevanceAssessment)
async def generate_relevance(payload: RelevanceRequest, llm: LLMClient = Depends(get_llm_client)):
    assessment = await llm.generate_candidate_relevance(payload.resume_data, payload.job_data)
    if assessment is None:
        raise HTTPException(status_code=502, detail="Failed to generate relevance")
    return assessment


@app.post("/api/relevance/parse-resume", response_model=ParsedResume)
async def parse_resume(file: UploadFile = File(...), llm: LLMClient = Depends(get_llm_client)):
    contents = await file.read()
    validate_upload(file, contents)

    parsed = await llm.parse_resume(contents, file.content_type)
    if parsed is None:
        raise HTTPException(status_code=400, detail="Could not extract profile data from the resume")
    return parsed


# Recruiter area

@app.get("/api/recruiter/jobs", response_model=List[RecruiterJobListItem])
def recruiter_jobs(recruiter: User = Depends(get_current_recruiter), session: Session = Depends(get_session)):
    return job_service.get_recruiter_jobs(session, recruiter.id)


@app.get("/api/recruiter/applications", response_model=List[RecruiterApplicationListItem])
def recruiter_applications(recruiter: User = Depends(get_current_recruiter), session: Session = Depends(get_session)):
    return candidate_service.get_recruiter_applications(session, recruiter.id)


@app.patch("/api/recruiter/applications/{application_id}/status")
def update_status(
    application_id: str,
    payload: StatusUpdate,
    recruiter: User = Depends(get_current_recruiter),
    session: Session = Depends(get_session),
):
    application = application_service.update_application_status(session, recruiter.id, application_id, payload.status)
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    return {"id": application.id, "status": application.status}


@app.get("/api/recruiter/candidates", response_model=List[RecruiterCandidateListItem])
def recruiter_candidates(recruiter: User = Depends(get_current_recruiter), session: Session = Depends(get_session)):
    return candidate_service.get_recruiter_candidates(session, recruiter.id)


@app.get("/api/recruiter/candidates/compare", response_model=CandidateComparison)
def compare(
    ids: List[str] = Query(..., alias="id"),
    recruiter: User = Depends(get_current_recruiter),
    session: Session = Depends(get_session),
):
    return candidate_service.compare_candidates(session, recruiter.id, ids)


@app.get("/api/recruiter/candidates/{application_id}", response_model=RecruiterCandidateDetail)
def candidate_detail(
    application_id: str,
    recruiter: User = Depends(get_current_recruiter),
    session: Session = Depends(get_session),
):
    detail = candidate_service.get_recruiter_candidate_detail(session, recruiter.id, application_id)
    if not detail:
        raise HTTPException(status_code=404, detail="Candidate not found")
    return detail


@app.post("/api/recruiter/candidates/{application_id}/relevance", response_model=RecruiterRelevanceResult)
async def candidate_relevance(
    application_id: str,
    recruiter: User = Depends(get_current_recruiter),
    session: Session = Depends(get_session),
    llm: LLMClient = Depends(get_llm_client),
):
    '''
    The recruiter's relevance assessment for an application; generated on first request, then reused.
    '''
    application = session.get(Application, application_id)
    if not application or not job_service.get_owned_job(session, recruiter.id, application.job_id):
        raise HTTPException(status_code=404, detail="Application not found")

    result = await get_or_generate_recruiter_relevance(session, application_id, recruiter.id, llm)
    if result is None:
        raise HTTPException(status_code=502, detail="Failed to generate relevance")
    return result


@app.post("/api/recruiter/chat", response_model=ChatReply)
def job_creation_chat(
    payload: ChatRequest,
    recruiter: User = Depends(get_current_recruiter),
    session: Session = Depends(get_session),
    llm: LLMClient = Depends(get_llm_client),
):
    '''
    One turn of the job-creation assistant. Runs in the threadpool since the
    model's tool loop is blocking.
    '''
    if not payload.messages or payload.messages[-1].role != "user":
        raise HTTPException(status_code=400, detail="The last message must come from the user")
    reply = run_job_creation_chat(session, recruiter, payload.messages, llm)
    if reply.error and not reply.saved_job_id:
        raise HTTPException(status_code=502, detail=reply.error)
    return reply


# Google Calendar

@app.get("/api/google/connect")
def google_connect(
    recruiter: User = Depends(get_current_recruiter),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
):
    return {"url": calendar.get_authorization_url(recruiter.id)}


@app.get("/api/google/callback")
async def google_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    session: Session = Depends(get_session),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
):
    '''
    OAuth redirect target. ``state`` carries the recruiter id set in the authorization URL.
    '''
    if error or not code or not state:
        raise HTTPException(status_code=400, detail=error or "Missing code or state")

    recruiter = session.get(User, state)
    if not recruiter or recruiter.role != UserRole.recruiter:
        raise HTTPException(status_code=400, detail="Invalid state")

    tokens = await calendar.exchange_code_for_tokens(code)
    if not tokens or not tokens.get("access_token") or not tokens.get("refresh_token"):
        raise HTTPException(status_code=400, detail="Token exchange failed")

    save_tokens(session, recruiter.id, tokens)
    logger.info("Google Calendar connected for %s", recruiter.id)
    return {"connected": True}


@app.get("/api/google/status")
def google_status(recruiter: User = Depends(get_current_recruiter), session: Session = Depends(get_session)):
    return {"connected": is_connected(session, recruiter.id)}


# Interviews

@app.post("/api/recruiter/interviews", response_model=InterviewResult)
async def create_interview(
    payload: InterviewCreate,
    recruiter: User = Depends(get_current_recruiter),
    session: Session = Depends(get_session),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
):
    interview = await schedule_interview(session, recruiter.id, payload, calendar)
    if not interview:
        raise HTTPException(status_code=404, detail="Application not found")
    return interview


@app.patch("/api/recruiter/interviews/{interview_id}", response_model=InterviewResult)
async def update_interview(
    interview_id: str,
    payload: InterviewReschedule,
    recruiter: User = Depends(get_current_recruiter),
    session: Session = Depends(get_session),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
):
    interview = await reschedule_interview(
        session, recruiter.id, interview_id, payload.scheduled_at, payload.duration_minutes, calendar
    )
    if not interview:
        raise HTTPException(status_code=404, detail="Interview not found")
    return interview


@app.delete("/api/recruiter/interviews/{interview_id}")
async def delete_interview(
    interview_id: str,
    recruiter: User = Depends(get_current_recruiter),
    session: Session = Depends(get_session),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
):
    if not await cancel_interview(session, recruiter.id, interview_id, calendar):
        raise HTTPException(status_code=404, detail="Interview not found")
    return {"deleted": True}
