from typing import Dict, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from hackhyre.log import get_logger
from hackhyre.models import Application, ApplicationStatus, Company, Job, JobStatus
from hackhyre.schemas import (
    ApplicationCompany,
    ApplicationJob,
    ApplicationStats,
    ApplicationSubmit,
    CandidateApplicationDetail,
    CandidateApplicationListItem,
    CandidateApplications,
    MatchAnalysis,
    SubmitApplicationResult,
)
from hackhyre.services.job_service import get_owned_job

logger = get_logger(__name__)

ACTIVE_STATUSES = (ApplicationStatus.not_reviewed, ApplicationStatus.under_review)
BADGE_STATUSES = ACTIVE_STATUSES + (ApplicationStatus.interviewing,)


def list_applications_for_jobs(session: Session, job_ids: Sequence[str]) -> Sequence[Application]:
    '''
    All applications on the given jobs, newest first.
    '''
    if not job_ids:
        return []
    return session.exec(
        select(Application)
        .where(Application.job_id.in_(list(job_ids)))
        .order_by(Application.created_at.desc())
    ).all()


def submit_application(
    session: Session,
    payload: ApplicationSubmit,
    candidate_id: Optional[str] = None,
) -> SubmitApplicationResult:
    """
    Stores a new application. Guests (no candidate_id) may apply.

    Rejections are returned as a result with an error message rather than raised.

    Args:
        session (Session): Database session.
        payload (ApplicationSubmit): Submitted form data.
        candidate_id (Optional[str]): The signed-in candidate, if any.
    Returns:
        SubmitApplicationResult: Success flag and the new application id, or an error.
    """
    job = session.get(Job, payload.job_id)
    if not job:
        return SubmitApplicationResult(success=False, error="Job not found.")

    if job.status != JobStatus.open:
        return SubmitApplicationResult(success=False, error="This position is no longer accepting applications.")

    duplicate_error = SubmitApplicationResult(success=False, error="You have already applied for this position.")
    existing = session.exec(
        select(Application.id).where(
            Application.job_id == payload.job_id,
            func.lower(Application.candidate_email) == payload.candidate_email.lower(),
        )
    ).first()
    if existing:
        return duplicate_error

    application = Application(
        job_id=payload.job_id,
        candidate_id=candidate_id,
        candidate_name=payload.candidate_name,
        candidate_email=payload.candidate_email,
        resume_url=payload.resume_url,
        linkedin_url=payload.linkedin_url,
        cover_letter=payload.cover_letter,
        talent_pool_opt_in=payload.talent_pool_opt_in,
    )
    session.add(application)
    try:
        session.commit()
    except IntegrityError:
        # Lost a race against an identical submission
        session.rollback()
        return duplicate_error

    session.refresh(application)
    logger.info("Application %s submitted for job %s", application.id, job.id)
    return SubmitApplicationResult(success=True, application_id=application.id)


def _to_list_item(application: Application, job: Job, company: Optional[Company]) -> CandidateApplicationListItem:
    return CandidateApplicationListItem(
        id=application.id,
        status=application.status,
        relevance_score=application.relevance_score,
        applied_at=application.created_at,
        cover_letter=application.cover_letter,
        resume_url=application.resume_url,
        linkedin_url=application.linkedin_url,
        job=ApplicationJob(
            title=job.title,
            description=job.description,
            location=job.location,
            is_remote=job.is_remote,
            employment_type=job.employment_type,
            experience_level=job.experience_level,
            salary_min=job.salary_min,
            salary_max=job.salary_max,
            salary_currency=job.salary_currency,
            requirements=job.requirements or [],
            responsibilities=job.responsibilities or [],
            skills=job.skills or [],
        ),
        company=ApplicationCompany(name=company.name, website=company.website, logo_url=company.logo_url) if company else None,
    )


def _applications_with_job():
    return (
        select(Application, Job, Company)
        .join(Job, Application.job_id == Job.id)
        .join(Company, Job.company_id == Company.id, isouter=True)
    )


def compute_application_stats(applications: Sequence[CandidateApplicationListItem]) -> ApplicationStats:
    return ApplicationStats(
        total=len(applications),
        active=sum(1 for a in applications if a.status in ACTIVE_STATUSES),
        interviewing=sum(1 for a in applications if a.status == ApplicationStatus.interviewing),
        offers=sum(1 for a in applications if a.status == ApplicationStatus.hired),
    )


def get_candidate_applications(session: Session, candidate_id: str) -> CandidateApplications:
    rows = session.exec(
        _applications_with_job()
        .where(Application.candidate_id == candidate_id)
        .order_by(Application.created_at.desc())
    ).all()
    applications = [_to_list_item(*row) for row in rows]
    return CandidateApplications(applications=applications, stats=compute_application_stats(applications))


def get_candidate_application(
    session: Session,
    candidate_id: str,
    application_id: str,
) -> Optional[CandidateApplicationDetail]:
    '''
    One of the candidate's own applications with its match analysis.
    None when it does not exist or belongs to someone else.
    '''
    row = session.exec(_applications_with_job().where(Application.id == application_id)).first()
    if not row:
        return None

    application, job, company = row
    if application.candidate_id != candidate_id:
        return None

    item = _to_list_item(application, job, company)
    analysis = MatchAnalysis.model_validate(application.match_analysis) if application.match_analysis else None
    return CandidateApplicationDetail(**item.model_dump(), match_analysis=analysis)


def get_candidate_sidebar_badges(session: Session, candidate_id: str) -> Dict[str, int]:
    statuses = session.exec(
        select(Application.status).where(Application.candidate_id == candidate_id)
    ).all()

    active_count = sum(1 for status in statuses if status in BADGE_STATUSES)
    badges = {}
    if active_count > 0:
        badges["/applications"] = active_count
    return badges


def update_application_status(
    session: Session,
    recruiter_id: str,
    application_id: str,
    status: ApplicationStatus,
) -> Optional[Application]:
    """
    Moves an application to a new status. Only the recruiter owning the job may do this.

    Args:
        session (Session): Database session.
        recruiter_id (str): The signed-in recruiter.
        application_id (str): Application to update.
        status (ApplicationStatus): New status.
    Returns:
        Optional[Application]: The updated application, or None when not found / not owned.
    """
    application = session.get(Application, application_id)
    if not application or not get_owned_job(session, recruiter_id, application.job_id):
        return None

    application.status = status
    session.add(application)
    session.commit()
    session.refresh(application)
    logger.info("Application %s moved to %s by %s", application_id, status.value, recruiter_id)
    return application
