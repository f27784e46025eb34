from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from hackhyre.database import engine
from hackhyre.log import get_logger
from hackhyre.models import (
    Application,
    CandidateProfile,
    Company,
    EmploymentType,
    ExperienceLevel,
    Job,
    RecruiterRelevance,
)
from hackhyre.schemas import CandidateSummary, JobSummary, RecruiterRelevanceResult
from hackhyre.services.candidate_service import to_relevance_result
from hackhyre.services.llm_client import LLMClient

logger = get_logger(__name__)


def build_job_summary(job: Job, company: Optional[Company]) -> JobSummary:
    return JobSummary(
        id=job.id,
        title=job.title,
        description=job.description,
        skills=job.skills or [],
        requirements=job.requirements or [],
        experience_level=ExperienceLevel(job.experience_level).value,
        location=job.location,
        is_remote=job.is_remote,
        employment_type=EmploymentType(job.employment_type).value,
        company=company.name if company else None,
    )


def build_candidate_summary(session: Session, application: Application) -> CandidateSummary:
    '''
    Profile data for registered candidates; guests fall back to what they submitted.
    '''
    profile = None
    if application.candidate_id:
        profile = session.exec(
            select(CandidateProfile).where(CandidateProfile.user_id == application.candidate_id)
        ).first()

    return CandidateSummary(
        name=application.candidate_name,
        headline=(profile.headline if profile else None) or application.candidate_name,
        bio=(profile.bio if profile else None) or application.cover_letter,
        skills=list(profile.skills or []) if profile else [],
        experience_years=profile.experience_years if profile else None,
        location=profile.location if profile else None,
    )


def _find_relevance(session: Session, application_id: str, recruiter_id: str) -> Optional[RecruiterRelevance]:
    return session.exec(
        select(RecruiterRelevance).where(
            RecruiterRelevance.application_id == application_id,
            RecruiterRelevance.recruiter_id == recruiter_id,
        )
    ).first()


def _application_with_job(session: Session, application_id: str):
    return session.exec(
        select(Application, Job, Company)
        .join(Job, Application.job_id == Job.id)
        .join(Company, Job.company_id == Company.id, isouter=True)
        .where(Application.id == application_id)
    ).first()


async def get_or_generate_recruiter_relevance(
    session: Session,
    application_id: str,
    recruiter_id: str,
    llm: LLMClient,
) -> Optional[RecruiterRelevanceResult]:
    """
    Returns the recruiter's relevance assessment for an application, generating it once.

    A stored record is always returned as-is. Otherwise the generator is called and
    its result persisted; if a concurrent request inserted first, the unique
    (application, recruiter) constraint rejects this insert and the stored record wins.

    Args:
        session (Session): Database session.
        application_id (str): The application to assess.
        recruiter_id (str): The signed-in recruiter; must own the application's job.
        llm (LLMClient): Relevance generator.
    Returns:
        Optional[RecruiterRelevanceResult]: The assessment, or None when the application is
            unknown / not owned or generation produced nothing.
    """
    existing = _find_relevance(session, application_id, recruiter_id)
    if existing:
        return to_relevance_result(existing)

    row = _application_with_job(session, application_id)
    if not row:
        return None

    application, job, company = row
    if job.recruiter_id != recruiter_id or job.deleted_at is not None:
        return None

    candidate = build_candidate_summary(session, application)
    assessment = await llm.generate_recruiter_relevance(candidate, build_job_summary(job, company))
    if assessment is None:
        logger.warning("Relevance generation returned nothing for application %s", application_id)
        return None

    record = RecruiterRelevance(
        application_id=application_id,
        recruiter_id=recruiter_id,
        score=assessment.match_percentage / 100,
        feedback=assessment.recommendation,
        strengths=assessment.strengths,
        gaps=assessment.gaps,
    )
    session.add(record)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.info("Relevance for %s/%s already stored by a concurrent request", application_id, recruiter_id)
        existing = _find_relevance(session, application_id, recruiter_id)
        return to_relevance_result(existing) if existing else None

    session.refresh(record)
    return to_relevance_result(record)


async def score_application(application_id: str, llm: LLMClient, bind=None) -> None:
    """
    One-time relevance score for a freshly submitted application.

    Runs detached from the submitting request: failures are logged and
    swallowed, and an application that already has a score is left untouched.

    Args:
        application_id (str): The new application.
        llm (LLMClient): Relevance generator.
        bind: Engine to open the session on; defaults to the application engine.
    """
    try:
        with Session(bind or engine) as session:
            row = _application_with_job(session, application_id)
            if not row:
                logger.warning("Cannot score missing application %s", application_id)
                return

            application, job, company = row
            if application.relevance_score is not None:
                return

            candidate = build_candidate_summary(session, application)
            assessment = await llm.generate_candidate_relevance(candidate, build_job_summary(job, company))
            if assessment is None:
                logger.warning("Scoring produced no output for application %s", application_id)
                return

            session.refresh(application)
            if application.relevance_score is not None:
                return

            application.relevance_score = assessment.match_percentage / 100
            application.match_analysis = {
                "feedback": assessment.recommendation,
                "strengths": assessment.strengths,
                "gaps": assessment.gaps,
            }
            session.add(application)
            session.commit()
            logger.info("Scored application %s at %.2f", application_id, application.relevance_score)
    except Exception:
        logger.exception("Background scoring failed for application %s", application_id)
