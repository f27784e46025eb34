from typing import List, Optional, Sequence

from sqlalchemy import String, and_, case, cast, func, or_
from sqlmodel import Session, select

from hackhyre.models import Application, Company, ExperienceLevel, Job, JobStatus
from hackhyre.schemas import (
    CompanyProfile,
    CompanySnapshot,
    JobFilters,
    PublicJobListItem,
    RecruiterJobListItem,
    TopCompany,
)

FEATURED_JOBS_LIMIT = 5
TOP_COMPANIES_LIMIT = 6


def to_public_job(job: Job, company: Optional[Company]) -> PublicJobListItem:
    return PublicJobListItem(
        id=job.id,
        title=job.title,
        slug=job.slug,
        description=job.description,
        location=job.location,
        is_remote=job.is_remote,
        employment_type=job.employment_type,
        experience_level=job.experience_level,
        salary_min=job.salary_min,
        salary_max=job.salary_max,
        salary_currency=job.salary_currency,
        skills=job.skills or [],
        requirements=job.requirements or [],
        responsibilities=job.responsibilities or [],
        created_at=job.created_at,
        updated_at=job.updated_at,
        company=CompanySnapshot(id=company.id, name=company.name, logo_url=company.logo_url) if company else None,
    )


def _jobs_with_company():
    return select(Job, Company).join(Company, Job.company_id == Company.id, isouter=True)


def search_public_jobs(session: Session, filters: JobFilters) -> List[PublicJobListItem]:
    """
    Lists open jobs matching every supplied filter.

    Args:
        session (Session): Database session.
        filters (JobFilters): Search text, location type, experience, salary bounds,
            company name and sort order. Missing filters are not applied.
    Returns:
        List[PublicJobListItem]: Matching jobs with their company.
    """
    conditions = [Job.status == JobStatus.open]

    query = filters.q.strip() if filters.q else ""
    pattern = f"%{query}%"
    if query:
        conditions.append(or_(
            Job.title.ilike(pattern),
            Job.description.ilike(pattern),
            cast(Job.skills, String).ilike(pattern),
            cast(Job.requirements, String).ilike(pattern),
            Company.name.ilike(pattern),
        ))

    if filters.location == "remote":
        conditions.append(Job.is_remote.is_(True))
    elif filters.location == "onsite":
        conditions.append(Job.is_remote.is_(False))
    elif filters.location == "hybrid":
        conditions.append(Job.is_remote.is_(True))
        conditions.append(Job.location.is_not(None))

    if filters.experience and filters.experience != "any":
        conditions.append(Job.experience_level == ExperienceLevel(filters.experience))

    if filters.salary_min is not None:
        conditions.append(Job.salary_min >= filters.salary_min)
    if filters.salary_max is not None:
        conditions.append(Job.salary_max <= filters.salary_max)

    if filters.recruiter:
        conditions.append(Company.name == filters.recruiter)

    if filters.sort == "salary-high":
        order_by = [Job.salary_max.is_(None), Job.salary_max.desc()]
    elif filters.sort == "salary-low":
        order_by = [Job.salary_min.is_(None), Job.salary_min.asc()]
    elif query:
        # Title hits rank above description/skill/company hits
        order_by = [case((Job.title.ilike(pattern), 0), else_=1), Job.updated_at.desc()]
    else:
        order_by = [Job.updated_at.desc()]

    rows = session.exec(_jobs_with_company().where(and_(*conditions)).order_by(*order_by)).all()
    return [to_public_job(job, company) for job, company in rows]


def get_job_by_id(session: Session, job_id: str) -> Optional[PublicJobListItem]:
    row = session.exec(_jobs_with_company().where(Job.id == job_id)).first()
    if not row:
        return None
    return to_public_job(*row)


def get_company_jobs(session: Session, company_name: str) -> List[PublicJobListItem]:
    rows = session.exec(
        _jobs_with_company()
        .where(Job.status == JobStatus.open, Company.name == company_name)
        .order_by(Job.updated_at.desc())
    ).all()
    return [to_public_job(job, company) for job, company in rows]


def get_featured_jobs(session: Session) -> List[PublicJobListItem]:
    rows = session.exec(
        _jobs_with_company()
        .where(Job.status == JobStatus.open)
        .order_by(Job.salary_max.is_(None), Job.salary_max.desc(), Job.created_at.desc())
        .limit(FEATURED_JOBS_LIMIT)
    ).all()
    return [to_public_job(job, company) for job, company in rows]


def get_company_by_name(session: Session, name: str) -> Optional[CompanyProfile]:
    '''
    Company profile with its number of open jobs.
    '''
    row = session.exec(
        select(Company, func.count(Job.id))
        .join(Job, and_(Job.company_id == Company.id, Job.status == JobStatus.open), isouter=True)
        .where(Company.name == name)
        .group_by(Company.id)
    ).first()
    if not row:
        return None

    company, job_count = row
    return CompanyProfile(
        id=company.id,
        name=company.name,
        description=company.description,
        website=company.website,
        logo_url=company.logo_url,
        created_at=company.created_at,
        job_count=job_count,
    )


def get_top_companies(session: Session) -> List[TopCompany]:
    job_count = func.count(Job.id)
    rows = session.exec(
        select(Company, job_count)
        .join(Job, and_(Job.company_id == Company.id, Job.status == JobStatus.open))
        .group_by(Company.id)
        .order_by(job_count.desc())
        .limit(TOP_COMPANIES_LIMIT)
    ).all()
    return [
        TopCompany(id=company.id, name=company.name, logo_url=company.logo_url, job_count=count)
        for company, count in rows
    ]


# Recruiter-owned jobs

def list_recruiter_jobs(session: Session, recruiter_id: str) -> Sequence[Job]:
    '''
    The recruiter's jobs, newest first, excluding soft-deleted ones.
    '''
    return session.exec(
        select(Job)
        .where(Job.recruiter_id == recruiter_id, Job.deleted_at.is_(None))
        .order_by(Job.created_at.desc())
    ).all()


def get_owned_job(session: Session, recruiter_id: str, job_id: str) -> Optional[Job]:
    return session.exec(
        select(Job).where(Job.id == job_id, Job.recruiter_id == recruiter_id, Job.deleted_at.is_(None))
    ).first()


def get_recruiter_jobs(session: Session, recruiter_id: str) -> List[RecruiterJobListItem]:
    """
    Lists the recruiter's jobs with their application counts.

    Args:
        session (Session): Database session.
        recruiter_id (str): The signed-in recruiter.
    Returns:
        List[RecruiterJobListItem]: Jobs newest first.
    """
    jobs = list_recruiter_jobs(session, recruiter_id)
    if not jobs:
        return []

    counts = dict(session.exec(
        select(Application.job_id, func.count())
        .where(Application.job_id.in_([j.id for j in jobs]))
        .group_by(Application.job_id)
    ).all())

    return [
        RecruiterJobListItem(
            id=j.id,
            title=j.title,
            status=j.status,
            employment_type=j.employment_type,
            experience_level=j.experience_level,
            location=j.location,
            is_remote=j.is_remote,
            salary_min=j.salary_min,
            salary_max=j.salary_max,
            salary_currency=j.salary_currency,
            application_count=counts.get(j.id, 0),
            created_at=j.created_at,
        )
        for j in jobs
    ]
