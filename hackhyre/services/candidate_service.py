from typing import Dict, List, Optional, Sequence

from sqlmodel import Session, select

from hackhyre.analysis.candidate_grouping import candidate_key, find_best_application, group_by_candidate
from hackhyre.analysis.candidate_ranking import assemble_candidate_list
from hackhyre.analysis.skill_overlap import compute_skill_overlaps
from hackhyre.models import Application, CandidateProfile, RecruiterRelevance, User
from hackhyre.schemas import (
    CandidateComparison,
    RecruiterApplicationListItem,
    RecruiterCandidateDetail,
    RecruiterCandidateListItem,
    RecruiterRelevanceResult,
)
from hackhyre.services.application_service import list_applications_for_jobs
from hackhyre.services.job_service import get_owned_job, list_recruiter_jobs

MAX_COMPARED_CANDIDATES = 4


def fetch_profiles(session: Session, user_ids: Sequence[str]) -> Dict[str, CandidateProfile]:
    if not user_ids:
        return {}
    rows = session.exec(select(CandidateProfile).where(CandidateProfile.user_id.in_(list(user_ids)))).all()
    return {p.user_id: p for p in rows}


def fetch_users(session: Session, user_ids: Sequence[str]) -> Dict[str, User]:
    if not user_ids:
        return {}
    rows = session.exec(select(User).where(User.id.in_(list(user_ids)))).all()
    return {u.id: u for u in rows}


def _registered_ids(applications: Sequence[Application]) -> List[str]:
    return list(dict.fromkeys(a.candidate_id for a in applications if a.candidate_id))


def to_relevance_result(row: RecruiterRelevance) -> RecruiterRelevanceResult:
    return RecruiterRelevanceResult(
        score=row.score,
        feedback=row.feedback,
        strengths=list(row.strengths or []),
        gaps=list(row.gaps or []),
    )


def get_recruiter_applications(session: Session, recruiter_id: str) -> List[RecruiterApplicationListItem]:
    '''
    Flat list of every application on the recruiter's jobs, newest first.
    '''
    jobs = list_recruiter_jobs(session, recruiter_id)
    if not jobs:
        return []

    job_titles = {j.id: j.title for j in jobs}
    applications = list_applications_for_jobs(session, list(job_titles))
    users = fetch_users(session, _registered_ids(applications))

    items = []
    for app in applications:
        user = users.get(app.candidate_id) if app.candidate_id else None
        items.append(RecruiterApplicationListItem(
            id=app.id,
            candidate_id=app.candidate_id,
            candidate_name=user.name if user else app.candidate_name,
            candidate_email=app.candidate_email,
            job_title=job_titles.get(app.job_id, "Unknown Job"),
            status=app.status,
            relevance_score=app.relevance_score,
            created_at=app.created_at,
        ))
    return items


def get_recruiter_candidates(session: Session, recruiter_id: str) -> List[RecruiterCandidateListItem]:
    """
    Aggregates the recruiter's applications into one record per candidate, best match first.

    Only non-deleted jobs owned by the recruiter are considered, so the
    aggregation never sees foreign applications.

    Args:
        session (Session): Database session.
        recruiter_id (str): The signed-in recruiter.
    Returns:
        List[RecruiterCandidateListItem]: Candidate records sorted by best match score.
    """
    jobs = list_recruiter_jobs(session, recruiter_id)
    if not jobs:
        return []

    job_titles = {j.id: j.title for j in jobs}
    applications = list_applications_for_jobs(session, list(job_titles))
    if not applications:
        return []

    registered_ids = _registered_ids(applications)
    return assemble_candidate_list(
        group_by_candidate(applications),
        fetch_profiles(session, registered_ids),
        fetch_users(session, registered_ids),
        job_titles,
    )


def get_recruiter_candidate_detail(
    session: Session,
    recruiter_id: str,
    application_id: str,
) -> Optional[RecruiterCandidateDetail]:
    """
    Full candidate view anchored on one of their applications.

    Args:
        session (Session): Database session.
        recruiter_id (str): The signed-in recruiter.
        application_id (str): Anchor application; its job must belong to the recruiter.
    Returns:
        Optional[RecruiterCandidateDetail]: The detail, or None when not found / not owned.
    """
    anchor = session.get(Application, application_id)
    if not anchor or not get_owned_job(session, recruiter_id, anchor.job_id):
        return None

    jobs = list_recruiter_jobs(session, recruiter_id)
    email = candidate_key(anchor.candidate_email)
    candidate_apps = [
        a for a in list_applications_for_jobs(session, [j.id for j in jobs])
        if candidate_key(a.candidate_email) == email
    ]

    best_app = find_best_application(candidate_apps)
    best_application_id = (best_app or candidate_apps[0]).id

    relevance_row = session.exec(
        select(RecruiterRelevance).where(
            RecruiterRelevance.application_id == application_id,
            RecruiterRelevance.recruiter_id == recruiter_id,
        )
    ).first()

    profile = None
    user = None
    if anchor.candidate_id:
        profile = session.exec(
            select(CandidateProfile).where(CandidateProfile.user_id == anchor.candidate_id)
        ).first()
        user = session.get(User, anchor.candidate_id)

    all_job_skills = list(dict.fromkeys(
        skill.lower() for job in jobs for skill in (job.skills or [])
    ))

    resume_url = (
        (profile.resume_url if profile else None)
        or (best_app.resume_url if best_app else None)
        or next((a.resume_url for a in candidate_apps if a.resume_url), None)
    )

    return RecruiterCandidateDetail(
        name=user.name if user else anchor.candidate_name,
        email=anchor.candidate_email,
        headline=profile.headline if profile else None,
        bio=profile.bio if profile else None,
        location=profile.location if profile else None,
        experience_years=profile.experience_years if profile else None,
        skills=list(profile.skills or []) if profile else [],
        linkedin_url=(profile.linkedin_url if profile else None) or anchor.linkedin_url,
        github_url=profile.github_url if profile else None,
        twitter_url=profile.twitter_url if profile else None,
        portfolio_url=profile.portfolio_url if profile else None,
        resume_url=resume_url,
        image=user.image if user else None,
        best_application_id=best_application_id,
        relevance=to_relevance_result(relevance_row) if relevance_row else None,
        all_job_skills=all_job_skills,
    )


def compare_candidates(
    session: Session,
    recruiter_id: str,
    application_ids: Sequence[str],
) -> CandidateComparison:
    '''
    Side-by-side view of up to four candidates. Skill overlaps need at least two.

    Applications that resolve to the same person (same email) are shown once.
    '''
    candidates = []
    seen = set()
    for application_id in application_ids:
        if len(candidates) >= MAX_COMPARED_CANDIDATES:
            break
        detail = get_recruiter_candidate_detail(session, recruiter_id, application_id)
        if detail is None or candidate_key(detail.email) in seen:
            continue
        seen.add(candidate_key(detail.email))
        candidates.append(detail)

    overlaps = {}
    if len(candidates) >= 2:
        overlaps = compute_skill_overlaps([c.skills for c in candidates])

    return CandidateComparison(candidates=candidates, skill_overlaps=overlaps)
