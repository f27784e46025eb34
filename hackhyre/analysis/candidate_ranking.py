from typing import List, Mapping, Sequence

from hackhyre.analysis.candidate_grouping import reduce_best_match
from hackhyre.models import Application, CandidateProfile, User
from hackhyre.schemas import RecruiterCandidateListItem


def assemble_candidate_list(
    grouped: Mapping[str, Sequence[Application]],
    profiles: Mapping[str, CandidateProfile],
    users: Mapping[str, User],
    job_titles: Mapping[str, str],
) -> List[RecruiterCandidateListItem]:
    """
    Builds one display record per candidate identity, best match first.

    Only registered candidates have profile/user rows; guests keep the name
    captured on the application and get empty profile fields. The caller is
    responsible for passing only applications on jobs the recruiter owns.

    Args:
        grouped (Mapping[str, Sequence[Application]]): Output of group_by_candidate.
        profiles (Mapping[str, CandidateProfile]): Profiles keyed by user id.
        users (Mapping[str, User]): Users keyed by user id.
        job_titles (Mapping[str, str]): Job titles keyed by job id.
    Returns:
        List[RecruiterCandidateListItem]: Records sorted by best_match_score descending.
    """
    result: List[RecruiterCandidateListItem] = []

    for apps in grouped.values():
        best = reduce_best_match(apps)

        # Identity fields come from the newest application
        first_app = apps[0]
        candidate_id = first_app.candidate_id
        profile = profiles.get(candidate_id) if candidate_id else None
        user = users.get(candidate_id) if candidate_id else None

        account_ids = {app.candidate_id for app in apps if app.candidate_id}

        result.append(RecruiterCandidateListItem(
            best_application_id=best.best_application.id,
            name=user.name if user else first_app.candidate_name,
            email=first_app.candidate_email,
            headline=profile.headline if profile else None,
            location=profile.location if profile else None,
            experience_years=profile.experience_years if profile else None,
            skills=list(profile.skills or []) if profile else [],
            best_match_score=best.best_match_score,
            application_count=len(apps),
            best_status=best.best_status,
            best_match_job_title=job_titles.get(best.best_application.job_id),
            latest_application_date=best.latest_application_date,
            distinct_account_count=len(account_ids),
        ))

    # Ties keep grouping order, callers must not rely on it
    result.sort(key=lambda item: item.best_match_score, reverse=True)
    return result

