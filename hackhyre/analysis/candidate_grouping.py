from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from hackhyre.analysis.status_priority import best_status
from hackhyre.models import Application, ApplicationStatus


def candidate_key(email: str) -> str:
    return email.lower()


def group_by_candidate(applications: Sequence[Application]) -> Dict[str, List[Application]]:
    """
    Groups applications by lower-cased candidate email.

    Guest and registered submissions that share an email end up in the same
    group. Order inside each group follows the input (newest first when the
    input is sorted by created_at descending).

    Args:
        applications (Sequence[Application]): Applications across the recruiter's jobs.
    Returns:
        Dict[str, List[Application]]: Normalized email -> that person's applications.
    """
    grouped: Dict[str, List[Application]] = {}
    for app in applications:
        grouped.setdefault(candidate_key(app.candidate_email), []).append(app)
    return grouped


@dataclass(frozen=True)
class BestMatch:
    best_match_score: float
    best_application: Application
    best_status: ApplicationStatus
    latest_application_date: datetime


def find_best_application(group: Sequence[Application]) -> Optional[Application]:
    '''
    Highest-scoring application of a group; the first one wins on equal scores.
    None when nothing in the group has been scored yet.
    '''
    best = None
    for app in group:
        if app.relevance_score is None:
            continue
        if best is None or app.relevance_score > best.relevance_score:
            best = app
    return best


def reduce_best_match(group: Sequence[Application]) -> BestMatch:
    """
    Reduces one candidate's applications to the values shown in the candidate list.

    Args:
        group (Sequence[Application]): Non-empty list of one candidate's applications, newest first.
    Returns:
        BestMatch: Best score (0 when unscored), best application, best status, latest date.
    """
    best_app = find_best_application(group)
    score = best_app.relevance_score if best_app is not None else 0

    return BestMatch(
        best_match_score=score,
        best_application=best_app if best_app is not None else group[0],
        best_status=best_status(app.status for app in group),
        latest_application_date=max(app.created_at for app in group),
    )
