from typing import Iterable

from hackhyre.models import ApplicationStatus

# Display priority; higher wins
STATUS_PRIORITY = {
    ApplicationStatus.hired: 5,
    ApplicationStatus.interviewing: 4,
    ApplicationStatus.under_review: 3,
    ApplicationStatus.not_reviewed: 2,
    ApplicationStatus.rejected: 1,
}


def best_status(
    statuses: Iterable[ApplicationStatus],
    seed: ApplicationStatus = ApplicationStatus.not_reviewed,
) -> ApplicationStatus:
    """
    Reduces a collection of statuses to the single highest-priority one.

    The seed is only returned for an empty collection, so a group made up of
    rejected applications alone still reports ``rejected``.

    Args:
        statuses (Iterable[ApplicationStatus]): Statuses of one candidate's applications.
        seed (ApplicationStatus): Result for an empty collection.
    Returns:
        ApplicationStatus: The highest-priority status present.
    """
    best = None
    for status in statuses:
        status = ApplicationStatus(status)
        if best is None or STATUS_PRIORITY[status] > STATUS_PRIORITY[best]:
            best = status
    return best if best is not None else seed
