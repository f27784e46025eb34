from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from hackhyre.models import ApplicationStatus
from hackhyre.schemas import (
    CandidateApplicationListItem,
    ChartDataPoint,
    DerivedActivity,
    StatTrends,
)

ACTIVITY_FEED_LIMIT = 8


def build_weekly_chart_data(
    applications: Sequence[CandidateApplicationListItem],
    today: Optional[date] = None,
) -> List[ChartDataPoint]:
    """
    Counts applications per day for the last seven days, oldest first.

    Args:
        applications (Sequence[CandidateApplicationListItem]): The candidate's applications.
        today (Optional[date]): Last day of the window, defaults to the current date.
    Returns:
        List[ChartDataPoint]: Seven points labelled with weekday abbreviations.
    """
    today = today or date.today()
    days = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        count = sum(1 for app in applications if app.applied_at.date() == day)
        days.append(ChartDataPoint(date=day.strftime("%a"), applications=count))
    return days


def derive_activity_feed(applications: Sequence[CandidateApplicationListItem]) -> List[DerivedActivity]:
    """
    Turns applications into a feed of events, newest first.

    Every application yields an "applied" event; interviewing, under_review
    and hired applications yield one extra event each.
    """
    activities: List[DerivedActivity] = []

    for app in applications:
        company_name = app.company.name if app.company else "Unknown"
        where = f"{app.job.title} at {company_name}"

        activities.append(DerivedActivity(
            id=f"{app.id}-applied",
            type="applied",
            title=f"Applied to {app.job.title}",
            description=f"{company_name} - {app.job.location or 'Remote'}",
            timestamp=app.applied_at,
        ))

        if app.status == ApplicationStatus.interviewing:
            activities.append(DerivedActivity(
                id=f"{app.id}-interview", type="interview",
                title="Interview stage reached", description=where, timestamp=app.applied_at,
            ))
        elif app.status == ApplicationStatus.under_review:
            activities.append(DerivedActivity(
                id=f"{app.id}-review", type="status_change",
                title="Application under review", description=where, timestamp=app.applied_at,
            ))
        elif app.status == ApplicationStatus.hired:
            activities.append(DerivedActivity(
                id=f"{app.id}-offer", type="status_change",
                title="Offer received", description=where, timestamp=app.applied_at,
            ))

    activities.sort(key=lambda a: a.timestamp, reverse=True)
    return activities[:ACTIVITY_FEED_LIMIT]


def compute_stat_trends(
    applications: Sequence[CandidateApplicationListItem],
    saved_count: int,
    today: Optional[date] = None,
) -> StatTrends:
    today = today or date.today()
    week_ago = datetime.combine(today - timedelta(days=7), datetime.min.time())

    applied_this_week = sum(1 for app in applications if app.applied_at > week_ago)
    in_review = sum(1 for app in applications if app.status == ApplicationStatus.under_review)
    interviewing = sum(1 for app in applications if app.status == ApplicationStatus.interviewing)

    return StatTrends(
        applications=f"+{applied_this_week} this week" if applied_this_week > 0 else "No new this week",
        active=f"{in_review} in review" if in_review > 0 else "None in review",
        interviews=f"{interviewing} in progress" if interviewing > 0 else "None scheduled",
        saved=f"{saved_count} saved" if saved_count > 0 else "None saved",
    )
