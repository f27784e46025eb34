from datetime import datetime
from typing import Optional

from sqlmodel import Session

from hackhyre.log import get_logger
from hackhyre.models import Application, ApplicationStatus, Interview, User
from hackhyre.schemas import InterviewCreate
from hackhyre.services.google_calendar import GoogleCalendarClient
from hackhyre.services.job_service import get_owned_job

logger = get_logger(__name__)


async def schedule_interview(
    session: Session,
    recruiter_id: str,
    payload: InterviewCreate,
    calendar: GoogleCalendarClient,
) -> Optional[Interview]:
    """
    Books an interview for an application on one of the recruiter's jobs.

    A Meet event is created when the recruiter has connected Google Calendar;
    otherwise the interview is stored without a link. The application moves
    to ``interviewing``.

    Args:
        session (Session): Database session.
        recruiter_id (str): The signed-in recruiter.
        payload (InterviewCreate): Time, duration, type and notes.
        calendar (GoogleCalendarClient): Calendar client.
    Returns:
        Optional[Interview]: The stored interview, or None when the application is not theirs.
    """
    application = session.get(Application, payload.application_id)
    if not application:
        return None
    job = get_owned_job(session, recruiter_id, application.job_id)
    if not job:
        return None

    attendees = [application.candidate_email]
    recruiter = session.get(User, recruiter_id)
    if recruiter:
        attendees.append(recruiter.email)

    event = await calendar.create_event_with_meet(
        session,
        recruiter_id,
        summary=f"Interview: {application.candidate_name} for {job.title}",
        description=payload.notes,
        start_time=payload.scheduled_at,
        duration_minutes=payload.duration_minutes,
        attendees=attendees,
    )
    if event is None:
        logger.info("No calendar event created for application %s", application.id)

    interview = Interview(
        application_id=application.id,
        recruiter_id=recruiter_id,
        scheduled_at=payload.scheduled_at,
        duration_minutes=payload.duration_minutes,
        interview_type=payload.interview_type,
        meet_link=event["meet_link"] if event else None,
        calendar_event_id=event["event_id"] if event else None,
        notes=payload.notes,
    )
    application.status = ApplicationStatus.interviewing
    session.add(interview)
    session.add(application)
    session.commit()
    session.refresh(interview)
    return interview


def _owned_interview(session: Session, recruiter_id: str, interview_id: str) -> Optional[Interview]:
    interview = session.get(Interview, interview_id)
    if not interview or interview.recruiter_id != recruiter_id:
        return None
    return interview


async def reschedule_interview(
    session: Session,
    recruiter_id: str,
    interview_id: str,
    scheduled_at: datetime,
    duration_minutes: Optional[int],
    calendar: GoogleCalendarClient,
) -> Optional[Interview]:
    interview = _owned_interview(session, recruiter_id, interview_id)
    if not interview:
        return None

    if interview.calendar_event_id:
        await calendar.update_event(
            session, recruiter_id, interview.calendar_event_id,
            start_time=scheduled_at, duration_minutes=duration_minutes or interview.duration_minutes,
        )

    interview.scheduled_at = scheduled_at
    if duration_minutes:
        interview.duration_minutes = duration_minutes
    session.add(interview)
    session.commit()
    session.refresh(interview)
    return interview


async def cancel_interview(
    session: Session,
    recruiter_id: str,
    interview_id: str,
    calendar: GoogleCalendarClient,
) -> bool:
    interview = _owned_interview(session, recruiter_id, interview_id)
    if not interview:
        return False

    if interview.calendar_event_id:
        await calendar.delete_event(session, recruiter_id, interview.calendar_event_id)

    session.delete(interview)
    session.commit()
    return True
