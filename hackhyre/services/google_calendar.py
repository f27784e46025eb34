import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from sqlmodel import Session

from hackhyre.config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI
from hackhyre.log import get_logger
from hackhyre.models import GoogleOAuthToken, utcnow

logger = get_logger(__name__)

CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar.events"
DEFAULT_TOKEN_LIFETIME = 3600  # seconds, when Google omits expires_in
# Refresh slightly early so a token never expires mid-request
EXPIRY_LEEWAY = timedelta(seconds=60)
DEFAULT_EVENT_MINUTES = 30


def save_tokens(session: Session, user_id: str, tokens: Dict[str, Any]) -> GoogleOAuthToken:
    """
    Upserts the OAuth tokens returned by the authorization-code exchange.

    Args:
        session (Session): Database session.
        user_id (str): The recruiter who granted access.
        tokens (Dict[str, Any]): Token endpoint response.
    Returns:
        GoogleOAuthToken: The stored row.
    """
    now = utcnow()
    expires_at = now + timedelta(seconds=tokens.get("expires_in") or DEFAULT_TOKEN_LIFETIME)

    row = session.get(GoogleOAuthToken, user_id)
    if row is None:
        row = GoogleOAuthToken(
            user_id=user_id,
            access_token=tokens["access_token"],
            refresh_token=tokens["refresh_token"],
            expires_at=expires_at,
            scope=tokens.get("scope") or CALENDAR_SCOPE,
        )
    else:
        row.access_token = tokens["access_token"]
        # Google only resends a refresh token when consent is prompted again
        row.refresh_token = tokens.get("refresh_token") or row.refresh_token
        row.expires_at = expires_at
        row.scope = tokens.get("scope") or CALENDAR_SCOPE
        row.updated_at = now
    row.token_type = tokens.get("token_type") or "Bearer"

    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def is_connected(session: Session, user_id: str) -> bool:
    return session.get(GoogleOAuthToken, user_id) is not None


class GoogleCalendarClient:
    """
    A client for Google OAuth2 and the Calendar v3 REST API.

    Tokens live in the google_oauth_tokens table; expired access tokens are
    refreshed transparently and the new token is persisted.
    """

    AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client_id = GOOGLE_CLIENT_ID
        self.client_secret = GOOGLE_CLIENT_SECRET
        self.redirect_uri = GOOGLE_REDIRECT_URI
        self.transport = transport
        if not self.client_id or not self.client_secret:
            logger.warning("GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET not set. Calendar integration will fail.")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=15.0)

    def get_authorization_url(self, recruiter_id: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "access_type": "offline",
            "prompt": "consent",
            "scope": CALENDAR_SCOPE,
            "state": recruiter_id,
        }
        return f"{self.AUTH_URL}?{urlencode(params)}"

    async def _post_token(self, data: Dict[str, str]) -> Optional[Dict[str, Any]]:
        async with self._client() as client:
            try:
                response = await client.post(self.TOKEN_URL, data=data)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                logger.error("Google token error: %s - %s", e.response.status_code, e.response.text)
                return None
            except httpx.HTTPError as e:
                logger.error("Google token request failed: %s", e)
                return None

    async def exchange_code_for_tokens(self, code: str) -> Optional[Dict[str, Any]]:
        return await self._post_token({
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        })

    async def refresh_access_token(self, refresh_token: str) -> Optional[Dict[str, Any]]:
        return await self._post_token({
            "refresh_token": refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "refresh_token",
        })

    async def get_access_token(self, session: Session, recruiter_id: str) -> Optional[str]:
        """
        Returns a valid access token for the recruiter, refreshing it when expired.
        Args:
            session (Session): Database session.
            recruiter_id (str): The recruiter whose calendar is used.
        Returns:
            Optional[str]: Access token, or None when not connected or the refresh failed.
        """
        row = session.get(GoogleOAuthToken, recruiter_id)
        if row is None:
            return None

        now = utcnow()
        if row.expires_at - EXPIRY_LEEWAY > now:
            return row.access_token

        tokens = await self.refresh_access_token(row.refresh_token)
        if not tokens or not tokens.get("access_token"):
            logger.warning("Could not refresh Google token for %s", recruiter_id)
            return None

        row.access_token = tokens["access_token"]
        row.expires_at = now + timedelta(seconds=tokens.get("expires_in") or DEFAULT_TOKEN_LIFETIME)
        row.updated_at = now
        session.add(row)
        session.commit()
        logger.info("Refreshed Google access token for %s", recruiter_id)
        return row.access_token

    async def _calendar_request(
            self,
            session: Session,
            recruiter_id: str,
            method: str,
            path: str,
            **kwargs,
        ) -> Optional[httpx.Response]:
        access_token = await self.get_access_token(session, recruiter_id)
        if not access_token:
            return None

        headers = {"Authorization": f"Bearer {access_token}"}
        async with self._client() as client:
            try:
                response = await client.request(method, f"{self.CALENDAR_API_URL}{path}", headers=headers, **kwargs)
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as e:
                logger.error("Calendar API error (%s %s): %s - %s", method, path, e.response.status_code, e.response.text)
                return None
            except httpx.HTTPError as e:
                logger.error("Calendar API request failed (%s %s): %s", method, path, e)
                return None

    async def create_event_with_meet(
            self,
            session: Session,
            recruiter_id: str,
            summary: str,
            start_time: datetime,
            duration_minutes: int,
            attendees: List[str],
            description: Optional[str] = None,
        ) -> Optional[Dict[str, str]]:
        """
        Creates a calendar event on the recruiter's primary calendar with a Google Meet link.
        Args:
            session (Session): Database session.
            recruiter_id (str): Calendar owner.
            summary (str): Event title.
            start_time (datetime): Naive UTC start.
            duration_minutes (int): Event length.
            attendees (List[str]): Attendee emails.
            description (Optional[str]): Event body.
        Returns:
            Optional[Dict[str, str]]: {"meet_link", "event_id"}, or None on failure.
        """
        end_time = start_time + timedelta(minutes=duration_minutes)
        body = {
            "summary": summary,
            "description": description,
            "start": {"dateTime": start_time.isoformat(), "timeZone": "UTC"},
            "end": {"dateTime": end_time.isoformat(), "timeZone": "UTC"},
            "attendees": [{"email": email} for email in attendees],
            "conferenceData": {
                "createRequest": {
                    "requestId": f"hackhyre-{uuid.uuid4().hex}",
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                },
            },
        }
        response = await self._calendar_request(
            session, recruiter_id, "POST", "/calendars/primary/events",
            params={"conferenceDataVersion": 1}, json=body,
        )
        if response is None:
            return None

        event = response.json()
        meet_link = event.get("hangoutLink")
        event_id = event.get("id")
        if not meet_link or not event_id:
            return None
        return {"meet_link": meet_link, "event_id": event_id}

    async def update_event(
            self,
            session: Session,
            recruiter_id: str,
            event_id: str,
            start_time: Optional[datetime] = None,
            duration_minutes: Optional[int] = None,
        ) -> bool:
        patch: Dict[str, Any] = {}
        if start_time:
            end_time = start_time + timedelta(minutes=duration_minutes or DEFAULT_EVENT_MINUTES)
            patch["start"] = {"dateTime": start_time.isoformat(), "timeZone": "UTC"}
            patch["end"] = {"dateTime": end_time.isoformat(), "timeZone": "UTC"}

        response = await self._calendar_request(
            session, recruiter_id, "PATCH", f"/calendars/primary/events/{event_id}", json=patch,
        )
        return response is not None

    async def delete_event(self, session: Session, recruiter_id: str, event_id: str) -> bool:
        response = await self._calendar_request(
            session, recruiter_id, "DELETE", f"/calendars/primary/events/{event_id}",
        )
        return response is not None
