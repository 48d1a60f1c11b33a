# clinic_admin/services/calendar_service.py
"""
Google Calendar client for doctor calendars
"""
import json
import logging
import os

from flask import current_app
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from clinic_admin.utils.exceptions import (
    CalendarEventNotFound,
    CalendarServiceError,
    ConfigurationError,
)

logger = logging.getLogger(__name__)

SCOPES = ['https://www.googleapis.com/auth/calendar']


class CalendarService:
    """Creates, deletes and queries events on a doctor's Google Calendar"""

    def _load_credentials(self):
        config = current_app.config
        token_json = config.get('GOOGLE_CALENDAR_TOKEN_JSON')

        if token_json:
            try:
                token_data = json.loads(token_json)
            except ValueError:
                raise ConfigurationError("GOOGLE_CALENDAR_TOKEN_JSON is not valid JSON")
            return Credentials.from_authorized_user_info(token_data, SCOPES)

        token_path = config.get('GOOGLE_CALENDAR_TOKEN_PATH')
        if not token_path or not os.path.exists(token_path):
            raise ConfigurationError(
                "Google Calendar is not configured: set GOOGLE_CALENDAR_TOKEN_JSON "
                "or GOOGLE_CALENDAR_TOKEN_PATH"
            )
        return Credentials.from_authorized_user_file(token_path, SCOPES)

    def get_client(self):
        """Initialize Google Calendar service with proper error handling"""
        try:
            creds = self._load_credentials()

            if creds.expired and creds.refresh_token:
                logger.info("Refreshing expired Google Calendar credentials")
                creds.refresh(Request())

            return build('calendar', 'v3', credentials=creds, cache_discovery=False)

        except (GoogleAuthError, ValueError) as e:
            logger.error(f"Failed to initialize calendar service: {e}")
            raise CalendarServiceError(f"Calendar authentication failed: {e}")

    @staticmethod
    def _event_summary(event):
        start = event.get('start', {})
        end = event.get('end', {})
        return {
            'id': event.get('id', ''),
            'summary': event.get('summary', 'Sem título'),
            'start': start.get('dateTime') or start.get('date', ''),
            'end': end.get('dateTime') or end.get('date', ''),
        }

    def check_availability(self, calendar_id, start, end):
        """Report the first event overlapping [start, end), if any"""
        client = self.get_client()
        try:
            result = client.events().list(
                calendarId=calendar_id,
                timeMin=start.isoformat(),
                timeMax=end.isoformat(),
                singleEvents=True,
                orderBy='startTime'
            ).execute()
        except HttpError as e:
            logger.error(f"Error listing events on {calendar_id}: {e}")
            raise CalendarServiceError(f"Could not query calendar: {e}")

        events = result.get('items', [])
        if not events:
            return {'available': True}

        conflict = self._event_summary(events[0])
        logger.info(f"Slot {start.isoformat()} - {end.isoformat()} on {calendar_id} conflicts with {conflict['id']}")
        return {'available': False, 'conflict': conflict}

    def create_event(self, calendar_id, summary, start, end, description=''):
        """Create an event and return its id, summary and bounds"""
        timezone = current_app.config.get('TIMEZONE', 'America/Sao_Paulo')
        body = {
            'summary': summary,
            'description': description,
            'start': {'dateTime': start.isoformat(), 'timeZone': timezone},
            'end': {'dateTime': end.isoformat(), 'timeZone': timezone},
        }

        client = self.get_client()
        try:
            created = client.events().insert(calendarId=calendar_id, body=body).execute()
        except HttpError as e:
            logger.error(f"Error creating event on {calendar_id}: {e}")
            raise CalendarServiceError(f"Could not create calendar event: {e}")

        logger.info(f"Calendar event {created.get('id')} created on {calendar_id}")
        return self._event_summary(created)

    def delete_event(self, calendar_id, event_id):
        """Delete an event. Missing or already-deleted events raise CalendarEventNotFound."""
        client = self.get_client()
        try:
            client.events().delete(calendarId=calendar_id, eventId=event_id).execute()
        except HttpError as e:
            if e.resp is not None and e.resp.status in (404, 410):
                raise CalendarEventNotFound(f"Event {event_id} not found on {calendar_id}")
            logger.error(f"Error deleting event {event_id} on {calendar_id}: {e}")
            raise CalendarServiceError(f"Could not delete calendar event: {e}")

        logger.info(f"Calendar event {event_id} deleted from {calendar_id}")
