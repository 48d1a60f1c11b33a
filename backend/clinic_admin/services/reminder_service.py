# clinic_admin/services/reminder_service.py
"""
Client for the external scheduler that fires appointment reminders.

The scheduler calls back /api/scheduler/webhook at the scheduled time with the
stored payload, which is then relayed to the patient over WhatsApp.
"""
import logging
from datetime import timedelta
from urllib.parse import quote

import requests
from flask import current_app

from clinic_admin.utils.dates import as_utc
from clinic_admin.utils.exceptions import ReminderServiceError

logger = logging.getLogger(__name__)


class ReminderService:

    def _settings(self):
        config = current_app.config
        return (
            (config.get('BASE_URL_SCHEDULER') or '').rstrip('/'),
            config.get('API_TOKEN_SCHEDULER') or '',
            config.get('WEBHOOK_URL_SCHEDULER') or '',
        )

    @staticmethod
    def _headers(token):
        return {
            'Authorization': f'Bearer {token}',
            'Content-Type': 'application/json',
        }

    @staticmethod
    def send_time(start_time):
        """Reminder fires REMINDER_LEAD_HOURS before the appointment, in UTC"""
        lead = timedelta(hours=current_app.config.get('REMINDER_LEAD_HOURS', 1))
        send_at = as_utc(start_time) - lead
        return send_at.strftime('%Y-%m-%dT%H:%M:%S.') + f'{send_at.microsecond // 1000:03d}Z'

    def schedule(self, event_id, number, start_time):
        base_url, token, webhook_url = self._settings()
        if not base_url or not token or not webhook_url:
            logger.warning("Reminder scheduler not configured - reminder not created")
            return

        send_at = self.send_time(start_time)
        payload = {
            'id': event_id,
            'scheduleTo': send_at,
            'payload': {
                'numero': number,
                'mensagem': current_app.config['REMINDER_MESSAGE'],
            },
            'webhookUrl': webhook_url,
        }

        try:
            response = requests.post(
                f'{base_url}/messages',
                json=payload,
                headers=self._headers(token),
                timeout=current_app.config.get('EXTERNAL_TIMEOUT_SECONDS', 10),
            )
        except requests.RequestException as e:
            raise ReminderServiceError(f"Scheduler unreachable: {e}")

        if response.status_code == 409:
            logger.warning(f"Scheduler: reminder already exists for {event_id}")
            return
        if not response.ok:
            raise ReminderServiceError(f"Scheduler error {response.status_code}: {response.text}")

        logger.info(f"Scheduler: reminder created for {event_id} at {send_at}")

    def unschedule(self, event_id):
        base_url, token, _ = self._settings()
        if not base_url or not token or not event_id:
            logger.warning("Reminder scheduler not configured or empty event id")
            return

        # Calendar event ids may carry '@' or '_'
        try:
            response = requests.delete(
                f"{base_url}/messages/{quote(event_id, safe='')}",
                headers=self._headers(token),
                timeout=current_app.config.get('EXTERNAL_TIMEOUT_SECONDS', 10),
            )
        except requests.RequestException as e:
            raise ReminderServiceError(f"Scheduler unreachable: {e}")

        if response.status_code == 404:
            logger.warning(f"Scheduler: reminder {event_id} not found (already deleted?)")
            return
        if not response.ok:
            raise ReminderServiceError(f"Scheduler delete error {response.status_code}: {response.text}")

        logger.info(f"Scheduler: reminder deleted for {event_id}")
