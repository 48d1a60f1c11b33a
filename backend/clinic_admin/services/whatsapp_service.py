# clinic_admin/services/whatsapp_service.py
"""
WhatsApp delivery through the Evolution API
"""
import logging
import re

import requests
from flask import current_app

from clinic_admin.utils.exceptions import ConfigurationError, MessagingServiceError

logger = logging.getLogger(__name__)


class WhatsAppService:
    """Sends plain-text WhatsApp messages"""

    def _settings(self):
        config = current_app.config
        base_url = config.get('BASE_URL_EVO')
        api_key = config.get('API_KEY_EVO')
        instance = config.get('INSTANCE_NAME')

        if not base_url or not api_key or not instance:
            raise ConfigurationError(
                "Evolution API not configured: BASE_URL_EVO, API_KEY_EVO and INSTANCE_NAME are required"
            )
        return base_url.rstrip('/'), api_key, instance

    def send_text(self, number, text):
        base_url, api_key, instance = self._settings()
        url = f'{base_url}/message/sendText/{instance}'

        try:
            response = requests.post(
                url,
                json={'number': re.sub(r'\D', '', number or ''), 'text': text},
                headers={'apikey': api_key},
                timeout=current_app.config.get('EXTERNAL_TIMEOUT_SECONDS', 10),
            )
        except requests.RequestException as e:
            logger.error(f"Evolution API unreachable while messaging {number}: {e}")
            raise MessagingServiceError(f"Evolution API unreachable: {e}")

        if not response.ok:
            logger.error(f"Evolution API error {response.status_code}: {response.text}")
            raise MessagingServiceError(f"Evolution API error {response.status_code}: {response.text}")

        logger.info(f"WhatsApp message sent to {number}")
