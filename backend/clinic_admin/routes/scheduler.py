# clinic_admin/routes/scheduler.py
"""
Callback fired by the external reminder scheduler
"""
import logging
from flask import Blueprint, request, jsonify
from sqlalchemy.exc import SQLAlchemyError
from clinic_admin.extensions import db
from clinic_admin.models import ChatMessage
from clinic_admin.services.whatsapp_service import WhatsAppService
from clinic_admin.utils.exceptions import ClinicAdminError, ValidationError
from clinic_admin.utils.responses import error_response, unexpected_error

logger = logging.getLogger(__name__)
scheduler_bp = Blueprint('scheduler', __name__)

REMINDER_AGENT = 'lembrete'

# Global instance
messenger = WhatsAppService()

@scheduler_bp.route('/scheduler/webhook', methods=['POST'])
def reminder_webhook():
    """Relay a due reminder to the patient over WhatsApp"""
    try:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        logger.info(f"Scheduler fired reminder {body.get('id')}")

        # Payload may arrive wrapped or at the top level
        payload = body.get('payload') if isinstance(body.get('payload'), dict) else body
        number = payload.get('numero')
        text = payload.get('mensagem')
        if not isinstance(number, str) or not isinstance(text, str) or not number or not text:
            raise ValidationError("Fields 'numero' and 'mensagem' are required")

        messenger.send_text(number, text)

        try:
            db.session.add(ChatMessage(
                session_id=number,
                sender='ai',
                agent_name=REMINDER_AGENT,
                message={'type': 'ai', 'content': text},
            ))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Could not log reminder for {number} in chat history: {e}")

        logger.info(f"Reminder delivered to {number}")
        return jsonify({'status': 'enviado', 'numero': number})

    except ClinicAdminError as e:
        return error_response(e, 'reminder webhook')

    except Exception as e:
        return unexpected_error(e, 'reminder webhook')
