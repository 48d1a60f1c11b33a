# clinic_admin/services/conversation_service.py
"""
Patient directory, chat history and human takeover replies
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import and_, func, or_

from clinic_admin.extensions import db
from clinic_admin.models import ChatMessage, User
from clinic_admin.models.conversation import WHATSAPP_SUFFIX, digits_only
from clinic_admin.services.whatsapp_service import WhatsAppService
from clinic_admin.utils.dates import as_utc, isoformat
from clinic_admin.utils.exceptions import ConflictError, NotFoundError
from clinic_admin.utils.validators import InputValidator

logger = logging.getLogger(__name__)

AUTOCOMPLETE_LIMIT = 10


class ConversationService:
    """Reads patients and their WhatsApp history; lets an operator reply"""

    def __init__(self, messenger=None):
        self.messenger = messenger or WhatsAppService()

    @staticmethod
    def search_users(term: str) -> List[Dict]:
        pattern = f'%{term}%'
        users = User.query.filter(or_(
            User.phone_number.ilike(pattern),
            User.complete_name.ilike(pattern),
        )).order_by(User.complete_name.is_(None), User.complete_name.asc()) \
            .limit(AUTOCOMPLETE_LIMIT).all()

        return [{'phone_number': user.phone_number, 'complete_name': user.complete_name} for user in users]

    @staticmethod
    def _last_messages() -> Dict[str, ChatMessage]:
        """Newest chat row per contact, keyed by the digits of its session id"""
        latest = db.session.query(
            ChatMessage.session_id,
            func.max(ChatMessage.created_at).label('created_at'),
        ).group_by(ChatMessage.session_id).subquery()

        rows = ChatMessage.query.join(latest, and_(
            ChatMessage.session_id == latest.c.session_id,
            ChatMessage.created_at == latest.c.created_at,
        )).all()

        # Several session ids may belong to one contact; ties go to the highest id
        messages = {}
        for message in rows:
            key = digits_only(message.session_id)
            current = messages.get(key)
            if current is None or (as_utc(message.created_at), message.id) > (as_utc(current.created_at), current.id):
                messages[key] = message
        return messages

    def list_users(self) -> List[Dict]:
        last_messages = self._last_messages()

        users = []
        for user in User.query.all():
            last = last_messages.get(digits_only(user.phone_number))
            item = user.to_dict()
            item['last_message'] = last.text if last else None
            item['last_activity'] = isoformat(last.created_at) if last else None
            users.append(item)

        # Most recent activity first, silent contacts last
        users.sort(key=lambda item: item['phone_number'])
        users.sort(key=lambda item: item['last_activity'] or '', reverse=True)
        return users

    @staticmethod
    def get_user(phone_number: str) -> User:
        user = db.session.get(User, phone_number)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def toggle_human(self, phone_number: str) -> Dict:
        user = self.get_user(phone_number)
        user.require_human = not user.require_human
        db.session.commit()

        logger.info(f"Human takeover for {phone_number}: {user.require_human}")
        return {'phone_number': user.phone_number, 'require_human': user.require_human}

    @staticmethod
    def chat_history(phone_number: str) -> List[Dict]:
        digits = digits_only(phone_number)
        conditions = [ChatMessage.session_id.in_(sorted({
            phone_number,
            phone_number + WHATSAPP_SUFFIX,
            digits,
            digits + WHATSAPP_SUFFIX,
        }))]
        if digits:
            conditions.append(ChatMessage.contact_digits == digits)

        messages = ChatMessage.query.filter(or_(*conditions)) \
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc()).all()
        return [message.to_dict() for message in messages]

    def reply(self, phone_number: str, content: Optional[str]) -> Dict:
        message = InputValidator.validate_message_content(content)
        user = self.get_user(phone_number)
        if not user.require_human:
            raise ConflictError("AI is in control. Enable human takeover to reply.")

        self.messenger.send_text(phone_number, message)

        db.session.add(ChatMessage(
            session_id=phone_number,
            sender='human',
            agent_name=None,
            message={'type': 'ai', 'content': message},
        ))
        db.session.commit()

        logger.info(f"Operator reply sent to {phone_number}")
        return {'ok': True}
