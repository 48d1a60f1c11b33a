# clinic_admin/models/conversation.py
"""
Patients and their WhatsApp conversation history
"""
import re
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.ext.hybrid import hybrid_property

from clinic_admin.extensions import db
from clinic_admin.utils.dates import isoformat

WHATSAPP_SUFFIX = '@s.whatsapp.net'
SENDERS = ('user', 'ai', 'human')
SESSION_SEPARATORS = ('+', ' ', '-', '(', ')', '.')


def digits_only(value: str) -> str:
    return re.sub(r'\D', '', value or '')


class User(db.Model):
    """A patient, identified by the phone number they message from"""
    __tablename__ = 'users'

    phone_number = db.Column(db.String(32), primary_key=True)
    complete_name = db.Column(db.String(160), nullable=True)
    require_human = db.Column(db.Boolean, nullable=False, default=False)
    complete_register = db.Column(db.Boolean, nullable=False, default=False)
    origin_contact = db.Column(db.String(64), nullable=True)
    metadata_ = db.Column('metadata', db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<User {self.phone_number} nome={self.complete_name} require_human={self.require_human}>"

    @property
    def insurance(self) -> Optional[str]:
        return (self.metadata_ or {}).get('convenio_tipo')

    def to_dict(self) -> Dict:
        return {
            'phone_number': self.phone_number,
            'complete_name': self.complete_name,
            'require_human': bool(self.require_human),
        }


class ChatMessage(db.Model):
    """Represents a chat message"""
    __tablename__ = 'chat'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(64), nullable=False, index=True)
    sender = db.Column(db.String(10), nullable=False)  # 'user', 'ai' or 'human'
    agent_name = db.Column(db.String(64), nullable=True)
    message = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)

    @property
    def text(self) -> Optional[str]:
        """Readable text of the stored payload, whichever shape it has"""
        payload = self.message
        if isinstance(payload, dict):
            if isinstance(payload.get('content'), str):
                return payload['content']
            if isinstance(payload.get('text'), str):
                return payload['text']
            return None
        if isinstance(payload, str):
            return payload
        return None

    @hybrid_property
    def contact_digits(self) -> str:
        """Phone digits of the session id, whatever format the agent stored"""
        return digits_only(self.session_id)

    @contact_digits.expression
    def contact_digits(cls):
        expression = func.replace(cls.session_id, WHATSAPP_SUFFIX, '')
        for separator in SESSION_SEPARATORS:
            expression = func.replace(expression, separator, '')
        return expression

    def to_dict(self) -> Dict:
        """Convert message to dictionary"""
        return {
            'id': self.id,
            'session_id': self.session_id,
            'sender': self.sender,
            'agent_name': self.agent_name,
            'message': self.message or {},
            'created_at': isoformat(self.created_at),
        }
