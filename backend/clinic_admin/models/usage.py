# clinic_admin/models/usage.py
import uuid
from datetime import datetime, timezone

from clinic_admin.extensions import db


class TokenUsage(db.Model):
    """One LLM call made by the chat agent. Written by the agent, read here."""
    __tablename__ = 'token_usage'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    phone_number = db.Column(db.String(32), nullable=False, index=True)
    message_id = db.Column(db.String(64), nullable=True)
    input_tokens = db.Column(db.Integer, nullable=False, default=0)
    output_tokens = db.Column(db.Integer, nullable=False, default=0)
    total_tokens = db.Column(db.Integer, nullable=False, default=0)
    model_name = db.Column(db.String(64), nullable=False)
    provider = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
