# clinic_admin/models/knowledge.py
"""
Knowledge base chunks used by the chat agent for retrieval
"""
import uuid
from datetime import datetime, timezone

from pgvector.sqlalchemy import Vector

from clinic_admin.extensions import db
from clinic_admin.utils.dates import isoformat

EMBEDDING_DIMENSIONS = 1536


class KnowledgeChunk(db.Model):
    __tablename__ = 'rag_embeddings'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    content = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(80), nullable=False, index=True)
    embedding = db.Column(Vector(EMBEDDING_DIMENSIONS).with_variant(db.JSON(), 'sqlite'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'content': self.content,
            'category': self.category,
            'created_at': isoformat(self.created_at),
        }
