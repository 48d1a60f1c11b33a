# clinic_admin/models/media.py
from datetime import datetime, timezone

from clinic_admin.extensions import db
from clinic_admin.utils.dates import isoformat


class MediaFile(db.Model):
    """A file the chat agent can send to patients"""
    __tablename__ = 'files'

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(80), nullable=False, index=True)
    filename = db.Column(db.String(255), nullable=False)
    mediatype = db.Column(db.String(20), nullable=False)
    path = db.Column(db.String(512), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': self.id,
            'category': self.category,
            'filename': self.filename,
            'mediatype': self.mediatype,
            'path': self.path,
            'created_at': isoformat(self.created_at),
        }
