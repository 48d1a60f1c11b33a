# clinic_admin/models/doctor.py
"""
Doctor scheduling rules
"""
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

from clinic_admin.extensions import db
from clinic_admin.utils.dates import isoformat

PRICE_TO_NEGOTIATE = 'definir_com_doutor'
MIN_PROCEDURE_MINUTES = 15


class Doctor(db.Model):
    __tablename__ = 'doctor_rules'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(120), nullable=False)
    doctor_number = db.Column(db.String(32), nullable=True)
    calendar_id = db.Column(db.String(255), nullable=False)
    active = db.Column(db.Boolean, nullable=False, default=True)
    procedures = db.Column(db.JSON, nullable=False, default=list)
    available_weekdays = db.Column(db.JSON, nullable=False, default=list)  # 0=Sunday ... 6=Saturday
    working_hours = db.Column(db.JSON, nullable=False, default=dict)
    insurances = db.Column(db.JSON, nullable=False, default=list)
    restrictions = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Doctor {self.name} active={self.active}>"

    def find_procedure(self, name: str) -> Optional[Dict]:
        """Exact-name lookup among the procedures this doctor offers"""
        for procedure in self.procedures or []:
            if procedure.get('nome') == name:
                return procedure
        return None

    def apply(self, payload: Dict):
        """Copy a validated, normalized payload onto the row"""
        self.name = payload['name'].strip()
        self.doctor_number = payload.get('doctor_number')
        self.calendar_id = payload['calendar_id'].strip()
        self.active = bool(payload.get('active', True))
        self.procedures = payload['procedures']
        self.available_weekdays = payload['available_weekdays']
        self.working_hours = payload['working_hours']
        self.insurances = payload.get('insurances') or []
        self.restrictions = payload.get('restrictions') or None

    def to_summary(self) -> Dict:
        """Shape used by the doctors list"""
        return {
            'id': self.id,
            'name': self.name,
            'doctor_number': self.doctor_number,
            'calendar_id': self.calendar_id or '',
            'active': bool(self.active),
            'procedures': self.procedures or [],
            'available_weekdays': self.available_weekdays or [],
            'insurances': self.insurances,
        }

    def to_dict(self) -> Dict:
        data = self.to_summary()
        data.update({
            'doctor_number': self.doctor_number or '',
            'insurances': self.insurances or [],
            'working_hours': self.working_hours or {},
            'restrictions': self.restrictions,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        })
        return data
