# clinic_admin/models/appointment.py
"""
Appointment-related data models
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from clinic_admin.extensions import db
from clinic_admin.utils.dates import isoformat, to_local

APPOINTMENT_STATUSES = ('pending', 'confirmed', 'canceled')


class Appointment(db.Model):
    """A booked appointment mirrored from the doctor's calendar"""
    __tablename__ = 'calendar_events'

    id = db.Column(db.Integer, primary_key=True)
    user_number = db.Column(db.String(32), nullable=False, index=True)
    event_id = db.Column(db.String(255), unique=True, nullable=False)
    summary = db.Column(db.String(255))
    dr_responsible = db.Column(db.String(120), nullable=False, index=True)
    # Older rows written by the chat agent only carry the doctor name
    doctor_id = db.Column(db.String(36), db.ForeignKey('doctor_rules.id', ondelete='SET NULL'), nullable=True)
    procedure = db.Column(db.String(120))
    description = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default='pending')
    start_time = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    end_time = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Appointment {self.event_id} {self.dr_responsible} at {self.start_time}>"

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'event_id': self.event_id,
            'user_number': self.user_number,
            'dr_responsible': self.dr_responsible,
            'procedure': self.procedure,
            'description': self.description,
            'status': self.status,
            'summary': self.summary,
            'start_time': isoformat(self.start_time),
            'end_time': isoformat(self.end_time),
            'created_at': isoformat(self.created_at),
        }


@dataclass
class BookingRequest:
    """Represents an appointment booking request from the admin panel"""
    user_number: str
    doctor_id: str
    procedure: str
    start_time: datetime
    insurance: Optional[str] = None
    description: Optional[str] = None

    def doctor_notification(self, patient_name: str, end_time: datetime,
                            patient_insurance: Optional[str] = None) -> str:
        """Build the WhatsApp summary sent to the assigned doctor"""
        start_local = to_local(self.start_time)
        end_local = to_local(end_time)

        if self.insurance:
            insurance_label = self.insurance[:1].upper() + self.insurance[1:]
        else:
            insurance_label = patient_insurance or 'Não informado'

        message_parts = [
            '🔔 *Novo Agendamento Realizado*',
            '',
            f'👤 Paciente: {patient_name}',
            f'📞 Telefone: {self.user_number}',
            f"📅 Data: {start_local.strftime('%d/%m/%Y')}",
            f"🕐 Horário: {start_local.strftime('%H:%M')} às {end_local.strftime('%H:%M')}",
            f'Convênio: {insurance_label}',
            f'Procedimento: {self.procedure}',
            f"Observações: {self.description or '—'}",
            '',
            'Verifique a agenda ou entre em contato.',
        ]
        return '\n'.join(message_parts)
