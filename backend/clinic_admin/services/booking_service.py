# clinic_admin/services/booking_service.py
"""
Appointment booking, cancellation and agenda queries
"""
import logging
from datetime import timedelta
from typing import Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from clinic_admin.extensions import db
from clinic_admin.models import Appointment, BookingRequest, Doctor, User
from clinic_admin.services.calendar_service import CalendarService
from clinic_admin.services.reminder_service import ReminderService
from clinic_admin.services.whatsapp_service import WhatsAppService
from clinic_admin.utils.dates import as_utc, isoformat, local_day_window, now_utc, parse_datetime
from clinic_admin.utils.exceptions import (
    CalendarEventNotFound,
    ClinicAdminError,
    NotFoundError,
    ValidationError,
)
from clinic_admin.utils.validators import InputValidator

logger = logging.getLogger(__name__)


class AppointmentScheduler:
    """
    Books appointments on a doctor's calendar and mirrors them locally.

    Calendar creation and the local insert are blocking; the doctor
    notification and the patient reminder are fire-and-forget.
    """

    def __init__(self, calendar=None, messenger=None, reminders=None, now=now_utc):
        self.calendar = calendar or CalendarService()
        self.messenger = messenger or WhatsAppService()
        self.reminders = reminders or ReminderService()
        self.now = now

    def parse_booking(self, data: Optional[Dict]) -> BookingRequest:
        """Validate the raw request body before anything is touched"""
        InputValidator.require_fields(data, 'user_number', 'doctor_id', 'procedure', 'start_time')

        # 'insurance' is accepted as an alias of the dashboard's 'convenio'
        insurance = data.get('convenio') or data.get('insurance')

        return BookingRequest(
            user_number=str(data['user_number']).strip(),
            doctor_id=str(data['doctor_id']),
            procedure=data['procedure'],
            start_time=InputValidator.validate_start_time(data['start_time'], self.now()),
            insurance=InputValidator.validate_optional_text(insurance, 'convenio'),
            description=InputValidator.validate_optional_text(data.get('description'), 'description'),
        )

    @staticmethod
    def _active_doctor(doctor_id: str) -> Doctor:
        doctor = db.session.get(Doctor, doctor_id)
        if doctor is None or not doctor.active:
            raise NotFoundError("Doctor not found or inactive")
        return doctor

    def book_appointment(self, data: Optional[Dict]) -> Dict:
        booking = self.parse_booking(data)
        doctor = self._active_doctor(booking.doctor_id)

        procedure = doctor.find_procedure(booking.procedure)
        if procedure is None:
            raise NotFoundError(f"Procedure '{booking.procedure}' not found for this doctor")

        end_time = booking.start_time + timedelta(minutes=int(procedure['duracao_minutos']))

        patient = db.session.get(User, booking.user_number)
        patient_name = (patient.complete_name if patient else None) or booking.user_number
        note = booking.description or current_app.config['DEFAULT_APPOINTMENT_NOTE']

        event = self.calendar.create_event(
            doctor.calendar_id,
            f'Consulta {patient_name}',
            booking.start_time,
            end_time,
            note,
        )
        event_id = event['id']

        appointment = Appointment(
            user_number=booking.user_number,
            event_id=event_id,
            summary=f'Consulta {patient_name}',
            dr_responsible=doctor.name,
            doctor_id=doctor.id,
            procedure=booking.procedure,
            description=note,
            status='pending',
            start_time=booking.start_time,
            end_time=end_time,
        )
        try:
            db.session.add(appointment)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to store appointment {event_id}, removing calendar event: {e}")
            self._discard_event(doctor.calendar_id, event_id)
            raise

        logger.info(f"Appointment {event_id} booked for {booking.user_number} with {doctor.name}")

        if doctor.doctor_number:
            try:
                message = booking.doctor_notification(
                    patient_name, end_time, patient.insurance if patient else None
                )
                self.messenger.send_text(doctor.doctor_number, message)
            except Exception as e:
                logger.warning(f"Doctor notification failed for {event_id}: {e}")

        try:
            self.reminders.schedule(event_id, booking.user_number, booking.start_time)
        except Exception as e:
            logger.warning(f"Reminder scheduling failed for {event_id}: {e}")

        return {
            'event_id': event_id,
            'start_time': isoformat(booking.start_time),
            'end_time': isoformat(end_time),
            'status': appointment.status,
        }

    def _discard_event(self, calendar_id: str, event_id: str):
        try:
            self.calendar.delete_event(calendar_id, event_id)
        except ClinicAdminError as e:
            logger.error(f"Could not remove orphan calendar event {event_id}: {e}")

    @staticmethod
    def _calendar_for(appointment: Appointment) -> Optional[str]:
        doctor = None
        if appointment.doctor_id:
            doctor = db.session.get(Doctor, appointment.doctor_id)
        if doctor is None:
            doctor = Doctor.query.filter_by(name=appointment.dr_responsible).first()
        return doctor.calendar_id if doctor else None

    def cancel_appointment(self, event_id: str) -> Dict:
        appointment = Appointment.query.filter_by(event_id=event_id).first()
        if appointment is None:
            raise NotFoundError("Appointment not found")

        calendar_id = self._calendar_for(appointment)
        if calendar_id:
            try:
                self.calendar.delete_event(calendar_id, event_id)
            except CalendarEventNotFound:
                logger.warning(f"Calendar event {event_id} was already gone")
            except ClinicAdminError as e:
                logger.warning(f"Could not delete calendar event {event_id}: {e}")
        else:
            logger.warning(f"No calendar found for {appointment.dr_responsible}, skipping event removal")

        db.session.delete(appointment)
        db.session.commit()
        logger.info(f"Appointment {event_id} canceled")

        try:
            self.reminders.unschedule(event_id)
        except Exception as e:
            logger.warning(f"Reminder removal failed for {event_id}: {e}")

        return {'status': 'cancelado', 'event_id': event_id}

    def list_agenda(self, args) -> List[Dict]:
        start, end = InputValidator.validate_period(args)
        lower, upper = local_day_window(start, end)

        query = db.session.query(Appointment, User).outerjoin(
            User, User.phone_number == Appointment.user_number
        ).filter(
            Appointment.start_time >= lower,
            Appointment.start_time < upper,
        )
        doctor = args.get('doctor')
        if doctor:
            query = query.filter(Appointment.dr_responsible == doctor)

        agenda = []
        for appointment, patient in query.order_by(Appointment.start_time.asc()).all():
            item = appointment.to_dict()
            item['patient_name'] = (patient.complete_name if patient else None) or appointment.user_number
            item['convenio'] = patient.insurance if patient else None
            agenda.append(item)
        return agenda

    def check_availability(self, args) -> Dict:
        """Advisory only; booking never consults it"""
        calendar_id = args.get('calendar_id')
        if not calendar_id or not args.get('start') or not args.get('end'):
            raise ValidationError("Parameters 'calendar_id', 'start' and 'end' are required")

        try:
            start = parse_datetime(args.get('start'))
            end = parse_datetime(args.get('end'))
        except (ValueError, OverflowError):
            raise ValidationError("Invalid 'start' or 'end'. Use ISO-8601")
        if as_utc(end) <= as_utc(start):
            raise ValidationError("'end' must be after 'start'")

        return self.calendar.check_availability(calendar_id, start, end)
