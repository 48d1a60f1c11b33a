# clinic_admin/routes/agenda.py
"""
Agenda endpoints: list, book and cancel appointments
"""
import logging
from flask import Blueprint, request, jsonify
from clinic_admin.services.booking_service import AppointmentScheduler
from clinic_admin.utils.exceptions import ClinicAdminError
from clinic_admin.utils.responses import error_response, unexpected_error

logger = logging.getLogger(__name__)
agenda_bp = Blueprint('agenda', __name__)

# Global instance
scheduler = AppointmentScheduler()

@agenda_bp.route('/admin/agenda', methods=['GET'])
def list_agenda():
    """Appointments between start and end (inclusive days), optionally for one doctor"""
    try:
        return jsonify(scheduler.list_agenda(request.args))

    except ClinicAdminError as e:
        return error_response(e, 'agenda listing')

    except Exception as e:
        return unexpected_error(e, 'agenda listing')

@agenda_bp.route('/admin/agenda', methods=['POST'])
def book_appointment():
    """Book an appointment on the doctor's calendar"""
    try:
        data = request.get_json(silent=True)
        logger.info(f"Booking request received: {data}")

        result = scheduler.book_appointment(data)
        return jsonify(result), 201

    except ClinicAdminError as e:
        return error_response(e, 'booking')

    except Exception as e:
        return unexpected_error(e, 'booking')

@agenda_bp.route('/admin/agenda/<event_id>', methods=['DELETE'])
def cancel_appointment(event_id):
    """Cancel an appointment and release its calendar slot"""
    try:
        return jsonify(scheduler.cancel_appointment(event_id))

    except ClinicAdminError as e:
        return error_response(e, 'cancellation')

    except Exception as e:
        return unexpected_error(e, 'cancellation')

@agenda_bp.route('/admin/agenda/availability', methods=['GET'])
def check_availability():
    """Advisory conflict check against the doctor's calendar"""
    try:
        return jsonify(scheduler.check_availability(request.args))

    except ClinicAdminError as e:
        return error_response(e, 'availability check')

    except Exception as e:
        return unexpected_error(e, 'availability check')
