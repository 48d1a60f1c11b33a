# clinic_admin/routes/doctors.py
"""
Doctor registry endpoints
"""
import logging
from flask import Blueprint, request, jsonify
from clinic_admin.extensions import db
from clinic_admin.models import Doctor
from clinic_admin.utils.exceptions import ClinicAdminError, NotFoundError
from clinic_admin.utils.responses import error_response, unexpected_error
from clinic_admin.utils.validators import DoctorValidator

logger = logging.getLogger(__name__)
doctors_bp = Blueprint('doctors', __name__)

def _get_doctor(doctor_id):
    doctor = db.session.get(Doctor, doctor_id)
    if doctor is None:
        raise NotFoundError("Doctor not found")
    return doctor

@doctors_bp.route('/admin/doctors', methods=['GET'])
def list_doctors():
    try:
        doctors = Doctor.query.order_by(Doctor.name.asc()).all()
        return jsonify([doctor.to_summary() for doctor in doctors])

    except Exception as e:
        return unexpected_error(e, 'doctor listing')

@doctors_bp.route('/admin/doctors', methods=['POST'])
def create_doctor():
    try:
        payload = DoctorValidator.validate(request.get_json(silent=True))

        doctor = Doctor()
        doctor.apply(payload)
        db.session.add(doctor)
        db.session.commit()

        logger.info(f"Doctor {doctor.name} created ({doctor.id})")
        return jsonify(doctor.to_dict()), 201

    except ClinicAdminError as e:
        return error_response(e, 'doctor creation')

    except Exception as e:
        return unexpected_error(e, 'doctor creation')

@doctors_bp.route('/admin/doctors/<doctor_id>', methods=['GET'])
def get_doctor(doctor_id):
    try:
        return jsonify(_get_doctor(doctor_id).to_dict())

    except ClinicAdminError as e:
        return error_response(e, 'doctor lookup')

    except Exception as e:
        return unexpected_error(e, 'doctor lookup')

@doctors_bp.route('/admin/doctors/<doctor_id>', methods=['PUT'])
def update_doctor(doctor_id):
    """Full replacement of a doctor's rules"""
    try:
        payload = DoctorValidator.validate(request.get_json(silent=True))
        doctor = _get_doctor(doctor_id)

        doctor.apply(payload)
        db.session.commit()

        logger.info(f"Doctor {doctor.name} updated ({doctor.id})")
        return jsonify(doctor.to_dict())

    except ClinicAdminError as e:
        return error_response(e, 'doctor update')

    except Exception as e:
        return unexpected_error(e, 'doctor update')

@doctors_bp.route('/admin/doctors/<doctor_id>/toggle', methods=['PATCH'])
def toggle_doctor(doctor_id):
    """Activate or deactivate a doctor; history is kept either way"""
    try:
        doctor = _get_doctor(doctor_id)
        doctor.active = not doctor.active
        db.session.commit()

        logger.info(f"Doctor {doctor.name} active={doctor.active}")
        return jsonify({'id': doctor.id, 'active': doctor.active})

    except ClinicAdminError as e:
        return error_response(e, 'doctor toggle')

    except Exception as e:
        return unexpected_error(e, 'doctor toggle')
