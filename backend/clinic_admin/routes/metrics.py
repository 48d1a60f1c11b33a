# clinic_admin/routes/metrics.py
"""
Operational metrics endpoints
"""
import logging
from flask import Blueprint, request, jsonify
from clinic_admin.services.metrics_service import MetricsReport, appointments_by_month
from clinic_admin.utils.exceptions import ClinicAdminError
from clinic_admin.utils.responses import error_response, unexpected_error
from clinic_admin.utils.validators import InputValidator

logger = logging.getLogger(__name__)
metrics_bp = Blueprint('metrics', __name__)

def _report():
    start, end = InputValidator.validate_period(request.args)
    return MetricsReport(start, end)

@metrics_bp.route('/admin/metrics/summary', methods=['GET'])
def summary():
    try:
        return jsonify(_report().summary())

    except ClinicAdminError as e:
        return error_response(e, 'metrics summary')

    except Exception as e:
        return unexpected_error(e, 'metrics summary')

@metrics_bp.route('/admin/metrics/messages-by-day', methods=['GET'])
def messages_by_day():
    try:
        return jsonify(_report().messages_by_day())

    except ClinicAdminError as e:
        return error_response(e, 'messages by day')

    except Exception as e:
        return unexpected_error(e, 'messages by day')

@metrics_bp.route('/admin/metrics/appointments-by-month', methods=['GET'])
def by_month():
    """Rolling six months; takes no period"""
    try:
        return jsonify(appointments_by_month())

    except Exception as e:
        return unexpected_error(e, 'appointments by month')

@metrics_bp.route('/admin/metrics/doctors-ranking', methods=['GET'])
def doctors_ranking():
    try:
        return jsonify(_report().doctors_ranking())

    except ClinicAdminError as e:
        return error_response(e, 'doctors ranking')

    except Exception as e:
        return unexpected_error(e, 'doctors ranking')

@metrics_bp.route('/admin/metrics/procedures-distribution', methods=['GET'])
def procedures_distribution():
    try:
        return jsonify(_report().procedures_distribution())

    except ClinicAdminError as e:
        return error_response(e, 'procedures distribution')

    except Exception as e:
        return unexpected_error(e, 'procedures distribution')
