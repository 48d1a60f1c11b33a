# clinic_admin/utils/responses.py
"""
JSON error responses shared by the blueprints
"""
import logging

from flask import jsonify

logger = logging.getLogger(__name__)


def error_response(error, action):
    """Map a ClinicAdminError to {'error': message} with its status code"""
    status = getattr(error, 'status_code', 500)
    if status >= 500:
        logger.error(f"Service error in {action}: {error}")
    else:
        logger.warning(f"Rejected {action}: {error}")
    return jsonify({'error': str(error)}), status


def unexpected_error(error, action):
    logger.exception(f"Unexpected error in {action}: {error}")
    return jsonify({'error': 'Internal server error'}), 500
