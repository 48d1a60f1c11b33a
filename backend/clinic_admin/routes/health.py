# clinic_admin/routes/health.py
"""
Health check endpoints
"""
import logging
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from clinic_admin.extensions import db
from clinic_admin.utils.dates import now_utc

logger = logging.getLogger(__name__)
health_bp = Blueprint('health', __name__)

SERVICE_NAME = 'Clinic Admin API'
VERSION = '1.0.0'

@health_bp.route('/health', methods=['GET'])
def health_check():
    """Basic health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'timestamp': now_utc().isoformat(),
        'service': SERVICE_NAME,
        'version': VERSION
    })

@health_bp.route('/health/detailed', methods=['GET'])
def detailed_health_check():
    """Detailed health check with service dependencies"""
    try:
        db.session.execute(text('SELECT 1'))
        database_status = 'connected'
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        database_status = 'error'

    config = current_app.config
    dependencies = {'database': database_status}
    dependencies.update(current_app.config['INTEGRATION_STATUS'])

    return jsonify({
        'status': 'healthy' if database_status == 'connected' else 'degraded',
        'timestamp': now_utc().isoformat(),
        'service': SERVICE_NAME,
        'version': VERSION,
        'dependencies': dependencies,
        'config': {
            'timezone': config['TIMEZONE'],
            'reminder_lead_hours': config['REMINDER_LEAD_HOURS']
        }
    }), 200 if database_status == 'connected' else 503
