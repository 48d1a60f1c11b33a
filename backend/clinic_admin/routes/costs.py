# clinic_admin/routes/costs.py
"""
LLM usage and cost reports
"""
import logging
from flask import Blueprint, request, jsonify
from clinic_admin.services.cost_service import CostReport, ExchangeRateCache
from clinic_admin.utils.exceptions import ClinicAdminError
from clinic_admin.utils.responses import error_response, unexpected_error
from clinic_admin.utils.validators import InputValidator

logger = logging.getLogger(__name__)
costs_bp = Blueprint('costs', __name__)

# Global instance, shared by every request in this process
exchange_rates = ExchangeRateCache()

def _report():
    start, end = InputValidator.validate_period(request.args)
    return CostReport(start, end)

@costs_bp.route('/admin/costs/summary', methods=['GET'])
def summary():
    try:
        report = _report()
        rate, _ = exchange_rates.get_usd_to_brl()
        return jsonify(report.summary(rate))

    except ClinicAdminError as e:
        return error_response(e, 'cost summary')

    except Exception as e:
        return unexpected_error(e, 'cost summary')

@costs_bp.route('/admin/costs/by-model', methods=['GET'])
def by_model():
    try:
        return jsonify(_report().by_model())

    except ClinicAdminError as e:
        return error_response(e, 'cost by model')

    except Exception as e:
        return unexpected_error(e, 'cost by model')

@costs_bp.route('/admin/costs/by-user', methods=['GET'])
def by_user():
    try:
        return jsonify(_report().by_user())

    except ClinicAdminError as e:
        return error_response(e, 'cost by user')

    except Exception as e:
        return unexpected_error(e, 'cost by user')

@costs_bp.route('/admin/costs/cost-by-day', methods=['GET'])
def cost_by_day():
    try:
        return jsonify(_report().cost_by_day())

    except ClinicAdminError as e:
        return error_response(e, 'cost by day')

    except Exception as e:
        return unexpected_error(e, 'cost by day')

@costs_bp.route('/admin/costs/tokens-by-day', methods=['GET'])
def tokens_by_day():
    try:
        return jsonify(_report().tokens_by_day())

    except ClinicAdminError as e:
        return error_response(e, 'tokens by day')

    except Exception as e:
        return unexpected_error(e, 'tokens by day')
