# clinic_admin/routes/users.py
"""
Patient and conversation endpoints
"""
import logging
from flask import Blueprint, request, jsonify
from clinic_admin.services.conversation_service import ConversationService
from clinic_admin.utils.exceptions import ClinicAdminError
from clinic_admin.utils.responses import error_response, unexpected_error

logger = logging.getLogger(__name__)
users_bp = Blueprint('users', __name__)

# Global instance
conversations = ConversationService()

@users_bp.route('/admin/users', methods=['GET'])
def list_users():
    """Autocomplete when 'q' is given, otherwise the full inbox"""
    try:
        term = (request.args.get('q') or '').strip()
        if term:
            return jsonify(conversations.search_users(term))
        return jsonify(conversations.list_users())

    except Exception as e:
        return unexpected_error(e, 'user listing')

@users_bp.route('/admin/users/<number>', methods=['GET'])
def get_user(number):
    try:
        return jsonify(conversations.get_user(number).to_dict())

    except ClinicAdminError as e:
        return error_response(e, 'user lookup')

    except Exception as e:
        return unexpected_error(e, 'user lookup')

@users_bp.route('/admin/users/<number>/toggle', methods=['PUT'])
def toggle_human(number):
    """Switch the conversation between the AI agent and a human operator"""
    try:
        return jsonify(conversations.toggle_human(number))

    except ClinicAdminError as e:
        return error_response(e, 'human takeover toggle')

    except Exception as e:
        return unexpected_error(e, 'human takeover toggle')

@users_bp.route('/admin/users/<number>/chat', methods=['GET'])
def chat_history(number):
    try:
        return jsonify(conversations.chat_history(number))

    except Exception as e:
        return unexpected_error(e, 'chat history')

@users_bp.route('/admin/users/<number>/reply', methods=['POST'])
def reply(number):
    """Operator reply, only while human takeover is on"""
    try:
        data = request.get_json(silent=True) or {}
        return jsonify(conversations.reply(number, data.get('message')))

    except ClinicAdminError as e:
        return error_response(e, 'operator reply')

    except Exception as e:
        return unexpected_error(e, 'operator reply')
