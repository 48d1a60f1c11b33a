# clinic_admin/routes/files.py
"""
Media file endpoints
"""
import logging
from flask import Blueprint, request, jsonify
from clinic_admin.services.file_service import FileService
from clinic_admin.utils.exceptions import ClinicAdminError
from clinic_admin.utils.responses import error_response, unexpected_error

logger = logging.getLogger(__name__)
files_bp = Blueprint('files', __name__)

# Global instance
file_service = FileService()

@files_bp.route('/admin/files', methods=['GET'])
def list_files():
    try:
        return jsonify(file_service.list_files(request.args.get('categoria')))

    except Exception as e:
        return unexpected_error(e, 'file listing')

@files_bp.route('/admin/files', methods=['POST'])
def upload_file():
    """Multipart upload: 'file' and 'categoria'"""
    try:
        media = file_service.upload(request.files.get('file'), request.form.get('categoria'))
        return jsonify(media.to_dict()), 201

    except ClinicAdminError as e:
        return error_response(e, 'file upload')

    except Exception as e:
        return unexpected_error(e, 'file upload')

@files_bp.route('/admin/files/item/<int:file_id>', methods=['DELETE'])
def delete_file(file_id):
    try:
        return jsonify({'deleted': file_service.delete(file_id)})

    except ClinicAdminError as e:
        return error_response(e, 'file delete')

    except Exception as e:
        return unexpected_error(e, 'file delete')
