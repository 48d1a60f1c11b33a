# clinic_admin/routes/embeddings.py
"""
Knowledge base (RAG) endpoints
"""
import logging
from flask import Blueprint, current_app, request, jsonify
from clinic_admin.extensions import db
from clinic_admin.models import KnowledgeChunk
from clinic_admin.services.embedding_service import (
    EmbeddingService,
    chunk_text,
    delete_category,
    delete_chunks,
    list_categories,
    list_chunks,
)
from clinic_admin.utils.exceptions import ClinicAdminError, NotFoundError, ValidationError
from clinic_admin.utils.responses import error_response, unexpected_error
from clinic_admin.utils.validators import InputValidator

logger = logging.getLogger(__name__)
embeddings_bp = Blueprint('embeddings', __name__)

# Global instance
embedding_service = EmbeddingService()

@embeddings_bp.route('/admin/embeddings/text', methods=['POST'])
def insert_text():
    """Chunk, embed and store a block of reference text"""
    try:
        data = request.get_json(silent=True) or {}
        text = data.get('texto')
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Field 'texto' is required")

        category = InputValidator.normalize_category(data.get('categoria'))
        if not category:
            raise ValidationError("Field 'categoria' is required")

        config = current_app.config
        chunk_size = InputValidator.validate_chunk_size(
            data.get('tamanho_bloco'),
            config['DEFAULT_CHUNK_SIZE'],
            config['MIN_CHUNK_SIZE'],
            config['MAX_CHUNK_SIZE'],
        )

        chunks = chunk_text(text, chunk_size)
        if not chunks:
            raise ValidationError("No chunks generated from the text")

        return jsonify(embedding_service.insert_chunks(chunks, category)), 201

    except ClinicAdminError as e:
        return error_response(e, 'knowledge ingestion')

    except Exception as e:
        return unexpected_error(e, 'knowledge ingestion')

@embeddings_bp.route('/admin/embeddings', methods=['GET'])
def list_embeddings():
    try:
        page, limit = InputValidator.validate_pagination(request.args)
        category = InputValidator.normalize_category(request.args.get('categoria'))
        return jsonify(list_chunks(category or None, page, limit))

    except Exception as e:
        return unexpected_error(e, 'knowledge listing')

@embeddings_bp.route('/admin/embeddings', methods=['DELETE'])
def delete_embeddings():
    """Bulk delete by id"""
    try:
        data = request.get_json(silent=True) or {}
        ids = data.get('ids')
        if not isinstance(ids, list) or not ids:
            raise ValidationError("List of ids is empty")

        return jsonify({'deleted': delete_chunks([str(item) for item in ids])})

    except ClinicAdminError as e:
        return error_response(e, 'knowledge bulk delete')

    except Exception as e:
        return unexpected_error(e, 'knowledge bulk delete')

@embeddings_bp.route('/admin/embeddings/categories', methods=['GET'])
def categories():
    try:
        return jsonify(list_categories())

    except Exception as e:
        return unexpected_error(e, 'category listing')

@embeddings_bp.route('/admin/embeddings/category/<categoria>', methods=['DELETE'])
def remove_category(categoria):
    try:
        category = InputValidator.normalize_category(categoria)
        if not category:
            raise ValidationError("Invalid category")

        deleted = delete_category(category)
        logger.info(f"Deleted {deleted} chunks from '{category}'")
        return jsonify({'deleted': deleted})

    except ClinicAdminError as e:
        return error_response(e, 'category delete')

    except Exception as e:
        return unexpected_error(e, 'category delete')

@embeddings_bp.route('/admin/embeddings/item/<item_id>', methods=['DELETE'])
def remove_item(item_id):
    try:
        chunk = db.session.get(KnowledgeChunk, item_id)
        if chunk is None:
            raise NotFoundError("Embedding not found")

        db.session.delete(chunk)
        db.session.commit()
        return jsonify({'deleted': 1})

    except ClinicAdminError as e:
        return error_response(e, 'knowledge item delete')

    except Exception as e:
        return unexpected_error(e, 'knowledge item delete')
