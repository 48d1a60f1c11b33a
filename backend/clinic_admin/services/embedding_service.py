# clinic_admin/services/embedding_service.py
"""
Knowledge base ingestion: chunking, embedding and storage of reference text
"""
import logging
from typing import Dict, List, Optional

from flask import current_app
from openai import OpenAI, OpenAIError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from clinic_admin.extensions import db
from clinic_admin.models import KnowledgeChunk
from clinic_admin.utils.exceptions import ConfigurationError, EmbeddingServiceError

logger = logging.getLogger(__name__)


def chunk_text(text: str, chunk_size: int = 800) -> List[str]:
    """
    Split text on whitespace into chunks of roughly chunk_size characters.

    A chunk is closed as soon as its space-joined length reaches chunk_size,
    so chunks may run over by up to one word.
    """
    chunks = []
    current = []

    for word in (text or '').split():
        current.append(word)
        if len(' '.join(current)) >= chunk_size:
            chunks.append(' '.join(current))
            current = []

    if current:
        chunks.append(' '.join(current))

    return [chunk for chunk in chunks if chunk.strip()]


class EmbeddingService:
    """Embeds and stores knowledge chunks, one at a time"""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            api_key = current_app.config.get('OPENAI_API_KEY')
            if not api_key:
                raise ConfigurationError("OPENAI_API_KEY is required to generate embeddings")
            self._client = OpenAI(api_key=api_key, timeout=current_app.config.get('EXTERNAL_TIMEOUT_SECONDS', 10))
        return self._client

    def generate_embedding(self, text: str) -> List[float]:
        try:
            response = self.client.embeddings.create(
                model=current_app.config['EMBEDDING_MODEL'],
                input=text,
            )
        except OpenAIError as e:
            logger.error(f"Embedding request failed: {e}")
            raise EmbeddingServiceError(f"Embedding request failed: {e}")

        return list(response.data[0].embedding)

    @staticmethod
    def is_duplicate(content: str, category: str) -> bool:
        return KnowledgeChunk.query.filter_by(category=category, content=content).first() is not None

    def insert_chunks(self, chunks: List[str], category: str) -> Dict:
        """Insert chunks sequentially; duplicates and failures are counted, not raised"""
        result = {
            'blocos_gerados': len(chunks),
            'inseridos': 0,
            'duplicatas': 0,
            'erros': 0,
        }

        for index, content in enumerate(chunks, start=1):
            try:
                if self.is_duplicate(content, category):
                    result['duplicatas'] += 1
                    continue

                embedding = self.generate_embedding(content)
                db.session.add(KnowledgeChunk(content=content, category=category, embedding=embedding))
                db.session.commit()
                result['inseridos'] += 1

            except (EmbeddingServiceError, ConfigurationError, SQLAlchemyError) as e:
                db.session.rollback()
                logger.error(f"Chunk {index}/{len(chunks)} in '{category}' failed: {e}")
                result['erros'] += 1

        logger.info(
            f"Knowledge ingestion for '{category}': {result['inseridos']} inserted, "
            f"{result['duplicatas']} duplicates, {result['erros']} errors"
        )
        return result


def list_chunks(category: Optional[str], page: int, limit: int) -> Dict:
    query = KnowledgeChunk.query
    if category:
        query = query.filter_by(category=category)

    total = query.count()
    items = query.order_by(KnowledgeChunk.created_at.desc()) \
        .offset((page - 1) * limit).limit(limit).all()

    return {
        'total': total,
        'page': page,
        'limit': limit,
        'items': [item.to_dict() for item in items],
    }


def list_categories() -> List[Dict]:
    rows = db.session.query(KnowledgeChunk.category, func.count(KnowledgeChunk.id)) \
        .group_by(KnowledgeChunk.category) \
        .order_by(KnowledgeChunk.category.asc()).all()
    return [{'category': category, 'total': total} for category, total in rows]


def delete_chunks(ids: List[str]) -> int:
    deleted = KnowledgeChunk.query.filter(KnowledgeChunk.id.in_(ids)).delete(synchronize_session=False)
    db.session.commit()
    return deleted


def delete_category(category: str) -> int:
    deleted = KnowledgeChunk.query.filter_by(category=category).delete(synchronize_session=False)
    db.session.commit()
    return deleted
