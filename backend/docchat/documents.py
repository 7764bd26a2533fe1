import logging
import os
import uuid
from typing import List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import select

from .db import get_session
from .models import Document

logger = logging.getLogger(__name__)


def count_words(text: str) -> int:
    return len(text.split())


class DocumentStore:
    """Owner-scoped persistence for uploaded documents and their extracted text."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def create(self, user_id: int, filename: str, text: str, file_path: str) -> Document:
        # Counts are computed once here and never recomputed
        doc = Document(
            document_id=str(uuid.uuid4()),
            user_id=user_id,
            filename=filename,
            text=text,
            word_count=count_words(text),
            char_count=len(text),
            file_path=file_path,
        )
        with get_session(self.engine) as session:
            session.add(doc)
            session.commit()
            session.refresh(doc)
        logger.info("Stored document %s (%s words) for user %s", doc.document_id, doc.word_count, user_id)
        return doc

    def get(self, document_id: str, user_id: int) -> Optional[Document]:
        """Return the document, or None when it is missing or owned by someone else."""
        with get_session(self.engine) as session:
            return session.exec(
                select(Document).where(Document.document_id == document_id, Document.user_id == user_id)
            ).first()

    def list(self, user_id: int) -> List[Document]:
        with get_session(self.engine) as session:
            docs = session.exec(
                select(Document)
                .where(Document.user_id == user_id)
                .order_by(Document.created_at.desc(), Document.id.desc())
            ).all()
            return list(docs)

    def delete(self, document_id: str, user_id: int) -> bool:
        with get_session(self.engine) as session:
            doc = session.exec(
                select(Document).where(Document.document_id == document_id, Document.user_id == user_id)
            ).first()
            if not doc:
                return False
            file_path = doc.file_path
            session.delete(doc)
            session.commit()

        # The metadata row is authoritative; a missing or locked file is not an error
        try:
            os.remove(file_path)
        except OSError as e:
            logger.warning("Error deleting file %s: %s", file_path, e)
        logger.info("Deleted document %s for user %s", document_id, user_id)
        return True
