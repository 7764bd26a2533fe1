import logging
import threading
import weakref
from typing import List, Optional, Tuple

from sqlalchemy.engine import Engine
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from .config import MAX_HISTORY_TURNS
from .db import get_session
from .models import ChatTurn, Conversation, Role, utcnow

logger = logging.getLogger(__name__)


class ConversationStore:
    """Bounded question/answer history per (document, user) pair.

    Appends for one pair are serialized by a per-pair lock, so the trim to
    ``max_turns`` always sees the result of the previous append. The lock is
    process-local and is dropped once no caller holds it.
    """

    def __init__(self, engine: Engine, max_turns: int = MAX_HISTORY_TURNS):
        self.engine = engine
        self.max_turns = max_turns
        self._locks: "weakref.WeakValueDictionary[Tuple[str, int], threading.Lock]" = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    def _lock_for(self, document_id: str, user_id: int) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault((document_id, user_id), threading.Lock())

    @staticmethod
    def _find(session: Session, document_id: str, user_id: int) -> Optional[Conversation]:
        return session.exec(
            select(Conversation)
            .where(Conversation.document_id == document_id, Conversation.user_id == user_id)
            .options(selectinload(Conversation.turns))
        ).first()

    def get_or_create(self, document_id: str, user_id: int) -> Conversation:
        """Return the stored conversation, or a new unsaved one with no turns.

        A new conversation is only written by the first ``append_turn``.
        """
        with get_session(self.engine) as session:
            conversation = self._find(session, document_id, user_id)
        if conversation is None:
            conversation = Conversation(document_id=document_id, user_id=user_id)
        return conversation

    def get_turns(self, document_id: str, user_id: int) -> List[ChatTurn]:
        with get_session(self.engine) as session:
            conversation = self._find(session, document_id, user_id)
            return list(conversation.turns) if conversation else []

    def append_turn(
        self,
        document_id: str,
        user_id: int,
        user_text: str,
        assistant_text: str,
        tokens_used: int,
    ) -> None:
        """Append a user turn and an assistant turn in a single commit."""
        with self._lock_for(document_id, user_id):
            with get_session(self.engine) as session:
                conversation = self._find(session, document_id, user_id)
                if conversation is None:
                    conversation = Conversation(document_id=document_id, user_id=user_id)

                conversation.turns.append(ChatTurn(role=Role.USER, content=user_text, tokens_used=0))
                conversation.turns.append(
                    ChatTurn(role=Role.ASSISTANT, content=assistant_text, tokens_used=tokens_used)
                )
                self._trim(conversation)

                conversation.updated_at = utcnow()
                session.add(conversation)
                session.commit()

    def _trim(self, conversation: Conversation) -> None:
        # Oldest turns go first; delete-orphan removes them from the table
        excess = len(conversation.turns) - self.max_turns
        if excess > 0:
            del conversation.turns[:excess]
            logger.debug("Trimmed %s turns from conversation %s", excess, conversation.id)

    def clear(self, document_id: str, user_id: int) -> None:
        with self._lock_for(document_id, user_id):
            with get_session(self.engine) as session:
                conversation = self._find(session, document_id, user_id)
                if conversation is None:
                    return
                session.delete(conversation)
                session.commit()
        logger.info("Cleared conversation for document %s, user %s", document_id, user_id)
