import logging
from dataclasses import dataclass
from typing import List

from .context import build_prompt
from .conversations import ConversationStore
from .documents import DocumentStore
from .errors import DocumentNotFound
from .inference import GroqGateway
from .models import ChatTurn

logger = logging.getLogger(__name__)


@dataclass
class Answer:
    text: str
    tokens_used: int


class ChatService:
    def __init__(self, documents: DocumentStore, conversations: ConversationStore, gateway: GroqGateway):
        self.documents = documents
        self.conversations = conversations
        self.gateway = gateway

    def answer_question(self, document_id: str, question: str, user_id: int) -> Answer:
        """Answer ``question`` from the document text and the prior turns.

        Provider errors propagate unchanged and nothing is written; on success
        the question and answer are appended to the conversation.
        """
        document = self.documents.get(document_id, user_id)
        if not document:
            raise DocumentNotFound()

        conversation = self.conversations.get_or_create(document_id, user_id)
        messages = build_prompt(document.text, conversation.turns, question)
        logger.info(
            "Asking about document %s with %s prior turns",
            document_id,
            len(conversation.turns),
        )

        completion = self.gateway.complete(messages)

        self.conversations.append_turn(document_id, user_id, question, completion.text, completion.tokens_used)
        return Answer(text=completion.text, tokens_used=completion.tokens_used)

    def get_history(self, document_id: str, user_id: int) -> List[ChatTurn]:
        return self.conversations.get_turns(document_id, user_id)

    def clear_history(self, document_id: str, user_id: int) -> None:
        self.conversations.clear(document_id, user_id)
