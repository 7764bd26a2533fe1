"""Prompt assembly for document question answering.

Everything here is pure: no I/O, no state.
"""

from typing import Dict, List, Sequence

from .config import MAX_DOCUMENT_CHARS, TRUNCATION_MARKER
from .models import Role

SYSTEM_TEMPLATE = (
    "You are a helpful assistant that answers questions about documents. "
    "You have access to the following document content. "
    "Answer questions based solely on this document. "
    'If the answer cannot be found in the document, say "I cannot find this information in the document."'
    "\n\nDocument Content:\n{document}"
)


def truncate_document(text: str, max_chars: int = MAX_DOCUMENT_CHARS) -> str:
    # Cut by raw character count, not on a word boundary
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def build_prompt(document_text: str, prior_turns: Sequence, question: str) -> List[Dict[str, str]]:
    """Build the ordered message list sent to the inference provider.

    The result is always [system, *prior_turns (oldest first), question].
    ``prior_turns`` items only need ``role`` and ``content`` attributes.
    """
    messages = [
        {
            "role": "system",
            "content": SYSTEM_TEMPLATE.format(document=truncate_document(document_text)),
        }
    ]
    for turn in prior_turns:
        messages.append({"role": Role(turn.role).value, "content": turn.content})
    messages.append({"role": Role.USER.value, "content": question})
    return messages
