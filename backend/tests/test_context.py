"""Unit tests for prompt assembly."""

import unittest
from types import SimpleNamespace

from backend.docchat.config import MAX_DOCUMENT_CHARS, TRUNCATION_MARKER
from backend.docchat.context import SYSTEM_TEMPLATE, build_prompt, truncate_document
from backend.docchat.models import ChatTurn, Role


class TestTruncateDocument(unittest.TestCase):
    def test_short_text_is_unchanged(self) -> None:
        text = "a" * MAX_DOCUMENT_CHARS
        self.assertEqual(truncate_document(text), text)

    def test_long_text_keeps_prefix_and_marker(self) -> None:
        text = "x" * MAX_DOCUMENT_CHARS + "TAIL"
        result = truncate_document(text)
        self.assertEqual(result, "x" * MAX_DOCUMENT_CHARS + TRUNCATION_MARKER)
        self.assertNotIn("TAIL", result)

    def test_cut_is_not_word_aware(self) -> None:
        text = "word " * 4000  # 20,000 characters
        result = truncate_document(text)
        self.assertEqual(result[:MAX_DOCUMENT_CHARS], text[:MAX_DOCUMENT_CHARS])


class TestBuildPrompt(unittest.TestCase):
    def test_no_history_gives_system_and_question(self) -> None:
        messages = build_prompt("The sky is green.", [], "What colour is the sky?")
        self.assertEqual(len(messages), 2)
        self.assertEqual(messages[0]["role"], "system")
        self.assertEqual(messages[0]["content"], SYSTEM_TEMPLATE.format(document="The sky is green."))
        self.assertEqual(messages[1], {"role": "user", "content": "What colour is the sky?"})

    def test_system_message_instructs_fallback(self) -> None:
        content = build_prompt("doc", [], "q")[0]["content"]
        self.assertIn("I cannot find this information in the document.", content)
        self.assertTrue(content.endswith("Document Content:\ndoc"))

    def test_long_document_is_truncated_in_system_message(self) -> None:
        text = "abc" * 6000
        content = build_prompt(text, [], "q")[0]["content"]
        self.assertTrue(content.endswith(text[:MAX_DOCUMENT_CHARS] + TRUNCATION_MARKER))

    def test_short_document_has_no_marker(self) -> None:
        content = build_prompt("short", [], "q")[0]["content"]
        self.assertNotIn(TRUNCATION_MARKER, content)

    def test_history_is_kept_in_order(self) -> None:
        turns = [
            ChatTurn(role=Role.USER, content="first question"),
            ChatTurn(role=Role.ASSISTANT, content="first answer"),
            SimpleNamespace(role="user", content="second question"),
            SimpleNamespace(role="assistant", content="second answer"),
        ]
        messages = build_prompt("doc", turns, "third question")
        self.assertEqual(
            messages[1:],
            [
                {"role": "user", "content": "first question"},
                {"role": "assistant", "content": "first answer"},
                {"role": "user", "content": "second question"},
                {"role": "assistant", "content": "second answer"},
                {"role": "user", "content": "third question"},
            ],
        )

    def test_full_history_gives_22_messages(self) -> None:
        turns = [
            ChatTurn(role=Role.USER if i % 2 == 0 else Role.ASSISTANT, content=str(i)) for i in range(20)
        ]
        self.assertEqual(len(build_prompt("doc", turns, "q")), 22)

    def test_question_is_verbatim(self) -> None:
        question = "  " + "y" * 30000 + "  "
        self.assertEqual(build_prompt("doc", [], question)[-1]["content"], question)

    def test_braces_in_document_are_literal(self) -> None:
        content = build_prompt("{document} {0}", [], "q")[0]["content"]
        self.assertTrue(content.endswith("{document} {0}"))
