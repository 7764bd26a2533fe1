"""Unit tests for the Groq gateway, driven through httpx.MockTransport."""

import json
import unittest
from typing import Callable, List

import httpx

from backend.docchat.errors import ProviderAuthError, ProviderError, RateLimited
from backend.docchat.inference import Completion, GroqGateway

MESSAGES = [{"role": "system", "content": "ctx"}, {"role": "user", "content": "q"}]


def ok_body(answer: str = "The answer.", tokens: int = 123) -> dict:
    return {
        "choices": [{"message": {"role": "assistant", "content": answer}}],
        "usage": {"total_tokens": tokens},
    }


class TestGroqGateway(unittest.TestCase):
    def setUp(self) -> None:
        self.requests: List[httpx.Request] = []

    def gateway(self, handler: Callable[[httpx.Request], httpx.Response], api_key: str = "test-key") -> GroqGateway:
        def recording(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        client = httpx.Client(transport=httpx.MockTransport(recording))
        return GroqGateway(api_key, base_url="https://groq.test/openai/v1", model="test-model", client=client)

    def test_success(self) -> None:
        gw = self.gateway(lambda r: httpx.Response(200, json=ok_body()))
        self.assertEqual(gw.complete(MESSAGES), Completion(text="The answer.", tokens_used=123))

    def test_request_shape(self) -> None:
        gw = self.gateway(lambda r: httpx.Response(200, json=ok_body()))
        gw.complete(MESSAGES)
        request = self.requests[0]
        self.assertEqual(str(request.url), "https://groq.test/openai/v1/chat/completions")
        self.assertEqual(request.headers["Authorization"], "Bearer test-key")
        payload = json.loads(request.content)
        self.assertEqual(payload["model"], "test-model")
        self.assertEqual(payload["messages"], MESSAGES)
        self.assertEqual(payload["temperature"], 0.3)
        self.assertEqual(payload["max_tokens"], 1024)
        self.assertFalse(payload["stream"])

    def test_rate_limited(self) -> None:
        gw = self.gateway(lambda r: httpx.Response(429, json={"error": {"message": "slow down"}}))
        with self.assertRaises(RateLimited):
            gw.complete(MESSAGES)
        self.assertEqual(len(self.requests), 1)

    def test_auth_error(self) -> None:
        gw = self.gateway(lambda r: httpx.Response(401, json={"error": {"message": "bad key"}}))
        with self.assertRaises(ProviderAuthError):
            gw.complete(MESSAGES)

    def test_missing_key_skips_request(self) -> None:
        gw = self.gateway(lambda r: httpx.Response(200, json=ok_body()), api_key="")
        with self.assertRaises(ProviderAuthError):
            gw.complete(MESSAGES)
        self.assertEqual(self.requests, [])

    def test_other_status_carries_provider_message(self) -> None:
        gw = self.gateway(lambda r: httpx.Response(500, json={"error": {"message": "model overloaded"}}))
        with self.assertRaises(ProviderError) as ctx:
            gw.complete(MESSAGES)
        self.assertIn("model overloaded", ctx.exception.message)
        self.assertEqual(len(self.requests), 1)

    def test_non_json_error_body(self) -> None:
        gw = self.gateway(lambda r: httpx.Response(503, text="upstream down"))
        with self.assertRaises(ProviderError) as ctx:
            gw.complete(MESSAGES)
        self.assertIn("upstream down", ctx.exception.message)

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(ProviderError) as ctx:
            self.gateway(handler).complete(MESSAGES)
        self.assertIsInstance(ctx.exception.__cause__, httpx.ConnectError)

    def test_malformed_body(self) -> None:
        gw = self.gateway(lambda r: httpx.Response(200, json={"choices": []}))
        with self.assertRaises(ProviderError):
            gw.complete(MESSAGES)

    def test_null_usage(self) -> None:
        body = {"choices": [{"message": {"content": "A"}}], "usage": None}
        gw = self.gateway(lambda r: httpx.Response(200, json=body))
        self.assertEqual(gw.complete(MESSAGES), Completion(text="A", tokens_used=0))

    def test_non_object_usage(self) -> None:
        body = {"choices": [{"message": {"content": "A"}}], "usage": "lots"}
        gw = self.gateway(lambda r: httpx.Response(200, json=body))
        with self.assertRaises(ProviderError):
            gw.complete(MESSAGES)

    def test_null_content(self) -> None:
        body = {"choices": [{"message": {"content": None}}], "usage": {"total_tokens": 3}}
        gw = self.gateway(lambda r: httpx.Response(200, json=body))
        with self.assertRaises(ProviderError):
            gw.complete(MESSAGES)
