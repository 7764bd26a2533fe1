import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from .config import MAX_OUTPUT_TOKENS, TEMPERATURE, TOP_P
from .errors import ProviderAuthError, ProviderError, RateLimited

logger = logging.getLogger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"


@dataclass
class Completion:
    text: str
    tokens_used: int


class GroqGateway:
    """Single request/response client for the Groq chat completions API.

    There is no retry here: a failed call raises and the caller aborts.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = GROQ_BASE_URL,
        model: str = "llama-3.3-70b-versatile",
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.client = client or httpx.Client(timeout=60.0)

    def _check_key(self) -> None:
        if not self.api_key or not self.api_key.strip():
            raise ProviderAuthError(
                "GROQ API key not properly configured. "
                "Please set the GROQ_API_KEY environment variable in your .env file."
            )

    def complete(self, messages: List[Dict[str, str]]) -> Completion:
        self._check_key()

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": TEMPERATURE,
            "max_tokens": MAX_OUTPUT_TOKENS,
            "top_p": TOP_P,
            "stream": False,
        }

        try:
            resp = self.client.post(f"{self.base_url}/chat/completions", headers=headers, json=payload)
        except httpx.RequestError as e:
            logger.error("Groq request failed: %s", e)
            raise ProviderError(f"Error calling Groq API: {e}") from e

        if resp.status_code == 429:
            raise RateLimited()
        if resp.status_code == 401:
            raise ProviderAuthError()
        if resp.status_code != 200:
            error_detail = resp.text
            try:
                error_detail = resp.json().get("error", {}).get("message", error_detail)
            except (ValueError, AttributeError):
                pass
            logger.error("Groq API returned %s: %s", resp.status_code, error_detail)
            raise ProviderError(f"Error calling Groq API: {error_detail}")

        try:
            data = resp.json()
            answer = data["choices"][0]["message"]["content"]
            if not isinstance(answer, str):
                raise TypeError(f"message content is {type(answer).__name__}, not str")
            tokens_used = int((data.get("usage") or {}).get("total_tokens") or 0)
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            logger.error("Invalid response format from Groq API: %s", e)
            raise ProviderError("Error calling Groq API: invalid response format") from e

        return Completion(text=answer, tokens_used=tokens_used)
