"""
Generative-AI Providers

Each call is a single stateless turn: the prompt goes up as
`{contents:[{parts:[{text}]}]}` and the reply comes back at
`candidates[0].content.parts[0].text`. No conversation state is sent upstream;
continuity exists only in the transcript this service stores.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import aiohttp

from core.exceptions import AIServiceError, ResponseFormatError

logger = logging.getLogger(__name__)


class AIProvider(ABC):
    """Abstract base class for text generation backends"""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return the model's reply text for a single prompt"""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        pass

    async def close(self) -> None:
        pass


def build_request(prompt: str) -> Dict[str, Any]:
    return {"contents": [{"parts": [{"text": prompt}]}]}


def extract_text(payload: Any) -> str:
    """Reply text from a generateContent response, or ResponseFormatError"""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise ResponseFormatError("Invalid response format from AI")
    if not isinstance(text, str) or not text.strip():
        raise ResponseFormatError("Empty response from AI")
    return text


class GeminiProvider(AIProvider):
    """Google Gemini `generateContent` over HTTP"""

    def __init__(self, api_key: str, api_url: str, timeout_seconds: float = 30.0):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def model_name(self) -> str:
        # .../models/gemini-2.0-flash:generateContent
        return self.api_url.rsplit("/", 1)[-1].split(":", 1)[0]

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
            )
        return self._session

    async def generate(self, prompt: str) -> str:
        logger.debug(f"Sending prompt to {self.model_name} ({len(prompt)} chars)")
        try:
            async with self._get_session().post(
                self.api_url,
                params={"key": self.api_key},
                json=build_request(prompt),
                headers={"Content-Type": "application/json"},
            ) as response:
                body = await response.text()
                if response.status != 200:
                    logger.error(
                        f"AI request failed: {response.status} {response.reason}",
                        extra={"status": response.status, "body": body[:500]},
                    )
                    raise AIServiceError(
                        f"API request failed: {response.status} {response.reason}",
                        status=response.status,
                    )
        except asyncio.TimeoutError:
            raise AIServiceError("Timed out waiting for the AI service")
        except aiohttp.ClientError as e:
            raise AIServiceError(f"Network error - Failed to connect to AI service: {e}")

        try:
            payload = json.loads(body)
        except ValueError:
            raise ResponseFormatError("Invalid JSON response from API")

        return extract_text(payload)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
