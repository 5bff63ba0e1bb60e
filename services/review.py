from typing import Optional

import httpx

from constants import GEMINI_API_KEY, GEMINI_API_URL, GEMINI_MODEL, REVIEW_FALLBACK_MESSAGE
from dispatcher import Broadcaster
from events import AI_REVIEW
from logging_config import get_logger

logger = get_logger(__name__)

# Checked in order, first match wins
LANGUAGE_HINTS = [
    (("#include",), "C++"),
    (("def ", "print("), "Python"),
    (("function", "console."), "JavaScript"),
    (("public class", "System.out"), "Java"),
]

REVIEW_PROMPT = """
You're an expert code reviewer of the language "{language}" and love to give code suggestions.
Generate a brief review of the code "{code}".
Format clearly with headings.
Give the response in proper format so that it comes in bullets
"""


class ReviewUnavailable(Exception):
    pass


def detect_language(code: str) -> str:
    """Best-effort language label for the review prompt."""
    for tokens, label in LANGUAGE_HINTS:
        if any(token in code for token in tokens):
            return label
    return "code"


def build_review_prompt(code: str) -> str:
    return REVIEW_PROMPT.format(language=detect_language(code), code=code)


class ReviewGateway:
    """Asks the generative-text service for a review and shares it with the whole room."""

    def __init__(self, broadcaster: Broadcaster, client: httpx.AsyncClient, api_key: Optional[str] = GEMINI_API_KEY,
                 model: str = GEMINI_MODEL, api_url: str = GEMINI_API_URL):
        self.broadcaster = broadcaster
        self.client = client
        self.api_key = api_key
        self.model = model
        self.api_url = api_url.rstrip("/")

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise ReviewUnavailable("GEMINI_API_KEY is not configured")

        url = f"{self.api_url}/models/{self.model}:generateContent"
        response = await self.client.post(
            url,
            params={"key": self.api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
        )
        response.raise_for_status()
        body = response.json()

        candidates = body.get("candidates") or []
        if not candidates:
            raise ReviewUnavailable("no candidates in response")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if not text.strip():
            raise ReviewUnavailable("empty completion")
        return text

    async def review(self, room_id: str, code: Optional[str]) -> str:
        # The prompt carries a copy of the code as it was at request time
        prompt = build_review_prompt(code or "")
        try:
            text = await self.generate(prompt)
            logger.info(f"AI review generated for room {room_id} ({len(text)} chars)")
        except Exception as e:
            logger.error(f"AI review failed for room {room_id}: {e}", exc_info=True)
            text = REVIEW_FALLBACK_MESSAGE
        await self.broadcaster.to_room(room_id, AI_REVIEW, text)
        return text
