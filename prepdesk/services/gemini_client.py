"""
prepdesk/services/gemini_client.py
Thin async wrapper around Gemini for plan generation.

The API key is read when the client is built, not at import time, so
the service starts (and the rule-based planner works) without one.
"""

import os
import logging
from typing import Optional
import google.generativeai as genai

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash"


class PlanClientNotConfigured(RuntimeError):
    pass


class GeminiPlanClient:
    """Sends one system prompt + user message, returns the raw reply text."""

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        self.api_key = api_key if api_key is not None else os.getenv("GEMINI_API_KEY")
        self.model_name = model_name or os.getenv("GEMINI_MODEL", DEFAULT_MODEL)
        self._configured = False

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate(self, system_prompt: str, user_message: str) -> str:
        if not self.is_configured():
            raise PlanClientNotConfigured("GEMINI_API_KEY environment variable not set")

        if not self._configured:
            genai.configure(api_key=self.api_key)
            self._configured = True
            logger.info(f"Gemini API configured (model={self.model_name})")

        model = genai.GenerativeModel(self.model_name, system_instruction=system_prompt)
        response = await model.generate_content_async(
            user_message,
            generation_config={
                "response_mime_type": "application/json",
                "temperature": 0.4,
            }
        )
        return response.text


_client: Optional[GeminiPlanClient] = None


def get_plan_client() -> GeminiPlanClient:
    """FastAPI dependency; tests override it with a stub client."""
    global _client
    if _client is None:
        _client = GeminiPlanClient()
    return _client
