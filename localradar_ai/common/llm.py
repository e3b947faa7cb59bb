"""
LLM completion clients
----------------------
Two interchangeable chat-completion backends used for attribute extraction
and response composition:

    GeminiClient  - google-generativeai GenerativeModel
    GroqClient    - Groq's OpenAI-compatible REST endpoint via requests

Both expose complete(system_instruction, messages, max_tokens) -> str and
raise ProviderError for any transport or provider failure.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import google.generativeai as genai
import requests

from .errors import ProviderError

logger = logging.getLogger(__name__)


class GeminiClient:
    name = "gemini"

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash", timeout: float = 15.0):
        genai.configure(api_key=api_key)
        self.model_name = model
        self.timeout = timeout

    def complete(self, system_instruction: str, messages: List[str], max_tokens: int = 150) -> str:
        try:
            model = genai.GenerativeModel(self.model_name, system_instruction=system_instruction)
            response = model.generate_content(
                messages,
                generation_config={"max_output_tokens": max_tokens},
                request_options={"timeout": self.timeout},
            )
            # .text raises ValueError when the candidate was blocked or empty
            return response.text.strip()
        except Exception as e:
            logger.error(f"Gemini completion failed: {e}")
            raise ProviderError(self.name, str(e)) from e


class GroqClient:
    name = "groq"

    def __init__(
            self,
            api_key: str,
            model: str = "llama3-8b-8192",
            url: str = "https://api.groq.com/openai/v1/chat/completions",
            timeout: float = 15.0,
            session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def complete(self, system_instruction: str, messages: List[str], max_tokens: int = 150) -> str:
        payload = {
            "model": self.model,
            "messages": [{"role": "system", "content": system_instruction}]
                        + [{"role": "user", "content": m} for m in messages],
            "max_tokens": max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self.session.post(self.url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
            return data["choices"][0]["message"]["content"].strip()
        except requests.exceptions.RequestException as e:
            logger.error(f"Groq request failed: {e}")
            raise ProviderError(self.name, str(e)) from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Groq returned an unexpected payload: {e}")
            raise ProviderError(self.name, f"unexpected response payload: {e}") from e
