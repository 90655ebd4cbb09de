"""
Completion Client
=================
Thin wrapper around one chat-completion call to an OpenAI-compatible
endpoint. Failures are wrapped as EXTERNAL_SERVICE errors and never
retried here; retry policy belongs to the caller.
"""

import json
import math
from typing import Any, Dict, List, Optional

import structlog
from openai import AsyncOpenAI

from ..config.settings import LLM_CONFIG
from ..errors import AppError

logger = structlog.get_logger(__name__)

SERVICE_NAME = "OpenAI"


class CompletionClient:
    """
    Generates a chat completion from a system/user prompt pair.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        """
        Initialize LLM client.

        Args:
            api_key: API key for the LLM provider
            provider: "openai" or "openrouter"
            model: Model identifier (defaults to LLM_CONFIG)
            client: Pre-built AsyncOpenAI-compatible client (tests)
        """
        self.api_key = api_key or LLM_CONFIG.get("api_key")
        self.provider = provider or LLM_CONFIG.get("provider", "openai")
        self.model = model or LLM_CONFIG["model"]
        self.temperature = LLM_CONFIG["temperature"]
        self.timeout = LLM_CONFIG["timeout_seconds"]
        self.client = client

        if self.client is None:
            self._initialize_client()

    def _initialize_client(self):
        """Initialize the SDK client based on provider"""
        if not self.api_key:
            logger.warning("LLM API key not configured", provider=self.provider)
            return

        if self.provider == "openrouter":
            self.client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=LLM_CONFIG["base_url"],
                timeout=self.timeout,
                default_headers={
                    "HTTP-Referer": LLM_CONFIG["site_url"],
                    "X-Title": LLM_CONFIG["app_name"],
                },
            )
        elif self.provider == "openai":
            self.client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout)
        else:
            raise ValueError(f"Unknown provider: {self.provider}")

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        json_mode: bool = False,
    ) -> Optional[str]:
        """
        Request one completion.

        Returns the first choice's text, or None if the service returned no
        content. Raises AppError (EXTERNAL_SERVICE) on any failure.
        """
        if self.client is None:
            raise AppError.external_service(SERVICE_NAME, RuntimeError("API key not configured"))

        request: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.temperature,
            "timeout": self.timeout,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(**request)
        except Exception as e:
            logger.error("LLM API error", provider=self.provider, error=str(e))
            raise AppError.external_service(SERVICE_NAME, e)

        if not response.choices:
            return None
        return response.choices[0].message.content


def parse_json_response(response: Optional[str]) -> Dict[str, Any]:
    """
    Parse a JSON object out of a model response.

    None parses as an empty object; markdown code fences are stripped.
    Raises ValueError when the content is not a JSON object.
    """
    clean = (response or "{}").strip()
    if clean.startswith("```"):
        clean = clean.split("```")[1]
        if clean.startswith("json"):
            clean = clean[4:]
    clean = clean.strip()

    data = json.loads(clean)
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object in model response")
    return data


# =============================================================================
# Response field coercion
# =============================================================================

def as_text(value: Any) -> str:
    """Model text field as a string; lists are joined with spaces"""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        return " ".join(part for part in (as_text(item) for item in value) if part)
    return str(value)


def as_string_list(value: Any) -> List[str]:
    """Model list field as a list of non-empty strings; a bare string becomes one item"""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [text for text in (as_text(item) for item in value) if text]


def as_int(value: Any) -> Optional[int]:
    """
    Model numeric field as an int, or None when it will not coerce.

    Accepts ints, finite floats and numeric strings ("5000", "1,000", "2.5e6").
    Ranges such as "50-200" do not coerce.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.replace(",", "").strip())
        except ValueError:
            return None
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return None
