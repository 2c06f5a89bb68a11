"""Client for the Groq OpenAI-compatible chat completions endpoint."""

from typing import Any, Dict, Optional

import requests

import config
from services.gateway import ModelGateway
from utils.error_handler import ConfigError, GatewayError
from utils.logger import get_logger

logger = get_logger()


class GroqChatClient(ModelGateway):
    """Grades prompts through Groq's chat completions API."""

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str = config.DEFAULT_GROQ_MODEL,
        url: str = config.GROQ_API_URL,
        timeout: float = config.DEFAULT_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initializes the GroqChatClient.

        Args:
            api_key: The Groq API key.
            model_name: Model identifier sent with each request.
            url: Chat completions endpoint.
            timeout: Seconds to wait for the response.
            session: Optional requests session, mostly for tests.

        Raises:
            ConfigError: If the API key is missing.
        """
        if not api_key:
            logger.critical("Groq API key is missing. Check GROQ_API_KEY.")
            raise ConfigError("GROQ_API_KEY not found or provided.")
        self.api_key = api_key
        self.model_name = model_name
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        logger.debug(f"GroqChatClient initialized with model: {model_name}")

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": config.SYSTEM_INSTRUCTION},
                {"role": "user", "content": prompt},
            ],
            "temperature": config.MODEL_TEMPERATURE,
            "max_tokens": config.MODEL_MAX_TOKENS,
            "response_format": {"type": "json_object"},
        }

    def invoke(self, prompt: str) -> str:
        logger.info(f"Calling Groq model {self.model_name} ({len(prompt)} prompt chars)...")
        if config.DEBUG:
            logger.debug(f"Prompt (first 500 chars):\n{prompt[:500]}...")

        try:
            resp = self.session.post(
                self.url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=self.build_payload(prompt),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Groq request failed: {e}", exc_info=config.DEBUG)
            raise GatewayError(f"Groq request failed: {e}") from e

        logger.info(f"Groq API response code: {resp.status_code}")
        if resp.status_code != 200:
            raise GatewayError(f"Groq API error {resp.status_code}: {resp.text}",
                               status_code=resp.status_code, body=resp.text)

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GatewayError(f"Groq response shape unexpected: {resp.text}",
                               status_code=resp.status_code, body=resp.text) from e
        if not content:
            raise GatewayError(f"Groq response shape unexpected: {resp.text}",
                               status_code=resp.status_code, body=resp.text)
        return content
