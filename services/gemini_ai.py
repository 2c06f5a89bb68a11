"""Wrapper for Google Gemini API interactions."""

from typing import Optional

import google.generativeai as genai
from google.api_core import exceptions as google_api_exceptions

import config
from services.gateway import ModelGateway
from utils.error_handler import ConfigError, GatewayError
from utils.logger import get_logger

logger = get_logger()


class GeminiClient(ModelGateway):
    """Grades prompts through the Google Gemini API."""

    def __init__(self, api_key: Optional[str], model_name: str = config.DEFAULT_GEMINI_MODEL):
        """Initializes the GeminiClient.

        Args:
            api_key: The Gemini API key.
            model_name: Gemini model id.

        Raises:
            ConfigError: If the API key is missing or the library rejects it.
        """
        logger.debug("Initializing GeminiClient...")
        if not api_key:
            logger.critical("Gemini API Key is missing. Check GEMINI_API_KEY.")
            raise ConfigError("GEMINI_API_KEY not found or provided.")
        self.model_name = model_name
        try:
            genai.configure(api_key=api_key)
            self.model = genai.GenerativeModel(model_name, system_instruction=config.SYSTEM_INSTRUCTION)
            logger.info(f"GeminiClient initialized successfully with model: {model_name}")
        except Exception as e:
            logger.critical(f"Failed to configure Gemini API: {e}", exc_info=config.DEBUG)
            raise ConfigError(f"Failed to configure Gemini API: {e}") from e

    def invoke(self, prompt: str) -> str:
        logger.info(f"Calling Gemini model {self.model_name} ({len(prompt)} prompt chars)...")
        if config.DEBUG:
            logger.debug(f"Prompt (first 500 chars):\n{prompt[:500]}...")

        try:
            response = self.model.generate_content(
                prompt,
                generation_config=genai.types.GenerationConfig(
                    temperature=config.MODEL_TEMPERATURE,
                    max_output_tokens=config.MODEL_MAX_TOKENS,
                    response_mime_type="application/json",
                ),
            )
        except google_api_exceptions.GoogleAPIError as e:
            status = getattr(e, "code", None)
            logger.error(f"Gemini API error: {e}", exc_info=config.DEBUG)
            raise GatewayError(f"Gemini API error: {e}",
                               status_code=status if isinstance(status, int) else None,
                               body=str(e)) from e

        if not response.candidates:
            logger.error(f"Gemini response missing candidates. Prompt feedback: {response.prompt_feedback}")
            raise GatewayError("Gemini response was empty or blocked (no candidates).")

        candidate = response.candidates[0]
        if candidate.finish_reason == genai.types.FinishReason.SAFETY:
            logger.error(f"Gemini stopped for safety. Ratings: {candidate.safety_ratings}")
            raise GatewayError(f"Gemini response blocked by safety settings. Ratings: {candidate.safety_ratings}")

        parts = candidate.content.parts if candidate.content else []
        text = "".join(part.text for part in parts if getattr(part, "text", None))
        if not text:
            raise GatewayError(f"Gemini returned empty text. Finish reason: {candidate.finish_reason}")

        logger.info(f"Gemini returned {len(text)} chars.")
        return text
