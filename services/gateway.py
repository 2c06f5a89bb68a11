"""Model gateway interface and provider selection."""

import abc
from typing import Optional

import config
from config import GraderSettings
from utils.error_handler import ConfigError
from utils.logger import get_logger

logger = get_logger()


class ModelGateway(abc.ABC):
    """A synchronous text-completion call.

    Implementations make at most one remote call per `invoke` and never
    retry. Any failure is raised as GatewayError.
    """

    model_name: str = ""

    @abc.abstractmethod
    def invoke(self, prompt: str) -> str:
        """Sends `prompt` and returns the model's raw text.

        Raises:
            GatewayError: If the call fails or the response has no text.
        """


def build_gateway(settings: GraderSettings, model: Optional[str] = None) -> ModelGateway:
    """Creates the gateway for the configured provider.

    Args:
        settings: Runtime settings carrying the provider and its API key.
        model: Model id overriding the provider default (the CONFIG row's
            hf_model column), ignored when blank.

    Raises:
        ConfigError: If the provider is unknown or its API key is missing.
    """
    model = (model or "").strip() or None
    if settings.model_provider == config.PROVIDER_GEMINI:
        from services.gemini_ai import GeminiClient
        return GeminiClient(api_key=settings.gemini_api_key, model_name=model or config.DEFAULT_GEMINI_MODEL)
    if settings.model_provider == config.PROVIDER_GROQ:
        from services.groq_api import GroqChatClient
        return GroqChatClient(
            api_key=settings.groq_api_key,
            model_name=model or config.DEFAULT_GROQ_MODEL,
            timeout=settings.request_timeout,
        )
    logger.critical(f"Unknown model provider: {settings.model_provider}")
    raise ConfigError(f"Unknown model provider: {settings.model_provider}")
