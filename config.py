"""Configuration settings for the Form Exam AI Grader."""

import os
import logging
from dataclasses import dataclass
from typing import Final, List, Mapping, Optional

from utils.error_handler import ConfigError

# Debug flag: 1 = debug mode (verbose logging), 0 = production mode
DEBUG: Final[int] = int(os.environ.get("GRADER_DEBUG", "0"))

# --- Google API Settings ---

# Must match the scopes granted during the OAuth flow.
SCOPES: Final[List[str]] = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/gmail.send",
]

# --- File Paths ---
CLIENT_SECRETS_FILE: Final[str] = os.environ.get("CLIENT_SECRETS_PATH", "client_secrets.json")
_token_dir = os.path.dirname(CLIENT_SECRETS_FILE) if os.path.dirname(CLIENT_SECRETS_FILE) else '.'
TOKEN_FILE: Final[str] = os.path.join(_token_dir, "token.json")
LOG_DIR: Final[str] = os.environ.get("GRADER_LOG_DIR", "logs")
LOG_FILE: Final[str] = os.path.join(LOG_DIR, "grader_app.log")
DEFAULT_STATE_FILE: Final[str] = "grader_state.json"

# --- Spreadsheet layout ---
MASTER_CONFIG_SHEET: Final[str] = "CONFIG"
ANSWER_KEY_SHEET: Final[str] = "ANSWER_KEY"
GRADE_SHEET_NAME: Final[str] = "AI_GRADES"
DEFAULT_RESPONSE_SHEET: Final[str] = "Form Responses 1"
DEFAULT_EMAIL_HEADER: Final[str] = "Email Address"
DEFAULT_STUDENT_NAME: Final[str] = "Student"
GRADED_STATUS: Final[str] = "graded_by_ai"

# --- Model Settings ---
PROVIDER_GROQ: Final[str] = "groq"
PROVIDER_GEMINI: Final[str] = "gemini"
SUPPORTED_PROVIDERS: Final[tuple] = (PROVIDER_GROQ, PROVIDER_GEMINI)

GROQ_API_URL: Final[str] = "https://api.groq.com/openai/v1/chat/completions"
DEFAULT_GROQ_MODEL: Final[str] = "llama-3.3-70b-versatile"
DEFAULT_GEMINI_MODEL: Final[str] = "gemini-1.5-flash-latest"
MODEL_TEMPERATURE: Final[float] = 0.1
MODEL_MAX_TOKENS: Final[int] = 2048

SYSTEM_INSTRUCTION: Final[str] = "You are a strict exam grader. Always return valid JSON only."

# --- Batch Settings ---
DEFAULT_CHUNK_SIZE: Final[int] = 5
DEFAULT_CHUNK_DELAY_SECONDS: Final[float] = 1.0
DEFAULT_REQUEST_TIMEOUT: Final[float] = 120.0
DEFAULT_POLL_INTERVAL: Final[float] = 60.0

# --- Logging Configuration ---
# LOG_LEVEL applies to both handlers
LOG_LEVEL = logging.DEBUG if DEBUG else logging.INFO
# Structured log format: timestamp, level, logger, module.function:line, message
LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(module)s.%(funcName)s:%(lineno)d | %(message)s'


@dataclass(frozen=True)
class GraderSettings:
    """Runtime settings threaded explicitly through the grader."""
    master_spreadsheet_id: str
    model_provider: str = PROVIDER_GROQ
    groq_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_delay_seconds: float = DEFAULT_CHUNK_DELAY_SECONDS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    state_file: str = DEFAULT_STATE_FILE
    client_secrets_file: str = CLIENT_SECRETS_FILE
    token_file: str = TOKEN_FILE

    @property
    def api_key(self) -> Optional[str]:
        """The API key of the selected model provider."""
        if self.model_provider == PROVIDER_GEMINI:
            return self.gemini_api_key
        return self.groq_api_key


def _read_number(environ: Mapping[str, str], name: str, default, cast, minimum):
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None,
                  master_spreadsheet_id: Optional[str] = None) -> GraderSettings:
    """Builds GraderSettings from environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ.
        master_spreadsheet_id: Overrides MASTER_SPREADSHEET_ID when given.

    Returns:
        GraderSettings: The validated settings.

    Raises:
        ConfigError: If a required value is missing or a value is invalid.
    """
    env = os.environ if environ is None else environ

    master_id = master_spreadsheet_id or env.get("MASTER_SPREADSHEET_ID", "").strip()
    if not master_id:
        raise ConfigError("MASTER_SPREADSHEET_ID not set. Point it at the spreadsheet holding the CONFIG sheet.")

    provider = env.get("MODEL_PROVIDER", PROVIDER_GROQ).strip().lower() or PROVIDER_GROQ
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigError(f"Unsupported MODEL_PROVIDER {provider!r}. Choose one of: {', '.join(SUPPORTED_PROVIDERS)}")

    settings = GraderSettings(
        master_spreadsheet_id=master_id,
        model_provider=provider,
        groq_api_key=env.get("GROQ_API_KEY") or None,
        gemini_api_key=env.get("GEMINI_API_KEY") or None,
        chunk_size=_read_number(env, "GRADER_CHUNK_SIZE", DEFAULT_CHUNK_SIZE, int, 1),
        chunk_delay_seconds=_read_number(env, "GRADER_CHUNK_DELAY_SECONDS", DEFAULT_CHUNK_DELAY_SECONDS, float, 0),
        request_timeout=_read_number(env, "GRADER_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT, float, 1),
        poll_interval=_read_number(env, "GRADER_POLL_INTERVAL", DEFAULT_POLL_INTERVAL, float, 1),
        state_file=env.get("GRADER_STATE_FILE") or DEFAULT_STATE_FILE,
        client_secrets_file=env.get("CLIENT_SECRETS_PATH") or CLIENT_SECRETS_FILE,
        token_file=env.get("GRADER_TOKEN_FILE") or TOKEN_FILE,
    )

    if not settings.api_key:
        key_name = "GEMINI_API_KEY" if provider == PROVIDER_GEMINI else "GROQ_API_KEY"
        raise ConfigError(f"Missing required environment variable: {key_name}")

    return settings


# Basic check
if __name__ == "__main__":
    print(f"Debug Mode: {'On' if DEBUG else 'Off'}")
    print(f"Log Level: {logging.getLevelName(LOG_LEVEL)}")
    print(f"Client Secrets File: {CLIENT_SECRETS_FILE}")
    print(f"Token File: {TOKEN_FILE}")
    print(f"Log File: {LOG_FILE}")
    try:
        current = load_settings()
        print(f"Master Spreadsheet: {current.master_spreadsheet_id}")
        print(f"Model Provider: {current.model_provider}")
        print(f"Chunk Size: {current.chunk_size}")
    except ConfigError as e:
        print(f"Settings incomplete: {e}")
    print("Scopes:")
    for scope in SCOPES:
        print(f"- {scope}")
