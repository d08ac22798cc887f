"""Network configuration constants for the quiz service."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 3939

OPENROUTER_URL: str = "https://openrouter.ai/api/v1/chat/completions"
OPENROUTER_MODEL: str = "mistralai/mistral-7b-instruct"
GENERATOR_TIMEOUT_SECONDS: float = 60.0

USER_ID_HEADER: str = "X-User-Id"
USER_MAIL_HEADER: str = "X-User-Mail"
