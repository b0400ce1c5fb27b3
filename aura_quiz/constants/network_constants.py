"""Network configuration constants for the aura quiz API."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
DEFAULT_STORE_TIMEOUT_SECONDS: float = 10.0
