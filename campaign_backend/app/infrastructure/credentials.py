from campaign_backend.app.logging_config import get_logger

logger = get_logger("app.infrastructure.credentials")


class CredentialProvider:
    """Holds the provider API key.

    A key set explicitly (for example one typed into the UI) takes precedence
    over the environment-level fallback.
    """

    def __init__(self, fallback: str | None = None):
        self._fallback = fallback or None
        self._value: str | None = None

    def get(self) -> str | None:
        return self._value or self._fallback

    def set(self, value: str | None) -> None:
        self._value = value.strip() if value and value.strip() else None
        logger.debug(f"Credential {'updated' if self._value else 'cleared'}")

    def resolve(self, request_value: str | None) -> str | None:
        """Prefer a key supplied with the request, then the stored one."""
        if request_value and request_value.strip():
            return request_value.strip()
        return self.get()
