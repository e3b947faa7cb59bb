"""Exceptions shared by the provider wrappers and the matching pipeline."""


class ConfigError(RuntimeError):
    """Raised when settings are malformed or a provider is missing credentials."""


class ProviderError(RuntimeError):
    """Raised when an external capability (LLM, embeddings, Firestore) is unavailable."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
