"""Provider selection and model name normalization."""

from typing import Optional

import config
from config import Provider, Settings

from .errors import ConfigError, CredentialError

GEMINI_RESOURCE_PREFIX = "models/"
GOOGLE_NAMESPACE = "google/"


def normalize_gemini_model(model: Optional[str]) -> str:
    """Map a user model name to a Gemini resource name.

    Accepts ``gemini-2.5-flash-image-preview``, ``...:free``,
    ``google/...`` and ``models/...`` and returns ``models/<name>``.
    Already-normalized names are returned unchanged.
    """
    name = (model or "").strip()
    if not name:
        return config.DEFAULT_GEMINI_MODEL
    if name.startswith(GEMINI_RESOURCE_PREFIX):
        return name
    if name.startswith(GOOGLE_NAMESPACE):
        name = name[len(GOOGLE_NAMESPACE):]
    name = name.split(":", 1)[0]
    return GEMINI_RESOURCE_PREFIX + name


def normalize_openrouter_model(model: Optional[str], override: Optional[str] = None) -> str:
    """Map a user model name to an OpenRouter model id.

    A non-blank ``override`` (the ``OPENROUTER_MODEL`` setting) always wins.
    Names with a namespace (``vendor/model``) pass through; bare names get
    the ``google/`` namespace.
    """
    if override and override.strip():
        return override.strip()
    name = (model or "").strip()
    if not name:
        return config.DEFAULT_OPENROUTER_MODEL
    if "/" in name:
        return name
    return GOOGLE_NAMESPACE + name


def load_settings() -> Settings:
    """Build Settings from the environment, reporting bad values as ConfigError."""
    try:
        return Settings.from_env()
    except ValueError as e:
        raise ConfigError(str(e)) from e


def require_credentials(settings: Settings) -> None:
    """Fail fast if the selected provider has no API key."""
    if settings.provider is Provider.OPENROUTER:
        if not settings.openrouter_api_key:
            raise CredentialError(
                "OPENROUTER_API_KEY is required when the openrouter provider is selected"
            )
    elif not settings.gemini_api_key:
        raise CredentialError(
            "GEMINI_API_KEY is not set; get one at https://aistudio.google.com/apikey "
            "and export GEMINI_API_KEY before running"
        )


def get_client(settings: Settings, model: Optional[str] = None):
    """Build the provider client selected by ``settings``.

    Args:
        settings: Process settings (provider, keys, endpoints).
        model: Model name. Uses ``settings.model`` if None.

    Returns:
        A ProviderClient for the selected provider.

    Raises:
        CredentialError: If the provider's API key is missing.
    """
    from .providers import GeminiClient, OpenRouterClient

    settings.warn_deprecations()
    require_credentials(settings)
    model = model or settings.model

    if settings.provider is Provider.OPENROUTER:
        return OpenRouterClient(settings, model)
    return GeminiClient(settings, model)
