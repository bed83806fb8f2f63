"""Configuration settings for nano-agent."""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Paths
USER_CONFIG_FILE = Path.home() / ".nano-agent.env"
DEFAULT_OUTPUT = Path("output.png")
OUTPUTS_SUBDIR = "outputs"

# Model settings
DEFAULT_MODEL = "gemini-2.5-flash-image-preview:free"
DEFAULT_GEMINI_MODEL = "models/gemini-2.5-flash-image-preview"
DEFAULT_OPENROUTER_MODEL = "google/gemini-2.5-flash-image-preview:free"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_SITE = "http://localhost"
OPENROUTER_TITLE = "nano-agent"
HTTP_TIMEOUT = 120.0

# Loop settings
DEFAULT_CRITIQUE_LOOPS = 0
IMAGE_ATTEMPTS = 2  # attempts with input images before the text-only fallback

# Post-processing
BG_FUZZ = "6%"
TRANSPARENT_HINT = (
    "Please render the subject with a solid white background around the subject; "
    "avoid interior transparency."
)


class Provider(str, Enum):
    """Where generation and critique calls are sent."""

    GEMINI = "gemini"
    OPENROUTER = "openrouter"


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


class Settings(BaseModel):
    """Process-wide settings, built once from the environment."""

    provider: Provider = Provider.GEMINI
    model: str = DEFAULT_MODEL
    gemini_api_key: Optional[str] = Field(default=None, repr=False)
    openrouter_api_key: Optional[str] = Field(default=None, repr=False)
    openrouter_model: Optional[str] = None
    openrouter_base_url: str = OPENROUTER_BASE_URL
    openrouter_site: str = OPENROUTER_SITE
    openrouter_title: str = OPENROUTER_TITLE
    http_timeout: float = Field(default=HTTP_TIMEOUT, gt=0)
    debug: bool = False
    bg_fuzz: str = BG_FUZZ

    # Set when the provider was chosen through USE_OPENROUTER
    legacy_provider_switch: bool = False
    deprecation_warned: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        ``NANO_PROVIDER`` selects the provider. The older ``USE_OPENROUTER=1``
        switch is still honoured when ``NANO_PROVIDER`` is unset.

        Raises:
            ValueError: If ``NANO_PROVIDER`` or ``NANO_HTTP_TIMEOUT`` is invalid.
        """
        env = os.environ if env is None else env

        legacy = False
        name = _clean(env.get("NANO_PROVIDER"))
        if name is None:
            legacy = _truthy(env.get("USE_OPENROUTER"))
            provider = Provider.OPENROUTER if legacy else Provider.GEMINI
        else:
            try:
                provider = Provider(name.lower())
            except ValueError:
                choices = ", ".join(p.value for p in Provider)
                raise ValueError(f"unknown provider {name!r} (expected one of: {choices})")

        timeout = _clean(env.get("NANO_HTTP_TIMEOUT"))
        try:
            http_timeout = float(timeout) if timeout else HTTP_TIMEOUT
        except ValueError:
            raise ValueError(f"NANO_HTTP_TIMEOUT must be a number, got {timeout!r}")

        return cls(
            provider=provider,
            model=_clean(env.get("NANO_MODEL")) or DEFAULT_MODEL,
            gemini_api_key=_clean(env.get("GEMINI_API_KEY")),
            openrouter_api_key=_clean(env.get("OPENROUTER_API_KEY")),
            openrouter_model=_clean(env.get("OPENROUTER_MODEL")),
            openrouter_base_url=_clean(env.get("OPENROUTER_BASE_URL")) or OPENROUTER_BASE_URL,
            openrouter_site=_clean(env.get("OPENROUTER_SITE")) or OPENROUTER_SITE,
            openrouter_title=_clean(env.get("OPENROUTER_TITLE")) or OPENROUTER_TITLE,
            http_timeout=http_timeout,
            debug=_truthy(env.get("NANO_DEBUG")) or _truthy(env.get("OPENROUTER_DEBUG")),
            bg_fuzz=_clean(env.get("NANO_BG_FUZZ")) or BG_FUZZ,
            legacy_provider_switch=legacy,
        )

    def warn_deprecations(self) -> None:
        """Log deprecated configuration once per settings object."""
        if self.legacy_provider_switch and not self.deprecation_warned:
            logger.warning(
                "USE_OPENROUTER is deprecated; set NANO_PROVIDER=openrouter instead"
            )
            self.deprecation_warned = True


def load_config_file(path: Optional[Path] = None) -> None:
    """Load an extra dotenv file.

    An explicit ``path`` overrides the environment and must exist. Without
    one, ``~/.nano-agent.env`` is loaded if present and never overrides.
    """
    if path is not None:
        if not path.is_file():
            raise FileNotFoundError(f"config file not found: {path}")
        load_dotenv(path, override=True)
    elif USER_CONFIG_FILE.is_file():
        load_dotenv(USER_CONFIG_FILE, override=False)
