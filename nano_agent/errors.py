"""Error types raised across nano-agent.

Every error the CLI reports to the user derives from NanoAgentError, so
main.py can catch one type, print the message and exit non-zero.
"""


class NanoAgentError(Exception):
    """Base class for all nano-agent errors.

    Attributes:
        message: Human-readable message shown to the user.
        code: Machine-readable error code (e.g. "PROVIDER_ERROR").
        extra: Additional context (provider name, status code, ...).
    """

    code = "NANO_AGENT_ERROR"

    def __init__(self, message: str, code: str | None = None, **extra):
        self.message = message
        if code is not None:
            self.code = code
        self.extra = extra
        super().__init__(message)


class ConfigError(NanoAgentError):
    """Missing or invalid user input, detected before any network call."""

    code = "CONFIG_ERROR"


class ThreadStateError(ConfigError):
    """A conversation thread operation was called in the wrong state."""

    code = "THREAD_STATE_ERROR"


class CredentialError(NanoAgentError):
    """The API key for the selected provider is not configured."""

    code = "CREDENTIAL_ERROR"


class ProviderError(NanoAgentError):
    """The provider failed the call or returned an explicit error object."""

    code = "PROVIDER_ERROR"

    def __init__(self, message: str, status_code: int | None = None, **extra):
        self.status_code = status_code
        super().__init__(message, **extra)


class DecodeError(NanoAgentError):
    """An embedded base64 payload in a provider response is malformed."""

    code = "DECODE_ERROR"


class NoResultError(NanoAgentError):
    """The response had no usable image or text.

    Any assistant text found (a refusal, for example) is kept on ``text``
    and included in the message so the operator can see why.
    """

    code = "NO_RESULT"

    def __init__(self, message: str = "no image returned by model", text: str = "", **extra):
        self.text = text
        if text.strip():
            message = f"{message}: {truncate(text.strip())}"
        super().__init__(message, **extra)


def truncate(text: str, limit: int = 512) -> str:
    """Shorten text for error messages."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text
