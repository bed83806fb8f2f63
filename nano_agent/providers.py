"""Provider clients for Gemini (native SDK) and OpenRouter (HTTP gateway).

Each client converts provider-agnostic Messages to its wire format, makes
one blocking call and hands the raw response to its ResponseParser.
"""

import logging
from typing import Optional, Protocol, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from config import Settings

from . import __version__
from .errors import ProviderError
from .llm import normalize_gemini_model, normalize_openrouter_model
from .parsing import ChatJSONParser, GeminiResponseParser, ResponseParser
from .schemas import GenerationResult, ImagePart, Message, Role, TextPart

logger = logging.getLogger(__name__)

DEBUG_PREVIEW_CHARS = 4096
ERROR_PREVIEW_CHARS = 2048


def _preview(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit] + "... [truncated]"
    return text


class ProviderClient(Protocol):
    """A chat-style multimodal model endpoint.

    Implementations send the whole message history on every call and
    return the parsed reply.
    """

    name: str
    model: str
    parser: ResponseParser

    def send(self, messages: Sequence[Message]) -> GenerationResult:
        ...


class GeminiClient:
    """Calls Gemini through the ``google-genai`` SDK."""

    name = "gemini"

    def __init__(self, settings: Settings, model: Optional[str] = None, client=None):
        self.settings = settings
        self.model = normalize_gemini_model(model or settings.model)
        self.parser = GeminiResponseParser()
        self._client = client

    @property
    def client(self):
        """Lazy-load the SDK client."""
        if self._client is None:
            self._client = genai.Client(api_key=self.settings.gemini_api_key)
        return self._client

    @staticmethod
    def to_content(message: Message) -> types.Content:
        parts = []
        for part in message.parts:
            if isinstance(part, TextPart):
                parts.append(types.Part.from_text(text=part.text))
            else:
                parts.append(types.Part.from_bytes(data=part.data, mime_type=part.mime_type))
        role = "model" if message.role is Role.ASSISTANT else "user"
        return types.Content(role=role, parts=parts)

    def send(self, messages: Sequence[Message]) -> GenerationResult:
        contents = [self.to_content(m) for m in messages]
        logger.debug("gemini generate_content model=%s turns=%d", self.model, len(contents))
        try:
            response = self.client.models.generate_content(model=self.model, contents=contents)
        except genai_errors.APIError as e:
            raise ProviderError(
                e.message or str(e), status_code=e.code, provider=self.name
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Gemini request failed: {e}", provider=self.name) from e
        return self.parser.parse(response)


class OpenRouterClient:
    """Calls OpenRouter's OpenAI-compatible ``chat/completions`` endpoint."""

    name = "openrouter"

    def __init__(
        self,
        settings: Settings,
        model: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.settings = settings
        self.model = normalize_openrouter_model(
            model or settings.model, override=settings.openrouter_model
        )
        self.parser = ChatJSONParser()
        self._http = http_client

    @property
    def headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.settings.openrouter_api_key or ''}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "HTTP-Referer": self.settings.openrouter_site,
            "X-Title": self.settings.openrouter_title,
            "User-Agent": f"nano-agent/{__version__}",
        }

    @staticmethod
    def to_wire(message: Message) -> dict:
        content = []
        for part in message.parts:
            if isinstance(part, ImagePart):
                content.append({"type": "image_url", "image_url": {"url": part.to_data_url()}})
            else:
                content.append({"type": "text", "text": part.text})
        return {"role": message.role.value, "content": content}

    def _post(self, url: str, body: dict) -> httpx.Response:
        if self._http is not None:
            return self._http.post(url, json=body, headers=self.headers)
        with httpx.Client(timeout=self.settings.http_timeout) as client:
            return client.post(url, json=body, headers=self.headers)

    def post_json(self, path: str, body: dict) -> dict:
        """POST a JSON body and return the decoded JSON object.

        Raises:
            ProviderError: On network failure, an undecodable body, an
                explicit error object or a non-2xx status.
        """
        url = self.settings.openrouter_base_url.rstrip("/") + "/" + path.lstrip("/")
        try:
            resp = self._post(url, body)
        except httpx.HTTPError as e:
            raise ProviderError(f"OpenRouter request failed: {e}", provider=self.name) from e

        logger.debug("openrouter POST %s status=%s", url, resp.status_code)
        logger.debug("openrouter BODY %s", _preview(resp.text, DEBUG_PREVIEW_CHARS))

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(
                f"openrouter decode failed: {e}; status={resp.status_code}; "
                f"body={_preview(resp.text, ERROR_PREVIEW_CHARS)}",
                status_code=resp.status_code,
                provider=self.name,
            ) from e
        if not isinstance(data, dict):
            raise ProviderError(
                f"openrouter returned unexpected JSON: {_preview(resp.text, ERROR_PREVIEW_CHARS)}",
                status_code=resp.status_code,
                provider=self.name,
            )

        if resp.is_error:
            try:
                self.parser.check_error(data)
            except ProviderError as e:
                e.status_code = e.status_code or resp.status_code
                raise
            raise ProviderError(
                f"OpenRouter returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                provider=self.name,
            )
        return data

    def send(self, messages: Sequence[Message]) -> GenerationResult:
        body = {
            "model": self.model,
            "messages": [self.to_wire(m) for m in messages],
        }
        return self.parser.parse(self.post_json("chat/completions", body))
