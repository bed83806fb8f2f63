"""Extract images and text from provider responses.

Providers return results in several layouts. Gateway (OpenAI-compatible)
responses are untyped JSON and may follow the chat-completions, Responses
or Images API shape; Gemini responses are typed SDK objects. Each layout
family gets its own ResponseParser so the provider clients never branch
on response shape themselves.
"""

import base64
import binascii
from typing import Any, Optional, Protocol

from .errors import DecodeError, ProviderError
from .schemas import GenerationResult

IMAGE_PART_TYPES = ("image_url", "image", "output_image")
TEXT_PART_TYPES = ("text", "output_text")


class ResponseParser(Protocol):
    """Turns one raw provider response into a GenerationResult."""

    def check_error(self, response: Any) -> None:
        ...

    def parse_image(self, response: Any) -> Optional[bytes]:
        ...

    def parse_text(self, response: Any) -> Optional[str]:
        ...

    def parse(self, response: Any) -> GenerationResult:
        ...


def decode_base64(payload: str) -> bytes:
    """Strictly decode a base64 string.

    Raises:
        DecodeError: If the payload is not valid base64.
    """
    try:
        return base64.b64decode(payload.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"malformed base64 image payload: {e}") from e


def decode_data_url(url: Any) -> Optional[bytes]:
    """Decode a ``data:<mime>;base64,<data>`` URL; None for anything else."""
    if not isinstance(url, str) or not url.startswith("data:"):
        return None
    _, sep, payload = url.partition(",")
    if not sep or not payload:
        return None
    return decode_base64(payload)


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _nonempty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def _image_from_nested(image: dict) -> Optional[bytes]:
    """Handle ``{b64_json|b64|url}`` image objects."""
    for key in ("b64_json", "b64"):
        payload = _nonempty_str(image.get(key))
        if payload:
            return decode_base64(payload)
    return decode_data_url(image.get("url"))


def _image_from_part(part: dict) -> Optional[bytes]:
    """Handle one typed content part carrying an image."""
    nested = part.get("image")
    if isinstance(nested, dict):
        found = _image_from_nested(nested)
        if found is not None:
            return found
    found = decode_data_url(_as_dict(part.get("image_url")).get("url"))
    if found is not None:
        return found
    payload = _nonempty_str(part.get("b64_json"))
    if payload:
        return decode_base64(payload)
    return None


class ChatJSONParser:
    """Parser for OpenAI-compatible JSON responses (dicts)."""

    def check_error(self, response: Any) -> None:
        """Raise ProviderError if the payload carries an ``error`` object."""
        if not isinstance(response, dict):
            return
        error = response.get("error")
        if not isinstance(error, (dict, str)) or error == "":
            return
        code = None
        if isinstance(error, dict):
            message = _nonempty_str(error.get("message"))
            code = error.get("code")
        else:
            message = error
        if message and message.strip():
            raise ProviderError(message, status_code=code if isinstance(code, int) else None)
        raise ProviderError("provider returned an error without a message")

    def _message(self, response: dict) -> dict:
        choices = _as_list(response.get("choices"))
        if not choices:
            return {}
        return _as_dict(_as_dict(choices[0]).get("message"))

    def parse_image(self, response: Any) -> Optional[bytes]:
        response = _as_dict(response)
        message = self._message(response)

        # Out-of-band images attached to the message
        images = _as_list(message.get("images"))
        if images:
            first = _as_dict(images[0])
            found = decode_data_url(_as_dict(first.get("image_url")).get("url"))
            if found is None and isinstance(first.get("image"), dict):
                found = _image_from_nested(first["image"])
            if found is not None:
                return found

        content = message.get("content")
        if isinstance(content, list):
            for part in content:
                part = _as_dict(part)
                if part.get("type") in IMAGE_PART_TYPES:
                    found = _image_from_part(part)
                    if found is not None:
                        return found
        elif isinstance(content, str):
            found = decode_data_url(content.strip())
            if found is not None:
                return found

        # Responses API
        for item in _as_list(response.get("output")):
            for part in _as_list(_as_dict(item).get("content")):
                part = _as_dict(part)
                if part.get("type") in IMAGE_PART_TYPES:
                    found = _image_from_part(part)
                    if found is not None:
                        return found

        # Images API
        for item in _as_list(response.get("data")):
            item = _as_dict(item)
            payload = _nonempty_str(item.get("b64_json"))
            if payload:
                return decode_base64(payload)
            found = decode_data_url(item.get("url"))
            if found is not None:
                return found

        return None

    def parse_text(self, response: Any) -> Optional[str]:
        response = _as_dict(response)
        message = self._message(response)

        content = message.get("content")
        # A bare data URL is an image, not text
        if isinstance(content, str) and content.strip() and not content.startswith("data:"):
            return content
        if isinstance(content, list):
            joined = "".join(
                _as_dict(part).get("text") or ""
                for part in content
                if _as_dict(part).get("type") in TEXT_PART_TYPES
                and isinstance(_as_dict(part).get("text"), str)
            )
            if joined.strip():
                return joined

        chunks = []
        for item in _as_list(response.get("output")):
            for part in _as_list(_as_dict(item).get("content")):
                part = _as_dict(part)
                text = part.get("text")
                if part.get("type") in TEXT_PART_TYPES and isinstance(text, str):
                    chunks.append(text)
        joined = "".join(chunks)
        if joined.strip():
            return joined
        return None

    def parse(self, response: Any) -> GenerationResult:
        self.check_error(response)
        return GenerationResult(
            image=self.parse_image(response),
            text=self.parse_text(response) or "",
        )


class GeminiResponseParser:
    """Parser for ``google.genai`` GenerateContentResponse objects."""

    def check_error(self, response: Any) -> None:
        feedback = getattr(response, "prompt_feedback", None)
        reason = getattr(feedback, "block_reason", None)
        if reason:
            detail = getattr(feedback, "block_reason_message", None) or ""
            message = f"prompt blocked by Gemini: {getattr(reason, 'value', reason)}"
            if detail:
                message = f"{message} ({detail})"
            raise ProviderError(message)

    def _parts(self, response: Any) -> list:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return []
        content = getattr(candidates[0], "content", None)
        return list(getattr(content, "parts", None) or [])

    def parse_image(self, response: Any) -> Optional[bytes]:
        for part in self._parts(response):
            inline = getattr(part, "inline_data", None)
            data = getattr(inline, "data", None)
            if data:
                # The SDK normally decodes inline data; raw JSON may still carry base64
                if isinstance(data, str):
                    return decode_base64(data)
                return bytes(data)
        return None

    def parse_text(self, response: Any) -> Optional[str]:
        joined = "".join(
            part.text for part in self._parts(response)
            if isinstance(getattr(part, "text", None), str)
        )
        if joined.strip():
            return joined
        return None

    def parse(self, response: Any) -> GenerationResult:
        self.check_error(response)
        return GenerationResult(
            image=self.parse_image(response),
            text=self.parse_text(response) or "",
        )
