import base64
from io import BytesIO

import pytest
from PIL import Image

from config import Provider, Settings
from nano_agent.critic import CRITIQUE_INSTRUCTION
from nano_agent.schemas import GenerationResult, TextPart


class FakeClient:
    """ProviderClient stub replaying scripted replies (results or exceptions)."""

    name = "fake"
    model = "fake-model"

    def __init__(self, replies=()):
        self.replies = list(replies)
        self.calls = []

    def send(self, messages):
        self.calls.append(list(messages))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class LoopClient:
    """Answers critique requests with text and everything else with an image."""

    name = "loop"
    model = "loop-model"

    def __init__(self):
        self.generate_calls = 0
        self.critique_calls = 0
        self.calls = []

    @staticmethod
    def is_critique(messages):
        first = messages[0].parts[0]
        return isinstance(first, TextPart) and first.text == CRITIQUE_INSTRUCTION

    def send(self, messages):
        self.calls.append(list(messages))
        if self.is_critique(messages):
            self.critique_calls += 1
            return GenerationResult(text=f"critique {self.critique_calls}")
        self.generate_calls += 1
        return GenerationResult(image=f"image-{self.generate_calls}".encode())

    @property
    def total_calls(self):
        return self.generate_calls + self.critique_calls


def data_url(data: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode()}"


@pytest.fixture
def png_bytes():
    buf = BytesIO()
    Image.new("RGB", (4, 4), "white").save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def jpeg_bytes():
    buf = BytesIO()
    Image.new("RGB", (4, 4), "red").save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def gemini_settings():
    return Settings(provider=Provider.GEMINI, gemini_api_key="g-key")


@pytest.fixture
def openrouter_settings():
    return Settings(provider=Provider.OPENROUTER, openrouter_api_key="or-key")


@pytest.fixture
def ref_image(tmp_path):
    path = tmp_path / "ref.jpg"
    path.write_bytes(b"reference-bytes")
    return path
