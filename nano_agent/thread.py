"""Multi-turn conversation history for iterative image generation."""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Union

from .errors import NoResultError, ThreadStateError
from .media import image_part_from_bytes, load_image_part
from .refiner import build_effective_prompt
from .schemas import GenerationResult, ImagePart, Message, Role, TextPart

logger = logging.getLogger(__name__)


class ThreadState(str, Enum):
    EMPTY = "empty"
    SEEDED = "seeded"
    AWAITING_REPLY = "awaiting_reply"
    HAS_REPLY = "has_reply"


class ConversationThread:
    """Accumulates user and assistant turns and resends them on every call.

    The original reference images are re-attached to every later user turn
    so the model keeps them in view. A failed call never appends an
    assistant turn, so ``generate()`` can be retried as-is.
    """

    def __init__(self, client):
        self.client = client
        self._messages: list[Message] = []
        self._reference_images: list[ImagePart] = []
        self._awaiting = False

    @property
    def model(self) -> str:
        return self.client.model

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def reference_images(self) -> tuple[ImagePart, ...]:
        return tuple(self._reference_images)

    @property
    def state(self) -> ThreadState:
        if self._awaiting:
            return ThreadState.AWAITING_REPLY
        if not self._messages:
            return ThreadState.EMPTY
        if self._messages[-1].role is Role.USER:
            return ThreadState.SEEDED
        return ThreadState.HAS_REPLY

    def _append_user(self, parts: list) -> None:
        message = Message(role=Role.USER, parts=parts)
        if message.is_empty:
            raise ThreadStateError("user turn has no text or image content")
        self._messages.append(message)

    def seed(
        self,
        prompt: str,
        fragments: Sequence[str] = (),
        image_paths: Sequence[Union[str, Path]] = (),
    ) -> None:
        """Start the thread with the initial prompt, fragments and input images."""
        if self.state is not ThreadState.EMPTY:
            raise ThreadStateError(f"cannot seed a thread in state {self.state.value}")
        images = [load_image_part(p) for p in image_paths]
        parts = [TextPart(text=build_effective_prompt(prompt, fragments)), *images]
        self._append_user(parts)
        self._reference_images = images

    def generate(self) -> GenerationResult:
        """Send the full history and append the assistant's reply.

        Raises:
            ThreadStateError: If the thread is empty or a call is in flight.
            NoResultError: If the reply had neither image nor text.
            ProviderError: If the provider call failed.
        """
        if self.state not in (ThreadState.SEEDED, ThreadState.HAS_REPLY):
            raise ThreadStateError(f"cannot generate from state {self.state.value}")

        self._awaiting = True
        try:
            result = self.client.send(self.messages)
        finally:
            self._awaiting = False

        if result.is_empty:
            raise NoResultError()

        parts = []
        if result.text.strip():
            parts.append(TextPart(text=result.text))
        if result.has_image:
            parts.append(image_part_from_bytes(result.image))
        self._messages.append(Message(role=Role.ASSISTANT, parts=parts))
        logger.debug(
            "thread now has %d turns (image=%s)", len(self._messages), result.has_image
        )
        return result

    def add_user_turn_and_generate(
        self, text: str, image_path: Optional[Union[str, Path]] = None
    ) -> GenerationResult:
        """Append a follow-up user turn, then generate.

        Args:
            text: Instruction for this turn (e.g. an improvement prompt).
            image_path: Optional image attached for reference, usually the
                latest output.
        """
        if self.state is not ThreadState.HAS_REPLY:
            raise ThreadStateError(f"cannot add a user turn in state {self.state.value}")
        parts = [TextPart(text=text)]
        if image_path is not None:
            parts.append(load_image_part(image_path))
        parts.extend(self._reference_images)
        self._append_user(parts)
        return self.generate()
