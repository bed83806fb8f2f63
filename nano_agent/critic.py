"""Vision critique of generated images."""

import logging
from pathlib import Path
from typing import Sequence, Union

from .errors import NoResultError
from .media import load_image_part
from .schemas import ImagePart, Message, Role, TextPart

logger = logging.getLogger(__name__)


CRITIQUE_INSTRUCTION = """You are an expert image QA reviewer. Given the latest generated image (not the original), the original prompt, and any input reference images, return ONLY a single valid JSON object describing exactly what to KEEP and what to CHANGE next. No prose outside JSON.

Use this exact schema:

{
  "keep_notes": [string, ...],
  "summary_keep": [string, ...],
  "summary_change": [string, ...],
  "edits": [
    {
      "id": string,
      "target": {
        "type": "object"|"region"|"global",
        "label": string,
        "bbox": { "x": number, "y": number, "w": number, "h": number } | null,
        "points": [ { "x": number, "y": number }, ... ] | null
      },
      "priority": "CRITICAL"|"MAJOR"|"MINOR",
      "instruction": string,
      "rationale": string,
      "done_when": string
    }
  ]
}

Rules:
- JSON must be strictly valid and parseable; no markdown code fences.
- No text outside the JSON object.
- Coordinates normalized 0-1 relative to image width/height.
- Max 8 edits; prioritize CRITICAL then MAJOR then MINOR.
"""

ESCALATION_HEADER = "[CRITICAL - persisted] Fix unresolved items with imperative directives."


def escalate_unresolved(previous: str, current: str) -> str:
    """Combine a previous and current critique so unresolved items are emphasized.

    Returns an empty string when both are blank.
    """
    combined = f"{previous}\n\n{current}".strip()
    if not combined:
        return ""
    return f"{ESCALATION_HEADER}\n\n{combined}"


class ImageCritic:
    """Critiques images with a stateless, text-only provider call."""

    def __init__(self, client):
        """Initialize the critic.

        Args:
            client: ProviderClient used for critique calls.
        """
        self.client = client

    def build_message(
        self,
        image: ImagePart,
        prompt: str,
        fragments: Sequence[str] = (),
        reference_images: Sequence[ImagePart] = (),
    ) -> Message:
        parts = [TextPart(text=CRITIQUE_INSTRUCTION)]
        if prompt.strip():
            parts.append(TextPart(text=f"Original prompt:\n{prompt.strip()}"))
        parts.append(image)
        if reference_images:
            parts.append(TextPart(text="Original input images for reference:"))
            parts.extend(reference_images)
        parts.extend(TextPart(text=f) for f in fragments)
        return Message(role=Role.USER, parts=parts)

    def critique(
        self,
        image: Union[ImagePart, Path, str],
        prompt: str,
        fragments: Sequence[str] = (),
        reference_images: Sequence[ImagePart] = (),
        previous_critique: str = "",
    ) -> str:
        """Ask the model for actionable critique of ``image``.

        Args:
            image: The latest generated image, as an ImagePart or a file path.
            prompt: The original prompt the image should satisfy.
            fragments: Fragment texts appended to the request.
            reference_images: Original input images, for context.
            previous_critique: Critique from an earlier round; when given,
                unresolved items are escalated.

        Returns:
            The critique text.

        Raises:
            NoResultError: If the model returned no text.
        """
        if not isinstance(image, ImagePart):
            image = load_image_part(image)

        message = self.build_message(image, prompt, fragments, reference_images)
        logger.debug("requesting critique via %s", self.client.name)
        result = self.client.send([message])

        text = result.text.strip()
        if not text:
            raise NoResultError("no text returned by model")
        if previous_critique.strip():
            return escalate_unresolved(previous_critique, text)
        return text
