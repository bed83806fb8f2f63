"""One-shot image generation."""

import logging
from pathlib import Path
from typing import Sequence, Union

import config

from .errors import NoResultError, ProviderError
from .media import load_image_part, save_image
from .refiner import build_effective_prompt
from .schemas import ImagePart, Message, Role, TextPart

logger = logging.getLogger(__name__)


class ImageGenerator:
    """Generates a single image with a stateless request."""

    def __init__(self, client, image_attempts: int = config.IMAGE_ATTEMPTS):
        """Initialize the generator.

        Args:
            client: ProviderClient used for generation.
            image_attempts: Attempts made with input images attached before
                falling back to a text-only request.
        """
        self.client = client
        self.image_attempts = image_attempts

    def _request(self, text: str, images: Sequence[ImagePart]) -> bytes:
        message = Message(role=Role.USER, parts=[TextPart(text=text), *images])
        result = self.client.send([message])
        if not result.has_image:
            raise NoResultError(text=result.text)
        return result.image

    def generate(
        self,
        prompt: str,
        fragments: Sequence[str] = (),
        image_paths: Sequence[Union[str, Path]] = (),
    ) -> bytes:
        """Generate an image from a prompt, fragments and optional input images.

        With input images, up to ``image_attempts`` requests are made with
        the images attached, then one text-only request. If every attempt
        fails, the text-only attempt's error is raised.

        Returns:
            The generated image bytes.
        """
        text = build_effective_prompt(prompt, fragments)
        images = [load_image_part(p) for p in image_paths]

        if images:
            for attempt in range(1, self.image_attempts + 1):
                logger.debug("generation attempt %d with %d image(s)", attempt, len(images))
                try:
                    return self._request(text, images)
                except (ProviderError, NoResultError) as e:
                    logger.warning("generation attempt %d failed: %s", attempt, e)

        logger.debug("generation attempt with text only")
        return self._request(text, [])

    def generate_and_save(
        self,
        prompt: str,
        output_path: Path,
        fragments: Sequence[str] = (),
        image_paths: Sequence[Union[str, Path]] = (),
    ) -> Path:
        """Generate an image and save it to disk.

        Returns:
            The saved image path.
        """
        data = self.generate(prompt, fragments=fragments, image_paths=image_paths)
        return save_image(data, output_path)
