"""Main generate-and-critique loop orchestrator."""

import logging
from pathlib import Path
from typing import Callable, Generator, Optional, Sequence, Union

import config

from .critic import ImageCritic
from .errors import ConfigError, NoResultError
from .media import load_image_part, save_image, snapshot
from .refiner import build_improvement_prompt, load_fragments
from .schemas import GenerationResult, LoopIteration, PipelineResult
from .thread import ConversationThread

logger = logging.getLogger(__name__)


class CritiqueLoopPipeline:
    """Generates an image, then runs N critique-improve rounds on one thread."""

    def __init__(
        self,
        client,
        critic: Optional[ImageCritic] = None,
        thread_factory: Callable[..., ConversationThread] = ConversationThread,
        postprocess: Optional[Callable[[Path], Path]] = None,
    ):
        """Initialize the pipeline.

        Args:
            client: ProviderClient used for generation.
            critic: Image critic instance. Creates one on ``client`` if None.
            thread_factory: Builds the conversation thread for a run.
            postprocess: Optional step applied to every written image
                (e.g. background removal).
        """
        self.client = client
        self.critic = critic or ImageCritic(client)
        self.thread_factory = thread_factory
        self.postprocess = postprocess

    @staticmethod
    def snapshot_path(output_path: Path, index: int) -> Path:
        """Numbered copy location: ``<dir>/outputs/<stem>_improved_<index><suffix>``."""
        outputs_dir = output_path.parent / config.OUTPUTS_SUBDIR
        return outputs_dir / f"{output_path.stem}_improved_{index}{output_path.suffix}"

    def _write(self, result: GenerationResult, output_path: Path) -> Path:
        if not result.has_image:
            raise NoResultError(text=result.text)
        save_image(result.image, output_path)
        if self.postprocess is not None:
            self.postprocess(output_path)
        return output_path

    def iterate(
        self,
        prompt: str,
        output_path: Union[str, Path],
        loops: int = config.DEFAULT_CRITIQUE_LOOPS,
        image_paths: Sequence[Union[str, Path]] = (),
        fragment_paths: Sequence[Union[str, Path]] = (),
        critique_prompt: Optional[str] = None,
    ) -> Generator[LoopIteration, None, None]:
        """Run the loop as a generator, yielding each completed round.

        The initial image is written to ``output_path`` before the first
        round starts.

        Args:
            prompt: Prompt for the initial generation.
            output_path: Main output file, overwritten every round.
            loops: Number of critique-improve rounds (0 skips the loop).
            image_paths: Reference images sent with the initial prompt and
                re-attached on every later turn.
            fragment_paths: Text files appended to the prompt.
            critique_prompt: Prompt the critic judges against. Defaults to
                ``prompt``.

        Yields:
            One LoopIteration per completed round.

        Raises:
            ConfigError: For invalid input, before any provider call.
        """
        if loops < 0:
            raise ConfigError("--critique-loops must be >= 0")
        if not prompt.strip():
            raise ConfigError("--prompt is required")
        output_path = Path(output_path)
        fragments = load_fragments(fragment_paths)
        for path in image_paths:
            load_image_part(path)
        critique_prompt = prompt if critique_prompt is None else critique_prompt

        thread = self.thread_factory(self.client)
        thread.seed(prompt, fragments=fragments, image_paths=image_paths)
        self._write(thread.generate(), output_path)
        logger.info("initial image written to %s", output_path)

        for i in range(1, loops + 1):
            critique = self.critic.critique(
                image=output_path,
                prompt=critique_prompt,
                fragments=fragments,
                reference_images=thread.reference_images,
            )
            instruction = build_improvement_prompt(critique_prompt, critique)
            self._write(thread.add_user_turn_and_generate(instruction, output_path), output_path)
            copy = snapshot(output_path, self.snapshot_path(output_path, i))
            logger.info("loop %d/%d complete, snapshot %s", i, loops, copy)

            yield LoopIteration(
                index=i, critique=critique, image_path=output_path, snapshot_path=copy
            )

    def run(
        self,
        prompt: str,
        output_path: Union[str, Path],
        loops: int = config.DEFAULT_CRITIQUE_LOOPS,
        image_paths: Sequence[Union[str, Path]] = (),
        fragment_paths: Sequence[Union[str, Path]] = (),
        critique_prompt: Optional[str] = None,
        on_iteration: Optional[Callable[[LoopIteration], None]] = None,
    ) -> PipelineResult:
        """Run the full loop.

        Args:
            on_iteration: Optional callback called after each round.
            Other arguments are as for ``iterate``.

        Returns:
            Pipeline result with every completed round.
        """
        iterations: list[LoopIteration] = []
        for iteration in self.iterate(
            prompt,
            output_path,
            loops=loops,
            image_paths=image_paths,
            fragment_paths=fragment_paths,
            critique_prompt=critique_prompt,
        ):
            iterations.append(iteration)
            if on_iteration:
                on_iteration(iteration)

        return PipelineResult(
            output_path=Path(output_path), iterations=iterations, total_loops=loops
        )
