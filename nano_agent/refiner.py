"""Prompt assembly for generation and improvement rounds."""

from pathlib import Path
from typing import Iterable, Sequence, Union

from .errors import ConfigError
from .media import is_image_path

IMPROVEMENT_INSTRUCTION = (
    "Now apply the critique below to improve the image. Prioritize items tagged "
    "[CRITICAL - persisted] first, then [MAJOR], then [MINOR]. Use decisive, localized "
    "fixes and avoid regressions on items marked done. Then implement the "
    "'Targeted actions to apply now' if present."
)


def build_effective_prompt(main: str, fragments: Iterable[str]) -> str:
    """Join the main prompt and non-empty fragments with blank lines.

    >>> build_effective_prompt("base", ["A", "", "B"])
    'base\\n\\nA\\n\\nB'
    """
    parts = [main] if main.strip() else []
    parts.extend(f.strip() for f in fragments if f.strip())
    return "\n\n".join(parts)


def load_fragments(paths: Sequence[Union[str, Path]]) -> list[str]:
    """Read fragment files as trimmed UTF-8 text.

    Raises:
        ConfigError: If a path is missing or points at an image.
    """
    fragments = []
    for path in map(Path, paths):
        if is_image_path(path):
            raise ConfigError(f"--fragment expects text files; got image file: {path}")
        if not path.is_file():
            raise ConfigError(f"fragment not found: {path}")
        fragments.append(path.read_text(encoding="utf-8").strip())
    return fragments


def build_improvement_prompt(original_prompt: str, critique: str) -> str:
    """Build the instruction that asks the model to apply a critique."""
    original = original_prompt.strip() or "(no original prompt provided)"
    critique = critique.strip() or "(no critique provided)"
    return (
        "This image was generated with the following original prompt:\n\n"
        f"{original}\n\n"
        f"{IMPROVEMENT_INSTRUCTION}\n\n"
        "Critique follows:\n\n"
        f"{critique}"
    )
