#!/usr/bin/env python3
"""Entry point for nano-agent.

Usage:
    # Generate a single image
    python main.py generate -p "Ultra-realistic product shot of a ceramic mug" -o mug.png

    # Edit reference images, appending prompt fragments
    python main.py generate -p "Studio portrait" --images base.png ref1.png -f fragments/realism.txt

    # Generate, then run 3 critique-improve loops
    python main.py loop -p "Portrait of..." -i base.png -o output.png -cl 3

    # Critique an existing image
    python main.py critique --image output.png -p "Portrait of..."
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import config


def normalize_args(argv: Sequence[str]) -> list[str]:
    """Rewrite the short ``-cl N`` alias to ``--critique-loops N``."""
    out = []
    for arg in argv:
        if arg == "-cl":
            out.append("--critique-loops")
        elif arg.startswith("-cl="):
            out.append("--critique-loops" + arg[3:])
        else:
            out.append(arg)
    return out


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _output_path(args: argparse.Namespace) -> Path:
    from nano_agent.media import ensure_png_path

    return ensure_png_path(args.output)


def run_generate(args: argparse.Namespace, settings: config.Settings) -> None:
    """Generate one image from CLI."""
    from nano_agent.errors import ConfigError
    from nano_agent.generator import ImageGenerator
    from nano_agent.llm import get_client
    from nano_agent.postprocess import add_transparent_hint, make_background_transparent
    from nano_agent.refiner import load_fragments

    if not args.prompt.strip():
        raise ConfigError("--prompt is required")
    fragments = load_fragments(args.fragment)
    output = _output_path(args)
    prompt = add_transparent_hint(args.prompt) if args.transparent else args.prompt

    generator = ImageGenerator(get_client(settings, args.model))
    generator.generate_and_save(
        prompt, output, fragments=fragments, image_paths=args.images
    )
    print(f"Generated image saved at: {output}")

    if args.transparent:
        make_background_transparent(output, fuzz=settings.bg_fuzz)
        print(f"Applied transparent background post-process: {output}")


def run_loop(args: argparse.Namespace, settings: config.Settings) -> None:
    """Run the generate-and-critique loop from CLI."""
    from nano_agent.errors import ConfigError
    from nano_agent.llm import get_client
    from nano_agent.pipeline import CritiqueLoopPipeline
    from nano_agent.postprocess import add_transparent_hint, make_background_transparent
    from nano_agent.schemas import LoopIteration

    # Rejected before the client (and its credentials) are touched
    if args.critique_loops < 0:
        raise ConfigError("--critique-loops must be >= 0")
    if not args.prompt.strip():
        raise ConfigError("--prompt is required")

    output = _output_path(args)
    prompt = add_transparent_hint(args.prompt) if args.transparent else args.prompt

    print(f"\n{'='*60}")
    print("nano-agent critique loop")
    print(f"{'='*60}\n")
    print(f"Prompt: {args.prompt}")
    print(f"Provider: {settings.provider.value}")
    print(f"Critique loops: {args.critique_loops}")
    print()

    def on_iteration(iteration: LoopIteration):
        """Callback to print progress."""
        print(f"\n=== Critique loop {iteration.index}/{args.critique_loops} ===")
        print("Critique feedback:")
        print(iteration.critique)
        print(f"Improved image saved at: {iteration.image_path}")
        print(f"Iteration copy saved at: {iteration.snapshot_path}")

    postprocess = None
    if args.transparent:
        def postprocess(path: Path) -> Path:
            return make_background_transparent(path, fuzz=settings.bg_fuzz)

    pipeline = CritiqueLoopPipeline(get_client(settings, args.model), postprocess=postprocess)
    result = pipeline.run(
        prompt=prompt,
        output_path=output,
        loops=args.critique_loops,
        image_paths=args.images,
        fragment_paths=args.fragment,
        critique_prompt=args.prompt,
        on_iteration=on_iteration,
    )

    print(f"\n{'='*60}")
    print("COMPLETE")
    print(f"{'='*60}")
    print(f"Loops completed: {len(result.iterations)}")
    print(f"Final image: {result.output_path}")


def run_critique(args: argparse.Namespace, settings: config.Settings) -> None:
    """Critique an existing image from CLI."""
    from nano_agent.critic import ImageCritic
    from nano_agent.errors import ConfigError
    from nano_agent.llm import get_client
    from nano_agent.media import load_image_part
    from nano_agent.refiner import load_fragments

    if not args.prompt.strip():
        raise ConfigError("--prompt is required")
    image = load_image_part(args.image)
    fragments = load_fragments(args.fragment)

    critic = ImageCritic(get_client(settings, args.model))
    print(critic.critique(
        image,
        args.prompt,
        fragments=fragments,
        previous_critique=args.prev_critique,
    ))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nano-agent",
        description="Image generation and critique CLI for Gemini and OpenRouter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--version", "-v",
        action="store_true",
        help="Print version and exit",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--model",
        type=str,
        default=None,
        help=f"Model for generation and critique (default: $NANO_MODEL or {config.DEFAULT_MODEL})",
    )
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Dotenv file with settings and API keys (default: {config.USER_CONFIG_FILE})",
    )
    common.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging (also $NANO_DEBUG=1)",
    )
    common.add_argument(
        "--prompt", "-p",
        type=str,
        required=True,
        help="Text prompt guiding the generation",
    )
    common.add_argument(
        "--fragment", "-f",
        type=Path,
        action="append",
        default=[],
        help="Text file appended to the prompt (repeatable)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    generating = argparse.ArgumentParser(add_help=False, parents=[common])
    generating.add_argument(
        "--images", "-i",
        nargs="+",
        action="extend",
        type=Path,
        default=[],
        help="Zero or more input image paths (repeatable)",
    )
    generating.add_argument(
        "--output", "-o",
        type=Path,
        default=config.DEFAULT_OUTPUT,
        help=f"Path to save the generated PNG image (default: {config.DEFAULT_OUTPUT})",
    )
    generating.add_argument(
        "--transparent", "-t",
        action="store_true",
        help="Request a white background and post-process it to transparency (needs ImageMagick)",
    )

    subparsers.add_parser(
        "generate",
        parents=[generating],
        help="Generate an image from a prompt and optional input images",
    )

    loop_parser = subparsers.add_parser(
        "loop",
        parents=[generating],
        help="Generate an image, then run critique-improve loops",
    )
    loop_parser.add_argument(
        "--critique-loops", "-c",
        type=int,
        default=config.DEFAULT_CRITIQUE_LOOPS,
        help=f"Number of critique-improve loops (default: {config.DEFAULT_CRITIQUE_LOOPS}; alias -cl)",
    )

    critique_parser = subparsers.add_parser(
        "critique",
        parents=[common],
        help="Critique an image for artifacts and prompt mismatches",
    )
    critique_parser.add_argument(
        "--image",
        type=Path,
        required=True,
        help="Path to the image to critique",
    )
    critique_parser.add_argument(
        "--prev-critique",
        type=str,
        default="",
        help="Previous critique, to escalate unresolved items",
    )

    return parser


COMMANDS = {
    "generate": run_generate,
    "loop": run_loop,
    "critique": run_critique,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    from nano_agent import __version__
    from nano_agent.errors import ConfigError, NanoAgentError
    from nano_agent.llm import load_settings

    parser = build_parser()
    args = parser.parse_args(normalize_args(sys.argv[1:] if argv is None else argv))

    if args.version:
        print(__version__)
        return 0
    if args.command not in COMMANDS:
        parser.print_help()
        return 1

    try:
        try:
            config.load_config_file(args.config)
        except FileNotFoundError as e:
            raise ConfigError(str(e)) from e
        settings = load_settings()
        setup_logging(args.verbose or settings.debug)
        COMMANDS[args.command](args, settings)
    except NanoAgentError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
