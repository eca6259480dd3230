"""
Utility script to exercise style analysis with a single reference illustration.

Usage:
    python scripts/analyze_style_example.py \
        --image example_images/watercolor.jpg \
        --backend gemini

Environment variables:
    MOMMYBOOK_API_KEY  - required unless the backend-specific variable is set
"""

from __future__ import annotations

import argparse
import asyncio
import mimetypes
import sys
from dataclasses import replace
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mommybook import GenerationOrchestrator, ProviderSettings, build_credential_manager, build_provider


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Describe the art style of a reference illustration for MommyBook prompts."
    )
    parser.add_argument(
        "--image",
        required=True,
        help="Path to the reference illustration.",
    )
    parser.add_argument(
        "--backend",
        default=None,
        help="Optional backend override (gemini, ark, or replicate).",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    settings = ProviderSettings.from_env()
    if args.backend:
        settings = replace(settings, backend=args.backend)

    credentials = build_credential_manager(settings)
    orchestrator = GenerationOrchestrator(
        provider=build_provider(settings, credentials),
        credentials=credentials,
    )

    image_path = Path(args.image)
    mime_type = mimetypes.guess_type(image_path.name)[0] or "image/jpeg"

    print("Running style analysis with the following parameters:")
    print(f"  Image   : {image_path}")
    print(f"  Backend : {settings.backend}")

    result = await orchestrator.analyze_style(image_path.read_bytes(), mime_type)
    if not result.ok:
        print(f"\nStyle analysis failed: {result.message}")
        return 1

    print("\nStyle prompt:")
    print(f"  {result.value}")
    return 0


def main(argv: list[str]) -> int:
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
