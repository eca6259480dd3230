"""
CLI example to run the complete MommyBook pipeline end-to-end.

Usage:
    python scripts/run_picture_book.py \
        --brief lost_kite.yaml \
        --style-image example_images/watercolor.jpg \
        --output-dir out/

Environment variables:
    MOMMYBOOK_API_KEY / API_KEY  - shared provider key (or the backend-specific variable)
    MOMMYBOOK_BACKEND            - gemini (default), ark, or replicate
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Any, Dict

from tqdm.auto import tqdm

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mommybook import (
    BookInputSpec,
    GenerationOrchestrator,
    ProviderSettings,
    build_credential_manager,
    build_provider,
)
from mommybook.common import load_mapping_file
from mommybook.credentials import ConsoleCredentialPicker


class ProgressTracker:
    """
    Provides user-friendly command-line progress updates for the MommyBook pipeline.
    """

    def __init__(self, *, expect_images: bool = True) -> None:
        self._expect_images = expect_images
        self._frame_bar: tqdm | None = None

    def __call__(self, stage: str, payload: Dict[str, Any]) -> None:
        match stage:
            case "style:analyzed":
                self._write(f"[1/4] Style captured: {payload.get('style_prompt', '')}")
            case "script:generating":
                title = payload.get("title", "")
                self._write(f"[2/4] Writing the script for {title!r}...")
            case "script:ready":
                total = payload.get("total_frames", 0)
                self._write(f"[2/4] Script ready with {total} frames.")
                if self._expect_images:
                    self._write("[3/4] Illustrating frames...")
                    self._frame_bar = tqdm(total=total, desc="Illustrated frames", unit="frame")
            case "frame:settled":
                if self._frame_bar is not None:
                    self._frame_bar.update(1)
            case "cover:in_flight":
                self._write(f"[3/4] Painting the cover ({payload.get('aspect_ratio')})...")
            case "cover:settled":
                self._write("[3/4] Cover ready." if payload.get("ok") else "[3/4] Cover failed.")
            case "operation:failed":
                label = payload.get("frame_id") or payload.get("operation", "operation")
                self._write(f"  ! {label}: {payload.get('message', '')}")

    def close(self) -> None:
        if self._frame_bar is not None:
            self._frame_bar.close()
            self._frame_bar = None

    @staticmethod
    def _write(message: str) -> None:
        tqdm.write(message)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate an illustrated MommyBook picture book.")
    parser.add_argument(
        "--brief",
        required=True,
        help="Path to the book brief YAML/JSON file.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional provider settings YAML. Environment variables are used otherwise.",
    )
    parser.add_argument(
        "--output-dir",
        default="mommybook_output",
        help="Directory receiving the slide deck and the cover image.",
    )
    parser.add_argument(
        "--style-image",
        default=None,
        help="Reference illustration whose art style replaces the brief's style prompt.",
    )
    parser.add_argument(
        "--cover-aspect",
        choices=("16:9", "9:16"),
        default="16:9",
        help="Aspect ratio of the cover illustration.",
    )
    parser.add_argument(
        "--skip-images",
        action="store_true",
        help="Only write the script; every frame slide gets a placeholder.",
    )
    parser.add_argument(
        "--no-cover",
        action="store_true",
        help="Do not generate a cover illustration.",
    )
    parser.add_argument(
        "--interactive-key",
        action="store_true",
        help="Prompt for an API key on the terminal when none is configured.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level for library messages (default: WARNING).",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    settings = ProviderSettings.from_yaml(args.config) if args.config else ProviderSettings.from_env()
    picker = (
        ConsoleCredentialPicker(variable_name=settings.credential_variables[0])
        if args.interactive_key
        else None
    )
    credentials = build_credential_manager(settings, picker=picker)
    provider = build_provider(settings, credentials)

    tracker = ProgressTracker(expect_images=not args.skip_images)
    orchestrator = GenerationOrchestrator(provider=provider, credentials=credentials, listener=tracker)

    brief = BookInputSpec.from_mapping(load_mapping_file(args.brief))
    tqdm.write(f"Using the {settings.backend} backend.")

    try:
        if args.style_image:
            image_path = Path(args.style_image)
            mime_type = mimetypes.guess_type(image_path.name)[0] or "image/jpeg"
            style = await orchestrator.analyze_style(image_path.read_bytes(), mime_type)
            if style.ok:
                brief = brief.replace_style_prompt(style.value)
            else:
                tqdm.write("[1/4] Keeping the brief's style prompt.")

        script = await orchestrator.submit_script(brief)
        if not script.ok:
            tqdm.write(f"Script generation did not complete: {script.message}")
            return 1

        document = orchestrator.document
        tasks = []
        if not args.skip_images:
            tasks.extend(orchestrator.request_frame_image(frame_id) for frame_id in document.frame_ids)
        if not args.no_cover:
            tasks.append(orchestrator.request_cover(args.cover_aspect))
        await asyncio.gather(*(task for task in tasks if task is not None))
    finally:
        tracker.close()

    tqdm.write("[4/4] Exporting the slide deck...")
    saved = orchestrator.save_document(args.output_dir)
    if not saved.ok:
        tqdm.write(f"Export failed: {saved.message}")
        return 1
    tqdm.write(f"Saved slide deck to {saved.value}")

    cover = orchestrator.document.cover
    if cover.image is not None:
        extension = mimetypes.guess_extension(cover.image.mime_type) or ".png"
        cover_path = saved.value.with_name(f"{saved.value.stem}-cover{extension}")
        cover_path.write_bytes(cover.image.data)
        tqdm.write(f"Saved cover illustration to {cover_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
