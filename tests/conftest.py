"""Shared fixtures for MommyBook unit tests."""

from __future__ import annotations

import asyncio
from io import BytesIO

import pytest
from PIL import Image

from mommybook.ai_generation.base import BookProvider, IllustrationImage
from mommybook.credentials import CredentialManager
from mommybook.story_generation import BookInputSpec, FrameDraft, ScriptDraft

TEST_KEY = "test-key-0123456789abcdef"


def make_png(width: int = 32, height: int = 18, color: tuple[int, int, int] = (255, 180, 0)) -> bytes:
    """Create a small solid-color PNG."""
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_script_draft(frame_count: int = 3, title: str = "The Lost Kite") -> ScriptDraft:
    return ScriptDraft(
        title=title,
        introduction="Mia's red kite flies away on a windy afternoon.",
        character_design="Mia: six years old, curly black hair, yellow raincoat, red kite.",
        cover_prompt="Mia holding her red kite on a grassy hill",
        frames=tuple(
            FrameDraft(
                story_text=f"Story text for frame {index}.",
                scene_description=f"Scene description for frame {index}",
            )
            for index in range(1, frame_count + 1)
        ),
    )


class FakeProvider(BookProvider):
    """
    Scripted provider recording every call.

    ``illustration_gates`` maps a scene prompt to an :class:`asyncio.Event` the call waits
    on, so tests can control completion order.
    """

    name = "fake"

    def __init__(self) -> None:
        self.script: ScriptDraft | Exception = make_script_draft()
        self.style: str | Exception = "Soft watercolor, pastel palette"
        self.illustration_errors: dict[str, Exception] = {}
        self.illustration_gates: dict[str, asyncio.Event] = {}
        self.script_calls: list[BookInputSpec] = []
        self.illustration_calls: list[dict] = []
        self.style_calls: list[tuple[bytes, str]] = []

    async def analyze_style(self, image: bytes, mime_type: str) -> str:
        self.style_calls.append((image, mime_type))
        if isinstance(self.style, Exception):
            raise self.style
        return self.style

    async def generate_script(self, brief: BookInputSpec) -> ScriptDraft:
        self.script_calls.append(brief)
        if isinstance(self.script, Exception):
            raise self.script
        return self.script

    async def generate_illustration(
        self,
        scene_prompt: str,
        style_prompt: str,
        visual_anchor: str = "",
        character_design: str = "",
        aspect_ratio: str = "16:9",
    ) -> IllustrationImage:
        self.illustration_calls.append(
            {
                "scene_prompt": scene_prompt,
                "style_prompt": style_prompt,
                "visual_anchor": visual_anchor,
                "character_design": character_design,
                "aspect_ratio": aspect_ratio,
            }
        )
        gate = self.illustration_gates.get(scene_prompt)
        if gate is not None:
            await gate.wait()
        error = self.illustration_errors.get(scene_prompt)
        if error is not None:
            raise error
        return IllustrationImage(data=make_png(), mime_type="image/png")


class FakePicker:
    """
    Credential picker that stores a key into the supplied environment mapping.

    Opening yields to the event loop once, so overlapping sessions show up in
    ``max_open_at_once``.
    """

    def __init__(self, environ: dict[str, str], *, key: str = TEST_KEY, fail: bool = False) -> None:
        self.environ = environ
        self.key = key
        self.fail = fail
        self.open_calls = 0
        self.open_now = 0
        self.max_open_at_once = 0

    async def has_selected_credential(self) -> bool:
        return bool(self.environ.get("MOMMYBOOK_API_KEY"))

    async def open_select_credential(self) -> None:
        self.open_calls += 1
        self.open_now += 1
        self.max_open_at_once = max(self.max_open_at_once, self.open_now)
        try:
            await asyncio.sleep(0)
            if self.fail:
                raise RuntimeError("picker closed")
            self.environ["MOMMYBOOK_API_KEY"] = self.key
        finally:
            self.open_now -= 1


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def brief() -> BookInputSpec:
    return BookInputSpec(
        title="The Lost Kite",
        theme="perseverance",
        word_count=400,
        visual_anchor="Mia always wears a yellow raincoat",
        style_prompt="Soft watercolor",
        introduction="A girl chases her kite across town.",
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def env_with_key() -> dict[str, str]:
    return {"MOMMYBOOK_API_KEY": TEST_KEY}


@pytest.fixture
def credentials(env_with_key) -> CredentialManager:
    return CredentialManager(environ=env_with_key)
