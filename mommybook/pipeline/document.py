"""
Immutable generated-document model and the pure deltas applied to it.

Every mutation after script generation is expressed as ``delta(document) -> document``.
Frames are located by identity, never by position, and frames other than the target are
carried over as the very same objects, so concurrent completions can land in any order.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Iterable

from mommybook.ai_generation.base import AspectRatio, IllustrationImage
from mommybook.story_generation import BookInputSpec, ScriptDraft


class FrameStatus(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SETTLED_OK = "settled_ok"
    SETTLED_ERROR = "settled_error"

    @property
    def is_settled(self) -> bool:
        return self in (FrameStatus.SETTLED_OK, FrameStatus.SETTLED_ERROR)


def new_frame_id() -> str:
    return f"frame-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class Frame:
    """
    One narrative beat: its narration, its illustration brief, and its image slot.
    """

    frame_id: str
    story_text: str
    scene_description: str
    image: IllustrationImage | None = None
    status: FrameStatus = FrameStatus.IDLE
    error: str | None = None

    def __post_init__(self) -> None:
        if self.status is FrameStatus.IN_FLIGHT and self.image is not None:
            raise ValueError("A frame cannot hold an image while its generation is in flight.")


@dataclass(frozen=True)
class CoverSlot:
    status: FrameStatus = FrameStatus.IDLE
    image: IllustrationImage | None = None
    aspect_ratio: AspectRatio = "16:9"
    error: str | None = None


@dataclass(frozen=True)
class GeneratedDocument:
    """
    The picture book in flight: script fields, cover slot, and frames in narrative order.

    ``style_prompt`` and ``visual_anchor`` are captured from the brief at script time so
    that every later illustration call uses the same cues.
    """

    title: str
    introduction: str
    character_design: str
    cover_prompt: str
    frames: tuple[Frame, ...]
    style_prompt: str = ""
    visual_anchor: str = ""
    cover: CoverSlot = field(default_factory=CoverSlot)
    document_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        ids = [frame.frame_id for frame in self.frames]
        if len(ids) != len(set(ids)):
            raise ValueError("Frame ids must be unique within a document.")

    @classmethod
    def from_draft(cls, draft: ScriptDraft, brief: BookInputSpec) -> "GeneratedDocument":
        """
        Build a fresh document from a parsed script, minting a new id for every frame.
        """
        if not draft.frames:
            raise ValueError("A generated document needs at least one frame.")

        frames = tuple(
            Frame(
                frame_id=new_frame_id(),
                story_text=frame.story_text,
                scene_description=frame.scene_description,
            )
            for frame in draft.frames
        )
        return cls(
            title=draft.title,
            introduction=draft.introduction,
            character_design=draft.character_design,
            cover_prompt=draft.cover_prompt,
            frames=frames,
            style_prompt=brief.style_prompt,
            visual_anchor=brief.visual_anchor,
        )

    @property
    def frame_ids(self) -> tuple[str, ...]:
        return tuple(frame.frame_id for frame in self.frames)

    def find_frame(self, frame_id: str) -> Frame | None:
        for frame in self.frames:
            if frame.frame_id == frame_id:
                return frame
        return None

    def frames_with_status(self, status: FrameStatus) -> list[Frame]:
        return [frame for frame in self.frames if frame.status is status]


DocumentDelta = Callable[[GeneratedDocument], GeneratedDocument]


def update_frame(document: GeneratedDocument, frame_id: str, **changes: Any) -> GeneratedDocument:
    """
    Return a copy of ``document`` with ``changes`` applied to the frame ``frame_id`` only.

    An unknown id returns ``document`` itself, unchanged.
    """
    if document.find_frame(frame_id) is None:
        return document

    frames = tuple(
        replace(frame, **changes) if frame.frame_id == frame_id else frame
        for frame in document.frames
    )
    return replace(document, frames=frames)


def mark_frame_in_flight(document: GeneratedDocument, frame_id: str) -> GeneratedDocument:
    return update_frame(document, frame_id, status=FrameStatus.IN_FLIGHT, image=None, error=None)


def merge_frame_image(
    document: GeneratedDocument, frame_id: str, image: IllustrationImage
) -> GeneratedDocument:
    return update_frame(document, frame_id, status=FrameStatus.SETTLED_OK, image=image, error=None)


def mark_frame_failed(document: GeneratedDocument, frame_id: str, message: str) -> GeneratedDocument:
    return update_frame(
        document, frame_id, status=FrameStatus.SETTLED_ERROR, image=None, error=message
    )


def _update_cover(document: GeneratedDocument, document_id: str, **changes: Any) -> GeneratedDocument:
    if document.document_id != document_id:
        return document
    return replace(document, cover=replace(document.cover, **changes))


def mark_cover_in_flight(
    document: GeneratedDocument, document_id: str, aspect_ratio: AspectRatio
) -> GeneratedDocument:
    return _update_cover(
        document,
        document_id,
        status=FrameStatus.IN_FLIGHT,
        image=None,
        aspect_ratio=aspect_ratio,
        error=None,
    )


def merge_cover_image(
    document: GeneratedDocument, document_id: str, image: IllustrationImage
) -> GeneratedDocument:
    return _update_cover(document, document_id, status=FrameStatus.SETTLED_OK, image=image, error=None)


def mark_cover_failed(document: GeneratedDocument, document_id: str, message: str) -> GeneratedDocument:
    return _update_cover(
        document, document_id, status=FrameStatus.SETTLED_ERROR, image=None, error=message
    )


def apply_deltas(document: GeneratedDocument, deltas: Iterable[DocumentDelta]) -> GeneratedDocument:
    for delta in deltas:
        document = delta(document)
    return document
