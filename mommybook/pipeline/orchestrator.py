"""
Orchestrates script, illustration, and cover generation around a single in-memory document.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from mommybook.ai_generation.base import AspectRatio, BookProvider, validate_aspect_ratio
from mommybook.ai_generation.prompting import build_cover_prompt
from mommybook.common.errors import ErrorKind, ExportError, describe_failure
from mommybook.credentials import CredentialManager, CredentialState
from mommybook.pptx_generation import StorybookDeckBuilder, suggested_filename
from mommybook.story_generation import BookInputSpec

from .document import (
    DocumentDelta,
    GeneratedDocument,
    mark_cover_failed,
    mark_cover_in_flight,
    mark_frame_failed,
    mark_frame_in_flight,
    merge_cover_image,
    merge_frame_image,
)

logger = logging.getLogger(__name__)

Listener = Callable[[str, dict[str, Any]], None]


class Stage(str, Enum):
    SCRIPT = "script"
    ILLUSTRATION = "illustration"


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of one orchestrator operation; failures carry a classified, readable message.
    """

    ok: bool
    kind: ErrorKind | None = None
    message: str = ""
    value: Any = None
    filename: str | None = None
    skipped: bool = False

    @classmethod
    def success(cls, value: Any = None, *, message: str = "", filename: str | None = None) -> "OperationResult":
        return cls(ok=True, value=value, message=message, filename=filename)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "OperationResult":
        return cls(ok=False, kind=kind, message=message)

    @classmethod
    def skip(cls, message: str) -> "OperationResult":
        return cls(ok=False, message=message, skipped=True)


class GenerationOrchestrator:
    """
    High-level coordinator that owns the generated document and drives every provider call.

    The document is replaced wholesale only by :meth:`submit_script`. Frame and cover
    results are merged back through pure deltas keyed by frame id (or document id for the
    cover), so any number of requests may be in flight and complete in any order.
    """

    def __init__(
        self,
        *,
        provider: BookProvider,
        credentials: CredentialManager,
        deck_builder: StorybookDeckBuilder | None = None,
        listener: Listener | None = None,
    ) -> None:
        self._provider = provider
        self._credentials = credentials
        self._deck_builder = deck_builder or StorybookDeckBuilder()
        self._listeners: list[Listener] = [listener] if listener is not None else []
        self._document: GeneratedDocument | None = None
        self._active_stage = Stage.SCRIPT

    @property
    def document(self) -> GeneratedDocument | None:
        return self._document

    @property
    def active_stage(self) -> Stage:
        return self._active_stage

    @property
    def credential_state(self) -> CredentialState:
        return self._credentials.state

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------ script

    async def submit_script(self, brief: BookInputSpec) -> OperationResult:
        """
        Generate a script for ``brief`` and replace the document with it.
        """
        if not brief.has_title:
            return OperationResult.skip("A title is required before generating a script.")

        if not await self._credentials.ensure_credential():
            return self._missing_credential("script")

        self._notify("script:generating", title=brief.title, word_count=brief.word_count)
        try:
            draft = await self._provider.generate_script(brief)
            document = GeneratedDocument.from_draft(draft, brief)
        except Exception as exc:
            return await self._failed("script", exc)

        self._document = document
        self._active_stage = Stage.ILLUSTRATION
        self._notify(
            "script:ready",
            document_id=document.document_id,
            title=document.title,
            total_frames=len(document.frames),
        )
        return OperationResult.success(document)

    def start_over(self) -> None:
        """Discard the current document; in-flight results for it are ignored."""
        self._document = None
        self._active_stage = Stage.SCRIPT
        self._notify("document:discarded")

    # ------------------------------------------------------------------ frames

    def request_frame_image(self, frame_id: str) -> asyncio.Task[OperationResult] | None:
        """
        Start illustrating one frame; returns the task, or None when there is nothing to do.

        The frame is moved to ``in_flight`` before this method returns. Must be called from
        a running event loop.
        """
        document = self._document
        if document is None:
            return None
        frame = document.find_frame(frame_id)
        if frame is None:
            return None

        loop = asyncio.get_running_loop()
        self._apply(lambda doc: mark_frame_in_flight(doc, frame_id))
        self._notify("frame:in_flight", frame_id=frame_id)

        return loop.create_task(
            self._generate_frame_image(
                frame_id=frame_id,
                scene_prompt=frame.scene_description,
                style_prompt=document.style_prompt,
                visual_anchor=document.visual_anchor,
                character_design=document.character_design,
            )
        )

    async def _generate_frame_image(
        self,
        *,
        frame_id: str,
        scene_prompt: str,
        style_prompt: str,
        visual_anchor: str,
        character_design: str,
    ) -> OperationResult:
        if not await self._credentials.ensure_credential():
            result = self._missing_credential("frame")
            self._apply(lambda doc: mark_frame_failed(doc, frame_id, result.message))
            self._notify("frame:settled", frame_id=frame_id, ok=False)
            return result

        try:
            image = await self._provider.generate_illustration(
                scene_prompt,
                style_prompt,
                visual_anchor,
                character_design,
                "16:9",
            )
        except Exception as exc:
            result = await self._failed("frame", exc, frame_id=frame_id)
            self._apply(lambda doc: mark_frame_failed(doc, frame_id, result.message))
            self._notify("frame:settled", frame_id=frame_id, ok=False)
            return result

        self._apply(lambda doc: merge_frame_image(doc, frame_id, image))
        self._notify("frame:settled", frame_id=frame_id, ok=True)
        return OperationResult.success(image)

    # ------------------------------------------------------------------ cover

    def request_cover(self, aspect_ratio: AspectRatio = "16:9") -> asyncio.Task[OperationResult] | None:
        """
        Start illustrating the cover; the slot is ``in_flight`` before this method returns.
        """
        document = self._document
        if document is None:
            return None

        ratio = validate_aspect_ratio(aspect_ratio)
        loop = asyncio.get_running_loop()
        document_id = document.document_id
        self._apply(lambda doc: mark_cover_in_flight(doc, document_id, ratio))
        self._notify("cover:in_flight", aspect_ratio=ratio)

        return loop.create_task(
            self._generate_cover(
                document_id=document_id,
                cover_prompt=build_cover_prompt(document.cover_prompt),
                style_prompt=document.style_prompt,
                visual_anchor=document.visual_anchor,
                character_design=document.character_design,
                aspect_ratio=ratio,
            )
        )

    async def _generate_cover(
        self,
        *,
        document_id: str,
        cover_prompt: str,
        style_prompt: str,
        visual_anchor: str,
        character_design: str,
        aspect_ratio: AspectRatio,
    ) -> OperationResult:
        if not await self._credentials.ensure_credential():
            result = self._missing_credential("cover")
            self._apply(lambda doc: mark_cover_failed(doc, document_id, result.message))
            self._notify("cover:settled", ok=False)
            return result

        try:
            image = await self._provider.generate_illustration(
                cover_prompt,
                style_prompt,
                visual_anchor,
                character_design,
                aspect_ratio,
            )
        except Exception as exc:
            result = await self._failed("cover", exc)
            self._apply(lambda doc: mark_cover_failed(doc, document_id, result.message))
            self._notify("cover:settled", ok=False)
            return result

        self._apply(lambda doc: merge_cover_image(doc, document_id, image))
        self._notify("cover:settled", ok=True)
        return OperationResult.success(image)

    # ------------------------------------------------------------------ style

    async def analyze_style(self, image: bytes, mime_type: str) -> OperationResult:
        """
        Derive a style prompt fragment from a reference illustration.
        """
        if not image:
            return OperationResult.skip("No reference image was provided.")

        if not await self._credentials.ensure_credential():
            return self._missing_credential("style")

        try:
            style_prompt = await self._provider.analyze_style(image, mime_type)
        except Exception as exc:
            return await self._failed("style", exc)

        self._notify("style:analyzed", style_prompt=style_prompt)
        return OperationResult.success(style_prompt)

    # ------------------------------------------------------------------ export

    def export_document(self) -> OperationResult:
        """
        Render the current document into slide-deck bytes without touching it.
        """
        document = self._document
        if document is None:
            return OperationResult.skip("There is no document to export.")

        try:
            data = self._deck_builder.build(document)
        except ExportError as exc:
            return self._export_failed(exc)
        return OperationResult.success(data, filename=suggested_filename(document.title))

    def save_document(self, output_dir: Path | str) -> OperationResult:
        document = self._document
        if document is None:
            return OperationResult.skip("There is no document to export.")

        try:
            path = self._deck_builder.save(document, output_dir)
        except ExportError as exc:
            return self._export_failed(exc)
        return OperationResult.success(path, filename=path.name)

    # ------------------------------------------------------------------ helpers

    def _apply(self, delta: DocumentDelta) -> None:
        if self._document is not None:
            self._document = delta(self._document)

    def _missing_credential(self, operation: str) -> OperationResult:
        kind = ErrorKind.MISSING_CREDENTIAL
        message = describe_failure(kind, "")
        logger.warning("Skipping %s generation: no usable credential.", operation)
        self._notify("operation:failed", operation=operation, kind=kind.value, message=message)
        return OperationResult.failure(kind, message)

    async def _failed(self, operation: str, exc: BaseException, **payload: Any) -> OperationResult:
        kind = await self._credentials.handle_provider_error(exc)
        message = describe_failure(kind, str(exc), can_reselect=self._credentials.has_picker)
        logger.error("%s generation failed (%s): %s", operation.capitalize(), kind.value, exc)
        self._notify("operation:failed", operation=operation, kind=kind.value, message=message, **payload)
        return OperationResult.failure(kind, message)

    def _export_failed(self, exc: ExportError) -> OperationResult:
        message = describe_failure(ErrorKind.EXPORT, str(exc))
        logger.error("Slide deck export failed: %s", exc)
        self._notify("operation:failed", operation="export", kind=ErrorKind.EXPORT.value, message=message)
        return OperationResult.failure(ErrorKind.EXPORT, message)

    def _notify(self, event: str, **payload: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception:
                logger.exception("Listener failed while handling %s.", event)
