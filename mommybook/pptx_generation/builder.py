"""
High-level utilities for rendering generated MommyBook documents into 16:9 slide decks.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING

from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import MSO_ANCHOR, PP_ALIGN
from pptx.util import Emu, Inches, Pt

from mommybook.common.errors import ExportError

if TYPE_CHECKING:
    from pptx.presentation import Presentation as PptxPresentation
    from pptx.slide import Slide

    from mommybook.pipeline.document import Frame, GeneratedDocument

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "MommyBook.pptx"
DECK_AUTHOR = "MommyBook"
# Fixed so that exporting the same document twice yields the same deck content.
DECK_TIMESTAMP = datetime(2024, 1, 1)

_BLANK_LAYOUT_INDEX = 6
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')


@dataclass(frozen=True)
class DeckLayoutConfig:
    background: RGBColor
    accent_color: RGBColor
    title_color: RGBColor
    introduction_color: RGBColor
    story_color: RGBColor
    number_color: RGBColor
    placeholder_fill: RGBColor
    placeholder_text: RGBColor


DEFAULT_LAYOUT = DeckLayoutConfig(
    background=RGBColor(0xFF, 0xFF, 0xFF),
    accent_color=RGBColor(0xEC, 0x48, 0x99),
    title_color=RGBColor(0x33, 0x33, 0x33),
    introduction_color=RGBColor(0x66, 0x66, 0x66),
    story_color=RGBColor(0x1A, 0x1A, 0x1A),
    number_color=RGBColor(0xCC, 0xCC, 0xCC),
    placeholder_fill=RGBColor(0xF0, 0xF0, 0xF0),
    placeholder_text=RGBColor(0x99, 0x99, 0x99),
)


def suggested_filename(title: str) -> str:
    """Return a filesystem-safe ``.pptx`` name for ``title``."""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("", title or "")
    cleaned = " ".join(cleaned.split()).strip(" .")
    if not cleaned:
        return DEFAULT_FILENAME
    return f"{cleaned}.pptx"


class StorybookDeckBuilder:
    """
    Render generated documents into widescreen presentation files.

    The builder creates:
      * A title slide carrying the book title and its introduction.
      * One slide per frame, in narrative order, with the illustration in the top band
        and the narration underneath. Frames without an image get a placeholder.

    The cover illustration is not part of the deck.
    """

    def __init__(
        self,
        *,
        slide_width_in: float = 10.0,
        slide_height_in: float = 5.625,
        layout: DeckLayoutConfig = DEFAULT_LAYOUT,
    ) -> None:
        self.slide_width = Inches(slide_width_in)
        self.slide_height = Inches(slide_height_in)
        self.layout = layout

    def build(self, document: GeneratedDocument) -> bytes:
        try:
            presentation = self._render(document)
            buffer = BytesIO()
            presentation.save(buffer)
        except Exception as exc:
            logger.exception("Failed to build slide deck for %r", document.title)
            raise ExportError(f"Could not build the slide deck: {exc}") from exc
        return buffer.getvalue()

    def save(self, document: GeneratedDocument, output_dir: Path | str) -> Path:
        data = self.build(document)
        output_path = Path(output_dir) / suggested_filename(document.title)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(data)
        except OSError as exc:
            raise ExportError(f"Could not write {output_path}: {exc}") from exc
        logger.info("Saved slide deck to %s", output_path)
        return output_path

    def _render(self, document: GeneratedDocument) -> PptxPresentation:
        presentation = Presentation()
        presentation.slide_width = self.slide_width
        presentation.slide_height = self.slide_height
        self._apply_core_properties(presentation, document.title)

        self._add_title_slide(presentation, document)
        for index, frame in enumerate(document.frames, start=1):
            self._add_frame_slide(presentation, frame, index)
        return presentation

    # ------------------------------------------------------------------ title slide

    def _add_title_slide(self, presentation: PptxPresentation, document: GeneratedDocument) -> None:
        slide = self._new_slide(presentation)

        accent = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, 0, 0, self.slide_width, Inches(0.1))
        accent.fill.solid()
        accent.fill.fore_color.rgb = self.layout.accent_color
        accent.line.fill.background()

        self._add_text(
            slide,
            document.title,
            left=0,
            top=self._height_at(0.35),
            width=self.slide_width,
            height=Inches(1),
            size=44,
            color=self.layout.title_color,
            bold=True,
        )
        self._add_text(
            slide,
            document.introduction,
            left=self._width_at(0.10),
            top=self._height_at(0.55),
            width=self._width_at(0.80),
            height=Inches(1),
            size=18,
            color=self.layout.introduction_color,
        )

    # ------------------------------------------------------------------ frame slides

    def _add_frame_slide(self, presentation: PptxPresentation, frame: Frame, number: int) -> None:
        slide = self._new_slide(presentation)
        image_box_height = self._height_at(0.75)

        if frame.image is not None:
            self._add_contained_picture(slide, frame.image.data, self.slide_width, image_box_height)
        else:
            placeholder = slide.shapes.add_shape(
                MSO_SHAPE.RECTANGLE, 0, 0, self.slide_width, image_box_height
            )
            placeholder.fill.solid()
            placeholder.fill.fore_color.rgb = self.layout.placeholder_fill
            placeholder.line.fill.background()
            self._style_text_frame(
                placeholder.text_frame,
                "Illustration not generated",
                size=16,
                color=self.layout.placeholder_text,
            )

        self._add_text(
            slide,
            frame.story_text,
            left=self._width_at(0.05),
            top=self._height_at(0.75),
            width=self._width_at(0.90),
            height=self._height_at(0.20),
            size=20,
            color=self.layout.story_color,
            italic=True,
        )
        self._add_text(
            slide,
            str(number),
            left=self._width_at(0.93),
            top=self._height_at(0.92),
            width=self._width_at(0.05),
            height=self._height_at(0.06),
            size=10,
            color=self.layout.number_color,
            bold=True,
        )

    def _add_contained_picture(self, slide: Slide, data: bytes, box_width: int, box_height: int) -> None:
        picture = slide.shapes.add_picture(BytesIO(data), 0, 0)
        native_width, native_height = int(picture.width), int(picture.height)
        if native_width <= 0 or native_height <= 0:
            raise ValueError("Illustration has no usable dimensions.")

        scale = min(box_width / native_width, box_height / native_height)
        width = int(native_width * scale)
        height = int(native_height * scale)
        picture.width = Emu(width)
        picture.height = Emu(height)
        picture.left = Emu((box_width - width) // 2)
        picture.top = Emu((box_height - height) // 2)

    # ------------------------------------------------------------------ helpers

    def _new_slide(self, presentation: PptxPresentation) -> Slide:
        slide = presentation.slides.add_slide(presentation.slide_layouts[_BLANK_LAYOUT_INDEX])
        background = slide.background.fill
        background.solid()
        background.fore_color.rgb = self.layout.background
        return slide

    def _add_text(
        self,
        slide: Slide,
        text: str,
        *,
        left: int,
        top: int,
        width: int,
        height: int,
        size: int,
        color: RGBColor,
        bold: bool = False,
        italic: bool = False,
    ) -> None:
        box = slide.shapes.add_textbox(left, top, width, height)
        self._style_text_frame(box.text_frame, text, size=size, color=color, bold=bold, italic=italic)

    @staticmethod
    def _style_text_frame(
        text_frame,
        text: str,
        *,
        size: int,
        color: RGBColor,
        bold: bool = False,
        italic: bool = False,
    ) -> None:
        text_frame.word_wrap = True
        text_frame.vertical_anchor = MSO_ANCHOR.MIDDLE
        paragraph = text_frame.paragraphs[0]
        paragraph.alignment = PP_ALIGN.CENTER
        run = paragraph.add_run()
        run.text = text
        run.font.size = Pt(size)
        run.font.bold = bold
        run.font.italic = italic
        run.font.color.rgb = color

    @staticmethod
    def _apply_core_properties(presentation: PptxPresentation, title: str) -> None:
        properties = presentation.core_properties
        properties.title = title
        properties.author = DECK_AUTHOR
        properties.last_modified_by = DECK_AUTHOR
        properties.created = DECK_TIMESTAMP
        properties.modified = DECK_TIMESTAMP
        properties.revision = 1

    def _width_at(self, fraction: float) -> int:
        return int(self.slide_width * fraction)

    def _height_at(self, fraction: float) -> int:
        return int(self.slide_height * fraction)
