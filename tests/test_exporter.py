"""Tests for the slide-deck exporter."""

from __future__ import annotations

from io import BytesIO

import pytest
from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE
from pptx.util import Inches

from mommybook.ai_generation.base import IllustrationImage
from mommybook.common.errors import ExportError
from mommybook.pipeline import GeneratedDocument, merge_cover_image, merge_frame_image
from mommybook.pptx_generation import StorybookDeckBuilder, suggested_filename

from tests.conftest import make_png, make_script_draft


def _slide_texts(slide) -> list[str]:
    return [shape.text_frame.text for shape in slide.shapes if shape.has_text_frame and shape.text_frame.text]


@pytest.fixture
def document(brief) -> GeneratedDocument:
    return GeneratedDocument.from_draft(make_script_draft(frame_count=3), brief)


@pytest.fixture
def builder() -> StorybookDeckBuilder:
    return StorybookDeckBuilder()


class TestStorybookDeckBuilder:
    """Tests for deck structure and content."""

    def test_slide_count_and_order(self, builder, document):
        deck = Presentation(BytesIO(builder.build(document)))

        slides = list(deck.slides)
        assert len(slides) == 1 + len(document.frames)
        assert deck.slide_width == Inches(10)
        assert deck.slide_height == Inches(5.625)
        assert "The Lost Kite" in _slide_texts(slides[0])
        for number, (slide, frame) in enumerate(zip(slides[1:], document.frames), start=1):
            texts = _slide_texts(slide)
            assert frame.story_text in texts
            assert str(number) in texts

    def test_missing_images_get_placeholder(self, builder, document):
        image = IllustrationImage(data=make_png(64, 36))
        document = merge_frame_image(document, document.frame_ids[0], image)

        deck = Presentation(BytesIO(builder.build(document)))
        slides = list(deck.slides)

        pictures = [shape for shape in slides[1].shapes if shape.shape_type == MSO_SHAPE_TYPE.PICTURE]
        assert len(pictures) == 1
        assert "Illustration not generated" not in _slide_texts(slides[1])
        assert "Illustration not generated" in _slide_texts(slides[2])
        assert "Illustration not generated" in _slide_texts(slides[3])

    def test_picture_is_contained_in_top_band(self, builder, document):
        image = IllustrationImage(data=make_png(90, 160))
        document = merge_frame_image(document, document.frame_ids[0], image)

        deck = Presentation(BytesIO(builder.build(document)))
        picture = next(shape for shape in list(deck.slides)[1].shapes if shape.shape_type == MSO_SHAPE_TYPE.PICTURE)

        band_height = int(Inches(5.625) * 0.75)
        assert picture.top >= 0
        assert picture.top + picture.height <= band_height + 1
        assert picture.left + picture.width <= Inches(10) + 1
        assert abs(picture.left - (Inches(10) - picture.width) // 2) <= 1

    def test_cover_is_not_part_of_deck(self, builder, document):
        image = IllustrationImage(data=make_png())
        with_cover = merge_cover_image(document, document.document_id, image)

        deck = Presentation(BytesIO(builder.build(with_cover)))

        assert len(deck.slides) == 1 + len(document.frames)

    def test_core_properties_are_fixed(self, builder, document):
        first = Presentation(BytesIO(builder.build(document))).core_properties
        second = Presentation(BytesIO(builder.build(document))).core_properties

        assert first.title == "The Lost Kite"
        assert first.author == "MommyBook"
        assert first.created == second.created
        assert first.modified == second.modified

    def test_build_does_not_modify_document(self, builder, document):
        snapshot = document
        builder.build(document)

        assert document == snapshot
        assert all(frame.image is None for frame in document.frames)

    def test_unreadable_image_raises_export_error(self, builder, document):
        broken = IllustrationImage(data=b"definitely not an image")
        document = merge_frame_image(document, document.frame_ids[0], broken)

        with pytest.raises(ExportError):
            builder.build(document)

    def test_save_writes_named_file(self, builder, document, tmp_path):
        path = builder.save(document, tmp_path / "decks")

        assert path == tmp_path / "decks" / "The Lost Kite.pptx"
        assert path.read_bytes()[:2] == b"PK"


class TestSuggestedFilename:
    """Tests for deck file naming."""

    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("The Lost Kite", "The Lost Kite.pptx"),
            ('Mia: "Kite" / Wind?', "Mia Kite Wind.pptx"),
            ("   ", "MommyBook.pptx"),
            ("", "MommyBook.pptx"),
        ],
    )
    def test_suggested_filename(self, title, expected):
        assert suggested_filename(title) == expected
