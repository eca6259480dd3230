"""Tests for the immutable document model and its deltas."""

from __future__ import annotations

import pytest

from mommybook.ai_generation.base import IllustrationImage
from mommybook.pipeline import (
    Frame,
    FrameStatus,
    GeneratedDocument,
    apply_deltas,
    mark_cover_failed,
    mark_cover_in_flight,
    mark_frame_failed,
    mark_frame_in_flight,
    merge_cover_image,
    merge_frame_image,
)

from tests.conftest import make_png, make_script_draft


@pytest.fixture
def document(brief) -> GeneratedDocument:
    return GeneratedDocument.from_draft(make_script_draft(frame_count=3), brief)


@pytest.fixture
def image() -> IllustrationImage:
    return IllustrationImage(data=make_png())


class TestGeneratedDocument:
    """Tests for building documents from drafts."""

    def test_from_draft_mints_unique_ids_in_order(self, document):
        assert len(document.frame_ids) == 3
        assert len(set(document.frame_ids)) == 3
        assert all(frame_id.startswith("frame-") for frame_id in document.frame_ids)
        assert [frame.story_text for frame in document.frames] == [
            "Story text for frame 1.",
            "Story text for frame 2.",
            "Story text for frame 3.",
        ]

    def test_duplicate_ids_are_rejected(self):
        frame = Frame(frame_id="frame-1", story_text="a", scene_description="b")
        with pytest.raises(ValueError):
            GeneratedDocument(
                title="t", introduction="i", character_design="c", cover_prompt="p",
                frames=(frame, frame),
            )

    def test_in_flight_frame_cannot_hold_image(self, image):
        with pytest.raises(ValueError):
            Frame(
                frame_id="frame-1",
                story_text="a",
                scene_description="b",
                image=image,
                status=FrameStatus.IN_FLIGHT,
            )

    def test_frames_with_status(self, document):
        frame_id = document.frame_ids[1]
        updated = mark_frame_in_flight(document, frame_id)

        assert [frame.frame_id for frame in updated.frames_with_status(FrameStatus.IN_FLIGHT)] == [frame_id]
        assert len(updated.frames_with_status(FrameStatus.IDLE)) == 2


class TestFrameDeltas:
    """Tests for id-keyed frame updates."""

    def test_merge_only_touches_target_frame(self, document, image):
        target = document.frame_ids[1]

        updated = merge_frame_image(document, target, image)

        assert updated is not document
        assert updated.frames[0] is document.frames[0]
        assert updated.frames[2] is document.frames[2]
        assert updated.frames[1].image == image
        assert updated.frames[1].status is FrameStatus.SETTLED_OK
        assert document.frames[1].image is None

    def test_unknown_id_leaves_document_unchanged(self, document, image):
        assert merge_frame_image(document, "frame-unknown", image) is document

    def test_in_flight_clears_previous_image_and_error(self, document, image):
        frame_id = document.frame_ids[0]
        settled = merge_frame_image(document, frame_id, image)

        regenerating = mark_frame_in_flight(settled, frame_id)

        frame = regenerating.find_frame(frame_id)
        assert frame.status is FrameStatus.IN_FLIGHT
        assert frame.image is None
        assert frame.error is None

    def test_failure_records_message(self, document):
        frame_id = document.frame_ids[2]

        updated = mark_frame_failed(document, frame_id, "Operation failed: boom")

        frame = updated.find_frame(frame_id)
        assert frame.status is FrameStatus.SETTLED_ERROR
        assert frame.error == "Operation failed: boom"

    def test_deltas_commute_for_distinct_frames(self, document, image):
        first, second, _ = document.frame_ids
        deltas = [
            lambda doc: merge_frame_image(doc, first, image),
            lambda doc: mark_frame_failed(doc, second, "failed"),
        ]

        forward = apply_deltas(document, deltas)
        backward = apply_deltas(document, reversed(deltas))

        assert forward.frames == backward.frames


class TestCoverDeltas:
    """Tests for cover slot updates guarded by document id."""

    def test_cover_lifecycle(self, document, image):
        in_flight = mark_cover_in_flight(document, document.document_id, "9:16")
        assert in_flight.cover.status is FrameStatus.IN_FLIGHT
        assert in_flight.cover.aspect_ratio == "9:16"

        settled = merge_cover_image(in_flight, document.document_id, image)
        assert settled.cover.status is FrameStatus.SETTLED_OK
        assert settled.cover.image == image
        assert settled.frames == document.frames

    def test_cover_for_other_document_is_ignored(self, document, image):
        assert merge_cover_image(document, "another-document", image) is document
        assert mark_cover_failed(document, "another-document", "nope") is document
