"""
Document model and orchestration for MommyBook picture-book generation.
"""

from .document import (
    CoverSlot,
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
    update_frame,
)
from .orchestrator import GenerationOrchestrator, OperationResult, Stage

__all__ = [
    "CoverSlot",
    "Frame",
    "FrameStatus",
    "GeneratedDocument",
    "apply_deltas",
    "mark_cover_failed",
    "mark_cover_in_flight",
    "mark_frame_failed",
    "mark_frame_in_flight",
    "merge_cover_image",
    "merge_frame_image",
    "update_frame",
    "GenerationOrchestrator",
    "OperationResult",
    "Stage",
]
