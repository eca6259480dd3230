"""
MommyBook package exposing picture-book script, illustration, and slide-deck tooling.
"""

from .ai_generation import BookProvider, build_credential_manager, build_provider
from .common import ProviderSettings
from .pipeline import GeneratedDocument, GenerationOrchestrator, OperationResult, Stage
from .pptx_generation import StorybookDeckBuilder
from .story_generation import BookInputSpec

__all__ = [
    "BookInputSpec",
    "BookProvider",
    "build_credential_manager",
    "build_provider",
    "GeneratedDocument",
    "GenerationOrchestrator",
    "OperationResult",
    "ProviderSettings",
    "Stage",
    "StorybookDeckBuilder",
]
