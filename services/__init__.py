"""Service layer for application intake."""

from .pipeline import SubmissionPipeline
from .repository import ApplicationRepository
from .storage import LocalAttachmentStorage, SupabaseAttachmentStorage, build_storage
from .verification import TurnstileVerifier

__all__ = [
    "ApplicationRepository",
    "LocalAttachmentStorage",
    "SubmissionPipeline",
    "SupabaseAttachmentStorage",
    "TurnstileVerifier",
    "build_storage",
]
