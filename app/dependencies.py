"""FastAPI dependency helpers."""
from fastapi import Request

from services.pipeline import SubmissionPipeline


def pipeline_provider(request: Request) -> SubmissionPipeline:
    return request.app.state.pipeline
