"""
LectureSnap Backend - Note Generation Route
=============================================

What:  POST /api/generate runs the model fallback loop on page images the
       client already compressed and returns the GenerationResult.
Who:   Clients that compose the lecture themselves.

Always answers 200: success and failure are both carried in the body,
{success, data, model} or {success: false, error, errorCode}.
"""

import logging

from fastapi import APIRouter, Depends

from app.dependencies import get_current_user_id, get_note_generator
from app.schemas.lecture import ErrorResponse, GenerateRequest, GenerationResult
from app.services.generation_service import NoteGenerator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Generate"])


@router.post(
    "/generate",
    response_model=GenerationResult,
    response_model_exclude_none=True,
    responses={
        401: {"description": "No signed-in user", "model": ErrorResponse},
    },
    summary="Generate lecture notes from page images",
)
async def generate_notes(
    body: GenerateRequest,
    user_id: str = Depends(get_current_user_id),
    generator: NoteGenerator = Depends(get_note_generator),
) -> GenerationResult:
    logger.info("Generation requested by %s for %d image(s)", user_id, len(body.images))
    return await generator.generate(body.images)
