"""
LectureSnap Backend - Lecture Route Handlers
==============================================

What:  Create, list, read and delete the current user's lectures, and score
       quiz attempts against them.
How:   Extracts the upload / path / body, delegates to LectureService.
Who:   The capture screen (create), dashboard (list, delete) and lecture
       detail screen (read, quiz).

Every route is scoped to the X-User-ID identity: another user's lecture is
reported as not found.

Caching:
    - GET /api/lectures:      no-store (changes on every create / delete)
    - GET /api/lectures/{id}: private, 1 hour (lectures are never edited)
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, File, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_current_user_id, get_lecture_service, get_storage_service
from app.schemas.lecture import (
    ErrorResponse,
    LectureListResponse,
    LectureResponse,
    QuizResult,
    QuizSubmission,
)
from app.services.lecture_service import LectureService
from app.services.storage_service import StorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Lectures"])


@router.post(
    "/lectures",
    status_code=201,
    response_model=LectureResponse,
    responses={
        201: {"description": "Lecture generated and saved", "model": LectureResponse},
        400: {"description": "No pages, too many pages, or an unusable image", "model": ErrorResponse},
        401: {"description": "No signed-in user", "model": ErrorResponse},
        500: {"description": "Storage or database failure", "model": ErrorResponse},
        503: {"description": "Model credential missing or every model failed", "model": ErrorResponse},
    },
    summary="Create a lecture from captured pages",
    description=(
        "Upload one or more page photos in lecture order. The originals are stored, "
        "the compressed pages are sent to Gemini, and the generated notes and quiz "
        "are saved as a new lecture."
    ),
)
async def create_lecture(
    files: List[UploadFile] = File(..., description="Page photos in lecture order"),
    user_id: str = Depends(get_current_user_id),
    lectures: LectureService = Depends(get_lecture_service),
    db: AsyncSession = Depends(get_db_session),
) -> LectureResponse:
    """
    Error responses (handled by global exception handlers):
        HTTP 400: ValidationError
        HTTP 500: StorageError, PersistenceError, DatabaseError
        HTTP 503: ConfigurationError, GenerationError
    """
    try:
        pages = [(upload.filename, await upload.read()) for upload in files]
    finally:
        for upload in files:
            await upload.close()

    logger.info(
        "Received lecture request from %s: %d page(s), %d bytes",
        user_id,
        len(pages),
        sum(len(content) for _, content in pages),
    )
    return await lectures.create_lecture(db=db, user_id=user_id, files=pages)


@router.get(
    "/lectures",
    response_model=LectureListResponse,
    responses={
        401: {"description": "No signed-in user", "model": ErrorResponse},
        500: {"description": "Database failure", "model": ErrorResponse},
    },
    summary="List the current user's lectures, newest first",
)
async def list_lectures(
    response: Response,
    user_id: str = Depends(get_current_user_id),
    lectures: LectureService = Depends(get_lecture_service),
    db: AsyncSession = Depends(get_db_session),
) -> LectureListResponse:
    result = await lectures.list_lectures(db=db, user_id=user_id)
    response.headers["X-Total-Count"] = str(result.total_count)
    response.headers["Cache-Control"] = "no-store"
    return result


@router.get(
    "/lectures/{lecture_id}",
    response_model=LectureResponse,
    responses={
        401: {"description": "No signed-in user", "model": ErrorResponse},
        404: {"description": "Lecture not found", "model": ErrorResponse},
    },
    summary="Get one lecture",
)
async def get_lecture(
    lecture_id: UUID,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    lectures: LectureService = Depends(get_lecture_service),
    db: AsyncSession = Depends(get_db_session),
) -> LectureResponse:
    result = await lectures.get_lecture(db=db, lecture_id=lecture_id, user_id=user_id)
    response.headers["Cache-Control"] = "private, max-age=3600"
    return result


@router.delete(
    "/lectures/{lecture_id}",
    status_code=204,
    responses={
        401: {"description": "No signed-in user", "model": ErrorResponse},
        404: {"description": "Lecture not found", "model": ErrorResponse},
    },
    summary="Delete a lecture",
)
async def delete_lecture(
    lecture_id: UUID,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    lectures: LectureService = Depends(get_lecture_service),
    storage: StorageService = Depends(get_storage_service),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    """The row goes now; its page images are removed after the response is sent."""
    image_urls = await lectures.delete_lecture(db=db, lecture_id=lecture_id, user_id=user_id)
    for url in image_urls:
        background_tasks.add_task(storage.remove_url, url)
    return Response(status_code=204)


@router.post(
    "/lectures/{lecture_id}/quiz",
    response_model=QuizResult,
    responses={
        400: {"description": "Selection out of range", "model": ErrorResponse},
        401: {"description": "No signed-in user", "model": ErrorResponse},
        404: {"description": "Lecture not found", "model": ErrorResponse},
    },
    summary="Score a quiz attempt",
)
async def submit_quiz(
    lecture_id: UUID,
    submission: QuizSubmission,
    user_id: str = Depends(get_current_user_id),
    lectures: LectureService = Depends(get_lecture_service),
    db: AsyncSession = Depends(get_db_session),
) -> QuizResult:
    return await lectures.score_quiz(db=db, lecture_id=lecture_id, user_id=user_id, submission=submission)
