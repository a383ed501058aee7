"""
LectureSnap Backend - Capture Preview Route
=============================================

What:  POST /api/capture/preview turns uploaded photos into the compressed
       JPEG pages the model would receive.
Who:   The capture screen, to show the page strip before generating.

Nothing is stored and no model is called.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from app.dependencies import get_current_user_id, get_lecture_service
from app.schemas.lecture import CapturedPage, CapturePreviewResponse, ErrorResponse
from app.services.lecture_service import LectureService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Capture"])


@router.post(
    "/capture/preview",
    response_model=CapturePreviewResponse,
    responses={
        400: {"description": "No pages, too many pages, or an unreadable image", "model": ErrorResponse},
        401: {"description": "No signed-in user", "model": ErrorResponse},
    },
    summary="Compress captured pages",
)
async def preview_capture(
    files: List[UploadFile] = File(..., description="Page photos in lecture order"),
    user_id: str = Depends(get_current_user_id),
    lectures: LectureService = Depends(get_lecture_service),
) -> CapturePreviewResponse:
    # Same page limit and checks as POST /api/lectures
    try:
        pages = [(upload.filename, await upload.read()) for upload in files]
    finally:
        for upload in files:
            await upload.close()
    session = lectures.capture(pages)

    logger.info("Compressed %d page(s) for %s", len(session), user_id)
    return CapturePreviewResponse(
        pages=[
            CapturedPage(
                index=index,
                filename=page.filename,
                data_url=page.data_url,
                width=page.compressed.width,
                height=page.compressed.height,
            )
            for index, page in enumerate(session.pages)
        ]
    )
