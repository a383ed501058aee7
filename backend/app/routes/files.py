"""
LectureSnap Backend - Stored File Route
=========================================

What:  GET /api/files/{path} serves original page images from the object
       store; these are the imageUrl / imageUrls of a lecture.

These are capability URLs: no X-User-ID check, since browsers load them
through plain <img src>. The URL itself is the secret. It is only handed
out to the owner (lecture responses are owner-scoped), and every object name
carries a millisecond timestamp plus a random suffix. Deleting the lecture
removes the files, which revokes the URLs.
"""

import mimetypes

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from app.dependencies import get_storage_service
from app.schemas.lecture import ErrorResponse
from app.services.storage_service import StorageService

router = APIRouter(prefix="/api", tags=["Files"])


@router.get(
    "/files/{file_path:path}",
    responses={
        200: {"description": "Image file"},
        400: {"description": "Path outside the storage root", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Serve a stored page image",
)
async def serve_file(
    file_path: str,
    storage: StorageService = Depends(get_storage_service),
) -> FileResponse:
    full_path = storage.open_for_serving(file_path)
    media_type, _ = mimetypes.guess_type(full_path.name)
    # Object names embed a timestamp and random suffix, so content never changes
    return FileResponse(
        path=str(full_path),
        media_type=media_type or "application/octet-stream",
        headers={"Cache-Control": "private, max-age=86400"},
    )
