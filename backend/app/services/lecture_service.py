"""
LectureSnap Backend - Lecture Service (Business Logic Orchestrator)
=====================================================================

What:  Coordinates capture -> upload -> generate -> persist for one lecture,
       plus retrieval, listing, deletion and quiz scoring.
How:   Composes ImageProcessor, StorageService, NoteGenerator and the
       lectures table. Route handlers stay free of business rules.
Who:   Called by the /api/lectures route handlers.

Orchestration Flow (POST /api/lectures):
    ┌──────────┐    ┌───────────┐    ┌──────────┐    ┌────────────┐    ┌────────┐
    │ Capture  │───▶│ Credential│───▶│  Upload  │───▶│  Generate  │───▶│ Insert │
    │ (pages)  │    │   check   │    │ originals│    │ (fallback) │    │  (DB)  │
    └──────────┘    └───────────┘    └──────────┘    └────────────┘    └────────┘

    On failure:
    - capture       → ValidationError, nothing uploaded
    - credential    → ConfigurationError, nothing uploaded
    - upload        → StorageError, earlier uploads removed, no model call
    - generation    → ConfigurationError / GenerationError, uploads removed
    - insert        → Persistence*/DatabaseError, uploads removed

A Lecture row is only ever written with every generated field present.
"""

import logging
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    ConfigurationError,
    DatabaseError,
    GenerationError,
    LectureSnapError,
    NotFoundError,
    PersistencePermissionError,
    PersistenceSchemaError,
)
from app.models.lecture import Lecture
from app.schemas.lecture import (
    LectureContent,
    LectureListItem,
    LectureListResponse,
    LectureResponse,
    QuizResult,
    QuizSubmission,
)
from app.services.generation_service import NoteGenerator
from app.services.image_service import CaptureSession, ImageProcessor
from app.services.quiz_service import QuizAttempt
from app.services.storage_service import StorageService

logger = logging.getLogger(__name__)

SUMMARY_PREVIEW_LENGTH = 200

_PERMISSION_MARKERS = ("permission denied", "readonly", "read-only", "insufficient privilege")
_SCHEMA_MARKERS = ("no such table", "does not exist", "undefinedtable", "no such index")


def translate_db_error(exc: SQLAlchemyError) -> LectureSnapError:
    """Classify a SQLAlchemy failure into the exception the client should see."""
    text = str(exc).lower()
    if any(marker in text for marker in _PERMISSION_MARKERS):
        return PersistencePermissionError(context={"error_type": type(exc).__name__})
    if any(marker in text for marker in _SCHEMA_MARKERS):
        return PersistenceSchemaError(context={"error_type": type(exc).__name__})
    return DatabaseError(context={"error_type": type(exc).__name__})


def to_response(lecture: Lecture) -> LectureResponse:
    return LectureResponse.model_validate(lecture)


def to_list_item(lecture: Lecture) -> LectureListItem:
    summary = lecture.summary or ""
    return LectureListItem(
        id=lecture.id,
        title=lecture.title,
        subject=lecture.subject,
        summary_preview=summary[:SUMMARY_PREVIEW_LENGTH],
        image_url=lecture.image_url,
        page_count=len(lecture.image_urls or []),
        question_count=len(lecture.quiz or []),
        created_at=lecture.created_at,
    )


class LectureService:
    """
    Business logic layer for lecture operations.

    Holds only its collaborators; the database session is passed per call,
    so one instance serves every request.

    Args:
        storage:   Object store for original page images
        generator: Note generator with its model fallback list
        processor: Page validation and compression
        max_pages: Upper bound on pages per lecture
    """

    def __init__(
        self,
        storage: StorageService,
        generator: NoteGenerator,
        processor: ImageProcessor,
        max_pages: int = 10,
    ):
        self.storage = storage
        self.generator = generator
        self.processor = processor
        self.max_pages = max_pages

    def capture(self, files: Sequence[Tuple[Optional[str], bytes]]) -> CaptureSession:
        """Validate and compress every page, in upload order."""
        session = CaptureSession(self.processor, max_pages=self.max_pages)
        for filename, content in files:
            session.add_page(filename, content)
        session.require_pages()
        return session

    async def create_lecture(
        self,
        db: AsyncSession,
        user_id: str,
        files: Sequence[Tuple[Optional[str], bytes]],
    ) -> LectureResponse:
        """
        Complete workflow: capture → upload → generate → insert.

        Args:
            db:      Async database session (injected by FastAPI)
            user_id: Owner of the new lecture
            files:   (filename, raw bytes) per page, in page order

        Returns:
            The stored lecture, including the server-assigned id and createdAt.

        Raises:
            ValidationError:    no pages, too many, or an unusable page
            ConfigurationError: credential missing or rejected
            StorageError:       an original could not be uploaded
            GenerationError:    no model produced a storable lecture
            PersistenceError / DatabaseError: the insert failed
        """
        session = self.capture(files)

        if not self.generator.config.has_credentials:
            raise ConfigurationError(message=self.generator.MISSING_KEY_MESSAGE)

        image_urls: List[str] = []
        try:
            # Sequential on purpose: page order is the URL order
            for page in session.pages:
                path = self.storage.build_path(user_id, page.filename)
                image_urls.append(await self.storage.store(page.original, path))
            logger.info("Uploaded %d page(s) for user %s", len(image_urls), user_id)

            result = await self.generator.generate(session.data_urls)
            if not result.success:
                if result.error_code in ("configuration_error", "invalid_credentials"):
                    raise ConfigurationError(message=result.error, code=result.error_code)
                raise GenerationError(message=result.error, code=result.error_code or "generation_failed")

            try:
                content = LectureContent.model_validate(result.data)
            except PydanticValidationError as e:
                logger.error("Model %s returned an incomplete lecture: %s", result.model, str(e))
                raise GenerationError(
                    message="AI Generation Failed. The model response is missing required lecture fields.",
                    context={"model": result.model, "errors": e.error_count()},
                )

            lecture = Lecture(
                user_id=user_id,
                title=content.title,
                subject=content.subject,
                summary=content.summary,
                key_points=content.key_points,
                quiz=[question.model_dump(by_alias=True) for question in content.quiz],
                image_url=image_urls[0],
                image_urls=image_urls,
            )
            db.add(lecture)
            try:
                await db.flush()
                await db.refresh(lecture)
            except SQLAlchemyError as e:
                logger.error("Failed to save lecture for user %s: %s", user_id, str(e))
                raise translate_db_error(e)

        except LectureSnapError:
            for url in image_urls:
                await self.storage.remove_url(url)
            raise

        logger.info(
            "Lecture %s created by %s (%d pages, %d questions, model=%s)",
            lecture.id, user_id, len(image_urls), len(content.quiz), result.model,
        )
        return to_response(lecture)

    async def _load(self, db: AsyncSession, lecture_id: UUID, user_id: str) -> Lecture:
        """Fetch one lecture owned by user_id; anybody else's is reported as absent."""
        try:
            result = await db.execute(
                select(Lecture).where(Lecture.id == lecture_id, Lecture.user_id == user_id)
            )
            lecture = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching lecture %s: %s", lecture_id, str(e))
            raise translate_db_error(e)

        if lecture is None:
            raise NotFoundError(resource="lecture", resource_id=str(lecture_id))
        return lecture

    async def get_lecture(self, db: AsyncSession, lecture_id: UUID, user_id: str) -> LectureResponse:
        return to_response(await self._load(db, lecture_id, user_id))

    async def list_lectures(self, db: AsyncSession, user_id: str) -> LectureListResponse:
        """
        The user's lectures, newest first.

        Query plan:
            SELECT * FROM lectures WHERE user_id = :uid ORDER BY created_at DESC
            → served by idx_lectures_user_created_at
        """
        try:
            result = await db.execute(
                select(Lecture)
                .where(Lecture.user_id == user_id)
                .order_by(desc(Lecture.created_at))
            )
            lectures = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing lectures for %s: %s", user_id, str(e))
            raise translate_db_error(e)

        return LectureListResponse(
            lectures=[to_list_item(lecture) for lecture in lectures],
            total_count=len(lectures),
        )

    async def delete_lecture(self, db: AsyncSession, lecture_id: UUID, user_id: str) -> List[str]:
        """
        Hard-delete one lecture.

        Returns:
            The lecture's image URLs; the caller removes them from storage.
        """
        lecture = await self._load(db, lecture_id, user_id)
        image_urls = list(lecture.image_urls or [])
        try:
            await db.delete(lecture)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting lecture %s: %s", lecture_id, str(e))
            raise translate_db_error(e)

        logger.info("Lecture %s deleted by %s", lecture_id, user_id)
        return image_urls

    async def score_quiz(
        self,
        db: AsyncSession,
        lecture_id: UUID,
        user_id: str,
        submission: QuizSubmission,
    ) -> QuizResult:
        lecture = await self._load(db, lecture_id, user_id)
        attempt = QuizAttempt(to_response(lecture).quiz)
        for question_index, option_index in sorted(submission.answers.items()):
            attempt.select(question_index, option_index)
        return attempt.submit()
