"""
LectureSnap Backend - Pydantic Request/Response Schemas
=========================================================

What:  Pydantic models defining the API contract between browser and backend.
How:   FastAPI uses these models to validate request bodies, serialize
       responses, and generate the OpenAPI documentation.
Who:   Used by route handlers as return types and by services as results.

Field names are snake_case in Python and camelCase on the wire
(`keyPoints`, `correctAnswer`, `imageUrls`, `createdAt`), matching the
lecture document shape the browser client already consumes. Both spellings
are accepted on input.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every schema serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ══════════════════════════════════════════════════════════════════════════
# Lecture content: the structured payload the model is asked to produce
# ══════════════════════════════════════════════════════════════════════════


class QuizQuestion(CamelModel):
    """
    What:  One multiple-choice question.
    Shape: {"question": str, "options": [4 x str], "correctAnswer": 0..3}

    The four-option / in-range index contract is requested of the model in
    the prompt, not enforced here. Quiz scoring never matches an index that
    is out of range.
    """
    question: str
    options: List[str]
    correct_answer: int


class LectureContent(CamelModel):
    """
    What:  The generated fields merged into a Lecture document.
    Who:   Built by LectureService from a successful GenerationResult.

    Unknown keys in the model's JSON are ignored; a missing key means the
    payload cannot be stored as a lecture.
    """
    model_config = ConfigDict(extra="ignore")

    title: str
    subject: str
    summary: str
    key_points: List[str]
    quiz: List[QuizQuestion]


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class LectureResponse(CamelModel):
    """
    What:  Full lecture document.
    Who:   Returned by POST /api/lectures (201) and GET /api/lectures/{id}.
    """
    id: uuid.UUID = Field(description="Lecture identifier assigned by the store")
    user_id: str = Field(description="Owning user id")
    title: str
    subject: str
    summary: str = Field(description="Multi-paragraph explanation of the lecture")
    key_points: List[str]
    quiz: List[QuizQuestion]
    image_url: str = Field(description="URL of the primary (first) page image")
    image_urls: List[str] = Field(description="URLs of every page image, in order")
    created_at: datetime = Field(description="Assigned by the database on write")


class LectureListItem(CamelModel):
    """
    What:  Compact lecture card for the dashboard.
    Who:   Returned by GET /api/lectures as array items.
    """
    id: uuid.UUID
    title: str
    subject: str
    summary_preview: str = Field(description="First 200 characters of the summary")
    image_url: str
    page_count: int
    question_count: int
    created_at: datetime


class LectureListResponse(CamelModel):
    """What: The current user's lectures, newest first."""
    lectures: List[LectureListItem]
    total_count: int


class CapturedPage(CamelModel):
    """One compressed page as produced by the capture step."""
    index: int = Field(description="Position of the page within the lecture (0-based)")
    filename: str
    data_url: str = Field(description="data:image/jpeg;base64,... at bounded width")
    width: int
    height: int


class CapturePreviewResponse(CamelModel):
    """What: Compressed previews for every uploaded page, in order."""
    pages: List[CapturedPage]


# ══════════════════════════════════════════════════════════════════════════
# Note Generation
# ══════════════════════════════════════════════════════════════════════════


class GenerateRequest(CamelModel):
    """
    What:  Body of POST /api/generate.
    Accepts one image or an ordered list of images, each a data URL or raw
    base64. A single string is normalized to a one-element list.
    """
    images: Union[str, List[str]] = Field(description="Data URL(s) of the page images")

    @field_validator("images")
    @classmethod
    def normalize_images(cls, v: Union[str, List[str]]) -> List[str]:
        images = [v] if isinstance(v, str) else list(v)
        if not images or not all(image.strip() for image in images):
            raise ValueError("At least one non-empty image is required")
        return images


class GenerationResult(CamelModel):
    """
    What:  Outcome of one note-generation invocation. Never an exception.

    success=True:  `data` holds the parsed JSON object, `model` names the
                   model identifier that produced it.
    success=False: `error` is a user-facing message; `error_code` is one of
                   configuration_error, invalid_credentials,
                   generation_failed, server_error.
    """
    success: bool
    data: Optional[Dict[str, Any]] = None
    model: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Quiz
# ══════════════════════════════════════════════════════════════════════════


class QuizSubmission(CamelModel):
    """
    What:  Body of POST /api/lectures/{id}/quiz.
    answers: question index -> selected option index. Unanswered questions
             are simply absent.
    """
    answers: Dict[int, int] = Field(default_factory=dict)


class QuizAnswerResult(CamelModel):
    question_index: int
    selected: Optional[int]
    correct_answer: int
    is_correct: bool


class QuizResult(CamelModel):
    """What: Score of one submitted quiz attempt. 0 <= score <= total."""
    score: int
    total: int
    perfect: bool
    message: str
    results: List[QuizAnswerResult]


# ══════════════════════════════════════════════════════════════════════════
# Error / Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "storage_error",
            "message": "Storage Permission Error: ...",
            "request_id": "1a2b3c4d"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """What: Service and dependency status for GET /health."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    gemini: str = Field(description="Gemini API status: available, unavailable, not_configured")
    uptime_seconds: float = Field(description="Seconds since service started")
