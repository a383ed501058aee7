"""
LectureSnap Backend - Lecture SQLAlchemy Model
================================================

What:  ORM model representing the `lectures` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.
Who:   Used by LectureService for create / read / delete and by Alembic.

Table Design:
    - UUID primary key, generated on insert
    - user_id: owning user as reported by the identity provider
    - image_url: primary page (first of image_urls), kept as its own column
      so list views never have to unpack the JSON array
    - key_points / quiz / image_urls: JSON arrays, order preserved
    - created_at: assigned by the database server on INSERT

    Composite index (user_id, created_at DESC) backs the dashboard query
    "this user's lectures, newest first".

Lifecycle:
    1. Inserted exactly once, after upload and generation both succeeded
    2. Read many times (dashboard list, detail view, quiz scoring)
    3. Hard-deleted on explicit user request. There is no update path.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import JSON, DateTime, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Lecture(Base):
    """One capture session's generated notes and quiz."""

    __tablename__ = "lectures"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier",
    )

    user_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Owning user id from the identity provider",
    )

    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    subject: Mapped[str] = mapped_column(Text, nullable=False, default="")
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")

    key_points: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Ordered key-point strings",
    )

    quiz: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Ordered quiz questions: {question, options[4], correctAnswer}",
    )

    image_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="URL of the primary (first) page image",
    )

    image_urls: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="URLs of every page image, in capture order",
    )

    # Server-assigned; LectureService refreshes the row after flush to read it
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="When this lecture was created (assigned by the database)",
    )

    __table_args__ = (
        Index("idx_lectures_user_created_at", "user_id", created_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Lecture(id={self.id}, user_id='{self.user_id}', "
            f"title='{self.title}', created_at='{self.created_at}')>"
        )
