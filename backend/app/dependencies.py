"""
LectureSnap Backend - FastAPI Dependencies
============================================

What:  Request-scoped accessors for the caller's identity and for the
       services create_app() builds once and parks on app.state.
How:   Plain functions used with Depends(); tests swap any of them through
       app.dependency_overrides.
"""

import re

from fastapi import Request

from app.config import Settings
from app.exceptions import AuthenticationError
from app.services.generation_service import NoteGenerator
from app.services.lecture_service import LectureService
from app.services.storage_service import StorageService

# Also the first path segment under lectures/ in the object store
_USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def get_app_config(request: Request) -> Settings:
    """The Settings this app was built from, which need not be the env-loaded ones."""
    return request.app.state.config


def get_current_user_id(request: Request) -> str:
    """
    The signed-in user's id, as set by the upstream identity provider.

    Raises:
        AuthenticationError: header missing or not a plain identifier
    """
    header = get_app_config(request).user_id_header
    user_id = request.headers.get(header, "").strip()
    if not user_id:
        raise AuthenticationError()
    if not _USER_ID_PATTERN.match(user_id):
        raise AuthenticationError(
            message="The user identity on this request is not valid. Sign in again.",
            context={"header": header},
        )
    return user_id


def get_note_generator(request: Request) -> NoteGenerator:
    return request.app.state.note_generator


def get_storage_service(request: Request) -> StorageService:
    return request.app.state.storage_service


def get_lecture_service(request: Request) -> LectureService:
    return request.app.state.lecture_service
