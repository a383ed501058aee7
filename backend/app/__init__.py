"""
LectureSnap Backend
====================

Photos of whiteboards and slides in, study notes and a quiz out.

Layers:

    ┌─────────────────────────────────────┐
    │        Routes (API Layer)           │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (capture, generation,    │  ← Pipeline and business rules
    │   storage, lectures, quiz)          │
    ├─────────────────────────────────────┤
    │   Models & Schemas (Data)           │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database (Persistence)            │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
