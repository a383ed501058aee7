"""
LectureSnap Backend - Middleware Package
==========================================

Cross-cutting concerns applied to every request.

Middleware chain (outermost first):
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route Handler

    - Request ID runs first so every log line of the request can carry it.
    - The access log sees the final status code and total duration,
      including model calls, which dominate POST /api/lectures.
"""
