"""
LectureSnap Backend - API Routes Package
==========================================

Route Inventory:
    - capture.py:   POST   /api/capture/preview        (compressed page previews)
    - generate.py:  POST   /api/generate               (images -> GenerationResult)
    - lectures.py:  POST   /api/lectures               (capture + generate + save)
                    GET    /api/lectures               (current user's lectures)
                    GET    /api/lectures/{id}          (one lecture)
                    DELETE /api/lectures/{id}          (hard delete)
                    POST   /api/lectures/{id}/quiz     (score a quiz attempt)
    - files.py:     GET    /api/files/{path}           (stored page images)
    - health.py:    GET    /health                     (service health check)

Routes stay thin: read the request, call a service, shape the response.
"""
