"""
LectureSnap Backend - Services Layer
======================================

Service Inventory:
    - ImageProcessor / CaptureSession (image_service): validate + compress pages
    - ModelProvider (llm_base): interface to a hosted multimodal model
    - GeminiProvider (gemini_service): Google Gemini implementation
    - NoteGenerator (generation_service): ordered model fallback loop
    - parse_model_json (output_parser): tolerant JSON extraction
    - StorageService (storage_service): original page images
    - LectureService (lecture_service): create / read / list / delete lectures
    - QuizAttempt (quiz_service): quiz selection and scoring

Services are built once in create_app() with explicit configuration and
reach route handlers through FastAPI dependencies.
"""
