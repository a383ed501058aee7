"""
LectureSnap Backend - Note Generation Service
===============================================

What:  Turns one or more page images into structured lecture notes
       (title, subject, summary, key points, quiz) using a hosted model.
How:   Builds a single multimodal request and tries an ordered list of model
       identifiers until one returns text that parses as a JSON object.
Who:   Called by LectureService during lecture creation and directly by
       POST /api/generate.

Fallback algorithm:
    for model in config.models (in order):
        call provider
        ├── raises          → record error, next model
        ├── malformed JSON  → log raw text, record error, next model
        └── JSON object     → return success (remaining models never called)
    all failed:
        one diagnostic call to config.diagnostic_model
        ├── "API key not valid" → invalid_credentials
        └── otherwise           → generation_failed with last error + diagnostic

generate() never raises. Every outcome is a GenerationResult, so the route
can return it as-is and LectureService can translate it into an exception.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from app.config import Settings, is_usable_api_key
from app.exceptions import MalformedOutputError
from app.schemas.lecture import GenerationResult
from app.services.image_service import strip_data_url_prefix
from app.services.llm_base import ModelProvider
from app.services.output_parser import parse_model_json

logger = logging.getLogger(__name__)

INVALID_KEY_MARKER = "API key not valid"

# The minimums below are requested of the model only; nothing enforces them.
LECTURE_PROMPT = """
  Analyze the provided image(s) of a lecture whiteboard or slide acting as an expert academic tutor.
  If multiple images are provided, treat them as sequential pages/slides of the same lecture.

  Extract the educational content and structure it into a JSON object.
  The JSON structure should be:
  {
    "title": "A short, descriptive title",
    "subject": "The academic subject (e.g., Computer Science, Calculus, History)",
    "summary": "A comprehensive, detailed summary of the lecture content. Explain the concepts thoroughly as if teaching a student. (Min 2 paragraphs)",
    "keyPoints": ["Detailed Point 1", "Detailed Point 2", "Detailed Point 3", "Detailed Point 4", "Detailed Point 5"],
    "quiz": [
      {
        "question": "A challenging multiple choice question testing conceptual understanding",
        "options": ["Option A", "Option B", "Option C", "Option D"],
        "correctAnswer": 0
      }
    ]
  }

  IMPORTANT REQUIREMENTS:
  1. Generate AT LEAST 5 unique quiz questions.
  2. Each question has exactly 4 options; correctAnswer is the index (0-3) of the correct option.
  3. The summary must be detailed and educational, not just a brief overview.
  4. Key points should be substantive statements, not short phrases. Give at least 5.
  5. Do not include markdown formatting or backticks in the response, just the raw JSON string.
"""

DIAGNOSTIC_PROMPT = "test"


@dataclass(frozen=True)
class GenerationConfig:
    """
    Explicit configuration for NoteGenerator.

    Attributes:
        api_key:          Model service credential. Empty means "not configured".
        models:           Fallback list, most preferred (cheapest/fastest) first.
        diagnostic_model: Baseline model probed once after total exhaustion.
    """

    api_key: str
    models: List[str] = field(default_factory=lambda: ["gemini-2.0-flash", "gemini-1.5-flash", "gemini-1.5-pro"])
    diagnostic_model: str = "gemini-pro"

    @property
    def has_credentials(self) -> bool:
        return is_usable_api_key(self.api_key)

    @classmethod
    def from_settings(cls, config: Settings) -> "GenerationConfig":
        return cls(
            api_key=config.gemini_api_key,
            models=list(config.gemini_models),
            diagnostic_model=config.gemini_diagnostic_model,
        )


class NoteGenerator:
    """
    Model fallback loop over a configuration-supplied priority list.

    Stateless between invocations: the only state is the injected config and
    provider, so one instance serves every request.
    """

    MISSING_KEY_MESSAGE = "Gemini API Key is missing. Please set GEMINI_API_KEY in the server environment."
    INVALID_KEY_MESSAGE = "Invalid API Key. Please update GEMINI_API_KEY in the server environment."

    def __init__(self, config: GenerationConfig, provider: ModelProvider, prompt: str = LECTURE_PROMPT):
        self.config = config
        self.provider = provider
        self.prompt = prompt

    async def generate(self, images: Union[str, Sequence[str]]) -> GenerationResult:
        """
        Generate structured lecture notes from page images.

        Args:
            images: One data URL / base64 string, or an ordered sequence of them.

        Returns:
            GenerationResult. success=True carries the parsed JSON object and
            the model identifier that produced it.
        """
        try:
            if not self.config.has_credentials:
                logger.error("Note generation refused: no Gemini API key configured")
                return GenerationResult(
                    success=False,
                    error=self.MISSING_KEY_MESSAGE,
                    error_code="configuration_error",
                )

            image_list = [images] if isinstance(images, str) else list(images)
            images_b64 = [strip_data_url_prefix(image) for image in image_list]

            last_error: Optional[str] = None
            for model_name in self.config.models:
                logger.info("Trying model %s with %d image(s)", model_name, len(images_b64))
                try:
                    text = await self.provider.generate(model_name, self.prompt, images_b64)
                except Exception as e:
                    logger.warning("Model %s failed: %s", model_name, str(e))
                    last_error = str(e)
                    continue

                try:
                    data = parse_model_json(text)
                except MalformedOutputError as e:
                    logger.error("Model %s returned malformed output: %s\n%s", model_name, e.message, e.raw_text)
                    last_error = e.message
                    continue

                logger.info("Model %s produced lecture notes", model_name)
                return GenerationResult(success=True, data=data, model=model_name)

            return await self._exhausted(last_error)

        except Exception as e:
            logger.error("Unexpected error during note generation: %s", str(e), exc_info=True)
            return GenerationResult(
                success=False,
                error=f"Server Error: {e}",
                error_code="server_error",
            )

    async def _exhausted(self, last_error: Optional[str]) -> GenerationResult:
        """One diagnostic probe to tell a bad credential from everything else."""
        logger.error(
            "All %d models failed; probing %s",
            len(self.config.models),
            self.config.diagnostic_model,
        )
        try:
            await self.provider.generate(self.config.diagnostic_model, DIAGNOSTIC_PROMPT)
            diagnostic = f"{self.config.diagnostic_model} is reachable"
        except Exception as e:
            if INVALID_KEY_MARKER in str(e):
                return GenerationResult(
                    success=False,
                    error=self.INVALID_KEY_MESSAGE,
                    error_code="invalid_credentials",
                )
            diagnostic = str(e)

        return GenerationResult(
            success=False,
            error=(
                "AI Generation Failed. All models failed. "
                f"Last error: {last_error or 'Unknown'}. Diag: {diagnostic}"
            ),
            error_code="generation_failed",
        )
