"""
LectureSnap Backend - Google Gemini Provider
==============================================

What:  ModelProvider implementation backed by the Google Gemini API.
How:   Builds one multimodal request (prompt text + inline JPEG parts) and
       calls GenerativeModel.generate_content_async for the requested model.
Who:   Constructed once in create_app() from the configured API key and handed
       to NoteGenerator; NoteGenerator decides which model name to call.

One call per generate() invocation. No retry, backoff, or circuit breaking
happens here: the only recovery is NoteGenerator advancing to the next model
identifier in its fallback list.
"""

import base64
import logging
import time
from typing import Any, Dict, List, Sequence, Union

import google.generativeai as genai

from app.config import is_usable_api_key
from app.services.llm_base import ModelProvider

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPE = "image/jpeg"


def build_request_parts(prompt: str, images_b64: Sequence[str]) -> List[Union[str, Dict[str, Any]]]:
    """
    Prompt first, then one inline-data part per page in order.

    Blob data is decoded here: the SDK wants bytes, callers hand over the
    base64 text that came out of the data URL.
    """
    parts: List[Union[str, Dict[str, Any]]] = [prompt]
    for image_b64 in images_b64:
        parts.append({
            "mime_type": IMAGE_MIME_TYPE,
            "data": base64.b64decode(image_b64),
        })
    return parts


class GeminiProvider(ModelProvider):
    """
    Google Gemini implementation of ModelProvider.

    Args:
        api_key: Gemini API key. When empty the SDK is left unconfigured;
                 NoteGenerator refuses to call a provider without a key.
    """

    def __init__(self, api_key: str):
        self._configured = is_usable_api_key(api_key)
        # The SDK keeps its credential in module-level state
        if self._configured:
            genai.configure(api_key=api_key)
        logger.info("GeminiProvider initialized (configured=%s)", self._configured)

    async def generate(self, model_name: str, prompt: str, images_b64: Sequence[str] = ()) -> str:
        start_time = time.time()
        model = genai.GenerativeModel(model_name)

        try:
            response = await model.generate_content_async(build_request_parts(prompt, images_b64))
            text = response.text or ""
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "Gemini call to %s failed after %.0fms: %s",
                model_name,
                duration_ms,
                str(e),
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Gemini %s answered in %.0fms with %d chars for %d image(s)",
            model_name,
            duration_ms,
            len(text),
            len(images_b64),
        )
        return text

    async def health_check(self) -> bool:
        """
        Check if Gemini API is reachable with the configured key.

        How:     Lists available models (no token cost).
        Returns: True if reachable and authenticated, False otherwise.
        """
        if not self._configured:
            return False
        try:
            models = list(genai.list_models())
            return len(models) > 0
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False
