"""
LectureSnap Backend - Abstract Model Provider Interface
=========================================================

What:  Abstract base class for a hosted multimodal model that turns a prompt
       plus page images into text.
How:   Concrete providers inherit from ModelProvider and implement
       generate() and health_check().
Who:   Called by NoteGenerator, which owns the model fallback loop.

The provider makes exactly one call per generate() invocation and does no
retrying of its own: choosing the next model identifier after a failure is
NoteGenerator's job. Tests substitute a stub provider that records the model
names it was asked for.

Implementations:
    - GeminiProvider: Google Gemini via google-generativeai (default)
"""

from abc import ABC, abstractmethod
from typing import Sequence


class ModelProvider(ABC):
    """
    Contract:
        - generate() sends one request to one named model and returns its text
        - Provider errors propagate unchanged; the caller classifies them
        - Image payloads are raw base64 JPEG (no data-URL prefix)
    """

    @abstractmethod
    async def generate(self, model_name: str, prompt: str, images_b64: Sequence[str] = ()) -> str:
        """
        Send the prompt followed by each image as one multimodal request.

        Args:
            model_name: Model identifier to invoke (e.g. "gemini-2.0-flash")
            prompt:     Instruction text, always the first part of the request
            images_b64: Raw base64 JPEG payloads, in page order

        Returns:
            The model's response text (possibly wrapped in code fences).

        Raises:
            Any provider/network exception. Invalid credentials surface as an
            exception whose message contains "API key not valid".
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the provider is reachable and the credential is accepted.

        Returns: True if reachable, False otherwise. Never raises.
        """
        ...
