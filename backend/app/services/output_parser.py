"""
Tolerant parsing of model output.

The model is asked for raw JSON but often wraps it in a ```json fence. The
contract here is: strip the known wrapper markers, parse, and classify
anything that is still not a JSON object as malformed output.
"""

import json
from typing import Any, Dict

from app.exceptions import MalformedOutputError

FENCE_MARKERS = ("```json", "```")


def strip_code_fences(text: str) -> str:
    cleaned = text
    for marker in FENCE_MARKERS:
        cleaned = cleaned.replace(marker, "")
    return cleaned.strip()


def parse_model_json(text: str) -> Dict[str, Any]:
    """
    Parse model text into a JSON object.

    Raises:
        MalformedOutputError: empty text, invalid JSON, or a top-level value
            that is not an object. The raw text is attached for logging.
    """
    cleaned = strip_code_fences(text or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(
            message=f"Model response was not valid JSON: {e.msg} at position {e.pos}",
            raw_text=text or "",
        )
    if not isinstance(data, dict):
        raise MalformedOutputError(
            message=f"Model response was JSON {type(data).__name__}, expected an object",
            raw_text=text or "",
        )
    return data
