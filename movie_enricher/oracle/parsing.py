"""
Decoding oracle completions.

Models asked for "JSON only" still occasionally wrap the payload in a
markdown code fence; ``parse_json`` strips one before decoding.
"""

from __future__ import annotations

import json
import re
from typing import Any

from movie_enricher.errors import OracleError

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def parse_json(text: str) -> Any:
    """Decode ``text`` as JSON.

    Raises:
        OracleError: If the text is empty or not valid JSON.
    """
    stripped = (text or "").strip()
    match = _FENCE_RE.match(stripped)
    if match:
        stripped = match.group(1)
    if not stripped:
        raise OracleError("Oracle returned an empty completion.", raw_content=text)
    try:
        return json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise OracleError(f"Oracle returned invalid JSON: {exc}", raw_content=text) from exc


def parse_json_object(text: str) -> dict[str, Any]:
    """Decode ``text`` and require a JSON object.

    Raises:
        OracleError: If the text is not valid JSON or not an object.
    """
    parsed = parse_json(text)
    if not isinstance(parsed, dict):
        raise OracleError(
            f"Oracle returned JSON {type(parsed).__name__}, expected an object.",
            raw_content=text,
        )
    return parsed
