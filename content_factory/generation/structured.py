"""JSON extraction and repair for structured model output."""

import json
import re
from typing import Any

from content_factory import constants
from content_factory.errors import StructuredOutputError
from content_factory.utils.text import strip_code_fences

_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def parse_json_response(raw: str) -> Any:
    """
    Strictly parse model output as JSON after removing code fences.

    Raises:
        StructuredOutputError: If the text is not valid JSON
    """
    cleaned = strip_code_fences(raw)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        preview = cleaned[: constants.PROMPT_PREVIEW_CHARS]
        raise StructuredOutputError(f"Failed to parse JSON response: {e}. Raw: {preview}", raw) from e


def _outer_object(text: str) -> str:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return text
    return text[start : end + 1]


def _escape_control_chars_in_strings(text: str) -> str:
    """Escape raw newlines and tabs that appear inside JSON string literals."""
    out: list[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            elif char in _CONTROL_ESCAPES:
                out.append(_CONTROL_ESCAPES[char])
                continue
            elif ord(char) < 0x20:
                out.append(f"\\u{ord(char):04x}")
                continue
        elif char == '"':
            in_string = True
        out.append(char)
    return "".join(out)


def _extract_string_field(text: str, field: str) -> str | None:
    match = re.search(rf'"{re.escape(field)}"\s*:\s*"((?:[^"\\]|\\.)*)"', text, re.DOTALL)
    if not match:
        return None
    value = match.group(1)
    try:
        return json.loads(_escape_control_chars_in_strings(f'"{value}"'))
    except json.JSONDecodeError:
        return value


def repair_json(raw: str, fields: list[str] | None = None) -> dict[str, Any] | None:
    """
    Best-effort recovery of a JSON object from malformed model output.

    Tries, in order: the outer ``{...}`` span, the same span with control
    characters inside strings escaped, and finally a regex pull of the named
    string fields.

    Args:
        raw: Model output
        fields: String fields worth salvaging individually

    Returns:
        Recovered object, or None when nothing could be salvaged
    """
    candidate = _outer_object(strip_code_fences(raw))

    for text in (candidate, _escape_control_chars_in_strings(candidate)):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    if not fields:
        return None

    salvaged = {}
    for field in fields:
        value = _extract_string_field(candidate, field)
        if value is not None:
            salvaged[field] = value
    return salvaged or None
