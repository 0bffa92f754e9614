"""
Utility functions for LLM response parsing.
"""
import json
import re
from typing import Any, Dict, Optional


def extract_json_from_llm_response(content: str) -> Optional[Dict[str, Any]]:
    """
    Extract a JSON object from an LLM response.

    Tries, in order:
    1. The whole response as JSON
    2. A fenced code block (```json or ```)
    3. The first balanced { ... } span, with trailing commas removed

    Args:
        content: Raw LLM response text

    Returns:
        Parsed dictionary, or None if the response holds no JSON object
    """
    if not content:
        return None

    content = content.strip()

    result = _loads_dict(content)
    if result is not None:
        return result

    match = re.search(r'```(?:json)?\s*([\s\S]*?)\s*```', content)
    if match:
        result = _loads_dict(match.group(1))
        if result is not None:
            return result

    span = _first_object_span(content)
    if span:
        return _loads_dict(span) or _loads_dict(re.sub(r',\s*([}\]])', r'\1', span))

    return None


def _loads_dict(text: str) -> Optional[Dict[str, Any]]:
    try:
        result = json.loads(text)
    except json.JSONDecodeError:
        return None
    return result if isinstance(result, dict) else None


def _first_object_span(content: str) -> Optional[str]:
    """Return the first brace-balanced object, ignoring braces inside strings."""
    start = content.find('{')
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(content)):
        char = content[i]
        if escape_next:
            escape_next = False
        elif char == '\\':
            escape_next = True
        elif char == '"':
            in_string = not in_string
        elif not in_string:
            if char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
                if depth == 0:
                    return content[start:i + 1]
    return None
