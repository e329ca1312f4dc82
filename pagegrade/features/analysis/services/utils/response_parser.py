import json
from typing import Any, Dict, Optional


def find_first_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} substring of `text`, or None.

    Braces inside JSON strings (including escaped quotes) are ignored, so
    prose before or after the object and code fences around it are tolerated.
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False

        for index in range(start, len(text)):
            char = text[index]

            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue

            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]

        # Unbalanced from this brace; try the next opening brace
        start = text.find("{", start + 1)

    return None


def parse_json_object(text: str) -> Dict[str, Any]:
    """
    Best-effort decode of a JSON object embedded in a model response.

    Raises ValueError when no balanced object exists or it is not valid JSON.
    """
    candidate = find_first_json_object(text)
    if candidate is None:
        raise ValueError("No JSON object found in response")

    data = json.loads(candidate)
    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data
