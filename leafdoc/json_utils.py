"""
JSON extraction utilities for Gemini model output.

The model is told to answer with bare JSON but often wraps it in markdown
fences or surrounding prose. Extraction runs in two independent steps:
locate the object span, then parse it. Each step fails with its own error.
"""
import json
import re
import logging

from .errors import MalformedJson, NoJsonFound

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?")


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence markers, keeping what they enclosed."""
    return _FENCE_RE.sub("", text)


def locate_json_object(text: str) -> str:
    """Return the span from the first '{' to the last '}' in text.

    Raises:
        NoJsonFound: if there is no such span.
    """
    start = text.find('{')
    end = text.rfind('}')
    if start == -1 or end < start:
        logger.error(f"No JSON object found in response: {text[:200]}...")
        raise NoJsonFound("Model response contained no JSON object")
    return text[start:end + 1]


def _fix_newlines_in_json_strings(text: str) -> str:
    """Replace literal newlines inside JSON string values with spaces.

    Walks the text character-by-character, tracking whether we're inside
    a quoted string. Newlines between tokens are left alone.
    """
    result = []
    in_string = False
    i = 0
    while i < len(text):
        c = text[i]
        if c == '\\' and in_string and i + 1 < len(text):
            # Escaped character inside string, keep both chars as-is
            result.append(c)
            result.append(text[i + 1])
            i += 2
            continue
        if c == '"':
            in_string = not in_string
        if c == '\n' and in_string:
            result.append(' ')
        else:
            result.append(c)
        i += 1
    return ''.join(result)


def parse_json_object(span: str) -> dict:
    """Parse a located span strictly. No repair beyond newline folding.

    Raises:
        MalformedJson: on a syntax error, with the parser's message.
    """
    text = _fix_newlines_in_json_strings(span)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"JSON parse error: {e}")
        raise MalformedJson(str(e)) from e
    return data


def extract_json(text: str) -> dict:
    """Strip fences, locate the object span and parse it."""
    return parse_json_object(locate_json_object(strip_code_fences(text or "")))
