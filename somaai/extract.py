"""Best-effort JSON extraction from free-form model text.

Models often wrap the requested JSON in prose or markdown fences. The
extractor tries a strict parse, then the span between the first opening
and last closing delimiter, then a ``raw_decode`` scan that stops at the
first balanced value. Braces inside string values can still mislead the
span heuristic; the scan only catches the case where trailing text adds
extra closing delimiters.
"""

import json
import logging
from typing import Any, Literal

from somaai.errors import MalformedJson, NoJsonFound

log = logging.getLogger(__name__)

Shape = Literal["object", "array"]

_DELIMITERS: dict[str, tuple[str, str]] = {
    "object": ("{", "}"),
    "array": ("[", "]"),
}

_decoder = json.JSONDecoder()


def _scan_balanced(text: str, opener: str) -> Any:
    """Return the first value that decodes cleanly from an ``opener`` position."""
    start = text.find(opener)
    while start != -1:
        try:
            value, _end = _decoder.raw_decode(text, start)
            return value
        except json.JSONDecodeError:
            start = text.find(opener, start + 1)
    raise MalformedJson("No balanced JSON value found")


def extract_json(text: str | None, shape: Shape = "object") -> Any:
    """Parse the JSON value contained in ``text``.

    Raises NoJsonFound when there is no delimiter pair, MalformedJson when a
    candidate span exists but does not parse.
    """
    if not text or not text.strip():
        raise NoJsonFound("No text to parse")
    text = text.strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    opener, closer = _DELIMITERS[shape]
    first = text.find(opener)
    last = text.rfind(closer)
    if first == -1 or last == -1 or first >= last:
        raise NoJsonFound(f"No JSON {shape} found")

    try:
        return json.loads(text[first : last + 1])
    except json.JSONDecodeError:
        log.debug("Span parse failed, scanning for a balanced %s", shape)

    try:
        return _scan_balanced(text, opener)
    except MalformedJson:
        raise MalformedJson(f"Could not parse JSON {shape} from model output") from None
