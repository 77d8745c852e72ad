"""Extraction of JSON payloads embedded in free-form model output.

Model responses routinely wrap the requested JSON in prose or markdown
fences, so callers never hand raw text to ``json.loads`` directly. Instead the
text is scanned for balanced ``{...}``/``[...]`` blocks and each candidate is
parsed in order until one succeeds.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

_CLOSERS = {"{": "}", "[": "]"}


@dataclass(slots=True, frozen=True)
class ParseResult:
    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _balanced_end(text: str, start: int) -> int | None:
    stack = [_CLOSERS[text[start]]]
    in_string = False
    escaped = False
    for index in range(start + 1, len(text)):
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
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in "}]":
            if char != stack[-1]:
                return None
            stack.pop()
            if not stack:
                return index
    return None


def iter_json_blocks(text: str) -> Iterator[str]:
    """Yield balanced bracket substrings in order of their opening position."""
    for start, char in enumerate(text):
        if char not in _CLOSERS:
            continue
        end = _balanced_end(text, start)
        if end is not None:
            yield text[start : end + 1]


def extract_json_block(text: str) -> str | None:
    return next(iter_json_blocks(text), None)


def parse_json_block(
    text: str,
    *,
    expect: type | tuple[type, ...] | None = None,
    predicate: Callable[[Any], bool] | None = None,
) -> ParseResult:
    """Return the first block that decodes, has type ``expect`` and passes ``predicate``.

    Blocks failing any of the checks are skipped, so JSON quoted in leading
    prose does not shadow the payload that follows it.
    """
    if not text or not text.strip():
        return ParseResult(error="Response is empty.")

    found_block = False
    last_error = "No JSON object found in response."
    for block in iter_json_blocks(text):
        found_block = True
        try:
            value = json.loads(block)
        except json.JSONDecodeError as exc:
            last_error = f"Invalid JSON block: {exc}"
            continue
        if expect is not None and not isinstance(value, expect):
            last_error = f"Unexpected JSON payload type: {type(value).__name__}"
            continue
        if predicate is not None and not predicate(value):
            last_error = "JSON block does not have the expected shape."
            continue
        return ParseResult(value=value)

    if not found_block:
        return ParseResult(error="No JSON object found in response.")
    return ParseResult(error=last_error)
