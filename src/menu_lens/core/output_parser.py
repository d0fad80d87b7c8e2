"""Parser for the vision model's free-form answer.

The model is asked for a JSON array but often wraps it in prose. The parser
takes the greedy ``[ ... ]`` span, decodes it and validates every element.
Validation is fail-closed: one bad element rejects the whole list.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from numbers import Real
from typing import Any

from menu_lens.core.logging import log_event, safe_preview
from menu_lens.core.models import MenuItem, ParseFailure, ParseFailureKind, ParseResult, Position


logger = logging.getLogger(__name__)


class SchemaError(ValueError):
    """Raised internally when a decoded element breaks the item contract."""


def extract_bracket_span(text: str) -> str | None:
    """Return text from the first ``[`` to the last ``]`` inclusive, or None."""
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end == -1 or end < start:
        return None
    return text[start : end + 1]


def _is_number(value: Any) -> bool:
    # bool is a subclass of int but never a coordinate
    if not isinstance(value, Real) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # int too large for a float
        return False


def _non_empty_text(element: Mapping[str, Any], key: str, index: int) -> str:
    value = element.get(key)
    if not isinstance(value, str) or not value.strip():
        raise SchemaError(f"item {index}: missing or empty '{key}'")
    return value


def _position(element: Mapping[str, Any], index: int, *, required: bool) -> Position | None:
    raw = element.get("position")
    if isinstance(raw, Mapping) and _is_number(raw.get("x")) and _is_number(raw.get("y")):
        return Position(x=raw["x"], y=raw["y"])
    if required:
        raise SchemaError(f"item {index}: position.x and position.y must be numbers")
    return None


class VisionResponseParser:
    """Turns a raw model answer into a validated list of MenuItem."""

    def __init__(self, *, require_positions: bool = False):
        self.require_positions = require_positions

    def parse(self, raw_output: Any) -> ParseResult:
        """
        Parse model output into items.

        Steps:
        1. Greedy bracket span (tolerates preamble and trailing commentary)
        2. JSON decode
        3. Fail-closed schema validation
        """
        text = raw_output if isinstance(raw_output, str) else ("" if raw_output is None else str(raw_output))

        span = extract_bracket_span(text)
        if span is None:
            return self._fail("no_payload", "no bracketed array in response", text)

        try:
            data = json.loads(span)
        except (ValueError, RecursionError) as e:
            # ValueError also covers integer literals past the int digit limit
            return self._fail("malformed_json", str(e) or type(e).__name__, text)

        try:
            items = self._validate(data)
        except SchemaError as e:
            return self._fail("schema_invalid", str(e), text)

        return ParseResult(items=items)

    def _validate(self, data: Any) -> list[MenuItem]:
        if not isinstance(data, list):
            raise SchemaError(f"expected a list, got {type(data).__name__}")

        items: list[MenuItem] = []
        for index, element in enumerate(data):
            if not isinstance(element, Mapping):
                raise SchemaError(f"item {index}: expected an object, got {type(element).__name__}")

            name = _non_empty_text(element, "name", index)
            definition = _non_empty_text(element, "definition", index)
            position = _position(element, index, required=self.require_positions)

            items.append(MenuItem(name=name, definition=definition, position=position))

        return items

    def _fail(self, kind: ParseFailureKind, detail: str, text: str) -> ParseResult:
        log_event(
            logger,
            event="analysis_parse_failed",
            level="warning",
            failure_kind=kind,
            detail=detail,
            preview=safe_preview(text),
        )
        return ParseResult(items=[], failure=ParseFailure(kind=kind, detail=detail))


def parse_menu_items(raw_output: Any, *, require_positions: bool = False) -> ParseResult:
    """Convenience function for parsing a model answer."""
    parser = VisionResponseParser(require_positions=require_positions)
    return parser.parse(raw_output)
