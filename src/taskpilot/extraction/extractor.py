"""
Structured response extraction.

Recovers a JSON object or array from free-text model output. The model
frequently wraps the payload in prose or markdown fences, appends
diagnostics, or emits comments and minor syntax violations. Stages are
tried in order and the first plausible value wins:

1. strip a trailing error/traceback suffix
2. fenced code blocks, in order of appearance
3. every delimiter-balanced span of the text, longest first
4. first opening to last closing delimiter, after cleanup

Each candidate goes through four parse strategies: lenient repair, lenient
repair after comment stripping, strict JSON after cleanup, strict JSON after
comment stripping and cleanup.

Extraction is a pure function of its input.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterator
from enum import Enum
from typing import Any

import json_repair

from taskpilot.domain.exceptions import NoStructuredDataError
from taskpilot.extraction.cleanup import (
    clean_json_string,
    strip_comments,
    strip_fatal_suffix,
)

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```[ \t]*[\w+-]*[ \t]*\r?\n?(.*?)```", re.DOTALL)
_MAX_BALANCED_CANDIDATES = 64


class ExpectedShape(Enum):
    """Top-level JSON value the caller asked for."""

    OBJECT = ("{", "}")
    ARRAY = ("[", "]")

    @property
    def opening(self) -> str:
        return self.value[0]

    @property
    def closing(self) -> str:
        return self.value[1]


_STRATEGIES: tuple[tuple[str, Callable[[str], Any]], ...] = (
    ("repaired", lambda s: json_repair.loads(s)),
    ("repaired-uncommented", lambda s: json_repair.loads(strip_comments(s))),
    ("strict-cleaned", lambda s: json.loads(clean_json_string(s))),
    (
        "strict-uncommented-cleaned",
        lambda s: json.loads(clean_json_string(strip_comments(s))),
    ),
)


class ResponseExtractor:
    """Cascading-strategy parser for one expected shape."""

    def __init__(
        self,
        shape: ExpectedShape = ExpectedShape.OBJECT,
        expected_keys: tuple[str, ...] = (),
    ) -> None:
        """
        Args:
            shape: Top-level value to look for
            expected_keys: At least one of these keys must be present in the
                object, or in one element of the array (any object qualifies
                when empty)
        """
        self._shape = shape
        self._expected_keys = tuple(expected_keys)

    @property
    def shape(self) -> ExpectedShape:
        return self._shape

    def extract(self, raw_text: str) -> Any:
        """
        Extract a structured value from ``raw_text``.

        Raises:
            NoStructuredDataError: If no stage yields a plausible value
        """
        raw_text = raw_text or ""
        cleaned = strip_fatal_suffix(raw_text)
        if self._shape.opening not in cleaned:
            cleaned = raw_text.strip()

        stages: tuple[tuple[str, Callable[[str], Iterator[str]]], ...] = (
            ("fenced", self._fenced_candidates),
            ("balanced", self._balanced_candidates),
            ("outermost", self._outermost_candidate),
        )
        for stage, candidates in stages:
            for candidate in candidates(cleaned):
                value, strategy = self._parse(candidate)
                if strategy is not None:
                    logger.debug(
                        f"Extracted {self._shape.name.lower()} via {stage}/{strategy}"
                    )
                    return value

        raise NoStructuredDataError(raw_text)

    # ------------------------------------------------------------------
    # Candidate generation
    # ------------------------------------------------------------------

    def _fenced_candidates(self, text: str) -> Iterator[str]:
        for match in _FENCED_BLOCK.finditer(text):
            span = self._outermost_span(match.group(1))
            if span is not None:
                yield span

    def _balanced_candidates(self, text: str) -> Iterator[str]:
        yield from balanced_spans(
            text, self._shape.opening, self._shape.closing, _MAX_BALANCED_CANDIDATES
        )

    def _outermost_candidate(self, text: str) -> Iterator[str]:
        span = self._outermost_span(text)
        if span is not None:
            yield clean_json_string(span)

    def _outermost_span(self, text: str) -> str | None:
        start = text.find(self._shape.opening)
        end = text.rfind(self._shape.closing)
        if start == -1 or end < start:
            return None
        return text[start : end + 1]

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _parse(self, candidate: str) -> tuple[Any, str | None]:
        for name, strategy in _STRATEGIES:
            try:
                value = strategy(candidate)
            except (ValueError, TypeError, IndexError, RecursionError):
                continue
            if self._plausible(value):
                return value, name
        return None, None

    def _plausible(self, value: Any) -> bool:
        """
        Repaired text parses into almost anything, so only values that look
        like the requested payload stop the cascade.

        Objects must be non-empty; arrays must be non-empty lists of
        objects. With ``expected_keys``, an object (or at least one
        array element) must carry one of those keys.
        """
        if self._shape is ExpectedShape.ARRAY:
            if not isinstance(value, list) or not value:
                return False
            if not all(isinstance(item, dict) for item in value):
                return False
            return any(self._has_expected_key(item) for item in value)
        if not isinstance(value, dict) or not value:
            return False
        return self._has_expected_key(value)

    def _has_expected_key(self, value: dict[str, Any]) -> bool:
        if not self._expected_keys:
            return True
        return any(key in value for key in self._expected_keys)


def balanced_spans(
    text: str, opening: str, closing: str, limit: int | None = None
) -> list[str]:
    """
    Every substring delimited by a matching ``opening``/``closing`` pair.

    Delimiters inside double-quoted strings are ignored. Spans at every
    nesting depth are returned, longest first; equal lengths keep the order
    in which they close.
    """
    spans: list[str] = []
    stack: list[int] = []
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == opening:
            stack.append(i)
        elif ch == closing and stack:
            start = stack.pop()
            spans.append(text[start : i + 1])

    unique = list(dict.fromkeys(spans))
    unique.sort(key=len, reverse=True)
    return unique if limit is None else unique[:limit]


def extract(
    raw_text: str,
    shape: ExpectedShape = ExpectedShape.OBJECT,
    expected_keys: tuple[str, ...] = (),
) -> Any:
    """Extract a value of ``shape`` from ``raw_text``; see ResponseExtractor."""
    return ResponseExtractor(shape, expected_keys).extract(raw_text)
