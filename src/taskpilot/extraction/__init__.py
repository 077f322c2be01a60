"""
Structured response extraction from unreliable model output.

Usage:
    from taskpilot.extraction import ExpectedShape, extract

    plan = extract(response.content, ExpectedShape.ARRAY)
"""

from taskpilot.extraction.cleanup import (
    clean_json_string,
    repair_strings,
    strip_comments,
    strip_fatal_suffix,
)
from taskpilot.extraction.extractor import (
    ExpectedShape,
    ResponseExtractor,
    balanced_spans,
    extract,
)

__all__ = [
    "ExpectedShape",
    "ResponseExtractor",
    "extract",
    "balanced_spans",
    "clean_json_string",
    "repair_strings",
    "strip_comments",
    "strip_fatal_suffix",
]
