"""
Text cleanup heuristics applied before parsing model output as JSON.

All helpers are pure string transformations. The string-aware walkers
never alter text that is already valid JSON, so they are safe to apply
to candidates that a strict parser would have accepted anyway.
"""

import re

# A line that starts a stack trace or an "XxxError:" diagnostic.
_FATAL_MARKER = re.compile(
    r"^[ \t]*(?:Traceback \(most recent call last\)"
    r"|(?:[A-Za-z_][\w.]*)?(?:Error|Exception)\b\s*:)",
    re.MULTILINE,
)
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_STRUCTURAL_AFTER_STRING = ",:}]"
_WHITESPACE = " \t\r\n"


def strip_fatal_suffix(text: str) -> str:
    """Drop everything from the first error/traceback marker line onwards."""
    match = _FATAL_MARKER.search(text)
    if match is None:
        return text.strip()
    return text[: match.start()].strip()


def strip_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments outside of string literals."""
    out: list[str] = []
    i = 0
    n = len(text)
    quote = ""
    while i < n:
        ch = text[i]
        if quote:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = ""
            i += 1
            continue
        if ch in "\"'":
            quote = ch
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def remove_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


def repair_strings(text: str) -> str:
    """
    Fix string literals a strict parser would reject.

    Inside double-quoted strings, a quote not followed by a structural
    character is escaped, and raw newlines/tabs become escape sequences.
    Other control characters are dropped everywhere.
    """
    out: list[str] = []
    i = 0
    n = len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if not in_string:
            if ch == '"':
                in_string = True
                out.append(ch)
            elif ch in _WHITESPACE or not _is_control(ch):
                out.append(ch)
            i += 1
            continue

        if ch == "\\":
            out.append(text[i : i + 2])
            i += 2
            continue
        if ch == '"':
            j = i + 1
            while j < n and text[j] in _WHITESPACE:
                j += 1
            if j >= n or text[j] in _STRUCTURAL_AFTER_STRING:
                in_string = False
                out.append(ch)
            else:
                out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\t":
            out.append("\\t")
        elif ch == "\r":
            out.append("\\r")
        elif not _is_control(ch):
            out.append(ch)
        i += 1
    return "".join(out)


def clean_json_string(text: str) -> str:
    """Trim, drop trailing commas, repair string literals."""
    return repair_strings(remove_trailing_commas(text.strip()))


def _is_control(ch: str) -> bool:
    return ord(ch) < 0x20 or ch == "\x7f"
