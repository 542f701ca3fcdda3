# compiler.py
# SPDX-License-Identifier: MIT
"""Compile normalized license templates into regular expressions.

Template grammar (after normalization):

* ``<<omitable>> ... <</omitable>>`` marks a span that may be absent.
* ``<<copyright>>`` is an unconstrained wildcard (holder names, years).
* ``<<fragment>>`` embeds an author-supplied regex fragment as a capturing
  group.

Everything outside tags is literal text: regex metacharacters are escaped and
whitespace runs match any whitespace run. The result is compiled
case-insensitively.
"""

from __future__ import annotations

import re

from .errors import PatternCompileError

__all__ = [
    "build_regex_source",
    "compile_template",
    "PATTERN_FLAGS",
]

PATTERN_FLAGS = re.IGNORECASE | re.DOTALL

# Placeholder tokens use NUL delimiters so they cannot collide with template text.
_BEGIN_OMITABLE = "\x00BEGIN_OMITABLE\x00"
_END_OMITABLE = "\x00END_OMITABLE\x00"
_COPYRIGHT = "\x00COPYRIGHT\x00"

_TAG_TOKENS = (
    ("<<omitable>>", _BEGIN_OMITABLE),
    ("<</omitable>>", _END_OMITABLE),
    ("<<copyright>>", _COPYRIGHT),
)
_TOKEN_FORMS = (
    (_BEGIN_OMITABLE, r"\s*(?:"),
    (_END_OMITABLE, r"\s*)?"),
    (_COPYRIGHT, r".*"),
)

_SEGMENT_RE = re.compile(r" *<<(.*?)>> *")
_UNSAFE_RE = re.compile(r"([\\.*+?^${}()|\[\]])")
_WS_RUN_RE = re.compile(r"\s+")


def _escape_literal(text: str) -> str:
    escaped = _UNSAFE_RE.sub(r"\\\1", text)
    return _WS_RUN_RE.sub(r"\\s+", escaped)


def _wrap_fragment(fragment: str) -> str:
    return r"\s*(?:(" + fragment + r")\s*)"


def _replace_tokens(text: str) -> str:
    for token, form in _TOKEN_FORMS:
        text = text.replace(token, form)
    return text


def build_regex_source(normalized_text: str) -> tuple[str, list[str]]:
    """Translate normalized template text into regex source.

    Args:
        normalized_text (str): Output of a normalizer, in tag grammar.

    Returns:
        tuple[str, list[str]]: The regex source and the generic tag
        fragments in the order they appear (one capturing group each).
    """
    # A single space hugging a delimiter belongs to the tag, not the text.
    text = normalized_text.replace(" <<", "<<").replace(">> ", ">>")
    # Reserved tags become tokens first so generic-tag scanning can't trip on them.
    for tag, token in _TAG_TOKENS:
        text = text.replace(tag, token)

    segments: list[str] = []
    fragments: list[str] = []
    prev = 0
    for m in _SEGMENT_RE.finditer(text):
        if m.start() > prev:
            segments.append(_escape_literal(text[prev:m.start()]))
        fragment = m.group(1)
        fragments.append(fragment)
        segments.append(_wrap_fragment(fragment))
        prev = m.end()
    if prev < len(text):
        segments.append(_escape_literal(text[prev:]))

    return _replace_tokens("".join(segments)), fragments


def compile_template(normalized_text: str) -> re.Pattern[str]:
    """Compile normalized template text into a case-insensitive pattern.

    Raises:
        PatternCompileError: If the assembled expression is invalid. When a
            single tag fragment is at fault, the error names it.
    """
    source, fragments = build_regex_source(normalized_text)
    try:
        return re.compile(source, PATTERN_FLAGS)
    except re.error as exc:
        for fragment in fragments:
            try:
                re.compile(_replace_tokens(fragment), PATTERN_FLAGS)
            except re.error as frag_exc:
                raise PatternCompileError(
                    f"invalid regex fragment {fragment!r} in template: {frag_exc}",
                    fragment=fragment,
                    source=source,
                ) from frag_exc
        raise PatternCompileError(f"cannot generate regex: {exc}", source=source) from exc
