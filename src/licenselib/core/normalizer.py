# normalizer.py
# SPDX-License-Identifier: MIT
"""Byte decoding and text normalization for license templates.

Two responsibilities live here:

* :func:`decode_bytes` turns raw resource bytes into text (BOM-aware, UTF-8
  first, cp1252 fallback).
* :class:`TemplateNormalizer` rewrites SPDX template markup into the tag
  grammar understood by :mod:`licenselib.core.compiler` and canonicalizes the
  literal text between tags. The same normalizer must be applied to candidate
  text before it is matched against compiled templates.
"""

from __future__ import annotations

import re
import unicodedata as _ud
from dataclasses import dataclass
from typing import Literal, Optional, Protocol, runtime_checkable

from .config import NormalizerConfig
from .log import get_logger

__all__ = [
    "CaptureGroup",
    "NormalizedText",
    "Normalizer",
    "TemplateNormalizer",
    "decode_bytes",
]

log = get_logger(__name__)

NormalizeForm = Literal["NFC", "NFD", "NFKC", "NFKD"]


@dataclass(frozen=True, slots=True)
class CaptureGroup:
    """A variable span discovered in a template.

    Attributes:
        group_number (int): 1-based ordinal of the generic tag in the
            normalized template, which is the regex group it compiles to.
        name (str): Variable name from the template markup (may be empty).
        original (str): Text the template shows for this span.
        matches (str): Regex fragment the span must match.
    """
    group_number: int
    name: str
    original: str
    matches: str


@dataclass(frozen=True, slots=True)
class NormalizedText:
    text: str
    capture_groups: tuple[CaptureGroup, ...] = ()


@runtime_checkable
class Normalizer(Protocol):
    """Contract for template and candidate-text normalization."""

    def normalize(self, template: str) -> NormalizedText:
        """Normalize template text and report its capture groups."""
        ...

    def normalize_text(self, text: str) -> str:
        """Normalize candidate text with the same rules as template literals."""
        ...


# -----------------------------------------
# Byte decoding
# -----------------------------------------

_BOMS: tuple[tuple[bytes, str], ...] = (
    (b"\x00\x00\xFE\xFF", "utf-32"),
    (b"\xFF\xFE\x00\x00", "utf-32"),
    (b"\xEF\xBB\xBF", "utf-8-sig"),
    (b"\xFE\xFF", "utf-16"),
    (b"\xFF\xFE", "utf-16"),
)


def decode_bytes(data: bytes) -> str:
    """Decode resource bytes to text.

    Honors a leading BOM, then tries strict UTF-8, then falls back to cp1252
    and finally latin-1 (which never fails). Newlines are normalized to LF.
    """
    if not data:
        return ""
    text: Optional[str] = None
    for sig, enc in _BOMS:
        if data.startswith(sig):
            try:
                text = data.decode(enc, errors="strict")
            except UnicodeDecodeError:
                text = None
            break
    if text is None:
        try:
            text = data.decode("utf-8", errors="strict")
        except UnicodeDecodeError:
            try:
                text = data.decode("cp1252", errors="strict")
            except UnicodeDecodeError:
                text = data.decode("latin-1", errors="replace")
    return text.replace("\r\n", "\n").replace("\r", "\n")


# -----------------------------------------
# Template normalization
# -----------------------------------------

_TAG_RE = re.compile(r"<<(.*?)>>", re.DOTALL)
_VAR_ATTR_RE = re.compile(r'(\w+)\s*=\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)
_WS_RE = re.compile(r"\s+")

_PUNCT_FOLD = str.maketrans({
    "‘": "'",
    "’": "'",
    "‚": "'",
    "‛": "'",
    "“": '"',
    "”": '"',
    "„": '"',
    "‐": "-",
    "‑": "-",
    "‒": "-",
    "–": "-",
    "—": "-",
    "―": "-",
    "−": "-",
    " ": " ",
})

OMITABLE_OPEN = "<<omitable>>"
OMITABLE_CLOSE = "<</omitable>>"
COPYRIGHT_TAG = "<<copyright>>"
# Reserved tags are swapped for NUL-delimited tokens while scanning so that a
# reserved tag nested inside a generic tag does not end that tag early.
_RESERVED_TOKENS = (
    (OMITABLE_OPEN, "\x00OMITABLE_OPEN\x00"),
    (OMITABLE_CLOSE, "\x00OMITABLE_CLOSE\x00"),
    (COPYRIGHT_TAG, "\x00COPYRIGHT\x00"),
)


def _protect_reserved(text: str) -> str:
    for tag, token in _RESERVED_TOKENS:
        text = text.replace(tag, token)
    return text


def _restore_reserved(text: str) -> str:
    for tag, token in _RESERVED_TOKENS:
        text = text.replace(token, tag)
    return text


class TemplateNormalizer:
    """Default :class:`Normalizer` for SPDX-style and custom templates.

    SPDX markup is rewritten as follows::

        <<beginOptional...>>        -> <<omitable>>
        <<endOptional>>             -> <</omitable>>
        <<var;name="copyright"...>> -> <<copyright>>
        <<var;...;match="M">>       -> <<M>>   (recorded as a CaptureGroup)

    Tags already written in the compiler grammar pass through untouched, and
    text inside a tag is never altered because it is regex syntax.
    """

    def __init__(self, *, unicode_form: Optional[NormalizeForm] = "NFC", fold_punctuation: bool = True) -> None:
        self.unicode_form = unicode_form
        self.fold_punctuation = fold_punctuation

    @classmethod
    def from_config(cls, cfg: NormalizerConfig) -> "TemplateNormalizer":
        return cls(unicode_form=cfg.unicode_form, fold_punctuation=cfg.fold_punctuation)  # type: ignore[arg-type]

    def normalize_text(self, text: str) -> str:
        return self._normalize_literal(text).strip()

    def normalize(self, template: str) -> NormalizedText:
        parts: list[str] = []
        groups: list[CaptureGroup] = []
        protected = _protect_reserved(template)
        prev = 0
        for m in _TAG_RE.finditer(protected):
            parts.append(self._normalize_literal(protected[prev:m.start()]))
            tag, group = self._translate_tag(_restore_reserved(m.group(1)), len(groups) + 1)
            parts.append(tag)
            if group is not None:
                groups.append(group)
            prev = m.end()
        parts.append(self._normalize_literal(protected[prev:]))
        return NormalizedText(_restore_reserved("".join(parts)).strip(), tuple(groups))

    def _normalize_literal(self, s: str) -> str:
        if self.unicode_form:
            s = _ud.normalize(self.unicode_form, s)
        if self.fold_punctuation:
            s = s.translate(_PUNCT_FOLD)
        return _WS_RE.sub(" ", s)

    def _translate_tag(self, inner: str, next_group: int) -> tuple[str, Optional[CaptureGroup]]:
        """Map one tag body to compiler grammar plus its capture group, if any."""
        whole = f"<<{inner}>>"
        head = inner.split(";", 1)[0].strip()
        if head == "beginOptional":
            return OMITABLE_OPEN, None
        if head == "endOptional":
            return OMITABLE_CLOSE, None
        if head != "var":
            # Custom templates put a bare regex fragment between the brackets.
            return whole, CaptureGroup(next_group, "", "", inner)

        attrs = {k: _unescape(v) for k, v in _VAR_ATTR_RE.findall(inner)}
        name = attrs.get("name", "")
        if name.lower() == "copyright":
            return COPYRIGHT_TAG, None
        match = attrs.get("match")
        if not match:
            log.debug("var tag %r has no match attribute; treating as wildcard", name)
            match = ".*?"
        group = CaptureGroup(next_group, name, self._normalize_literal(attrs.get("original", "")).strip(), match)
        return f"<<{match}>>", group


def _unescape(value: str) -> str:
    return value.replace('\\"', '"')
