# prechecks.py
# SPDX-License-Identifier: MIT
"""Cheap substring gates in front of expensive template matching.

Each record belongs to one template file path (a license may own several
independently gated templates). A path with no record is always worth
attempting. Deciding *whether* to match is left to the consumer; this module
only parses, stores, and answers containment questions.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .errors import MalformedPayload
from .models import load_json_payload

__all__ = ["PreCheck", "PreCheckIndex", "parse_precheck"]


@dataclass(frozen=True, slots=True)
class PreCheck:
    """Ordered, de-duplicated literal blocks required in candidate text."""

    static_blocks: tuple[str, ...] = ()

    def passes(
        self,
        text: str,
        *,
        ignore_case: bool = True,
        normalize: Optional[Callable[[str], str]] = None,
    ) -> bool:
        """Return True when every static block occurs in ``text``.

        ``normalize`` is applied to each block before the containment check;
        pass the same function that produced ``text`` so that whitespace,
        punctuation and Unicode form agree on both sides.
        """
        blocks = self.static_blocks
        if normalize is not None:
            blocks = tuple(normalize(block) for block in blocks)
        if ignore_case:
            haystack = text.lower()
            return all(block.lower() in haystack for block in blocks)
        return all(block in text for block in blocks)


def parse_precheck(data: bytes | str, path: str) -> PreCheck:
    """Decode a ``{"StaticBlocks": [...]}`` document.

    Key lookup is case-insensitive. A missing key yields an empty record,
    which gates nothing.

    Raises:
        MalformedPayload: On invalid JSON or non-string blocks.
    """
    raw = load_json_payload(data, path)
    if not isinstance(raw, Mapping):
        raise MalformedPayload(path, "precheck must be a JSON object")
    blocks: Any = None
    for key, value in raw.items():
        if isinstance(key, str) and key.lower() == "staticblocks":
            blocks = value
            break
    if blocks is None:
        return PreCheck()
    if not isinstance(blocks, list) or not all(isinstance(b, str) for b in blocks):
        raise MalformedPayload(path, "'StaticBlocks' must be a list of strings")
    return PreCheck(tuple(dict.fromkeys(blocks)))


class PreCheckIndex:
    """Precheck records keyed by the path of the template they gate."""

    def __init__(self) -> None:
        self._records: dict[str, PreCheck] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, template_path: object) -> bool:
        return template_path in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._records))

    def add(self, template_path: str, data: bytes | str, *, source_path: Optional[str] = None) -> PreCheck:
        """Parse ``data`` and register it for ``template_path``.

        A later record for the same template replaces the earlier one.
        """
        record = parse_precheck(data, source_path or template_path)
        self._records[template_path] = record
        return record

    def get(self, template_path: str) -> Optional[PreCheck]:
        return self._records.get(template_path)

    def should_attempt(
        self,
        template_path: str,
        text: str,
        *,
        normalize: Optional[Callable[[str], str]] = None,
    ) -> bool:
        record = self._records.get(template_path)
        return record is None or record.passes(text, normalize=normalize)
