# scanner.py
# SPDX-License-Identifier: MIT
"""Match candidate text against a built license library.

Detection order per license:

1. Primary templates, each gated by its precheck record (if any) and
   compiled lazily on first use.
2. Aliases (word-bounded) and URLs (plain substring) on lower-cased text.
3. Associated templates, only for licenses already identified above.

Acceptable patterns are searched independently of any license. A template
that fails to compile is reported and treated as unmatchable.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Optional

from .errors import PatternCompileError
from .library import LicenseLibrary
from .log import get_logger
from .models import License, PrimaryPattern
from .normalizer import Normalizer

__all__ = ["LicenseMatch", "ScanResult", "scan_text"]

log = get_logger(__name__)

KIND_PRIMARY = "primary"
KIND_ALIAS = "alias"
KIND_URL = "url"
KIND_ASSOCIATED = "associated"


@dataclass(frozen=True, slots=True)
class LicenseMatch:
    """One piece of evidence that ``license_id`` occurs in the text.

    ``start``/``end`` index into the normalized text.
    """
    license_id: str
    kind: str
    source: str
    start: int
    end: int


@dataclass(slots=True)
class ScanResult:
    matches: List[LicenseMatch] = field(default_factory=list)
    acceptable: List[str] = field(default_factory=list)
    compile_failures: List[str] = field(default_factory=list)

    @property
    def license_ids(self) -> List[str]:
        return sorted({m.license_id for m in self.matches})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "licenses": self.license_ids,
            "matches": [asdict(m) for m in self.matches],
            "acceptable": list(self.acceptable),
            "compile_failures": list(self.compile_failures),
        }


@lru_cache(maxsize=4096)
def _alias_regex(alias: str) -> re.Pattern[str]:
    return re.compile(r"(?<!\w)" + re.escape(alias) + r"(?!\w)")


def _search(
    pattern: PrimaryPattern,
    text: str,
    normalizer: Normalizer,
    result: ScanResult,
) -> Optional[re.Match[str]]:
    if pattern.is_blank:
        # An empty template would match anything; never count it as evidence.
        return None
    try:
        regex = pattern.compile(normalizer)
    except PatternCompileError:
        result.compile_failures.append(pattern.filename)
        return None
    return regex.search(text)


def _scan_license(
    library: LicenseLibrary,
    lic: License,
    text: str,
    lowered: str,
    normalizer: Normalizer,
    result: ScanResult,
) -> None:
    found: List[LicenseMatch] = []
    gate = library.prechecks
    for pattern in lic.primary_patterns:
        if not gate.should_attempt(pattern.filename, text, normalize=normalizer.normalize_text):
            continue
        m = _search(pattern, text, normalizer, result)
        if m is not None:
            found.append(LicenseMatch(lic.id, KIND_PRIMARY, pattern.filename, m.start(), m.end()))

    for alias in lic.aliases:
        m = _alias_regex(alias).search(lowered)
        if m is not None:
            found.append(LicenseMatch(lic.id, KIND_ALIAS, alias, m.start(), m.end()))

    for url in lic.urls:
        idx = lowered.find(url) if url else -1
        if idx >= 0:
            found.append(LicenseMatch(lic.id, KIND_URL, url, idx, idx + len(url)))

    if found:
        for pattern in lic.associated_patterns:
            m = _search(pattern, text, normalizer, result)
            if m is not None:
                found.append(LicenseMatch(lic.id, KIND_ASSOCIATED, pattern.filename, m.start(), m.end()))
    result.matches.extend(found)


def scan_text(library: LicenseLibrary, text: str, normalizer: Optional[Normalizer] = None) -> ScanResult:
    """Find the licenses, exceptions, and acceptable patterns present in ``text``.

    Args:
        library (LicenseLibrary): A built library.
        text (str): Raw candidate text; it is normalized before matching.
        normalizer (Normalizer | None): Override for the library's normalizer.

    Returns:
        ScanResult: Matches ordered by license key then detection stage.
    """
    norm = normalizer or library.normalizer
    normalized = norm.normalize_text(text)
    lowered = normalized.lower()
    result = ScanResult()

    for lic in library:
        _scan_license(library, lic, normalized, lowered, norm, result)

    for pattern_id in sorted(library.acceptable_patterns):
        if library.acceptable_patterns[pattern_id].search(normalized):
            result.acceptable.append(pattern_id)

    if result.compile_failures:
        log.debug("%d template(s) could not be compiled during scan", len(result.compile_failures))
    return result
