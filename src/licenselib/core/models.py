# models.py
# SPDX-License-Identifier: MIT
"""Data model for the license library.

Payload parsing happens at the boundary: JSON documents are decoded into the
dataclasses below immediately, so string-or-list fields and alternate key
spellings never leak into the rest of the code.
"""

from __future__ import annotations

import json
import re
import threading
from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional, Sequence

from .compiler import compile_template
from .errors import MalformedPayload, PatternCompileError
from .log import get_logger
from .normalizer import CaptureGroup, Normalizer

__all__ = [
    "LicenseInfo",
    "LicenseText",
    "PatternSource",
    "PrimaryPattern",
    "License",
    "SpdxListEntry",
    "SpdxLicenseList",
    "load_json_payload",
]

log = get_logger(__name__)


def load_json_payload(data: bytes | str, path: str) -> Any:
    """Parse JSON bytes, wrapping failures in :class:`MalformedPayload`."""
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8-sig")
        return json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedPayload(path, str(exc)) from exc


def _string_list(value: Any, key: str, path: str) -> list[str]:
    """Accept ``null``, a string, or a list of strings; always return a list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    raise MalformedPayload(path, f"{key!r} must be a string or a list of strings")


def _bool(value: Any, key: str, path: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise MalformedPayload(path, f"{key!r} must be a boolean")
    return value


def _str(value: Any, key: str, path: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MalformedPayload(path, f"{key!r} must be a string")
    return value


# Older payloads spell the standard/exception flags with an spdx_ prefix.
_PAYLOAD_KEY_ALIASES = {
    "spdx_standard": "is_standard",
    "spdx_exception": "is_exception",
}

_LIST_FIELDS = ("aliases", "urls", "eligible_licenses")


@dataclass(slots=True)
class LicenseInfo:
    """Descriptive metadata and classifiers for one license."""

    name: str = ""
    family: str = ""
    is_standard: bool = False
    is_exception: bool = False
    osi_approved: bool = False
    ignore_id_match: bool = False
    ignore_name_match: bool = False
    aliases: list[str] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)
    eligible_licenses: list[str] = field(default_factory=list)
    is_mutator: bool = False
    is_deprecated: bool = False
    is_fsf_libre: bool = False

    CLASSIFIERS = ("is_standard", "is_exception", "osi_approved", "is_fsf_libre", "is_deprecated", "is_mutator")

    @classmethod
    def from_payload(cls, data: bytes | str | Mapping[str, Any], path: str) -> "LicenseInfo":
        """Decode a ``license_info.json`` payload.

        Raises:
            MalformedPayload: If the document is not a JSON object or a field
                has the wrong type.
        """
        raw = data if isinstance(data, Mapping) else load_json_payload(data, path)
        if not isinstance(raw, Mapping):
            raise MalformedPayload(path, "license info must be a JSON object")
        payload = {_PAYLOAD_KEY_ALIASES.get(k, k): v for k, v in raw.items()}

        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in payload:
                continue
            value = payload[f.name]
            if f.name in _LIST_FIELDS:
                kwargs[f.name] = _string_list(value, f.name, path)
            elif f.name in ("name", "family"):
                kwargs[f.name] = _str(value, f.name, path)
            else:
                kwargs[f.name] = _bool(value, f.name, path)
        return cls(**kwargs)

    def merge_over(self, existing: "LicenseInfo") -> None:
        """Fold an already-registered record into this freshly decoded one.

        The existing display name wins when non-empty and every classifier is
        OR-ed, so a true flag is never lost.
        """
        if existing.name:
            self.name = existing.name
        for flag in self.CLASSIFIERS:
            setattr(self, flag, getattr(self, flag) or getattr(existing, flag))


@dataclass(frozen=True, slots=True)
class LicenseText:
    content_type: str = "text/plain"
    encoding: str = ""
    content: str = ""


@dataclass(frozen=True, slots=True)
class PatternSource:
    """Raw template text and where it came from, kept for audit output."""

    source_text: str
    filename: str


class PrimaryPattern:
    """A license template that compiles to a regex at most once.

    The first caller of :meth:`compile` normalizes and compiles the text while
    concurrent callers wait on the lock. The outcome, success or
    :class:`PatternCompileError`, is cached and returned to every later
    caller; failures are never retried.
    """

    __slots__ = ("text", "filename", "_lock", "_done", "_regex", "_capture_groups", "_error")

    def __init__(self, text: str, filename: str) -> None:
        self.text = text
        self.filename = filename
        self._lock = threading.Lock()
        self._done = False
        self._regex: Optional[re.Pattern[str]] = None
        self._capture_groups: tuple[CaptureGroup, ...] = ()
        self._error: Optional[PatternCompileError] = None

    def __repr__(self) -> str:
        state = "pending" if not self._done else ("failed" if self._error else "compiled")
        return f"PrimaryPattern({self.filename!r}, {state})"

    @property
    def is_compiled(self) -> bool:
        return self._done

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()

    @property
    def regex(self) -> Optional[re.Pattern[str]]:
        return self._regex

    @property
    def capture_groups(self) -> tuple[CaptureGroup, ...]:
        return self._capture_groups

    @property
    def error(self) -> Optional[PatternCompileError]:
        return self._error

    def compile(self, normalizer: Normalizer) -> re.Pattern[str]:
        """Return the compiled pattern, compiling on first use.

        Raises:
            PatternCompileError: The cached failure, for every caller.
        """
        if not self._done:
            with self._lock:
                if not self._done:
                    self._compile_once(normalizer)
        if self._error is not None:
            raise self._error
        assert self._regex is not None
        return self._regex

    def _compile_once(self, normalizer: Normalizer) -> None:
        try:
            normalized = normalizer.normalize(self.text)
            self._regex = compile_template(normalized.text)
            self._capture_groups = normalized.capture_groups
        except PatternCompileError as exc:
            log.warning("cannot compile template %s: %s", self.filename, exc)
            self._error = exc
        except Exception as exc:  # noqa: BLE001 - normalizer failures are cached too
            log.warning("cannot normalize template %s: %s", self.filename, exc)
            err = PatternCompileError(f"cannot normalize template: {exc}")
            err.__cause__ = exc
            self._error = err
        finally:
            self._done = True


@dataclass(slots=True)
class License:
    """One catalog entry, keyed by ``key`` in the library.

    Attributes:
        key (str): Catalog key (SPDX id or custom directory name).
        spdx_license_id (str): SPDX identifier, empty for custom-only entries.
        info (LicenseInfo): Metadata and classifiers.
        primary_patterns (list[PrimaryPattern]): Templates whose match
            establishes identity, parallel to ``primary_pattern_sources``.
        associated_patterns (list[PrimaryPattern]): Secondary templates,
            parallel to ``associated_pattern_sources``.
        aliases (list[str]): Lower-cased plain strings that identify the
            license; consumers enforce word boundaries.
        urls (list[str]): Lower-cased URLs with the scheme stripped.
        text (LicenseText): Raw license text when known.
    """
    key: str
    spdx_license_id: str = ""
    info: LicenseInfo = field(default_factory=LicenseInfo)
    primary_patterns: list[PrimaryPattern] = field(default_factory=list)
    primary_pattern_sources: list[PatternSource] = field(default_factory=list)
    associated_patterns: list[PrimaryPattern] = field(default_factory=list)
    associated_pattern_sources: list[PatternSource] = field(default_factory=list)
    aliases: list[str] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)
    text: LicenseText = field(default_factory=LicenseText)

    @property
    def id(self) -> str:
        return self.spdx_license_id or self.info.name or self.key

    def add_primary_pattern(self, text: str, filename: str) -> PrimaryPattern:
        self.primary_pattern_sources.append(PatternSource(text, filename))
        pattern = PrimaryPattern(text, filename)
        self.primary_patterns.append(pattern)
        return pattern

    def add_associated_pattern(self, text: str, filename: str) -> PrimaryPattern:
        self.associated_pattern_sources.append(PatternSource(text, filename))
        pattern = PrimaryPattern(text, filename)
        self.associated_patterns.append(pattern)
        return pattern


# ---------------------------------------------------------------------------
# Standardized (SPDX) list documents
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SpdxListEntry:
    id: str
    name: str
    is_osi_approved: bool = False
    is_fsf_libre: bool = False
    is_deprecated: bool = False


def _first_present(entry: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if key in entry:
            return entry[key]
    return None


@dataclass(frozen=True, slots=True)
class SpdxLicenseList:
    """Decoded ``licenses.json``/``exceptions.json`` document."""

    version: str = ""
    licenses: tuple[SpdxListEntry, ...] = ()
    exceptions: tuple[SpdxListEntry, ...] = ()

    @classmethod
    def from_json(cls, data: bytes | str, path: str) -> "SpdxLicenseList":
        raw = load_json_payload(data, path)
        if not isinstance(raw, Mapping):
            raise MalformedPayload(path, "license list must be a JSON object")
        version = _str(_first_present(raw, ("licenseListVersion", "listVersion")), "licenseListVersion", path)
        licenses = cls._entries(raw.get("licenses"), ("licenseId", "id"), "licenses", path)
        exceptions = cls._entries(raw.get("exceptions"), ("licenseExceptionId", "id"), "exceptions", path)
        return cls(version, licenses, exceptions)

    @staticmethod
    def _entries(items: Any, id_keys: Sequence[str], key: str, path: str) -> tuple[SpdxListEntry, ...]:
        if items is None:
            return ()
        if not isinstance(items, list):
            raise MalformedPayload(path, f"{key!r} must be a list")
        out: list[SpdxListEntry] = []
        for item in items:
            if not isinstance(item, Mapping):
                raise MalformedPayload(path, f"entries in {key!r} must be objects")
            entry_id = _str(_first_present(item, id_keys), "id", path)
            if not entry_id:
                raise MalformedPayload(path, f"entry in {key!r} is missing an id")
            out.append(
                SpdxListEntry(
                    id=entry_id,
                    name=_str(item.get("name"), "name", path),
                    is_osi_approved=_bool(item.get("isOsiApproved"), "isOsiApproved", path),
                    is_fsf_libre=_bool(item.get("isFsfLibre"), "isFsfLibre", path),
                    is_deprecated=_bool(
                        _first_present(item, ("isDeprecatedLicenseId", "isDeprecated")), "isDeprecated", path
                    ),
                )
            )
        return tuple(out)
