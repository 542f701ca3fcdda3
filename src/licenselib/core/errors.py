# errors.py
# SPDX-License-Identifier: MIT
"""Exceptions raised while building and compiling the license library.

Every build-time failure derives from :class:`LicenseLibraryError` so callers
can abort a scanning session with a single ``except`` clause. Compile errors
are scoped to one template and are cached on it rather than aborting a build.
"""

from __future__ import annotations

__all__ = [
    "LicenseLibraryError",
    "ResourceNotFound",
    "MalformedPayload",
    "DuplicatePatternIdentifier",
    "InvalidFilename",
    "ProvenanceConsistencyViolation",
    "PatternCompileError",
]


class LicenseLibraryError(RuntimeError):
    """Base class for license library failures."""


class ResourceNotFound(LicenseLibraryError, FileNotFoundError):
    """Raised when a requested resource does not exist in any bundle."""

    def __init__(self, path: str, message: str | None = None) -> None:
        super().__init__(message or f"resource not found: {path}")
        self.path = path


class MalformedPayload(LicenseLibraryError, ValueError):
    """Raised when a JSON metadata, list, or precheck payload cannot be parsed."""

    def __init__(self, path: str, diagnostic: str) -> None:
        super().__init__(f"malformed payload in {path}: {diagnostic}")
        self.path = path
        self.diagnostic = diagnostic


class DuplicatePatternIdentifier(LicenseLibraryError):
    """Raised when two acceptable patterns share an identifier."""

    def __init__(self, pattern_id: str, path: str | None = None) -> None:
        where = f" (from {path})" if path else ""
        super().__init__(f"an acceptable pattern already exists with the ID {pattern_id!r}{where}")
        self.pattern_id = pattern_id
        self.path = path


class InvalidFilename(LicenseLibraryError):
    """Raised for files in a license directory that match no known role."""

    def __init__(self, path: str) -> None:
        super().__init__(f"found an invalid file name {path}")
        self.path = path


class ProvenanceConsistencyViolation(LicenseLibraryError):
    """Raised when non-standard custom metadata targets a standardized license."""


class PatternCompileError(LicenseLibraryError):
    """Raised when a template cannot be turned into a regular expression."""

    def __init__(self, message: str, *, fragment: str | None = None, source: str | None = None) -> None:
        super().__init__(message)
        self.fragment = fragment
        self.source = source
