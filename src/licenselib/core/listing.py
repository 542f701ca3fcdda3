# listing.py
# SPDX-License-Identifier: MIT
"""Deterministic summary view over a finished license library."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .config import LibraryConfig
from .library import LicenseLibrary

__all__ = ["LicenseDetail", "ExceptionDetail", "LibraryListing", "list_library", "list_licenses"]


@dataclass(frozen=True, slots=True)
class LicenseDetail:
    id: str
    name: str
    family: str
    num_templates: int
    is_osi_approved: bool
    is_fsf_libre: bool


@dataclass(frozen=True, slots=True)
class ExceptionDetail:
    id: str
    name: str
    family: str
    num_templates: int


@dataclass(slots=True)
class LibraryListing:
    """Four disjoint buckets, each ordered by catalog key."""

    licenses: List[LicenseDetail] = field(default_factory=list)
    deprecated_licenses: List[LicenseDetail] = field(default_factory=list)
    exceptions: List[ExceptionDetail] = field(default_factory=list)
    deprecated_exceptions: List[ExceptionDetail] = field(default_factory=list)
    spdx_version: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spdx_version": self.spdx_version,
            "licenses": [asdict(d) for d in self.licenses],
            "deprecated_licenses": [asdict(d) for d in self.deprecated_licenses],
            "exceptions": [asdict(d) for d in self.exceptions],
            "deprecated_exceptions": [asdict(d) for d in self.deprecated_exceptions],
        }


def list_library(library: LicenseLibrary) -> LibraryListing:
    """Split ``library`` into active/deprecated licenses and exceptions.

    Iteration follows the sorted raw catalog keys so repeated calls over the
    same state produce identical output.
    """
    listing = LibraryListing(spdx_version=library.spdx_version)
    catalog = library.licenses
    for key in sorted(catalog):
        lic = catalog[key]
        info = lic.info
        if info.is_exception:
            exc = ExceptionDetail(
                id=lic.id,
                name=info.name,
                family=info.family,
                num_templates=len(lic.primary_patterns),
            )
            (listing.deprecated_exceptions if info.is_deprecated else listing.exceptions).append(exc)
        else:
            detail = LicenseDetail(
                id=lic.id,
                name=info.name,
                family=info.family,
                num_templates=len(lic.primary_patterns),
                is_osi_approved=info.osi_approved,
                is_fsf_libre=info.is_fsf_libre,
            )
            (listing.deprecated_licenses if info.is_deprecated else listing.licenses).append(detail)
    return listing


def list_licenses(config: Optional[LibraryConfig] = None, **kwargs: Any) -> LibraryListing:
    """Build a library from ``config`` and return its listing."""
    return list_library(LicenseLibrary.build(config, **kwargs))
