# __init__.py
# SPDX-License-Identifier: MIT
"""
Top-level package exports for :mod:`licenselib`.

licenselib builds a catalog of known license texts and compiles each template
into a regular expression on first use. Typical use::

    >>> from licenselib import LibraryConfig, LicenseLibrary, scan_text
    >>> cfg = LibraryConfig()
    >>> cfg.resources.spdx_dir = "resources/spdx"
    >>> cfg.resources.custom_dirs = ["resources/custom"]
    >>> library = LicenseLibrary.build(cfg)
    >>> scan_text(library, open("LICENSE").read()).license_ids
"""

from __future__ import annotations

try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("licenselib")
except Exception:  # PackageNotFoundError or runtime env oddities
    __version__ = "0.0.0+unknown"

from .core.compiler import build_regex_source, compile_template
from .core.config import LibraryConfig, LoggingConfig, NormalizerConfig, ResourceConfig, load_config_from_path
from .core.errors import (
    DuplicatePatternIdentifier,
    InvalidFilename,
    LicenseLibraryError,
    MalformedPayload,
    PatternCompileError,
    ProvenanceConsistencyViolation,
    ResourceNotFound,
)
from .core.library import LicenseLibrary
from .core.listing import LibraryListing, list_library, list_licenses
from .core.log import configure_logging, get_logger
from .core.models import License, LicenseInfo, PrimaryPattern
from .core.normalizer import Normalizer, TemplateNormalizer
from .core.prechecks import PreCheck, PreCheckIndex
from .core.resources import Resources
from .core.scanner import LicenseMatch, ScanResult, scan_text

__all__ = [
    "__version__",
    "LibraryConfig",
    "ResourceConfig",
    "NormalizerConfig",
    "LoggingConfig",
    "load_config_from_path",
    "LicenseLibrary",
    "License",
    "LicenseInfo",
    "PrimaryPattern",
    "PreCheck",
    "PreCheckIndex",
    "Resources",
    "Normalizer",
    "TemplateNormalizer",
    "build_regex_source",
    "compile_template",
    "LibraryListing",
    "list_library",
    "list_licenses",
    "LicenseMatch",
    "ScanResult",
    "scan_text",
    "configure_logging",
    "get_logger",
    "LicenseLibraryError",
    "ResourceNotFound",
    "MalformedPayload",
    "DuplicatePatternIdentifier",
    "InvalidFilename",
    "ProvenanceConsistencyViolation",
    "PatternCompileError",
]
