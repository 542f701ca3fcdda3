# library.py
# SPDX-License-Identifier: MIT
"""Build the ID-keyed license catalog from standardized and custom sources.

Build order:

1. Standardized pass: every entry of the SPDX license and exception lists
   whose template exists becomes a license; an optional precheck is attached
   to its template.
2. Custom pass, stage 1: acceptable (license-agnostic) patterns from every
   custom bundle, compiled immediately.
3. Custom pass, stage 2: one directory per license key in every custom
   bundle, merged over whatever is already registered for that key.

The builder owns the catalog exclusively while it runs. After
:meth:`LicenseLibrary.add_all` returns the catalog is frozen and may be
shared; only the lazily compiled template cells change after that.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Optional

from .config import LibraryConfig
from .errors import (
    DuplicatePatternIdentifier,
    InvalidFilename,
    LicenseLibraryError,
    PatternCompileError,
    ProvenanceConsistencyViolation,
    ResourceNotFound,
)
from .log import bundle_logger, get_logger
from .models import License, LicenseInfo, LicenseText, SpdxLicenseList, SpdxListEntry
from .normalizer import Normalizer, TemplateNormalizer, decode_bytes
from .prechecks import PreCheckIndex
from .resources import AnyBundle, Resources

__all__ = [
    "LICENSE_INFO_JSON",
    "PRECHECKS_PREFIX",
    "PRIMARY_PREFIX",
    "ASSOCIATED_PREFIX",
    "OPTIONAL_PREFIX",
    "LicenseLibrary",
    "classify_filename",
    "normalize_url",
]

LICENSE_INFO_JSON = "license_info.json"
PRECHECKS_PREFIX = "prechecks_"
PRIMARY_PREFIX = "license_"
ASSOCIATED_PREFIX = "associated_"
OPTIONAL_PREFIX = "optional_"
TEMPLATE_EXT = ".txt"

ROLE_INFO = "info"
ROLE_PRIMARY = "primary"
ROLE_PRECHECK = "precheck"
ROLE_ASSOCIATED = "associated"


def classify_filename(file_name: str, file_path: str) -> str:
    """Return the role of a file inside a license directory.

    Raises:
        InvalidFilename: If the name matches no known convention.
    """
    lower = file_name.lower()
    if lower == LICENSE_INFO_JSON:
        return ROLE_INFO
    if lower.startswith(PRIMARY_PREFIX):
        return ROLE_PRIMARY
    if lower.startswith(PRECHECKS_PREFIX):
        return ROLE_PRECHECK
    if lower.startswith(ASSOCIATED_PREFIX) or lower.startswith(OPTIONAL_PREFIX):
        return ROLE_ASSOCIATED
    raise InvalidFilename(file_path)


def gated_template_name(precheck_name: str) -> str:
    """Map ``prechecks_license_X.json`` to the template it gates, ``license_X.txt``."""
    stem = precheck_name[len(PRECHECKS_PREFIX):]
    root, _ext = posixpath.splitext(stem)
    return root + TEMPLATE_EXT


def normalize_url(url: str) -> str:
    """Drop any ``scheme://`` prefix and lower-case the rest."""
    _scheme, sep, rest = url.partition("://")
    return (rest if sep else url).lower()


class LicenseLibrary:
    """In-memory license catalog plus acceptable patterns and prechecks.

    Args:
        config (LibraryConfig | None): Declarative resource/normalizer settings.
        resources (Resources | None): Resource provider; built from
            ``config.resources`` when omitted.
        normalizer (Normalizer | None): Template normalizer; built from
            ``config.normalizer`` when omitted.
        logger (logging.Logger | None): Diagnostics sink; defaults to this
            module's logger.
    """

    def __init__(
        self,
        config: Optional[LibraryConfig] = None,
        *,
        resources: Optional[Resources] = None,
        normalizer: Optional[Normalizer] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or LibraryConfig()
        self.resources = resources or Resources(self.config.resources)
        self.normalizer: Normalizer = normalizer or TemplateNormalizer.from_config(self.config.normalizer)
        self.log = logger or get_logger(__name__)
        self.spdx_version = ""
        self.prechecks = PreCheckIndex()
        self._licenses: dict[str, License] = {}
        self._acceptable: dict[str, re.Pattern[str]] = {}
        self._frozen = False

    @classmethod
    def build(cls, config: Optional[LibraryConfig] = None, **kwargs) -> "LicenseLibrary":
        """Construct a library and run the full build."""
        library = cls(config, **kwargs)
        library.add_all()
        return library

    # -------------------------
    # Read API
    # -------------------------
    @property
    def licenses(self) -> Mapping[str, License]:
        return MappingProxyType(self._licenses)

    @property
    def acceptable_patterns(self) -> Mapping[str, re.Pattern[str]]:
        return MappingProxyType(self._acceptable)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._licenses)

    def __contains__(self, key: object) -> bool:
        return key in self._licenses

    def __iter__(self) -> Iterator[License]:
        for key in sorted(self._licenses):
            yield self._licenses[key]

    def get(self, key: str) -> Optional[License]:
        return self._licenses.get(key)

    # -------------------------
    # Build
    # -------------------------
    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError("license library is frozen; build a new library instead")

    def add_all(self) -> "LicenseLibrary":
        """Run both provenance passes, then freeze the catalog.

        Raises:
            LicenseLibraryError: Any build failure; the library must then be
                discarded.
        """
        self._ensure_mutable()
        try:
            if self.resources.has_spdx:
                self.add_all_spdx()
            else:
                self.log.debug("No standardized resource bundle configured; skipping SPDX pass")
            self.add_all_custom()
        except LicenseLibraryError as exc:
            self.log.error("License library build failed: %s", exc)
            raise
        self._frozen = True
        return self

    def add_all_spdx(self) -> None:
        """Standardized pass over the SPDX license and exception lists."""
        self._ensure_mutable()
        (lic_bytes, lic_path), (exc_bytes, exc_path) = self.resources.read_spdx_lists()
        license_list = SpdxLicenseList.from_json(lic_bytes, lic_path)
        exception_list = SpdxLicenseList.from_json(exc_bytes, exc_path)
        self.spdx_version = license_list.version

        blog = bundle_logger(self.log, self.resources.spdx.label)
        for entry in license_list.licenses:
            self._add_spdx_entry(entry, is_exception=False, log=blog)
        for entry in exception_list.exceptions:
            self._add_spdx_entry(entry, is_exception=True, log=blog)
        blog.debug("Loaded SPDX license list version %s", self.spdx_version or "?")

    def _add_spdx_entry(self, entry: SpdxListEntry, *, is_exception: bool, log: logging.LoggerAdapter) -> None:
        try:
            data, template_path = self.resources.read_spdx_template(entry.id, entry.is_deprecated)
        except ResourceNotFound as exc:
            log.debug("Skipping missing template file '%s'", exc.path)
            return

        text = decode_bytes(data)
        if not text.strip():
            log.warning("Template %s is empty and will match any text", template_path)

        lic = self._licenses.get(entry.id)
        if lic is None:
            lic = License(key=entry.id)
            self._licenses[entry.id] = lic
        lic.add_primary_pattern(text, template_path)
        if not lic.text.content:
            lic.text = LicenseText(content=text)
        lic.spdx_license_id = entry.id
        lic.info.name = entry.name
        lic.info.is_standard = True
        lic.info.is_exception = is_exception
        lic.info.is_deprecated = entry.is_deprecated
        if not is_exception:
            lic.info.osi_approved = entry.is_osi_approved
            lic.info.is_fsf_libre = entry.is_fsf_libre

        try:
            precheck, precheck_path = self.resources.read_spdx_precheck(entry.id, entry.is_deprecated)
        except ResourceNotFound:
            log.debug("Skipping missing precheck file for '%s'", entry.id)
            return
        self.prechecks.add(template_path, precheck, source_path=precheck_path)

    def add_all_custom(self) -> None:
        """Custom pass: acceptable patterns first, then per-license directories."""
        self._ensure_mutable()
        bundles = list(self.resources.iter_custom_bundles())
        for bundle in bundles:
            self._add_acceptable_patterns(bundle)
        self.log.debug("Loaded %d acceptable patterns", len(self._acceptable))

        for bundle in bundles:
            self._add_custom_licenses(bundle)
        self.log.debug("Loaded %d licenses", len(self._licenses))

    def add_acceptable_pattern(self, pattern_id: str, source: str, *, path: Optional[str] = None) -> re.Pattern[str]:
        """Compile and register one license-agnostic pattern.

        Raises:
            DuplicatePatternIdentifier: If ``pattern_id`` is already taken.
            PatternCompileError: If ``source`` is not a valid regex.
        """
        self._ensure_mutable()
        if pattern_id in self._acceptable:
            raise DuplicatePatternIdentifier(pattern_id, path)
        try:
            regex = re.compile(source.strip(), re.IGNORECASE)
        except re.error as exc:
            self.log.error("invalid regex from %s with error: %s", path or pattern_id, exc)
            raise PatternCompileError(
                f"invalid acceptable pattern {pattern_id!r}: {exc}", fragment=source.strip()
            ) from exc
        self._acceptable[pattern_id] = regex
        return regex

    def _add_acceptable_patterns(self, bundle: AnyBundle) -> None:
        root = self.config.resources.acceptable_patterns_dir
        try:
            entries = bundle.list_dir(root)
        except ResourceNotFound:
            bundle_logger(self.log, bundle.label).debug("No acceptable patterns in %s", bundle.label)
            return
        for entry in entries:
            if entry.is_dir:
                continue
            pattern_id = posixpath.splitext(entry.name)[0]
            rel = posixpath.join(root, entry.name)
            source = decode_bytes(bundle.read(rel))
            self.add_acceptable_pattern(pattern_id, source, path=bundle.display_path(rel))

    def _add_custom_licenses(self, bundle: AnyBundle) -> None:
        root = self.config.resources.license_patterns_dir
        try:
            entries = bundle.list_dir(root)
        except ResourceNotFound:
            bundle_logger(self.log, bundle.label).debug("No custom license patterns in %s", bundle.label)
            return
        for entry in entries:
            if not entry.is_dir:
                continue
            try:
                self.add_custom_license(entry.name, bundle)
            except LicenseLibraryError as exc:
                bundle_logger(self.log, bundle.label).error("Cannot add license %s: %s", entry.name, exc)
                raise

    def add_custom_license(self, key: str, bundle: AnyBundle) -> License:
        """Load or merge the custom definition directory for ``key``."""
        self._ensure_mutable()
        existing = self._licenses.get(key)
        lic = existing if existing is not None else License(key=key)
        dir_rel = posixpath.join(self.config.resources.license_patterns_dir, key)

        for entry in bundle.list_dir(dir_rel):
            if entry.is_dir:
                continue
            rel = posixpath.join(dir_rel, entry.name)
            file_path = bundle.display_path(rel)
            try:
                role = classify_filename(entry.name, file_path)
            except InvalidFilename as exc:
                bundle_logger(self.log, bundle.label).info("%s", exc)
                continue

            data = bundle.read(rel)
            if role == ROLE_INFO:
                payload = LicenseInfo.from_payload(data, file_path)
                self._apply_license_info(lic, key, payload, existed=existing is not None)
            elif role == ROLE_PRIMARY:
                lic.add_primary_pattern(decode_bytes(data), file_path)
            elif role == ROLE_PRECHECK:
                gated = bundle.display_path(posixpath.join(dir_rel, gated_template_name(entry.name)))
                self.prechecks.add(gated, data, source_path=file_path)
            else:
                lic.add_associated_pattern(decode_bytes(data), file_path)

        self._licenses[key] = lic
        return lic

    def _apply_license_info(self, lic: License, key: str, payload: LicenseInfo, *, existed: bool) -> None:
        if not lic.spdx_license_id:
            if payload.is_standard:
                lic.spdx_license_id = key
        elif not payload.is_standard:
            raise ProvenanceConsistencyViolation(
                f"Cannot add non-SPDX custom policies from {key} to existing SPDX license {lic.spdx_license_id}"
            )

        aliases = [a.lower() for a in payload.aliases]
        if not payload.ignore_id_match:
            aliases.append(key.lower())
        if not payload.ignore_name_match and payload.name:
            aliases.append(payload.name.lower())
        lic.aliases = list(dict.fromkeys(aliases))
        lic.urls = list(dict.fromkeys(normalize_url(u) for u in payload.urls))

        if existed:
            payload.merge_over(lic.info)
        lic.info = payload
