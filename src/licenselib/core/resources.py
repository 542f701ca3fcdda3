# resources.py
# SPDX-License-Identifier: MIT
"""Read license resources from directory trees or zip bundles.

A *bundle* is a root that holds resources under bundle-relative POSIX paths.
The standardized (SPDX) data lives in one bundle; custom definitions may be
spread over several. Missing files raise :class:`ResourceNotFound` so callers
can decide whether absence is tolerable.
"""

from __future__ import annotations

import posixpath
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Union

from .config import ResourceConfig
from .errors import ResourceNotFound
from .log import get_logger

__all__ = [
    "BundleEntry",
    "DirectoryBundle",
    "ZipBundle",
    "AnyBundle",
    "open_bundle",
    "Resources",
]

log = get_logger(__name__)

TEMPLATE_SUFFIX = ".template.txt"
PRECHECK_SUFFIX = ".json"
DEPRECATED_PREFIX = "deprecated_"


@dataclass(frozen=True, slots=True)
class BundleEntry:
    name: str
    is_dir: bool


def _clean_rel(rel: str) -> str:
    """Normalize a bundle-relative path and refuse escapes above the root."""
    norm = posixpath.normpath(rel.replace("\\", "/")).lstrip("/")
    if norm == ".":
        return ""
    if norm == ".." or norm.startswith("../"):
        raise ResourceNotFound(rel, f"path escapes bundle root: {rel}")
    return norm


class DirectoryBundle:
    """Bundle backed by a local directory tree."""

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.label = self.root.as_posix()

    def __repr__(self) -> str:
        return f"DirectoryBundle({self.label!r})"

    def display_path(self, rel: str) -> str:
        rel = _clean_rel(rel)
        return posixpath.join(self.label, rel) if rel else self.label

    def list_dir(self, rel: str) -> list[BundleEntry]:
        target = self.root / _clean_rel(rel)
        if not target.is_dir():
            raise ResourceNotFound(self.display_path(rel))
        return sorted(
            (BundleEntry(p.name, p.is_dir()) for p in target.iterdir()),
            key=lambda e: e.name,
        )

    def read(self, rel: str) -> bytes:
        target = self.root / _clean_rel(rel)
        try:
            return target.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise ResourceNotFound(self.display_path(rel)) from exc


class ZipBundle:
    """Bundle backed by a zip archive.

    When every member sits under one top-level folder (as with GitHub
    zipballs) that folder is treated as the bundle root.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.label = self.path.as_posix()
        with zipfile.ZipFile(self.path) as zf:
            names = [n for n in zf.namelist() if n and not n.startswith("__MACOSX/")]
        self._prefix = self._infer_top_prefix(names)
        self._files: set[str] = set()
        self._dirs: set[str] = {""}
        for name in names:
            if not name.startswith(self._prefix):
                continue
            rel = name[len(self._prefix):]
            if not rel:
                continue
            if rel.endswith("/"):
                self._add_dirs(rel.rstrip("/"))
                continue
            self._files.add(rel)
            self._add_dirs(posixpath.dirname(rel))

    def __repr__(self) -> str:
        return f"ZipBundle({self.label!r})"

    @staticmethod
    def _infer_top_prefix(names: list[str]) -> str:
        components = {name.split("/", 1)[0] for name in names}
        if len(components) == 1 and all("/" in n for n in names):
            return next(iter(components)) + "/"
        return ""

    def _add_dirs(self, rel_dir: str) -> None:
        while rel_dir:
            self._dirs.add(rel_dir)
            rel_dir = posixpath.dirname(rel_dir)

    def display_path(self, rel: str) -> str:
        rel = _clean_rel(rel)
        return f"{self.label}/{rel}" if rel else self.label

    def list_dir(self, rel: str) -> list[BundleEntry]:
        rel = _clean_rel(rel)
        if rel not in self._dirs:
            raise ResourceNotFound(self.display_path(rel))
        prefix = f"{rel}/" if rel else ""
        entries: dict[str, bool] = {}
        for d in self._dirs:
            if d and d.startswith(prefix) and "/" not in d[len(prefix):]:
                entries[d[len(prefix):]] = True
        for f in self._files:
            if f.startswith(prefix) and "/" not in f[len(prefix):]:
                entries.setdefault(f[len(prefix):], False)
        return [BundleEntry(name, is_dir) for name, is_dir in sorted(entries.items())]

    def read(self, rel: str) -> bytes:
        rel = _clean_rel(rel)
        if rel not in self._files:
            raise ResourceNotFound(self.display_path(rel))
        with zipfile.ZipFile(self.path) as zf:
            return zf.read(self._prefix + rel)


AnyBundle = Union[DirectoryBundle, ZipBundle]


def open_bundle(path: Path | str) -> AnyBundle:
    """Open ``path`` as a zip bundle when it is a ``.zip`` file, else a directory."""
    p = Path(path)
    if p.suffix.lower() == ".zip" and p.is_file():
        log.debug("Opening zip bundle %s", p)
        return ZipBundle(p)
    if not p.exists():
        raise ResourceNotFound(p.as_posix(), f"resource bundle not found: {p}")
    log.debug("Opening directory bundle %s", p)
    return DirectoryBundle(p)


class Resources:
    """Resource provider over the configured standardized and custom bundles."""

    def __init__(self, config: ResourceConfig):
        self.config = config
        self._spdx: AnyBundle | None = None
        self._custom: list[AnyBundle] | None = None

    @property
    def has_spdx(self) -> bool:
        return self.config.spdx_dir is not None

    @property
    def spdx(self) -> AnyBundle:
        if self._spdx is None:
            if self.config.spdx_dir is None:
                raise ResourceNotFound("<spdx>", "no standardized resource bundle configured")
            self._spdx = open_bundle(self.config.spdx_dir)
        return self._spdx

    def iter_custom_bundles(self) -> Iterator[AnyBundle]:
        if self._custom is None:
            self._custom = [open_bundle(p) for p in self.config.custom_dirs]
        yield from self._custom

    # -------------------------
    # Standardized resources
    # -------------------------
    def read_spdx_lists(self) -> tuple[tuple[bytes, str], tuple[bytes, str]]:
        """Return ``(bytes, path)`` pairs for the license and exception lists."""
        cfg = self.config
        lic = (self.spdx.read(cfg.spdx_licenses_file), self.spdx.display_path(cfg.spdx_licenses_file))
        exc = (self.spdx.read(cfg.spdx_exceptions_file), self.spdx.display_path(cfg.spdx_exceptions_file))
        return lic, exc

    def read_spdx_template(self, license_id: str, deprecated: bool) -> tuple[bytes, str]:
        """Return template bytes and their display path.

        Raises:
            ResourceNotFound: With ``path`` set to the location tried.
        """
        prefix = DEPRECATED_PREFIX if deprecated else ""
        rel = posixpath.join(self.config.template_dir, f"{prefix}{license_id}{TEMPLATE_SUFFIX}")
        return self.spdx.read(rel), self.spdx.display_path(rel)

    def read_spdx_precheck(self, license_id: str, deprecated: bool) -> tuple[bytes, str]:
        prefix = DEPRECATED_PREFIX if deprecated else ""
        rel = posixpath.join(self.config.precheck_dir, f"{prefix}{license_id}{PRECHECK_SUFFIX}")
        return self.spdx.read(rel), self.spdx.display_path(rel)
