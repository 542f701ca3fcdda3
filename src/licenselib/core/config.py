# config.py
# SPDX-License-Identifier: MIT
"""Configuration models for building a license library.

The dataclasses here are purely declarative: resource locations, normalizer
knobs, and logging settings. Runtime objects (bundles, compiled patterns,
loggers) live on :class:`~licenselib.core.library.LicenseLibrary`.
"""
from __future__ import annotations

import json
import logging
import types
try:  # pragma: no cover - optional dependency
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover
    try:
        import tomli as tomllib  # type: ignore[assignment]
    except Exception:  # pragma: no cover
        tomllib = None  # type: ignore[assignment]
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from .log import DEFAULT_FORMAT, PACKAGE_LOGGER_NAME, configure_logging

__all__ = [
    "ResourceConfig",
    "NormalizerConfig",
    "LoggingConfig",
    "LibraryConfig",
    "load_config_from_path",
]

T = TypeVar("T")


@dataclass(slots=True)
class ResourceConfig:
    """Where license resources are read from.

    Attributes:
        spdx_dir (Path | None): Directory or ``.zip`` bundle holding the
            standardized license list, templates, and prechecks.
        custom_dirs (list[Path]): Ordered custom bundles (directories or
            ``.zip`` archives). Later bundles merge over earlier ones.
        spdx_licenses_file (str): Bundle-relative path of the license list.
        spdx_exceptions_file (str): Bundle-relative path of the exception list.
        template_dir (str): Bundle-relative directory of ``<id>.template.txt``
            files.
        precheck_dir (str): Bundle-relative directory of ``<id>.json``
            precheck files.
        license_patterns_dir (str): Directory inside each custom bundle with
            one sub-directory per license key.
        acceptable_patterns_dir (str): Directory inside each custom bundle
            with license-agnostic pattern files.
    """
    spdx_dir: Optional[Path] = None
    custom_dirs: List[Path] = field(default_factory=list)
    spdx_licenses_file: str = "json/licenses.json"
    spdx_exceptions_file: str = "json/exceptions.json"
    template_dir: str = "template"
    precheck_dir: str = "precheck"
    license_patterns_dir: str = "license_patterns"
    acceptable_patterns_dir: str = "acceptable_patterns"


@dataclass(slots=True)
class NormalizerConfig:
    """Knobs for the default template/text normalizer."""

    unicode_form: Optional[str] = "NFC"
    fold_punctuation: bool = True


@dataclass(slots=True)
class LoggingConfig:
    """The ``[logging]`` table: where build diagnostics go and how loud they are.

    ``propagate`` left as None keeps records flowing to ancestor loggers.
    """
    level: Union[int, str] = "WARNING"
    propagate: Optional[bool] = None
    fmt: Optional[str] = DEFAULT_FORMAT
    datefmt: Optional[str] = None
    logger_name: str = PACKAGE_LOGGER_NAME

    def apply(self) -> logging.Logger:
        """Configure the licenselib logger from these settings and return it."""
        return configure_logging(
            level=self.level,
            propagate=self.propagate,
            fmt=self.fmt,
            datefmt=self.datefmt,
            logger_name=self.logger_name or PACKAGE_LOGGER_NAME,
        )


@dataclass(slots=True)
class LibraryConfig:
    """Declarative settings for one license library build."""

    resources: ResourceConfig = field(default_factory=ResourceConfig)
    normalizer: NormalizerConfig = field(default_factory=NormalizerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Check resource settings for internal consistency.

        Raises:
            ValueError: If a custom directory is empty or listed twice.
        """
        seen: set[str] = set()
        for raw in self.resources.custom_dirs:
            if not str(raw).strip():
                raise ValueError("resources.custom_dirs must not contain empty paths.")
            key = str(Path(raw))
            if key in seen:
                raise ValueError(f"resources.custom_dirs lists {key!r} more than once.")
            seen.add(key)
        if self.normalizer.unicode_form not in (None, "NFC", "NFD", "NFKC", "NFKD"):
            raise ValueError(f"normalizer.unicode_form must be a Unicode form; got {self.normalizer.unicode_form!r}.")

    # -------------------------
    # Serialization helpers
    # -------------------------
    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation of this configuration."""
        return _dataclass_to_dict(self)

    def to_json(self, path: Path | str, *, indent: int = 2) -> str:
        """Write the configuration as JSON and return the target path."""
        target = Path(path)
        target.write_text(json.dumps(self.to_dict(), indent=indent, sort_keys=True), encoding="utf-8")
        return str(target)

    @classmethod
    def from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
        return _dataclass_from_dict(cls, data)

    @classmethod
    def from_json(cls: Type[T], path: Path | str) -> T:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_dict(payload)  # type: ignore[attr-defined]

    @classmethod
    def from_toml(cls: Type[T], path: Path | str) -> T:
        """
        Load a LibraryConfig from a TOML file.

        The layout mirrors the dataclasses: ``[resources]``, ``[normalizer]``
        and ``[logging]`` tables.
        """
        if tomllib is None:
            raise RuntimeError(
                "TOML support requires Python 3.11+ (tomllib) or installing the 'tomli' package."
            )
        data = tomllib.loads(Path(path).read_bytes().decode("utf-8"))
        if not isinstance(data, Mapping):
            raise TypeError(f"Top-level TOML document must be a mapping; got {type(data).__name__}.")
        return cls.from_dict(data)  # type: ignore[attr-defined]


def load_config_from_path(path: str | Path) -> LibraryConfig:
    """Load a LibraryConfig from a ``.toml`` or ``.json`` file.

    Raises:
        ValueError: If the file extension is not ``.toml`` or ``.json``.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".toml":
        return LibraryConfig.from_toml(p)
    if suffix == ".json":
        return LibraryConfig.from_json(p)
    raise ValueError(f"Unsupported config extension {p.suffix!r}; expected .toml or .json.")


def _dataclass_to_dict(obj: Any) -> Dict[str, Any]:
    """Serialize dataclasses to JSON-friendly dicts, skipping None fields."""
    result: Dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        result[f.name] = _serialize_value(value)
    return result


def _serialize_value(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_serialize_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _serialize_value(v) for k, v in value.items()}
    if is_dataclass(value):
        return _dataclass_to_dict(value)
    return value


def _dataclass_from_dict(cls: Type[T], data: Mapping[str, Any] | None) -> T:
    """Instantiate dataclass ``cls`` from a mapping, recursing into nested configs.

    Unknown keys raise ``ValueError`` so typos in config files surface early.
    """
    if data is None:
        return cls()  # type: ignore[call-arg]
    type_hints = get_type_hints(cls)
    known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    unknown = sorted(k for k in data if k not in known)
    if unknown:
        raise ValueError(f"Unsupported options for {cls.__name__}: {', '.join(unknown)}")

    kwargs: Dict[str, Any] = {}
    for f in fields(cls):  # type: ignore[arg-type]
        if f.name not in data:
            continue
        kwargs[f.name] = _coerce_value(type_hints.get(f.name, f.type), data[f.name])
    return cls(**kwargs)


def _coerce_value(expected_type: Any, value: Any) -> Any:
    """Coerce ``value`` into the shape implied by ``expected_type``."""
    base_type = _strip_optional(expected_type)
    if value is None:
        return None
    if isinstance(base_type, type) and is_dataclass(base_type):
        return _dataclass_from_dict(base_type, value)
    origin = get_origin(base_type)
    if origin in (list, tuple):
        args = get_args(base_type)
        inner = args[0] if args else Any
        items = [_coerce_value(inner, v) for v in value]
        return tuple(items) if origin is tuple else items
    if base_type is Path:
        return Path(value)
    if base_type in {str, bool}:
        return base_type(value)
    return value


def _strip_optional(typ: Any) -> Any:
    """Return the single non-None member of an Optional annotation."""
    origin = get_origin(typ)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(typ) if arg is not type(None)]
        if len(args) == 1:
            return _strip_optional(args[0])
    return typ
