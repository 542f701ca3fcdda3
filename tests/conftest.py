import json
from pathlib import Path

import pytest

from licenselib.core.config import LibraryConfig


def _write(path: Path, content) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    elif isinstance(content, (dict, list)):
        path.write_text(json.dumps(content), encoding="utf-8")
    else:
        path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def make_spdx(tmp_path):
    """Write a standardized bundle: json lists, templates, prechecks."""

    def _make(licenses=(), exceptions=(), templates=None, prechecks=None, version="3.21", name="spdx"):
        root = tmp_path / name
        _write(root / "json" / "licenses.json", {"licenseListVersion": version, "licenses": list(licenses)})
        _write(root / "json" / "exceptions.json", {"licenseListVersion": version, "exceptions": list(exceptions)})
        for file_name, text in (templates or {}).items():
            _write(root / "template" / file_name, text)
        for file_name, data in (prechecks or {}).items():
            _write(root / "precheck" / file_name, data)
        return root

    return _make


@pytest.fixture
def make_custom(tmp_path):
    """Write a custom bundle: license_patterns/<key>/<files> and acceptable_patterns."""

    def _make(licenses=None, acceptable=None, name="custom"):
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        for key, files in (licenses or {}).items():
            key_dir = root / "license_patterns" / key
            key_dir.mkdir(parents=True, exist_ok=True)
            for file_name, content in files.items():
                _write(key_dir / file_name, content)
        for file_name, content in (acceptable or {}).items():
            _write(root / "acceptable_patterns" / file_name, content)
        return root

    return _make


@pytest.fixture
def make_config():
    def _make(spdx=None, *custom):
        cfg = LibraryConfig()
        cfg.resources.spdx_dir = spdx
        cfg.resources.custom_dirs = list(custom)
        return cfg

    return _make
