from pathlib import Path

import pytest

from licenselib.core.config import LibraryConfig, ResourceConfig, load_config_from_path


def test_config_json_round_trip(tmp_path: Path):
    cfg = LibraryConfig()
    cfg.resources.spdx_dir = tmp_path / "spdx"
    cfg.resources.custom_dirs = [tmp_path / "a", tmp_path / "b.zip"]
    cfg.normalizer.fold_punctuation = False
    cfg.logging.level = "DEBUG"

    path = tmp_path / "cfg.json"
    cfg.to_json(path)
    loaded = load_config_from_path(path)

    assert loaded.resources.spdx_dir == tmp_path / "spdx"
    assert loaded.resources.custom_dirs == [tmp_path / "a", tmp_path / "b.zip"]
    assert all(isinstance(p, Path) for p in loaded.resources.custom_dirs)
    assert loaded.normalizer.fold_punctuation is False
    assert loaded.logging.level == "DEBUG"
    assert loaded.to_dict() == cfg.to_dict()


def test_to_dict_skips_unset_optional_paths():
    data = LibraryConfig().to_dict()
    assert "spdx_dir" not in data["resources"]
    assert data["resources"]["custom_dirs"] == []
    assert data["resources"]["template_dir"] == "template"


def test_config_from_toml(tmp_path: Path):
    path = tmp_path / "cfg.toml"
    path.write_text(
        """
[resources]
spdx_dir = "vendor/spdx"
custom_dirs = ["custom/one", "custom/two.zip"]
precheck_dir = "checks"

[normalizer]
unicode_form = "NFKC"
""",
        encoding="utf-8",
    )
    cfg = load_config_from_path(path)

    assert cfg.resources.spdx_dir == Path("vendor/spdx")
    assert cfg.resources.custom_dirs == [Path("custom/one"), Path("custom/two.zip")]
    assert cfg.resources.precheck_dir == "checks"
    assert cfg.normalizer.unicode_form == "NFKC"
    assert cfg.logging.level == "WARNING"
    assert cfg.logging.propagate is None


def test_unknown_keys_are_rejected():
    with pytest.raises(ValueError, match="Unsupported options for ResourceConfig: spdx_path"):
        LibraryConfig.from_dict({"resources": {"spdx_path": "x"}})
    with pytest.raises(ValueError, match="Unsupported options for LibraryConfig"):
        LibraryConfig.from_dict({"sources": {}})


def test_unsupported_extension(tmp_path: Path):
    path = tmp_path / "cfg.yaml"
    path.write_text("resources: {}", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported config extension"):
        load_config_from_path(path)


def test_validate_rejects_duplicate_custom_dirs():
    cfg = LibraryConfig(resources=ResourceConfig(custom_dirs=[Path("a"), Path("./a")]))
    with pytest.raises(ValueError, match="more than once"):
        cfg.validate()


def test_validate_rejects_unknown_unicode_form():
    cfg = LibraryConfig()
    cfg.normalizer.unicode_form = "NFX"
    with pytest.raises(ValueError, match="Unicode form"):
        cfg.validate()

    cfg.normalizer.unicode_form = None
    cfg.validate()
