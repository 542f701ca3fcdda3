import logging

import pytest

from licenselib.core.errors import (
    DuplicatePatternIdentifier,
    MalformedPayload,
    PatternCompileError,
    ProvenanceConsistencyViolation,
    ResourceNotFound,
)
from licenselib.core.library import LicenseLibrary, classify_filename, gated_template_name, normalize_url

MIT_TEMPLATE = "MIT License\n\nCopyright <<copyright>>\n\nPermission is hereby granted, free of charge"

SPDX_LICENSES = [
    {"licenseId": "MIT", "name": "MIT License", "isOsiApproved": True, "isFsfLibre": True},
    {"licenseId": "GPL-1.0", "name": "GNU GPL v1.0 only", "isDeprecatedLicenseId": True},
    {"licenseId": "Missing-1.0", "name": "No Template"},
]
SPDX_EXCEPTIONS = [
    {"licenseExceptionId": "LLVM-exception", "name": "LLVM Exception"},
]
SPDX_TEMPLATES = {
    "MIT.template.txt": MIT_TEMPLATE,
    "deprecated_GPL-1.0.template.txt": "GNU GENERAL PUBLIC LICENSE Version 1",
    "LLVM-exception.template.txt": "LLVM Exceptions to the Apache 2.0 License",
}


@pytest.fixture
def spdx_root(make_spdx):
    return make_spdx(
        licenses=SPDX_LICENSES,
        exceptions=SPDX_EXCEPTIONS,
        templates=SPDX_TEMPLATES,
        prechecks={"MIT.json": {"StaticBlocks": ["permission is hereby granted"]}},
    )


def test_standardized_pass_populates_catalog(spdx_root, make_config, caplog):
    caplog.set_level(logging.DEBUG, logger="licenselib")
    lib = LicenseLibrary.build(make_config(spdx_root))

    assert lib.spdx_version == "3.21"
    assert sorted(lib.licenses) == ["GPL-1.0", "LLVM-exception", "MIT"]

    mit = lib.get("MIT")
    assert mit.spdx_license_id == "MIT"
    assert mit.info.name == "MIT License"
    assert mit.info.is_standard and mit.info.osi_approved and mit.info.is_fsf_libre
    assert not mit.info.is_exception
    assert mit.primary_patterns[0].filename.endswith("template/MIT.template.txt")
    assert mit.primary_pattern_sources[0].source_text == MIT_TEMPLATE
    assert mit.text.content == MIT_TEMPLATE
    assert mit.aliases == []

    gpl = lib.get("GPL-1.0")
    assert gpl.info.is_deprecated
    assert gpl.primary_patterns[0].filename.endswith("template/deprecated_GPL-1.0.template.txt")

    llvm = lib.get("LLVM-exception")
    assert llvm.info.is_exception and llvm.info.is_standard

    record = lib.prechecks.get(mit.primary_patterns[0].filename)
    assert record is not None
    assert record.static_blocks == ("permission is hereby granted",)
    assert lib.prechecks.get(gpl.primary_patterns[0].filename) is None


def test_missing_standardized_template_is_skipped(spdx_root, make_config, caplog):
    caplog.set_level(logging.DEBUG, logger="licenselib")
    lib = LicenseLibrary.build(make_config(spdx_root))

    assert "Missing-1.0" not in lib
    assert any("Skipping missing template file" in r.getMessage() for r in caplog.records)


def test_templates_are_not_compiled_during_build(spdx_root, make_config):
    lib = LicenseLibrary.build(make_config(spdx_root))
    assert not any(p.is_compiled for lic in lib for p in lic.primary_patterns)


def test_missing_standardized_list_is_fatal(tmp_path, make_config):
    (tmp_path / "empty-spdx").mkdir()
    with pytest.raises(ResourceNotFound):
        LicenseLibrary.build(make_config(tmp_path / "empty-spdx"))


def test_malformed_standardized_precheck_is_fatal(make_spdx, make_config):
    root = make_spdx(
        licenses=SPDX_LICENSES[:1],
        templates={"MIT.template.txt": MIT_TEMPLATE},
        prechecks={"MIT.json": "{not json"},
    )
    with pytest.raises(MalformedPayload):
        LicenseLibrary.build(make_config(root))


def test_custom_metadata_merges_over_standardized_entry(spdx_root, make_custom, make_config):
    custom = make_custom(
        licenses={
            "MIT": {
                "license_info.json": {
                    "name": "",
                    "family": "MIT",
                    "is_standard": True,
                    "aliases": ["Expat"],
                    "urls": "https://opensource.org/licenses/MIT",
                },
                "license_MIT_short.txt": "Licensed under the MIT license",
            }
        }
    )
    lib = LicenseLibrary.build(make_config(spdx_root, custom))
    mit = lib.get("MIT")

    assert mit.info.name == "MIT License"
    assert mit.info.family == "MIT"
    assert mit.info.is_standard and mit.info.osi_approved and mit.info.is_fsf_libre
    assert mit.aliases == ["expat", "mit"]
    assert mit.urls == ["opensource.org/licenses/mit"]
    assert len(mit.primary_patterns) == 2
    assert len(mit.primary_pattern_sources) == 2


def test_non_standard_metadata_on_standardized_key_is_fatal(spdx_root, make_custom, make_config):
    custom = make_custom(licenses={"MIT": {"license_info.json": {"name": "", "is_standard": False}}})
    with pytest.raises(ProvenanceConsistencyViolation):
        LicenseLibrary.build(make_config(spdx_root, custom))


def test_alias_derivation_and_suppression(make_custom, make_config):
    custom = make_custom(
        licenses={
            "MIT": {"license_info.json": {"name": "MIT License", "aliases": "The MIT"}},
            "Quiet": {
                "license_info.json": {
                    "name": "Quiet License",
                    "ignore_id_match": True,
                    "ignore_name_match": True,
                    "aliases": ["QUIET-ALIAS"],
                }
            },
        }
    )
    lib = LicenseLibrary.build(make_config(None, custom))

    assert lib.get("MIT").aliases == ["the mit", "mit", "mit license"]
    assert "MIT" not in lib.get("MIT").aliases
    assert lib.get("Quiet").aliases == ["quiet-alias"]


def test_custom_only_license_identity(make_custom, make_config):
    custom = make_custom(
        licenses={
            "named": {"license_info.json": {"name": "Named License"}, "license_a.txt": "named text"},
            "anon": {"license_a.txt": "anonymous text"},
            "std": {"license_info.json": {"is_standard": True}},
        }
    )
    lib = LicenseLibrary.build(make_config(None, custom))

    assert lib.get("named").spdx_license_id == ""
    assert lib.get("named").id == "Named License"
    assert lib.get("anon").id == "anon"
    assert lib.get("std").spdx_license_id == "std"


def test_custom_file_roles(make_custom, make_config, caplog):
    caplog.set_level(logging.INFO, logger="licenselib")
    custom = make_custom(
        licenses={
            "Foo": {
                "license_info.json": {"name": "Foo"},
                "license_foo.txt": "Foo license text",
                "prechecks_license_foo.json": {"StaticBlocks": ["foo license"]},
                "associated_title.txt": "The Foo License",
                "optional_notice.txt": "Licensed under Foo",
                "README.md": "not a pattern",
            }
        }
    )
    lib = LicenseLibrary.build(make_config(None, custom))
    foo = lib.get("Foo")

    assert [p.filename.rsplit("/", 1)[-1] for p in foo.primary_patterns] == ["license_foo.txt"]
    assert [p.filename.rsplit("/", 1)[-1] for p in foo.associated_patterns] == [
        "associated_title.txt",
        "optional_notice.txt",
    ]
    assert len(foo.associated_pattern_sources) == 2
    gate = lib.prechecks.get(foo.primary_patterns[0].filename)
    assert gate is not None and gate.static_blocks == ("foo license",)
    skipped = [r for r in caplog.records if "invalid file name" in r.getMessage()]
    assert len(skipped) == 1 and "README.md" in skipped[0].getMessage()
    assert skipped[0].bundle.endswith("/custom")


def test_malformed_custom_metadata_is_fatal(make_custom, make_config):
    custom = make_custom(licenses={"Bad": {"license_info.json": "{oops"}})
    with pytest.raises(MalformedPayload) as excinfo:
        LicenseLibrary.build(make_config(None, custom))
    assert excinfo.value.path.endswith("license_patterns/Bad/license_info.json")


def test_malformed_custom_precheck_is_fatal(make_custom, make_config):
    custom = make_custom(licenses={"Bad": {"prechecks_license_bad.json": {"StaticBlocks": [1]}}})
    with pytest.raises(MalformedPayload):
        LicenseLibrary.build(make_config(None, custom))


def test_acceptable_patterns_compile_eagerly(make_custom, make_config):
    custom = make_custom(acceptable={"as_is.txt": '  provided\\s+"?as\\s+is"?  \n'})
    lib = LicenseLibrary.build(make_config(None, custom))

    regex = lib.acceptable_patterns["as_is"]
    assert regex.search('The software is PROVIDED "AS IS"')


def test_duplicate_acceptable_pattern_across_sources(make_custom, make_config):
    first = make_custom(acceptable={"disclaimer.txt": "no warranty"}, name="first")
    second = make_custom(acceptable={"disclaimer.re": "without warranty"}, name="second")

    with pytest.raises(DuplicatePatternIdentifier) as excinfo:
        LicenseLibrary.build(make_config(None, first, second))
    assert excinfo.value.pattern_id == "disclaimer"
    assert "second" in excinfo.value.path


def test_invalid_acceptable_pattern_is_fatal(make_custom, make_config):
    custom = make_custom(acceptable={"broken.txt": "(unclosed"})
    with pytest.raises(PatternCompileError):
        LicenseLibrary.build(make_config(None, custom))


def test_later_custom_bundle_merges_over_earlier(make_custom, make_config):
    first = make_custom(
        licenses={"Foo": {"license_info.json": {"name": "Foo", "osi_approved": True}, "license_a.txt": "a"}},
        name="first",
    )
    second = make_custom(
        licenses={"Foo": {"license_info.json": {"name": "Foo Renamed", "urls": ["HTTP://foo.example"]},
                          "license_b.txt": "b"}},
        name="second",
    )
    lib = LicenseLibrary.build(make_config(None, first, second))
    foo = lib.get("Foo")

    assert foo.info.name == "Foo"
    assert foo.info.osi_approved
    assert foo.urls == ["foo.example"]
    assert foo.aliases == ["foo", "foo renamed"]
    assert len(foo.primary_patterns) == 2


def test_library_is_frozen_after_build(make_custom, make_config):
    lib = LicenseLibrary.build(make_config(None, make_custom()))
    assert lib.frozen
    with pytest.raises(RuntimeError):
        lib.add_acceptable_pattern("late", "x")
    with pytest.raises(TypeError):
        lib.licenses["new"] = None  # type: ignore[index]


def test_classify_filename_and_gated_name():
    assert classify_filename("LICENSE_INFO.JSON", "p") == "info"
    assert classify_filename("License_X.txt", "p") == "primary"
    assert classify_filename("prechecks_license_X.json", "p") == "precheck"
    assert classify_filename("optional_x.txt", "p") == "associated"
    assert gated_template_name("prechecks_license_X.json") == "license_X.txt"


def test_normalize_url():
    assert normalize_url("https://Example.org/License") == "example.org/license"
    assert normalize_url("WWW.Example.org") == "www.example.org"
