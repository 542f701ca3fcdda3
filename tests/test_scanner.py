import pytest

from licenselib.core.library import LicenseLibrary
from licenselib.core.scanner import scan_text

FOO_TEMPLATE = "Foo Public License\n\nCopyright <<copyright>>\n\nYou may do anything."
FOO_TEXT = "FOO   public license\nCopyright (c) 2020 Bob Example\n\nYou may do anything."


@pytest.fixture
def library(make_custom, make_config):
    custom = make_custom(
        licenses={
            "Foo": {
                "license_foo.txt": FOO_TEMPLATE,
                "associated_title.txt": "Foo Public License",
            },
            "Bar": {
                "license_info.json": {
                    "name": "Bar License",
                    "aliases": ["bar-1.0"],
                    "urls": ["https://bar.example/license"],
                },
            },
            "Gated": {
                "license_gated.txt": "Gated terms apply",
                "prechecks_license_gated.json": {"StaticBlocks": ["secret handshake"]},
            },
            "Broken": {"license_broken.txt": "Broken <<(unclosed>> text"},
            "Empty": {"license_empty.txt": ""},
        },
        acceptable={"as_is.txt": r"as\s+is"},
    )
    return LicenseLibrary.build(make_config(None, custom))


def _kinds(result, license_id):
    return {m.kind for m in result.matches if m.license_id == license_id}


def test_primary_template_with_copyright_wildcard(library):
    result = scan_text(library, FOO_TEXT)

    assert "Foo" in result.license_ids
    assert "primary" in _kinds(result, "Foo")
    primary = next(m for m in result.matches if m.license_id == "Foo" and m.kind == "primary")
    assert primary.source.endswith("license_patterns/Foo/license_foo.txt")
    assert primary.start == 0


def test_associated_templates_need_an_identified_license(library):
    assert "associated" in _kinds(scan_text(library, FOO_TEXT), "Foo")
    assert "Foo" not in scan_text(library, "Foo Public License").license_ids


def test_alias_and_url_matching(library):
    result = scan_text(library, "Released under BAR-1.0, see HTTPS://BAR.EXAMPLE/LICENSE for details.")
    assert _kinds(result, "Bar License") >= {"alias", "url"}

    assert scan_text(library, "a barbell and a crowbar").license_ids == []


def test_precheck_gates_template_compilation(library):
    gated = library.get("Gated").primary_patterns[0]

    result = scan_text(library, "Gated terms apply")
    assert "Gated" not in result.license_ids
    assert not gated.is_compiled

    result = scan_text(library, "The secret handshake: gated terms apply")
    assert "Gated" in result.license_ids
    assert gated.is_compiled


def test_compile_failure_is_reported_not_fatal(library):
    result = scan_text(library, FOO_TEXT)

    assert any(path.endswith("license_broken.txt") for path in result.compile_failures)
    assert "Broken" not in result.license_ids
    assert "Foo" in result.license_ids
    assert library.get("Broken").primary_patterns[0].error is not None


def test_empty_template_never_matches(library):
    result = scan_text(library, "anything at all")
    assert "Empty" not in result.license_ids


def test_acceptable_patterns(library):
    result = scan_text(library, 'The software is provided "AS   IS".')
    assert result.acceptable == ["as_is"]
    assert scan_text(library, "no disclaimer here").acceptable == []


def test_scan_result_to_dict(library):
    data = scan_text(library, FOO_TEXT).to_dict()
    assert data["licenses"] == ["Foo"]
    assert {m["kind"] for m in data["matches"]} == {"primary", "associated"}
    assert data["acceptable"] == []


def test_multiline_precheck_block_gates_on_normalized_text(make_custom, make_config):
    custom = make_custom(
        licenses={
            "Foo": {
                "license_foo.txt": "Permission is hereby\ngranted to use Foo",
                "prechecks_license_foo.json": {"StaticBlocks": ["Permission is hereby\ngranted"]},
            }
        }
    )
    lib = LicenseLibrary.build(make_config(None, custom))

    assert scan_text(lib, "Permission is hereby\ngranted to use Foo").license_ids == ["Foo"]
    assert scan_text(lib, "Permission is granted to use Foo").license_ids == []
