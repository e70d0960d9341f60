import pytest

from mc_manager.orchestrator.state import ConfigFieldMissing, FilesystemError
from mc_manager.orchestrator.versions import (
    canonical_version,
    extract_version,
    parse_modpack_version,
    read_modpack_version,
    version_from_last_hyphen,
    version_from_scan,
    versions_equal,
)


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("10.1.3", "10.1.3", True),
        ("10.1.3", "10.1.4", False),
        ("1.0.0-rc.1", "1.0.0-rc.1", True),
        ("1.0.0-rc.1", "1.0.0", False),
        # string fallback: "v10.1.3" is not a semantic version
        ("10.1.3", "v10.1.3", False),
        ("v10.1.3", "v10.1.3", True),
        ("1.2", "1.2", True),
        ("1.2", "1.2.0", False),
    ],
)
def test_versions_equal(a, b, expected):
    assert versions_equal(a, b) is expected


def test_semver_equality_ignores_build_metadata():
    assert versions_equal("1.2.0+build.5", "1.2.0+build.7")


def test_canonical_version_keeps_unparseable_tokens():
    assert canonical_version("1.2.0") == "1.2.0"
    assert canonical_version("hotfix") == "hotfix"


def test_last_hyphen_extraction():
    assert version_from_last_hyphen("Pack-Server-1.2.0") == "1.2.0"
    assert version_from_last_hyphen("All the Mods 10 - 2.31 ") == "2.31"
    assert version_from_last_hyphen("NoHyphenHere") == "unknown"


def test_extraction_strategies_disagree_on_suffixed_names():
    name = "ATM10-Server-1.0.1-hotfix-2"
    assert version_from_last_hyphen(name) == "2"
    assert version_from_scan(name) == "1.0.1"
    assert extract_version(name) == "2"
    assert extract_version(name, "scan") == "1.0.1"


def test_scan_falls_back_without_dotted_run():
    assert version_from_scan("Pack-Server-beta") == "beta"


def test_unknown_strategy_rejected():
    with pytest.raises(ValueError):
        extract_version("Pack-1.0.0", "regex")


def test_parse_modpack_version():
    contents = '[general]\n\tmodpackName = "All the Mods 10"\n\tmodpackVersion = "2.31"\n'
    assert parse_modpack_version(contents) == "2.31"
    assert parse_modpack_version('modpackVersion = ""') is None


def test_read_modpack_version_errors(tmp_path):
    missing = tmp_path / "bcc-common.toml"
    with pytest.raises(FilesystemError):
        read_modpack_version(missing)

    missing.write_text('[general]\nmodpackName = "ATM10"\n')
    with pytest.raises(ConfigFieldMissing):
        read_modpack_version(missing)

    missing.write_text('[general]\nmodpackVersion = "3.0.1"\n')
    assert read_modpack_version(missing) == "3.0.1"
