import io

import pytest

from mc_manager.orchestrator import FilesystemError, ValidationError
from mc_manager.services.extra_mods import (
    delete_extra_mod,
    list_extra_mods,
    save_extra_mod,
    validate_mod_filename,
)


@pytest.mark.parametrize("name", ["jei.jar", "Create-1.21.1-6.0.jar", " spaced.jar "])
def test_valid_filenames(name):
    assert validate_mod_filename(name) == name.strip()


@pytest.mark.parametrize(
    "name", [None, "", "   ", "mod.zip", "mod.JAR.txt", "../evil.jar", "a/b.jar", "a\\b.jar", ".hidden.jar"]
)
def test_invalid_filenames(name):
    with pytest.raises(ValidationError):
        validate_mod_filename(name)


def test_save_creates_staging_dir_and_overwrites(tmp_path):
    staging = tmp_path / "extra_mods"
    dest = save_extra_mod(staging, "jei.jar", io.BytesIO(b"v1"))
    assert dest == staging / "jei.jar"
    save_extra_mod(staging, "jei.jar", io.BytesIO(b"v2"))
    assert dest.read_bytes() == b"v2"
    assert list_extra_mods(staging) == ["jei.jar"]


def test_save_enforces_size_limit(tmp_path):
    staging = tmp_path / "extra_mods"
    with pytest.raises(ValidationError):
        save_extra_mod(staging, "big.jar", io.BytesIO(b"x" * 10), max_bytes=4)
    # neither the target nor the partial file is left behind
    assert list(staging.iterdir()) == []


def test_save_into_unwritable_location(tmp_path):
    blocker = tmp_path / "extra_mods"
    blocker.write_text("a file, not a directory")
    with pytest.raises(FilesystemError):
        save_extra_mod(blocker, "jei.jar", io.BytesIO(b"x"))


def test_list_skips_hidden_and_directories(tmp_path):
    (tmp_path / "b.jar").write_bytes(b"")
    (tmp_path / "a.jar").write_bytes(b"")
    (tmp_path / ".a.jar.part").write_bytes(b"")
    (tmp_path / "sub").mkdir()
    assert list_extra_mods(tmp_path) == ["a.jar", "b.jar"]
    assert list_extra_mods(tmp_path / "missing") == []


def test_delete(tmp_path):
    (tmp_path / "a.jar").write_bytes(b"")
    assert delete_extra_mod(tmp_path, "a.jar") is True
    assert delete_extra_mod(tmp_path, "a.jar") is False
