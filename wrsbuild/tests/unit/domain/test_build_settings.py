from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from wrsbuild.domain.settings import BuildSettings


def test_build_settings_defaults() -> None:
    settings = BuildSettings(image_root="C:/Images", wrs_root="C:/WRS", mount_root="C:/Mount")

    assert settings.image_root == Path("C:/Images")
    assert settings.image_index == 1
    assert settings.package_glob == "*.msu"
    assert settings.history_filename == "OSHistory.xml"
    assert settings.copy_retries == 3
    assert settings.only == []


def test_build_settings_rejects_unknown_keys_and_bad_versions() -> None:
    with pytest.raises(ValidationError):
        BuildSettings(image_root="a", wrs_root="b", mount_root="c", unknown=True)
    with pytest.raises(ValidationError):
        BuildSettings(image_root="a", wrs_root="b", mount_root="c", image_versions={"Win10": "ten"})
    with pytest.raises(ValidationError):
        BuildSettings(image_root="a", wrs_root="b", mount_root="c", image_index=0)
