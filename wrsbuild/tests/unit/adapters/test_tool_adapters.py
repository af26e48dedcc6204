"""Tests for the DISM, robocopy and expand wrappers with a stubbed subprocess."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from wrsbuild.adapters.dism import DismImaging, parse_image_info
from wrsbuild.adapters.package_manifest import ExpandManifestExtractor, read_manifest_version
from wrsbuild.adapters.robocopy import RobocopyCopier
from wrsbuild.domain.errors import CollaboratorError, ManifestError
from wrsbuild.domain.versions import ServicingVersion

IMAGE_INFO = """
Deployment Image Servicing and Management tool
Version: 10.0.19041.844

Details for image : D:\\Images\\Win10-17763\\install.wim

Index : 1
Name : Windows 10 Enterprise
Version : 10.0.17763
ServicePack Build : 1
ServicePack Level : 0
Edition : Enterprise

The operation completed successfully.
"""

MANIFEST = """<?xml version="1.0" encoding="utf-8"?>
<unattend xmlns="urn:schemas-microsoft-com:unattend">
  <servicing>
    <package action="install">
      <assemblyIdentity name="Package_for_RollupFix" version="10.0.17763.292" language="neutral" />
    </package>
  </servicing>
</unattend>
"""


class FakeRun:
    """subprocess.run double recording every command line."""

    def __init__(
        self,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        side_effect: Optional[Callable[[List[str]], None]] = None,
    ) -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.side_effect = side_effect
        self.calls: List[List[str]] = []

    def __call__(self, args, **kwargs):
        assert kwargs.get("capture_output") is True
        self.calls.append(list(args))
        if self.side_effect:
            self.side_effect(list(args))
        return subprocess.CompletedProcess(args, self.returncode, self.stdout, self.stderr)


def test_dism_mount_unmount_and_install_arguments(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeRun()
    monkeypatch.setattr(subprocess, "run", fake)
    dism = DismImaging("dism.exe")
    mount = tmp_path / "mount"

    dism.mount_image(Path("D:/img/install.wim"), 1, mount)
    dism.install_package(Path("D:/img/kb1.msu"), mount)
    dism.unmount_image(mount)

    assert mount.is_dir()
    assert fake.calls[0][:2] == ["dism.exe", "/Mount-Image"]
    assert f"/MountDir:{mount}" in fake.calls[0]
    assert "/Index:1" in fake.calls[0]
    assert "/Add-Package" in fake.calls[1]
    assert fake.calls[2][-1] == "/Discard"


def test_dism_failure_raises_collaborator_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(subprocess, "run", FakeRun(returncode=87, stdout="Error: 87\nThe parameter is incorrect."))

    with pytest.raises(CollaboratorError) as excinfo:
        DismImaging().install_package(Path("kb1.msu"), Path("mnt"))

    assert excinfo.value.code == "imaging.install_failed"
    assert excinfo.value.exit_code == 87
    assert "parameter is incorrect" in excinfo.value.hint


def test_dism_reboot_required_counts_as_success(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(subprocess, "run", FakeRun(returncode=3010))
    DismImaging().install_package(Path("kb1.msu"), Path("mnt"))


def test_missing_executable_raises_collaborator_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def missing(args, **kwargs):
        raise FileNotFoundError(args[0])

    monkeypatch.setattr(subprocess, "run", missing)

    with pytest.raises(CollaboratorError) as excinfo:
        DismImaging("nope.exe").unmount_image(Path("mnt"))

    assert "nope.exe" in excinfo.value.message


def test_image_version_skips_tool_banner(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(subprocess, "run", FakeRun(stdout=IMAGE_INFO))

    assert DismImaging().image_version(Path("install.wim"), 1) == "10.0.17763.1"
    assert parse_image_info(IMAGE_INFO)["edition"] == "Enterprise"


def test_robocopy_arguments_are_additive(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeRun(returncode=3)
    monkeypatch.setattr(subprocess, "run", fake)
    copier = RobocopyCopier("robocopy.exe", retries=2, wait_s=1)

    assert copier.copy_tree(Path("src"), Path("dst")) == 3

    args = fake.calls[0]
    assert args[:3] == ["robocopy.exe", "src", "dst"]
    assert {"/E", "/COPY:DAT", "/DCOPY:T", "/R:2", "/W:1"} <= set(args)
    assert "/MIR" not in args
    assert "/PURGE" not in args


def test_expand_extracts_and_renames_manifest(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def drop_manifest(args: List[str]) -> None:
        staging = Path(args[-1])
        (staging / "WSUSSCAN.xml").write_text("<x/>", encoding="utf-8")
        (staging / "Windows10.0-KB4501835-x64.xml").write_text(MANIFEST, encoding="utf-8")

    fake = FakeRun(side_effect=drop_manifest)
    monkeypatch.setattr(subprocess, "run", fake)

    target = ExpandManifestExtractor().extract_manifest(tmp_path / "kb.msu", tmp_path, "KB4501835")

    assert target == tmp_path / "KB4501835.xml"
    assert fake.calls[0][1] == "-F:*.xml"
    assert read_manifest_version(target) == ServicingVersion.parse("10.0.17763.292")
    assert not (tmp_path / ".KB4501835.extract").exists()


def test_expand_without_manifest_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(subprocess, "run", FakeRun())

    with pytest.raises(ManifestError):
        ExpandManifestExtractor().extract_manifest(tmp_path / "kb.msu", tmp_path, "KB1")

    assert list(tmp_path.iterdir()) == []


def test_manifest_without_version_is_rejected(tmp_path: Path) -> None:
    manifest = tmp_path / "KB1.xml"
    manifest.write_text("<unattend><servicing /></unattend>", encoding="utf-8")

    with pytest.raises(ManifestError):
        read_manifest_version(manifest)
