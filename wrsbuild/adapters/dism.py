"""DISM-backed implementation of the imaging port.

Each operation shells out to ``dism.exe`` and raises
:class:`~wrsbuild.domain.errors.CollaboratorError` when the tool reports a
failure. DISM must run elevated on a Windows servicing host.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Optional

from wrsbuild.domain.errors import CollaboratorError
from wrsbuild.domain.ports import ImagingPort

from .process import output_tail, run_tool

# 3010: operation succeeded, a reboot of the live system would be required.
SUCCESS_EXIT_CODES = frozenset({0, 3010})
_INFO_LINE_RE = re.compile(r"^\s*([A-Za-z][A-Za-z ]*?)\s*:\s*(.*?)\s*$")


class DismImaging(ImagingPort):
    """Mount, unmount, install into and inspect offline WIM images."""

    def __init__(self, executable: str = "dism.exe", logger: Optional[logging.Logger] = None) -> None:
        self.executable = executable
        self._log = logger or logging.getLogger("wrsbuild.dism")

    def mount_image(self, image_path: Path, index: int, mount_path: Path) -> None:
        Path(mount_path).mkdir(parents=True, exist_ok=True)
        self._run(
            "imaging.mount_failed",
            f"Mounting {image_path} (index {index}) failed",
            "/Mount-Image",
            f"/ImageFile:{image_path}",
            f"/Index:{int(index)}",
            f"/MountDir:{mount_path}",
        )

    def unmount_image(self, mount_path: Path, discard: bool = True) -> None:
        self._run(
            "imaging.unmount_failed",
            f"Unmounting {mount_path} failed",
            "/Unmount-Image",
            f"/MountDir:{mount_path}",
            "/Discard" if discard else "/Commit",
        )

    def install_package(self, package_path: Path, mount_path: Path) -> None:
        self._run(
            "imaging.install_failed",
            f"Adding package {Path(package_path).name} failed",
            f"/Image:{mount_path}",
            "/Add-Package",
            f"/PackagePath:{package_path}",
        )

    def image_version(self, image_path: Path, index: int) -> str:
        """Return ``<Version>.<ServicePack Build>`` from DISM image info."""
        result = self._run(
            "imaging.info_failed",
            f"Reading image info for {image_path} failed",
            "/English",
            "/Get-ImageInfo",
            f"/ImageFile:{image_path}",
            f"/Index:{int(index)}",
        )
        fields = parse_image_info(result.stdout or "")
        version = fields.get("version", "")
        if not version:
            raise CollaboratorError(
                "imaging.info_failed",
                f"DISM did not report a version for {image_path}",
                output_tail(result),
            )
        build = fields.get("servicepack build", "")
        return f"{version}.{build}" if build else version

    def _run(self, code: str, message: str, *args: str):
        result = run_tool([self.executable, *args], code=code, log=self._log)
        if result.returncode not in SUCCESS_EXIT_CODES:
            raise CollaboratorError(
                code,
                message,
                output_tail(result) or f"dism exit code {result.returncode}",
                exit_code=result.returncode,
            )
        return result


def parse_image_info(text: str) -> Dict[str, str]:
    """Parse ``Key : Value`` lines from ``/Get-ImageInfo`` into lower-case keys.

    DISM prints its own tool version before the image details, so parsing
    starts after the ``Details for image`` banner when one is present.
    """
    lines = text.splitlines()
    for position, line in enumerate(lines):
        if line.strip().lower().startswith("details for image"):
            lines = lines[position + 1:]
            break
    fields: Dict[str, str] = {}
    for line in lines:
        match = _INFO_LINE_RE.match(line)
        if match:
            fields.setdefault(match.group(1).strip().lower(), match.group(2))
    return fields


__all__ = ["DismImaging", "SUCCESS_EXIT_CODES", "parse_image_info"]
