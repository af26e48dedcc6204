"""Filesystem discovery of base images and update packages.

Layout under the image root::

    <image_root>/<OSFolder>/<image>.wim
    <image_root>/<OSFolder>/OSHistory.xml
    <image_root>/<OSFolder>/*.msu
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import List, Optional

from wrsbuild.domain.entities import ImageScan, OSImage
from wrsbuild.domain.errors import WrsError
from wrsbuild.domain.ports import ImageSourcePort, ImagingPort
from wrsbuild.domain.settings import BuildSettings
from wrsbuild.domain.versions import ServicingVersion


class FileSystemImageSource(ImageSourcePort):
    """Find one ``.wim`` per image folder and list its update packages."""

    def __init__(
        self,
        settings: BuildSettings,
        imaging: ImagingPort,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings
        self.imaging = imaging
        self._log = logger or logging.getLogger("wrsbuild.locator")

    def find_images(self) -> ImageScan:
        root = Path(self.settings.image_root)
        scan = ImageScan()
        if not root.is_dir():
            scan.failures[str(root)] = "Image root does not exist."
            self._log.error("Image root %s does not exist", root)
            return scan

        try:
            folders = sorted(path for path in root.iterdir() if path.is_dir())
        except OSError as exc:
            scan.failures[str(root)] = f"Cannot list image root: {exc}"
            self._log.error("Cannot list image root %s: %s", root, exc)
            return scan

        wanted = {name.lower() for name in self.settings.only}
        for folder in folders:
            if wanted and folder.name.lower() not in wanted:
                continue
            try:
                wims = _matching_files(folder, "*.wim")
            except OSError as exc:
                self._log.error("Cannot list image folder %s: %s", folder, exc)
                scan.failures[folder.name] = f"Cannot list folder: {exc}"
                continue
            if not wims:
                self._log.debug("Skipping %s: no .wim file", folder)
                continue
            if len(wims) > 1:
                reason = f"Several .wim files: {', '.join(path.name for path in wims)}"
                self._log.warning("Skipping %s: %s", folder.name, reason)
                scan.failures[folder.name] = reason
                continue
            try:
                version = self._image_version(folder.name, wims[0])
            except (WrsError, ValueError) as exc:
                self._log.error("Cannot determine version of %s: %s", folder.name, exc)
                scan.failures[folder.name] = f"Unknown image version: {exc}"
                continue
            scan.images.append(
                OSImage(
                    name=folder.name,
                    version=version,
                    source_path=wims[0].resolve(),
                    index=self.settings.image_index,
                    mount_path=Path(self.settings.mount_root) / folder.name,
                    history_filename=self.settings.history_filename,
                )
            )
        return scan

    def list_packages(self, directory: Path) -> List[Path]:
        return [path.resolve() for path in _matching_files(Path(directory), self.settings.package_glob)]

    def _image_version(self, folder_name: str, wim: Path) -> ServicingVersion:
        override = self.settings.image_versions.get(folder_name)
        if override:
            return ServicingVersion.parse(override)
        return ServicingVersion.parse(self.imaging.image_version(wim, self.settings.image_index))


def _matching_files(directory: Path, pattern: str) -> List[Path]:
    """Case-insensitive, name-sorted glob over regular files of one folder."""
    lowered = pattern.lower()
    return sorted(
        (path for path in directory.iterdir() if path.is_file() and fnmatch.fnmatchcase(path.name.lower(), lowered)),
        key=lambda path: path.name.lower(),
    )


__all__ = ["FileSystemImageSource"]
