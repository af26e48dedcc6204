from __future__ import annotations

from pathlib import Path
from typing import List, Protocol

from .entities import ImageScan, ServicingHistory


# ---- Ports (Hexagonal boundaries) ----
class ImagingPort(Protocol):
    """Offline image servicing operations (mount, unmount, install, info).

    Implementations raise :class:`~wrsbuild.domain.errors.CollaboratorError`
    on failure; use cases translate that into result objects.
    """

    def mount_image(self, image_path: Path, index: int, mount_path: Path) -> None: ...
    def unmount_image(self, mount_path: Path, discard: bool = True) -> None: ...
    def install_package(self, package_path: Path, mount_path: Path) -> None: ...
    def image_version(self, image_path: Path, index: int) -> str: ...  # e.g. "10.0.17763.1"


class CopyPort(Protocol):
    """Recursive, attribute-preserving, additive tree copy with per-file retry."""

    def copy_tree(self, source: Path, destination: Path) -> int: ...  # tool exit code


class ManifestPort(Protocol):
    """Extract the servicing manifest embedded in an update package."""

    def extract_manifest(self, package_path: Path, output_dir: Path, identifier: str) -> Path: ...


class HistoryStorePort(Protocol):
    """Durable per-image ledger document."""

    def load(self, path: Path) -> ServicingHistory: ...  # creates an empty document if missing
    def read(self, path: Path) -> ServicingHistory: ...  # never writes
    def persist(self, history: ServicingHistory, path: Path) -> None: ...


class ImageSourcePort(Protocol):
    """Locate base images and their update packages on disk."""

    def find_images(self) -> ImageScan: ...
    def list_packages(self, directory: Path) -> List[Path]: ...


__all__ = [
    "CopyPort",
    "HistoryStorePort",
    "ImageSourcePort",
    "ImagingPort",
    "ManifestPort",
]
