"""Use case for installing one update package into a mounted image."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from wrsbuild.domain.errors import IdentifierError, WrsError
from wrsbuild.domain.ports import ImagingPort

from .discover_updates import extract_identifier


@dataclass
class InstallUpdate:
    """Offline package install with no internal retry.

    A failure is returned to the caller immediately; the orchestrator owns the
    halt policy.
    """

    imaging: ImagingPort
    log: logging.Logger = field(default_factory=lambda: logging.getLogger("wrsbuild.install"))

    def __call__(self, package_path: Path, working_path: Path) -> bool:
        package_path = Path(package_path)
        label = _label_for(package_path)
        self.log.info("Installing %s into %s", label, working_path)
        try:
            self.imaging.install_package(package_path, Path(working_path))
        except (WrsError, OSError) as exc:
            self.log.error("Install of %s failed: %s", label, exc)
            return False
        self.log.info("Installed %s", label)
        return True


def _label_for(package_path: Path) -> str:
    try:
        return extract_identifier(package_path.name)
    except IdentifierError:
        return package_path.name


__all__ = ["InstallUpdate"]
