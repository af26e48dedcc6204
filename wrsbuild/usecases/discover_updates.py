"""Use case for registering newly arrived update packages in an image's ledger."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List

from wrsbuild.adapters.package_manifest import read_manifest_version
from wrsbuild.domain.entities import OSImage, ServicingHistory, UpdateEntry
from wrsbuild.domain.errors import IdentifierError, WrsError
from wrsbuild.domain.ports import HistoryStorePort, ImageSourcePort, ManifestPort
from wrsbuild.domain.versions import ServicingVersion

# "KB" followed by digits, not glued to a preceding letter/digit or a trailing digit.
KB_PATTERN = re.compile(r"(?<![A-Za-z0-9])KB(\d+)(?!\d)", re.IGNORECASE)


def extract_identifier(filename: str) -> str:
    """Return the normalised ``KB<digits>`` identifier encoded in a filename.

    Raises:
        IdentifierError: when the name holds no KB token or several distinct ones.
    """
    name = Path(str(filename)).name
    tokens = sorted({f"KB{match.group(1)}" for match in KB_PATTERN.finditer(name)})
    if not tokens:
        raise IdentifierError(
            f"No KB identifier in package name {name!r}",
            "Package names must contain a token such as 'KB4501835'.",
        )
    if len(tokens) > 1:
        raise IdentifierError(
            f"Ambiguous package name {name!r}",
            f"Found several KB identifiers: {', '.join(tokens)}.",
        )
    return tokens[0]


@dataclass
class DiscoveryResult:
    """Entries registered by one discovery pass and per-package failures."""

    added: List[UpdateEntry] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)


@dataclass
class DiscoverUpdates:
    """Scan an image folder for packages missing from its history.

    Each new package is appended as a pending entry and the history is
    persisted right away. Malformed packages are reported and excluded; only a
    persistence failure escapes.
    """

    image_source: ImageSourcePort
    manifest_port: ManifestPort
    history_store: HistoryStorePort
    read_version: Callable[[Path], ServicingVersion] = read_manifest_version
    log: logging.Logger = field(default_factory=lambda: logging.getLogger("wrsbuild.discovery"))

    def __call__(self, image: OSImage, history: ServicingHistory) -> DiscoveryResult:
        result = DiscoveryResult()
        try:
            packages = self.image_source.list_packages(image.source_dir)
        except OSError as exc:
            self.log.error("Cannot list update packages in %s: %s", image.source_dir, exc)
            result.failures[str(image.source_dir)] = str(exc)
            return result

        seen: Dict[str, Path] = {}
        for package in packages:
            try:
                identifier = extract_identifier(package.name)
            except IdentifierError as exc:
                self._report(result, package, str(exc))
                continue

            if identifier in seen:
                self._report(
                    result,
                    package,
                    f"{identifier} is already provided by {seen[identifier].name}",
                )
                continue
            seen[identifier] = package

            if history.has_entry(identifier):
                result.skipped.append(identifier)
                continue

            try:
                version = self._declared_version(image, package, identifier)
            except (WrsError, OSError) as exc:
                self._report(result, package, str(exc))
                continue

            entry = UpdateEntry(identifier=identifier, version=version, applied=False, path=str(package))
            history.append_entry(entry)
            self.history_store.persist(history, image.history_path)
            result.added.append(entry)
            self.log.info("%s: registered %s version %s", image.name, identifier, version)

        return result

    def _declared_version(self, image: OSImage, package: Path, identifier: str) -> ServicingVersion:
        manifest = image.source_dir / f"{identifier}.xml"
        try:
            manifest = self.manifest_port.extract_manifest(package, image.source_dir, identifier)
            return self.read_version(manifest)
        finally:
            try:
                Path(manifest).unlink(missing_ok=True)
            except OSError as exc:
                self.log.warning("Could not remove extracted manifest %s: %s", manifest, exc)

    def _report(self, result: DiscoveryResult, package: Path, reason: str) -> None:
        self.log.error("Skipping package %s: %s", package.name, reason)
        result.failures[package.name] = reason


__all__ = ["DiscoverUpdates", "DiscoveryResult", "KB_PATTERN", "extract_identifier"]
