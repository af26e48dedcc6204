"""Manifest extraction from ``.msu`` packages and declared-version parsing.

An ``.msu`` bundles an unattend-style XML document describing the servicing
package, for example::

    <unattend xmlns="urn:schemas-microsoft-com:unattend">
      <servicing>
        <package action="install">
          <assemblyIdentity name="Package_for_RollupFix" version="10.0.17763.292" ... />
        </package>
      </servicing>
    </unattend>

``expand.exe -F:*.xml`` pulls that document out next to the package, where it
is renamed to ``<KB>.xml``.
"""

from __future__ import annotations

import logging
import shutil
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from wrsbuild.domain.errors import CollaboratorError, ManifestError
from wrsbuild.domain.ports import ManifestPort
from wrsbuild.domain.versions import ServicingVersion

from .process import output_tail, run_tool


class ExpandManifestExtractor(ManifestPort):
    """Extract the embedded manifest with ``expand.exe``."""

    def __init__(self, executable: str = "expand.exe", logger: Optional[logging.Logger] = None) -> None:
        self.executable = executable
        self._log = logger or logging.getLogger("wrsbuild.manifest")

    def extract_manifest(self, package_path: Path, output_dir: Path, identifier: str) -> Path:
        output_dir = Path(output_dir)
        target = output_dir / f"{identifier}.xml"
        staging = output_dir / f".{identifier}.extract"
        if staging.exists():
            shutil.rmtree(staging)
        staging.mkdir(parents=True)
        try:
            result = run_tool(
                [self.executable, "-F:*.xml", str(package_path), str(staging)],
                code="manifest.extract_failed",
                log=self._log,
            )
            if result.returncode != 0:
                raise CollaboratorError(
                    "manifest.extract_failed",
                    f"Extracting manifest from {Path(package_path).name} failed",
                    output_tail(result) or f"expand exit code {result.returncode}",
                    exit_code=result.returncode,
                )
            candidates = sorted(staging.rglob("*.xml"))
            if len(candidates) > 1:
                named = [path for path in candidates if identifier.lower() in path.name.lower()]
                candidates = named if len(named) == 1 else candidates
            if len(candidates) != 1:
                raise ManifestError(
                    f"Expected one manifest in {Path(package_path).name}, found {len(candidates)}",
                    ", ".join(path.name for path in candidates),
                )
            candidates[0].replace(target)
        finally:
            shutil.rmtree(staging, ignore_errors=True)
        return target


def read_manifest_version(manifest_path: Path) -> ServicingVersion:
    """Return the version of the first ``assemblyIdentity`` in a manifest."""
    path = Path(manifest_path)
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as exc:
        raise ManifestError(f"Cannot parse manifest {path.name}", str(exc)) from exc

    for node in root.iter():
        tag = node.tag.rsplit("}", 1)[-1]
        if tag != "assemblyIdentity":
            continue
        raw = node.get("version")
        if raw is None:
            continue
        try:
            return ServicingVersion.parse(raw)
        except ValueError as exc:
            raise ManifestError(f"Manifest {path.name} declares an invalid version", str(exc)) from exc
    raise ManifestError(
        f"Manifest {path.name} declares no version",
        "Expected an assemblyIdentity element with a version attribute.",
    )


__all__ = ["ExpandManifestExtractor", "read_manifest_version"]
