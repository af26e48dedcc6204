"""Use case that processes every discovered image, one after another."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from wrsbuild.domain.errors import HistoryLoadError, HistoryPersistError
from wrsbuild.domain.ports import ImageSourcePort

from .service_image import ImageRunResult, ServiceImage

EXIT_OK = 0
EXIT_FAILURES = 1


@dataclass
class BuildReport:
    """Per-image results plus image folders that could not be used at all."""

    results: List[ImageRunResult] = field(default_factory=list)
    scan_failures: Dict[str, str] = field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        if self.scan_failures or any(not result.ok for result in self.results):
            return EXIT_FAILURES
        return EXIT_OK

    def summary_lines(self) -> List[str]:
        lines = []
        for result in self.results:
            applied = ", ".join(result.applied) or "none"
            line = f"{result.image}: {result.status} (applied: {applied})"
            if result.reason:
                line += f" - {result.reason}"
            lines.append(line)
            for package, reason in sorted(result.discovery_failures.items()):
                lines.append(f"  skipped package {package}: {reason}")
        for folder, reason in sorted(self.scan_failures.items()):
            lines.append(f"{folder}: not processed - {reason}")
        return lines


@dataclass
class BuildRepairSource:
    """Run the servicing state machine for each image independently.

    Images are strictly sequential. A ledger load/persist failure aborts only
    the image it happened on.
    """

    image_source: ImageSourcePort
    service_image: ServiceImage
    log: logging.Logger = field(default_factory=lambda: logging.getLogger("wrsbuild.run"))

    def __call__(self) -> BuildReport:
        scan = self.image_source.find_images()
        report = BuildReport(scan_failures=dict(scan.failures))
        if not scan.images:
            self.log.warning("No images found to process")

        for image in scan.images:
            self.log.info("=== %s (version %s) ===", image.name, image.version)
            try:
                result = self.service_image(image)
            except (HistoryLoadError, HistoryPersistError) as exc:
                self.log.error("%s: aborted: %s", image.name, exc)
                result = ImageRunResult(image=image.name, status="aborted", reason=str(exc))
            report.results.append(result)

        for line in report.summary_lines():
            self.log.info(line)
        return report


__all__ = ["BuildRepairSource", "BuildReport", "EXIT_FAILURES", "EXIT_OK"]
