"""Merge engine: layer a changed-file subtree into the versioned output tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from wrsbuild.domain.errors import WrsError
from wrsbuild.domain.merge_result import MergeResult, classify_copy_exit_code
from wrsbuild.domain.ports import CopyPort


@dataclass
class MergeDelta:
    """Copy ``source`` into ``destination`` and classify the copy outcome."""

    copy_port: CopyPort
    log: logging.Logger = field(default_factory=lambda: logging.getLogger("wrsbuild.merge"))

    def __call__(self, source: Path, destination: Path) -> MergeResult:
        source = Path(source)
        destination = Path(destination)
        if not source.is_dir():
            result = MergeResult.failed(f"Merge source {source} does not exist.")
            self.log.error("Merge %s -> %s: %s", source, destination, result.reason)
            return result

        try:
            destination.mkdir(parents=True, exist_ok=True)
            exit_code = self.copy_port.copy_tree(source, destination)
        except (WrsError, OSError) as exc:
            result = MergeResult.failed(f"Copy could not run: {exc}")
            self.log.error("Merge %s -> %s: %s", source, destination, result.reason)
            return result

        result = classify_copy_exit_code(exit_code)
        if result.outcome == "success":
            self.log.info("Merge %s -> %s: %s (exit %s)", source, destination, result.reason, exit_code)
        elif result.outcome == "warning":
            self.log.warning("Merge %s -> %s: %s (exit %s)", source, destination, result.reason, exit_code)
        else:
            self.log.error("Merge %s -> %s: %s (exit %s)", source, destination, result.reason, exit_code)
        return result


__all__ = ["MergeDelta"]
