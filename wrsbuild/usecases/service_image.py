"""Per-image servicing state machine.

States: ``Unmounted -> Mounted -> BaselineEnsured -> ApplyingUpdates ->
{Halted | Completed} -> Unmounted``.

The ledger is persisted after every mutation, so an interrupted run resumes
from the last confirmed state: applied entries are never reinstalled and a
pending entry is never skipped in favour of a newer one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Literal, Optional

from wrsbuild.domain.entities import BASELINE_ID, OSImage, ServicingHistory, UpdateEntry
from wrsbuild.domain.errors import WrsError
from wrsbuild.domain.ports import HistoryStorePort, ImagingPort

from .discover_updates import DiscoverUpdates
from .install_update import InstallUpdate
from .merge_delta import MergeDelta

ImageStatus = Literal["completed", "halted", "not_processed", "aborted"]


@dataclass
class ImageRunResult:
    """Outcome of processing one image in one run."""

    image: str
    status: ImageStatus
    reason: str = ""
    applied: List[str] = field(default_factory=list)
    discovery_failures: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "completed"


class MountSession:
    """Scoped working copy of an image; unmounting is idempotent."""

    def __init__(self, imaging: ImagingPort, image: OSImage, log: logging.Logger) -> None:
        self._imaging = imaging
        self._image = image
        self._log = log
        self.mounted = False

    def mount(self) -> None:
        self._log.info(
            "%s: mounting %s (index %s) at %s",
            self._image.name,
            self._image.source_path,
            self._image.index,
            self._image.mount_path,
        )
        self._imaging.mount_image(self._image.source_path, self._image.index, self._image.mount_path)
        self.mounted = True

    def unmount(self) -> None:
        """Discard the working copy; failures are logged, never raised."""
        if not self.mounted:
            return
        self.mounted = False
        try:
            self._imaging.unmount_image(self._image.mount_path, discard=True)
        except (WrsError, OSError) as exc:
            self._log.error("%s: unmount of %s failed: %s", self._image.name, self._image.mount_path, exc)
            return
        self._log.info("%s: unmounted %s", self._image.name, self._image.mount_path)


@dataclass
class ServiceImage:
    """Drive one image through baseline capture and ordered update application.

    History load/persist errors are not caught here: they propagate (after the
    image is unmounted) so the caller can abort this image without touching
    others.
    """

    imaging: ImagingPort
    history_store: HistoryStorePort
    merge: MergeDelta
    install: InstallUpdate
    discover: DiscoverUpdates
    wrs_root: Path
    log: logging.Logger = field(default_factory=lambda: logging.getLogger("wrsbuild.orchestrator"))

    def __call__(self, image: OSImage) -> ImageRunResult:
        history = self.history_store.load(image.history_path)
        session = MountSession(self.imaging, image, self.log)
        try:
            session.mount()
        except (WrsError, OSError) as exc:
            self.log.error("%s: mount failed, image not processed this run: %s", image.name, exc)
            return ImageRunResult(image=image.name, status="not_processed", reason=f"Mount failed: {exc}")
        try:
            return self._service_mounted(image, history, session)
        finally:
            session.unmount()

    def _service_mounted(
        self,
        image: OSImage,
        history: ServicingHistory,
        session: MountSession,
    ) -> ImageRunResult:
        result = ImageRunResult(image=image.name, status="completed")

        reason = self._ensure_baseline(image, history)
        if reason:
            return self._halt(result, reason)

        discovery = self.discover(image, history)
        result.discovery_failures = dict(discovery.failures)

        for entry in history.ordered_pending():
            highest = history.highest_applied_version()
            if highest is not None and entry.version < highest:
                return self._halt(
                    result,
                    f"{entry.identifier} ({entry.version}) is older than the applied version {highest}; "
                    f"remove its package and the <Update KB=\"{entry.identifier}\"> entry from {image.history_path}.",
                )
            reason = self._apply(image, history, entry, session)
            if reason:
                return self._halt(result, reason)
            result.applied.append(entry.identifier)

        self.log.info("%s: up to date (%d update(s) applied this run)", image.name, len(result.applied))
        return result

    def _ensure_baseline(self, image: OSImage, history: ServicingHistory) -> Optional[str]:
        baseline = history.baseline
        if baseline is not None and baseline.applied:
            return None

        output = image.output_dir(self.wrs_root)
        self.log.info("%s: capturing %s baseline %s into %s", image.name, BASELINE_ID, image.version, output)
        merged = self.merge(image.winsxs_path, output)
        if baseline is None:
            history.append_entry(
                UpdateEntry(identifier=BASELINE_ID, version=image.version, applied=merged.ok, path="")
            )
        else:
            history.set_applied(BASELINE_ID, merged.ok)
        self.history_store.persist(history, image.history_path)

        if not merged.ok:
            return f"Baseline merge failed: {merged.reason}"
        return None

    def _apply(
        self,
        image: OSImage,
        history: ServicingHistory,
        entry: UpdateEntry,
        session: MountSession,
    ) -> Optional[str]:
        self.log.info("%s: applying %s (version %s)", image.name, entry.identifier, entry.version)
        if not self.install(Path(entry.path), image.mount_path):
            return self._roll_back(image, history, entry, session, f"Install of {entry.identifier} failed")

        merged = self.merge(image.winsxs_path, image.output_dir(self.wrs_root))
        if not merged.ok:
            return self._roll_back(
                image,
                history,
                entry,
                session,
                f"Merge of {entry.identifier} failed: {merged.reason}",
            )

        history.set_applied(entry.identifier, True)
        self.history_store.persist(history, image.history_path)
        self.log.info("%s: %s applied", image.name, entry.identifier)
        return None

    def _roll_back(
        self,
        image: OSImage,
        history: ServicingHistory,
        entry: UpdateEntry,
        session: MountSession,
        reason: str,
    ) -> str:
        # the mounted state no longer matches the ledger; drop it before anything else
        session.unmount()
        history.set_applied(entry.identifier, False)
        self.history_store.persist(history, image.history_path)
        return reason

    def _halt(self, result: ImageRunResult, reason: str) -> ImageRunResult:
        self.log.error("%s: halted: %s", result.image, reason)
        result.status = "halted"
        result.reason = reason
        return result


__all__ = ["ImageRunResult", "ImageStatus", "MountSession", "ServiceImage"]
