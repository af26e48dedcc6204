"""Domain value objects and the per-image servicing ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import DuplicateEntryError
from .versions import ServicingVersion

BASELINE_ID = "RTM"
HISTORY_FILENAME = "OSHistory.xml"


@dataclass(frozen=True)
class OSImage:
    """One base installation image discovered under the image root."""

    name: str
    """Display name, taken from the image's folder."""
    version: ServicingVersion
    """Declared image version; also the version of the synthetic RTM entry."""
    source_path: Path
    """Absolute path to the ``.wim`` file."""
    index: int = 1
    """Sub-image selector inside a multi-image archive."""
    mount_path: Path = Path()
    """Disposable working directory the image is mounted into."""
    history_filename: str = HISTORY_FILENAME

    def __post_init__(self) -> None:
        if not str(self.name or "").strip():
            raise ValueError("OSImage name must be non-empty.")
        if self.index < 1:
            raise ValueError("OSImage index starts at 1.")

    @property
    def source_dir(self) -> Path:
        return self.source_path.parent

    @property
    def history_path(self) -> Path:
        return self.source_dir / self.history_filename

    @property
    def winsxs_path(self) -> Path:
        """Component store inside the mounted image."""
        return self.mount_path / "Windows" / "WinSxS"

    def output_dir(self, wrs_root: Path) -> Path:
        """Version-keyed directory of the repair source for this image."""
        return Path(wrs_root) / str(self.version)


@dataclass
class ImageScan:
    """Images found under the image root plus folders that could not be used."""

    images: List[OSImage] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)


@dataclass
class UpdateEntry:
    """One ledger row: the baseline (``RTM``) or a KB update."""

    identifier: str
    version: ServicingVersion
    applied: bool = False
    path: str = ""

    def __post_init__(self) -> None:
        self.identifier = str(self.identifier or "").strip()
        if not self.identifier:
            raise ValueError("UpdateEntry identifier must be non-empty.")

    @property
    def is_baseline(self) -> bool:
        return self.identifier == BASELINE_ID

    @property
    def sort_key(self) -> tuple:
        # identical versions fall back to identifier order
        return (self.version, self.identifier)


@dataclass
class ServicingHistory:
    """Ordered, identifier-keyed ledger of updates for one image.

    Storage order is irrelevant; processing order is always the version order
    returned by :meth:`ordered_pending` / :meth:`ordered_entries`. Callers are
    responsible for persisting after every mutation.
    """

    entries: Dict[str, UpdateEntry] = field(default_factory=dict)

    @classmethod
    def from_entries(cls, entries: Iterable[UpdateEntry]) -> "ServicingHistory":
        history = cls()
        for entry in entries:
            history.append_entry(entry)
        return history

    def __len__(self) -> int:
        return len(self.entries)

    def has_entry(self, identifier: str) -> bool:
        return str(identifier) in self.entries

    def get(self, identifier: str) -> Optional[UpdateEntry]:
        return self.entries.get(str(identifier))

    def append_entry(self, entry: UpdateEntry) -> None:
        if entry.identifier in self.entries:
            raise DuplicateEntryError(entry.identifier)
        self.entries[entry.identifier] = entry

    def set_applied(self, identifier: str, applied: bool) -> None:
        entry = self.entries.get(str(identifier))
        if entry is None:
            raise KeyError(identifier)
        entry.applied = bool(applied)

    def ordered_entries(self) -> List[UpdateEntry]:
        return sorted(self.entries.values(), key=lambda entry: entry.sort_key)

    def ordered_pending(self) -> List[UpdateEntry]:
        """Return unapplied entries ascending by version, then identifier."""
        return [entry for entry in self.ordered_entries() if not entry.applied]

    def highest_applied_version(self) -> Optional[ServicingVersion]:
        applied = [entry.version for entry in self.entries.values() if entry.applied]
        return max(applied) if applied else None

    @property
    def baseline(self) -> Optional[UpdateEntry]:
        return self.entries.get(BASELINE_ID)

    @property
    def baseline_applied(self) -> bool:
        entry = self.baseline
        return bool(entry and entry.applied)


__all__ = [
    "BASELINE_ID",
    "HISTORY_FILENAME",
    "ImageScan",
    "OSImage",
    "ServicingHistory",
    "UpdateEntry",
]
