"""Read-only preview of what a build run would do."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from wrsbuild.domain.errors import IdentifierError, WrsError
from wrsbuild.domain.ports import HistoryStorePort, ImageSourcePort

from .discover_updates import extract_identifier


@dataclass
class ImagePreview:
    """Ledger state and unregistered packages for one image."""

    image: str
    version: str
    applied: List[str] = field(default_factory=list)
    pending: List[str] = field(default_factory=list)
    unregistered: List[str] = field(default_factory=list)
    problems: Dict[str, str] = field(default_factory=dict)

    def lines(self) -> List[str]:
        out = [f"{self.image} ({self.version})"]
        out.append(f"  applied: {', '.join(self.applied) or 'none'}")
        out.append(f"  pending: {', '.join(self.pending) or 'none'}")
        out.append(f"  new packages: {', '.join(self.unregistered) or 'none'}")
        for name, reason in sorted(self.problems.items()):
            out.append(f"  problem {name}: {reason}")
        return out


@dataclass
class PreviewRepairSource:
    """List images with applied/pending ledger entries without mounting or writing."""

    image_source: ImageSourcePort
    history_store: HistoryStorePort

    def __call__(self) -> List[ImagePreview]:
        scan = self.image_source.find_images()
        previews: List[ImagePreview] = []
        for image in scan.images:
            preview = ImagePreview(image=image.name, version=str(image.version))
            try:
                history = self.history_store.read(image.history_path)
            except WrsError as exc:
                preview.problems[image.history_filename] = str(exc)
                previews.append(preview)
                continue
            for entry in history.ordered_entries():
                (preview.applied if entry.applied else preview.pending).append(entry.identifier)
            try:
                packages = self.image_source.list_packages(image.source_dir)
            except OSError as exc:
                preview.problems[str(image.source_dir)] = str(exc)
                packages = []
            for package in packages:
                try:
                    identifier = extract_identifier(package.name)
                except IdentifierError as exc:
                    preview.problems[package.name] = str(exc)
                    continue
                if not history.has_entry(identifier) and identifier not in preview.unregistered:
                    preview.unregistered.append(identifier)
            previews.append(preview)
        for folder, reason in sorted(scan.failures.items()):
            previews.append(ImagePreview(image=folder, version="unknown", problems={folder: reason}))
        return previews


__all__ = ["ImagePreview", "PreviewRepairSource"]
