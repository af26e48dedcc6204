"""XML sidecar persistence for per-image servicing histories.

The document lives next to the base image as ``OSHistory.xml``::

    <Updates>
      <Update KB="RTM" Applied="True" Version="10.0.17763.1" Path="" />
      <Update KB="KB4501835" Applied="False" Version="10.0.17763.292"
              Path="D:\\Images\\Win10-17763\\windows10.0-kb4501835-x64.msu" />
    </Updates>

Writes go to a sibling temporary file which then atomically replaces the
document, so an interrupted run leaves either the previous or the new ledger
on disk, never a truncated one.
"""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from wrsbuild.domain.entities import ServicingHistory, UpdateEntry
from wrsbuild.domain.errors import HistoryLoadError, HistoryPersistError
from wrsbuild.domain.ports import HistoryStorePort
from wrsbuild.domain.versions import ServicingVersion

ROOT_TAG = "Updates"
ENTRY_TAG = "Update"


class XmlHistoryStore(HistoryStorePort):
    """Load and atomically persist ``<Updates>`` ledger documents."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._log = logger or logging.getLogger("wrsbuild.history")

    def load(self, path: Path) -> ServicingHistory:
        """Return the stored history, creating an empty document when absent."""
        path = Path(path)
        if not path.exists():
            history = ServicingHistory()
            self._log.info("No servicing history at %s; creating empty document", path)
            self.persist(history, path)
            return history
        return self.read(path)

    def read(self, path: Path) -> ServicingHistory:
        """Parse the stored history without writing; a missing file reads as empty."""
        path = Path(path)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return ServicingHistory()
        except OSError as exc:
            raise HistoryLoadError(f"Cannot read servicing history {path}", str(exc)) from exc

        try:
            root = ET.fromstring(raw)
        except ET.ParseError as exc:
            raise HistoryLoadError(f"Servicing history {path} is not valid XML", str(exc)) from exc
        if root.tag != ROOT_TAG:
            raise HistoryLoadError(
                f"Servicing history {path} has unexpected root <{root.tag}>",
                f"Expected <{ROOT_TAG}>.",
            )

        history = ServicingHistory()
        for node in root.iter(ENTRY_TAG):
            entry = self._parse_entry(node, path)
            if history.has_entry(entry.identifier):
                raise HistoryLoadError(
                    f"Servicing history {path} lists {entry.identifier} more than once",
                    "Remove the duplicate <Update> element.",
                )
            history.append_entry(entry)
        self._log.debug("Loaded %d history entries from %s", len(history), path)
        return history

    def persist(self, history: ServicingHistory, path: Path) -> None:
        """Atomically overwrite the ledger document."""
        path = Path(path)
        tmp = path.with_name(path.name + ".tmp")
        payload = self.render(history)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("wb") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp, path)
        except OSError as exc:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                self._log.warning("Could not remove temporary history file %s", tmp)
            raise HistoryPersistError(f"Cannot write servicing history {path}", str(exc)) from exc
        self._log.debug("Persisted %d history entries to %s", len(history), path)

    @staticmethod
    def render(history: ServicingHistory) -> bytes:
        """Serialize the history in version order."""
        root = ET.Element(ROOT_TAG)
        for entry in history.ordered_entries():
            ET.SubElement(
                root,
                ENTRY_TAG,
                {
                    "KB": entry.identifier,
                    "Applied": "True" if entry.applied else "False",
                    "Version": str(entry.version),
                    "Path": entry.path,
                },
            )
        ET.indent(root)
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)

    @staticmethod
    def _parse_entry(node: ET.Element, path: Path) -> UpdateEntry:
        identifier = str(node.get("KB") or "").strip()
        if not identifier:
            raise HistoryLoadError(f"Servicing history {path} has an <Update> without KB")
        applied_raw = str(node.get("Applied") or "").strip().lower()
        if applied_raw not in {"true", "false"}:
            raise HistoryLoadError(
                f"Servicing history {path}: {identifier} has invalid Applied value",
                f"Expected 'True' or 'False', got {node.get('Applied')!r}.",
            )
        try:
            version = ServicingVersion.parse(node.get("Version"))
        except ValueError as exc:
            raise HistoryLoadError(
                f"Servicing history {path}: {identifier} has invalid Version",
                str(exc),
            ) from exc
        return UpdateEntry(
            identifier=identifier,
            version=version,
            applied=applied_raw == "true",
            path=str(node.get("Path") or ""),
        )


__all__ = ["XmlHistoryStore"]
