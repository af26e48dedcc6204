"""Tests for the XML sidecar history store."""

from __future__ import annotations

import os
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from wrsbuild.adapters.history_xml import XmlHistoryStore
from wrsbuild.domain.entities import ServicingHistory, UpdateEntry
from wrsbuild.domain.errors import HistoryLoadError, HistoryPersistError
from wrsbuild.domain.versions import ServicingVersion


def _history() -> ServicingHistory:
    return ServicingHistory.from_entries(
        [
            UpdateEntry("KB4501835", ServicingVersion.parse("10.0.17763.292"), path=r"D:\Images\kb4501835.msu"),
            UpdateEntry("RTM", ServicingVersion.parse("10.0.17763.1"), applied=True),
        ]
    )


def test_load_creates_empty_document_when_missing(tmp_path: Path) -> None:
    path = tmp_path / "Win10" / "OSHistory.xml"
    store = XmlHistoryStore()

    history = store.load(path)

    assert len(history) == 0
    assert path.exists()
    root = ET.parse(path).getroot()
    assert root.tag == "Updates"
    assert list(root) == []


def test_persist_then_read_keeps_entries_in_version_order(tmp_path: Path) -> None:
    path = tmp_path / "OSHistory.xml"
    store = XmlHistoryStore()

    store.persist(_history(), path)

    nodes = ET.parse(path).getroot().findall("Update")
    assert [node.get("KB") for node in nodes] == ["RTM", "KB4501835"]
    assert nodes[0].get("Applied") == "True"
    assert nodes[1].get("Applied") == "False"
    assert nodes[1].get("Path") == r"D:\Images\kb4501835.msu"

    loaded = store.read(path)
    assert loaded.baseline_applied is True
    assert loaded.get("KB4501835").version == ServicingVersion.parse("10.0.17763.292")
    assert not (tmp_path / "OSHistory.xml.tmp").exists()


def test_read_accepts_case_insensitive_applied_flag(tmp_path: Path) -> None:
    path = tmp_path / "OSHistory.xml"
    path.write_text(
        '<Updates><Update KB="RTM" Applied="true" Version="10.0.1" Path="" /></Updates>',
        encoding="utf-8",
    )

    assert XmlHistoryStore().read(path).baseline_applied is True


@pytest.mark.parametrize(
    "content",
    [
        "<Updates><Update KB=",
        "<History />",
        '<Updates><Update Applied="True" Version="1.0" /></Updates>',
        '<Updates><Update KB="KB1" Applied="maybe" Version="1.0" /></Updates>',
        '<Updates><Update KB="KB1" Applied="False" Version="one" /></Updates>',
        '<Updates><Update KB="KB1" Applied="False" Version="1.0" />'
        '<Update KB="KB1" Applied="True" Version="1.0" /></Updates>',
    ],
)
def test_read_rejects_malformed_documents(tmp_path: Path, content: str) -> None:
    path = tmp_path / "OSHistory.xml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(HistoryLoadError) as excinfo:
        XmlHistoryStore().load(path)

    assert excinfo.value.code == "history.load_failed"
    assert path.read_text(encoding="utf-8") == content


def test_read_missing_file_does_not_create_it(tmp_path: Path) -> None:
    path = tmp_path / "OSHistory.xml"
    assert len(XmlHistoryStore().read(path)) == 0
    assert not path.exists()


def test_failed_persist_keeps_previous_document(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "OSHistory.xml"
    store = XmlHistoryStore()
    store.persist(ServicingHistory(), path)
    before = path.read_bytes()

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", broken_replace)

    with pytest.raises(HistoryPersistError) as excinfo:
        store.persist(_history(), path)

    assert "disk full" in str(excinfo.value)
    assert path.read_bytes() == before
    assert not (tmp_path / "OSHistory.xml.tmp").exists()
