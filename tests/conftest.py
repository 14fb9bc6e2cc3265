"""
Shared fixtures for all tests.

Repositories are built with the in-memory adaptor so that the exporter runs
against a complete object model without any external system.
"""

import io
from datetime import datetime

import pytest

from odmaexport.adaptors.memory import MemoryContent, MemoryRepository, MemorySession
from odmaexport.api import DataType
from odmaexport.config import Config
from odmaexport.export import ExclusionFilter, ExportContext, ValueEncoder
from odmaexport.export.exporter import XmlExporter


@pytest.fixture
def context() -> ExportContext:
    return ExportContext()


@pytest.fixture
def encoder(context) -> ValueEncoder:
    return ValueEncoder(context, ExclusionFilter())


@pytest.fixture
def out() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def repository() -> MemoryRepository:
    """
    Small document repository.

    The root folder (custom:Folder) contains one custom:Doc whose owner is a
    custom:Person. The person's custom:Address is not retrievable and is
    only reachable through the person.
    """
    repo = MemoryRepository("repo1", "Test Repository")

    address = repo.define_class("custom:Address", retrievable=False)
    repo.define_property(address, "street", DataType.STRING)

    person = repo.define_class("custom:Person")
    repo.define_property(person, "name", DataType.STRING)
    repo.define_property(person, "address", DataType.REFERENCE)

    doc = repo.define_class("custom:Doc")
    repo.define_property(doc, "title", DataType.STRING)
    repo.define_property(doc, "owner", DataType.REFERENCE)
    repo.define_property(doc, "tags", DataType.STRING, multi_value=True)
    repo.define_property(doc, "created", DataType.DATETIME)
    repo.define_property(doc, "pages", DataType.INTEGER)
    repo.define_property(doc, "body", DataType.CONTENT)

    folder = repo.define_class("custom:Folder")
    repo.define_property(folder, "contents", DataType.REFERENCE, multi_value=True)

    home = repo.create_object(address, "addr-1", {"custom:street": "Main St 1"})
    alice = repo.create_object(
        person, "person-1", {"custom:name": "Alice", "custom:address": home}
    )
    repo.create_object(
        doc,
        "doc-1",
        {
            "custom:title": "Q&A <draft>",
            "custom:owner": alice,
            "custom:tags": ["red", "blue"],
            "custom:created": datetime(2024, 3, 9, 7, 5, 1, 999999),
            "custom:pages": 12,
            "custom:body": MemoryContent(b"\x00\x01binary"),
        },
    )
    repo.root_folder = repo.create_object(
        folder, "folder-root", {"custom:contents": [repo.get_object("doc-1")]}
    )
    return repo


@pytest.fixture
def session(repository) -> MemorySession:
    return MemorySession([repository])


@pytest.fixture
def export_config(tmp_path) -> Config:
    return Config(
        repository_id="repo1",
        adaptor_system_id="memory",
        outfile=tmp_path / "OpenDMA.xml",
        content_directory=str(tmp_path / "data"),
    )


@pytest.fixture
def run_xml_export(session, repository):
    """Run the exporter into a string and return (xml, statistics)."""

    def _run(config: Config):
        buffer = io.StringIO()
        statistics = XmlExporter(config).export(buffer, session, repository)
        return buffer.getvalue(), statistics

    return _run
