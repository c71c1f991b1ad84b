import zipfile
from pathlib import Path
from typing import List

import pytest

from redbook_sync.application.domain import RecordStore, StoredRecord
from redbook_sync.application.exceptions import StoreWriteError

DOCUMENT_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE us-patent-application SYSTEM "us-patent-application-v44-2014-04-03.dtd" [ ]>
<us-patent-application lang="EN" dtd-version="v4.4 2014-04-03" file="{doc_number}-20200102.XML" status="PRODUCTION" id="us-patent-application" country="US" date-produced="20191218" date-publ="20200102">
<us-bibliographic-data-application lang="EN" country="US">
<publication-reference>
<document-id>
<country>US</country>
<doc-number>{doc_number}</doc-number>
<kind>A1</kind>
<date>20200102</date>
</document-id>
</publication-reference>
<invention-title id="d2e43">{title}</invention-title>
</us-bibliographic-data-application>
<abstract id="abstract">
<p id="p-0001" num="0000">First abstract paragraph of {doc_number}.</p>
<p id="p-0002" num="0000">Second abstract
    paragraph.</p>
</abstract>
<description id="description">
<heading id="h-0001" level="1">BACKGROUND</heading>
<p id="p-0003" num="0001">Widgets are known.</p>
<heading id="h-0002" level="1">SUMMARY</heading>
<p id="p-0004" num="0002">This one is better.</p>
<heading id="h-0003" level="1">DETAILED DESCRIPTION</heading>
</description>
<claims id="claims">
<claim id="CLM-00001" num="00001">
<claim-text>1. A widget comprising:
<claim-text>a base;</claim-text>
<claim-text>a lever attached to the base.</claim-text>
</claim-text>
</claim>
<claim id="CLM-00002" num="00002">
<claim-text>2. The widget of <claim-ref idref="CLM-00001">claim 1</claim-ref>, wherein the lever is steel.</claim-text>
</claim>
</claims>
</us-patent-application>
"""


def make_document(doc_number: str, title: str = "Widget with lever") -> str:
    return DOCUMENT_TEMPLATE.format(doc_number=doc_number, title=title)


def make_batch(*documents: str) -> str:
    return "".join(documents)


def write_zip(path: Path, members: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zip_file:
        for name, content in members.items():
            zip_file.writestr(name, content)
    return path


class FakeRecordStore(RecordStore):
    """In-memory store; optionally fails on the n-th insert."""

    def __init__(self, fail_on_insert: int = 0):
        self.rows: List[StoredRecord] = []
        self.fail_on_insert = fail_on_insert
        self.insert_calls = 0
        self.schema_calls = 0
        self.opened = 0
        self.closed = 0
        self.is_open = False

    async def __aenter__(self):
        self.opened += 1
        self.is_open = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed += 1
        self.is_open = False

    async def ensure_schema(self):
        self.schema_calls += 1

    async def insert(self, record: StoredRecord):
        assert self.is_open
        self.insert_calls += 1
        if self.insert_calls == self.fail_on_insert:
            raise StoreWriteError("insert rejected")
        self.rows.append(record)


@pytest.fixture
def document_factory():
    return make_document


@pytest.fixture
def batch_factory():
    return make_batch


@pytest.fixture
def zip_factory():
    return write_zip


@pytest.fixture
def fake_store():
    return FakeRecordStore()
