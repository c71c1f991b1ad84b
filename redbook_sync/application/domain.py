"""
This module defines the core domain models for the application.

These classes represent the pure, technology-agnostic entities and data
structures that the synchronization stages operate on.
"""

import dataclasses
import json
from pathlib import Path

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple


# --- Domain Models ---

@dataclasses.dataclass(frozen=True)
class ArchiveReference:
    """A bulk archive advertised by a remote listing page."""

    name: str
    url: str


@dataclasses.dataclass(frozen=True)
class CachedArchive:
    """A downloaded archive on disk, named after its reference."""

    path: Path


@dataclasses.dataclass(frozen=True)
class RawDocumentBatch:
    """An extracted archive member holding one or more documents."""

    path: Path


@dataclasses.dataclass(frozen=True)
class ProcessedFile:
    """Domain model for a processed-record file on disk."""

    path: Path
    record_count: int


@dataclasses.dataclass(frozen=True)
class Claim:
    """A claim with its generic text and any nested sub-claims."""

    generic_text: str
    sub_claims: Tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True)
class PatentRecord:
    """
    The canonical, normalized form of one patent application document.

    Sequence fields keep the order in which their elements appear in the
    source document; nothing else records that order.
    """

    language: str
    country: str
    date_produced: str
    date_published: str
    dtd_version: str
    source_file: str
    status: str
    abstract_paragraphs: Tuple[str, ...]
    claims: Tuple[Claim, ...]
    headings: Tuple[str, ...]
    invention_title: str
    invention_id: str
    document_number: str


@dataclasses.dataclass(frozen=True)
class StoredRecord:
    """
    The persisted form of a PatentRecord.

    The store has no nested array type, so the abstract, claims and headings
    are carried as JSON text blobs.
    """

    language: str
    country: str
    date_produced: str
    date_published: str
    dtd_version: str
    source_file: str
    status: str
    abstract_paragraphs: str
    claims: str
    headings: str
    invention_title: str
    invention_id: str
    document_number: str

    @classmethod
    def from_patent(cls, record: PatentRecord) -> "StoredRecord":
        claims = [
            {"genericText": claim.generic_text, "subClaims": list(claim.sub_claims)}
            for claim in record.claims
        ]
        return cls(
            language=record.language,
            country=record.country,
            date_produced=record.date_produced,
            date_published=record.date_published,
            dtd_version=record.dtd_version,
            source_file=record.source_file,
            status=record.status,
            abstract_paragraphs=json.dumps(list(record.abstract_paragraphs)),
            claims=json.dumps(claims),
            headings=json.dumps(list(record.headings)),
            invention_title=record.invention_title,
            invention_id=record.invention_id,
            document_number=record.document_number,
        )

    def to_patent(self) -> PatentRecord:
        """Re-parses the text blobs back into the canonical record."""
        claims = tuple(
            Claim(
                generic_text=claim["genericText"],
                sub_claims=tuple(claim["subClaims"]),
            )
            for claim in json.loads(self.claims)
        )
        return PatentRecord(
            language=self.language,
            country=self.country,
            date_produced=self.date_produced,
            date_published=self.date_published,
            dtd_version=self.dtd_version,
            source_file=self.source_file,
            status=self.status,
            abstract_paragraphs=tuple(json.loads(self.abstract_paragraphs)),
            claims=claims,
            headings=tuple(json.loads(self.headings)),
            invention_title=self.invention_title,
            invention_id=self.invention_id,
            document_number=self.document_number,
        )


# --- Ports (Interfaces) ---

class ListingSource(ABC):
    """A port for any source of archive references."""

    @abstractmethod
    async def discover(
        self,
        file_limit: int = 1,
        start_year: int = 2005,
        end_year: Optional[int] = None,
    ) -> List[ArchiveReference]:
        """Lists the archives published between two years, inclusive."""
        pass


class Downloader(ABC):
    """A port for any archive downloader."""

    @abstractmethod
    async def download(
        self, ref: ArchiveReference, destination: Path
    ) -> CachedArchive:
        """Fetches a single archive to a destination path."""
        pass


class Extractor(ABC):
    """A port for unpacking a cached archive."""

    @abstractmethod
    async def extract(
        self, archive: CachedArchive, out_dir: Path
    ) -> List[RawDocumentBatch]:
        """
        Unpacks an archive into out_dir unless its contents are already
        there. Raises ExtractionError on a corrupt archive.
        """
        pass


class BatchParser(ABC):
    """A port for turning a raw document batch into records."""

    @abstractmethod
    def parse_batch(self, path: Path) -> List[PatentRecord]:
        """Parses every document in a batch, in source order."""
        pass


class RecordCache(ABC):
    """A port for reading and writing processed-record files."""

    @abstractmethod
    def write(self, path: Path, records: Sequence[StoredRecord]) -> ProcessedFile:
        pass

    @abstractmethod
    def read(self, path: Path) -> List[StoredRecord]:
        pass


class SyncLedger(ABC):
    """A port for the durable set of files already pushed to the store."""

    @abstractmethod
    def load(self) -> List[str]:
        """Returns the synchronized filenames, creating an empty ledger."""
        pass

    @abstractmethod
    def append(self, file_name: str):
        """Records a fully pushed file and persists the ledger."""
        pass


class RecordStore(ABC):
    """
    A port for the persistent store of records.

    Used as an async context manager: entering opens the single connection
    for the stage, exiting releases it.
    """

    @abstractmethod
    async def __aenter__(self) -> "RecordStore":
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc, tb):
        pass

    @abstractmethod
    async def ensure_schema(self):
        """Defines the target table once per connection."""
        pass

    @abstractmethod
    async def insert(self, record: StoredRecord):
        """Writes one record. Raises StoreWriteError on failure."""
        pass
