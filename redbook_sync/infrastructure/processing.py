"""
Infrastructure adapters for archive extraction and the processed-record
file cache.
"""

import asyncio
import dataclasses
import logging
import zipfile
from pathlib import Path
from typing import List, Sequence

import pydantic

from ..application.domain import (
    CachedArchive,
    Extractor,
    ProcessedFile,
    RawDocumentBatch,
    RecordCache,
    StoredRecord,
)
from ..application.exceptions import ExtractionError, ProcessingError

from .record_models import ProcessedFileAdapter, StoredRecordModel


class ZipExtractor(Extractor):
    """An adapter that implements the Extractor port for zip archives."""

    def __init__(self):
        """Initializes the extractor."""
        self.logger = logging.getLogger(self.__class__.__name__)

    def _blocking_extract(
        self, archive: CachedArchive, out_dir: Path
    ) -> List[RawDocumentBatch]:
        """Unpack the archive unless every member is already on disk."""
        try:
            with zipfile.ZipFile(archive.path) as zip_file:
                members = [
                    info.filename
                    for info in zip_file.infolist()
                    if not info.is_dir()
                ]
                batches = [
                    RawDocumentBatch(path=out_dir / member)
                    for member in members
                ]

                if all(batch.path.exists() for batch in batches):
                    self.logger.info(
                        f"Contents of {archive.path.name} already extracted. "
                        f"Skipping."
                    )
                    return batches

                self.logger.info(f"Extracting {archive.path.name}...")
                zip_file.extractall(out_dir)
        except (zipfile.BadZipFile, OSError) as e:
            raise ExtractionError(
                f"Failed to extract {archive.path.name}: {e}"
            ) from e

        self.logger.info(
            f"Extracted {len(batches)} file(s) from {archive.path.name}"
        )
        return batches

    async def extract(
        self, archive: CachedArchive, out_dir: Path
    ) -> List[RawDocumentBatch]:
        """
        Guarantee the archive's members exist in out_dir, unpacking only if
        necessary.

        Args:
            archive: The cached archive to unpack.
            out_dir: The raw document cache directory.

        Returns:
            The extracted batches, in archive order.

        Raises:
            ExtractionError: If the archive is corrupt or unreadable.
        """
        return await asyncio.to_thread(self._blocking_extract, archive, out_dir)


class JsonRecordCache(RecordCache):
    """Reads and writes processed-record files as JSON arrays."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def write(self, path: Path, records: Sequence[StoredRecord]) -> ProcessedFile:
        models = [
            StoredRecordModel(**dataclasses.asdict(record))
            for record in records
        ]
        try:
            path.write_bytes(ProcessedFileAdapter.dump_json(models, by_alias=True))
        except OSError as e:
            raise ProcessingError(f"Failed to write {path.name}: {e}") from e
        return ProcessedFile(path=path, record_count=len(models))

    def read(self, path: Path) -> List[StoredRecord]:
        try:
            models = ProcessedFileAdapter.validate_json(path.read_bytes())
        except OSError as e:
            raise ProcessingError(f"Failed to read {path.name}: {e}") from e
        except pydantic.ValidationError as e:
            raise ProcessingError(
                f"{path.name} is not a valid processed-record file: {e}"
            ) from e
        return [StoredRecord(**model.model_dump()) for model in models]
