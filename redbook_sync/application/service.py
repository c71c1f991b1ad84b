"""
The core application services, containing pure business logic.

Each stage class owns one step of the incremental pipeline and decides,
from filesystem or ledger state alone, what is already done and what still
has to be produced. SyncService runs the stages once, in order.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from .domain import *
from .exceptions import ProcessingError

logger = logging.getLogger(__name__)


class ArchiveCacheSynchronizer:
    """Fetches the archives that are missing from the local cache."""

    def __init__(self, downloader: Downloader):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.downloader = downloader

    async def sync_archives(
        self, refs: Sequence[ArchiveReference], cache_dir: Path
    ) -> List[CachedArchive]:
        """
        Downloads every reference whose name is not already in cache_dir.

        Archives run to hundreds of megabytes, so they are fetched strictly
        one after another. A same-named file in the cache counts as complete
        and is never re-validated.

        Args:
            refs: The archives to mirror, in fetch order.
            cache_dir: The archive cache directory; created if missing.

        Returns:
            The archives fetched by this call.

        Raises:
            DownloadError: On the first failed fetch. Archives fetched before
                           it stay cached.
        """

        cache_dir = Path(cache_dir)
        cache_dir.mkdir(parents=True, exist_ok=True)
        cached_names = {path.name for path in cache_dir.iterdir()}

        fetched = []
        for ref in refs:
            if ref.name in cached_names:
                self.logger.info(f"Archive {ref.name} already cached. Skipping.")
                continue
            fetched.append(
                await self.downloader.download(ref, cache_dir / ref.name)
            )
            cached_names.add(ref.name)

        self.logger.info(
            f"Archive cache in sync: {len(fetched)} fetched, "
            f"{len(refs) - len(fetched)} already present."
        )
        return fetched


class ArchiveExtractionStage:
    """Unpacks every cached archive into the raw document cache."""

    def __init__(self, extractor: Extractor):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.extractor = extractor

    async def extract_cached_archives(
        self, zip_dir: Path, out_dir: Path
    ) -> List[RawDocumentBatch]:
        """Extracts each archive in zip_dir whose contents are not in out_dir."""

        zip_dir, out_dir = Path(zip_dir), Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        if not zip_dir.is_dir():
            self.logger.info(f"No archive cache at {zip_dir}. Nothing to extract.")
            return []

        archives = sorted(
            path
            for path in zip_dir.iterdir()
            if path.is_file() and path.suffix.lower() == ".zip"
        )

        batches = []
        for path in archives:
            batches.extend(
                await self.extractor.extract(CachedArchive(path=path), out_dir)
            )
        return batches


class BatchMaterializer:
    """Turns raw document batches into processed-record files."""

    def __init__(self, parser: BatchParser, record_cache: RecordCache):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.parser = parser
        self.record_cache = record_cache

    @staticmethod
    def output_name(batch_path: Path) -> str:
        return batch_path.stem + ".json"

    def _blocking_materialize(self, source: Path, destination: Path) -> ProcessedFile:
        records = self.parser.parse_batch(source)
        stored = [StoredRecord.from_patent(record) for record in records]
        return self.record_cache.write(destination, stored)

    async def materialize_batches(
        self, raw_dir: Path, out_dir: Path
    ) -> List[ProcessedFile]:
        """
        Guarantee a processed-record file exists for every raw batch.

        A batch is parsed only when its output file is absent. An output
        left half-written by a crashed run looks complete and is not
        repaired.

        Args:
            raw_dir: The extracted raw document cache.
            out_dir: The processed-record cache; created if missing.

        Returns:
            The processed files written by this call.

        Raises:
            ParseError: If a batch fails under the "fail" parser policy.
            ProcessingError: If an output file cannot be written, or two
                             batches map to the same output name.
        """

        raw_dir, out_dir = Path(raw_dir), Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        if not raw_dir.is_dir():
            self.logger.info(f"No raw document cache at {raw_dir}. Nothing to do.")
            return []

        sources = {}
        for source in sorted(p for p in raw_dir.rglob("*") if p.is_file()):
            name = self.output_name(source)
            if name in sources:
                raise ProcessingError(
                    f"{sources[name]} and {source} would both be written to "
                    f"{name}; rename one of them."
                )
            sources[name] = source

        written = []
        for name, source in sources.items():
            destination = out_dir / name
            if destination.exists():
                self.logger.info(
                    f"Record file {destination.name} already exists. Skipping."
                )
                continue

            processed = await asyncio.to_thread(
                self._blocking_materialize, source, destination
            )
            self.logger.info(
                f"Wrote {processed.record_count} record(s) to {destination.name}"
            )
            written.append(processed)

        return written


class StoreSynchronizer:
    """Pushes processed records to the store, once per record file."""

    def __init__(self, store: RecordStore, record_cache: RecordCache):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.store = store
        self.record_cache = record_cache

    async def _push_file(self, store: RecordStore, path: Path) -> int:
        records = await asyncio.to_thread(self.record_cache.read, path)
        for record in records:
            await store.insert(record)
        return len(records)

    async def sync_to_store(self, record_dir: Path, ledger: SyncLedger) -> int:
        """
        Inserts the records of every file the ledger has not seen yet.

        A file goes into the ledger only after all of its records are
        inserted. A failure part-way through a file leaves it out of the
        ledger, so the whole file is pushed again next run and the rows that
        made it in the first time are duplicated.

        Args:
            record_dir: The processed-record cache.
            ledger: The ledger of already synchronized file names.

        Returns:
            The number of records inserted.

        Raises:
            StoreWriteError: If the store cannot be reached or a write fails.
        """

        synced = set(ledger.load())
        record_dir = Path(record_dir)
        pending = [
            path
            for path in sorted(record_dir.glob("*.json"))
            if path.name not in synced
        ] if record_dir.is_dir() else []

        if not pending:
            self.logger.info("Store already in sync. Nothing to push.")
            return 0

        inserted = 0
        async with self.store as store:
            await store.ensure_schema()
            with logging_redirect_tqdm():
                for path in tqdm(pending, desc="Synchronizing", unit="file"):
                    count = await self._push_file(store, path)
                    ledger.append(path.name)
                    inserted += count
                    self.logger.info(f"Synchronized {count} record(s) from {path.name}")

        return inserted


class SyncService:
    """Orchestrates one full synchronization run across all stages."""

    def __init__(
        self,
        listing_source: ListingSource,
        archive_synchronizer: ArchiveCacheSynchronizer,
        extraction_stage: ArchiveExtractionStage,
        materializer: BatchMaterializer,
        store_synchronizer: StoreSynchronizer,
        ledger_factory: Callable[[Path], SyncLedger],
        zip_cache_dir: str,
        xml_cache_dir: str,
        record_cache_dir: str,
        ledger_path: str,
        file_limit: int = 1,
        start_year: int = 2005,
        end_year: Optional[int] = None,
    ):
        """Initializes the service with its stages and default locations."""
        self.listing_source = listing_source
        self.archive_synchronizer = archive_synchronizer
        self.extraction_stage = extraction_stage
        self.materializer = materializer
        self.store_synchronizer = store_synchronizer
        self.ledger_factory = ledger_factory
        self.zip_cache_dir = Path(zip_cache_dir)
        self.xml_cache_dir = Path(xml_cache_dir)
        self.record_cache_dir = Path(record_cache_dir)
        self.ledger_path = Path(ledger_path)
        self.file_limit = file_limit
        self.start_year = start_year
        self.end_year = end_year

    async def run(
        self,
        file_limit: Optional[int] = None,
        start_year: Optional[int] = None,
        end_year: Optional[int] = None,
        zip_dir: Optional[Path] = None,
        xml_dir: Optional[Path] = None,
        record_dir: Optional[Path] = None,
        ledger_path: Optional[Path] = None,
    ):
        """
        Runs discover, fetch, extract, materialize and store sync once.

        Arguments left as None fall back to the service defaults. Any stage
        failure propagates and halts the run; everything completed before it
        stays cached or synchronized.
        """

        file_limit = self.file_limit if file_limit is None else file_limit
        start_year = self.start_year if start_year is None else start_year
        end_year = self.end_year if end_year is None else end_year
        zip_dir = Path(zip_dir or self.zip_cache_dir)
        xml_dir = Path(xml_dir or self.xml_cache_dir)
        record_dir = Path(record_dir or self.record_cache_dir)
        ledger_path = Path(ledger_path or self.ledger_path)

        logger.info(
            f"Starting synchronization. Years: {start_year}-"
            f"{end_year or 'current'}, file limit: {file_limit}"
        )

        refs = await self.listing_source.discover(file_limit, start_year, end_year)
        logger.info(f"Discovered {len(refs)} archive(s).")

        await self.archive_synchronizer.sync_archives(refs, zip_dir)
        await self.extraction_stage.extract_cached_archives(zip_dir, xml_dir)
        await self.materializer.materialize_batches(xml_dir, record_dir)
        inserted = await self.store_synchronizer.sync_to_store(
            record_dir, self.ledger_factory(ledger_path)
        )

        logger.info(f"Synchronization complete. {inserted} record(s) inserted.")
