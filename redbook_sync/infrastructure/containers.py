"""
Dependency Injection container for the redbook_sync component.

This container uses the `dependency-injector` library to wire together all
the components of the application, such as stage services and
infrastructure adapters, based on the application's configuration.
"""

from dependency_injector import containers, providers
from dynaconf import Dynaconf
import httpx

from ..application.domain import *
from ..application.service import (
    ArchiveCacheSynchronizer,
    ArchiveExtractionStage,
    BatchMaterializer,
    StoreSynchronizer,
    SyncService,
)

from .downloader import HttpDownloader
from .ledger import JsonFileLedger
from .listing import HttpListingSource
from .parser import LxmlBatchParser
from .processing import JsonRecordCache, ZipExtractor
from .store import PostgresRecordStore


def _prefer(override, default):
    """Returns the command-line override when one was given."""
    return default if override is None else override


class Container(containers.DeclarativeContainer):
    """DI container for wiring the application components."""

    cli_args = providers.Configuration()

    config = providers.Singleton(
        Dynaconf,
        settings_files=['config/settings.toml', 'config/.secrets.toml'],
        merge_enabled=True,
        load_dotenv=False,
        environments=False,
        envvar_prefix="REDBOOK",
    )

    # Sections are read by key; attribute access would hit Dynaconf's own
    # members for names such as `store`.
    listing = config.provided["listing"]
    http = config.provided["http"]
    paths = config.provided["paths"]

    http_client = providers.Singleton(httpx.AsyncClient, follow_redirects=True)

    listing_source: providers.Factory[ListingSource] = providers.Factory(
        HttpListingSource,
        client=http_client,
        base_url=listing["base_url"],
        timeout=http["timeout"],
        retry_attempts=http["retry_attempts"],
    )

    downloader: providers.Factory[Downloader] = providers.Factory(
        HttpDownloader,
        client=http_client,
        timeout=http["timeout"],
        chunk_size=http["chunk_size"],
        retry_attempts=http["retry_attempts"],
    )

    extractor: providers.Factory[Extractor] = providers.Factory(ZipExtractor)

    parser: providers.Factory[BatchParser] = providers.Factory(
        LxmlBatchParser,
        root_tag=config.provided["parser"]["root_tag"],
        on_error=config.provided["parser"]["on_error"],
    )

    record_cache: providers.Factory[RecordCache] = providers.Factory(
        JsonRecordCache
    )

    record_store: providers.Factory[RecordStore] = providers.Factory(
        PostgresRecordStore,
        connection_string=config.provided["database"]["connection_string"],
        table=config.provided["database"]["table"],
    )

    ledger: providers.Factory[SyncLedger] = providers.Factory(JsonFileLedger)

    sync_service = providers.Factory(
        SyncService,
        listing_source=listing_source,
        archive_synchronizer=providers.Factory(
            ArchiveCacheSynchronizer, downloader=downloader
        ),
        extraction_stage=providers.Factory(
            ArchiveExtractionStage, extractor=extractor
        ),
        materializer=providers.Factory(
            BatchMaterializer, parser=parser, record_cache=record_cache
        ),
        store_synchronizer=providers.Factory(
            StoreSynchronizer, store=record_store, record_cache=record_cache
        ),
        ledger_factory=ledger.provider,
        zip_cache_dir=providers.Callable(
            _prefer, cli_args.zip_dir, paths["zip_cache_dir"]
        ),
        xml_cache_dir=providers.Callable(
            _prefer, cli_args.xml_dir, paths["xml_cache_dir"]
        ),
        record_cache_dir=providers.Callable(
            _prefer, cli_args.record_dir, paths["record_cache_dir"]
        ),
        ledger_path=providers.Callable(
            _prefer, cli_args.ledger_path, paths["ledger_path"]
        ),
        file_limit=providers.Callable(
            _prefer, cli_args.file_limit, listing["file_limit"]
        ),
        start_year=providers.Callable(
            _prefer, cli_args.start_year, listing["start_year"]
        ),
        end_year=cli_args.end_year,
    )
