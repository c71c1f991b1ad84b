"""HTTP implementation of the Downloader port."""

import asyncio
import contextlib
from pathlib import Path
from typing import Generator, AsyncGenerator

import httpx
from tqdm import tqdm

from ..application.domain import ArchiveReference, CachedArchive, Downloader
from ..application.exceptions import DownloadError

from .base_client import BaseClient
from .decorators import retry_on_network_error


class HttpDownloader(BaseClient, Downloader):
    """A downloader that fetches archives via HTTP atomically."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float,
        chunk_size: int,
        retry_attempts: int = 1,
    ):
        """Initializes the downloader adapter."""
        super().__init__(client, timeout, retry_attempts)
        self.chunk_size = chunk_size

    @contextlib.contextmanager
    def _atomic_target(self, destination: Path) -> Generator[Path, None, None]:
        """Provides a temporary '.part' path and ensures cleanup."""
        part_path = destination.with_suffix(destination.suffix + ".part")
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            yield part_path
        finally:
            part_path.unlink(missing_ok=True)

    async def _stream_chunks(
        self, response: httpx.Response, target_file: Path,
    ):
        """
        Write the decoded body to a file, yielding how many bytes came off
        the wire for each chunk.
        """
        downloaded = response.num_bytes_downloaded
        with open(target_file, "wb") as f:
            async for chunk in response.aiter_bytes(self.chunk_size):
                await asyncio.to_thread(f.write, chunk)
                yield response.num_bytes_downloaded - downloaded
                downloaded = response.num_bytes_downloaded

    async def _consume_stream_with_progress(
        self,
        stream: AsyncGenerator[int, None],
        total_size: int,
        desc: str,
    ):
        """Consume the byte stream to update a TQDM progress bar."""

        with tqdm(
            total=total_size or None, unit="B", unit_scale=True, desc=desc
        ) as progress_bar:
            async for progress in stream:
                progress_bar.update(progress)

    async def _stream_from_network(self, ref: ArchiveReference, target_file: Path):
        """Manage the network request and the streaming process."""
        async with self.client.stream(
            "GET", ref.url, timeout=self.timeout
        ) as response:
            response.raise_for_status()
            total_size = int(response.headers.get("Content-Length", 0))
            stream = self._stream_chunks(response, target_file)
            await self._consume_stream_with_progress(
                stream, total_size, ref.name
            )

            # Content-Length counts encoded bytes, so compare what was read
            # off the wire, not the decoded payload.
            received = response.num_bytes_downloaded
            if total_size and received != total_size:
                raise DownloadError(
                    f"Size mismatch for {ref.name}: {received} != {total_size}"
                )

    @retry_on_network_error
    async def _execute_atomic_download(
        self, ref: ArchiveReference, destination: Path
    ):
        """Orchestrate the entire atomic download operation."""
        self.logger.info(f"Fetching archive at {ref.url}")
        with self._atomic_target(destination) as part_path:
            await self._stream_from_network(ref, part_path)
            part_path.rename(destination)
        self.logger.info(f"Finished downloading {destination.name}")

    async def download(
        self, ref: ArchiveReference, destination: Path
    ) -> CachedArchive:
        """
        Fetch one archive and place it at destination.

        The payload is streamed into a '.part' file and only renamed once
        complete, so a same-named file in the cache always means a finished
        download.

        Args:
            ref: The archive to fetch.
            destination: The final desired path for the file.

        Returns:
            A CachedArchive representing the file on disk.

        Raises:
            DownloadError: If the request or the streaming write fails.
        """

        try:
            await self._execute_atomic_download(ref, destination)
        except httpx.HTTPError as e:
            raise DownloadError(f"Failed to fetch {ref.url}: {e}") from e
        except OSError as e:
            raise DownloadError(f"Failed to write {destination}: {e}") from e

        return CachedArchive(path=destination)
