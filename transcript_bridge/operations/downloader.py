"""Transcript download.

Resolves the document reference of a finished classify-transcript
operation to a transient link and streams it to
``<storage_dir>/<audio_id>.json``.

Bytes are written to a sibling ``.part`` file and moved into place only
after the whole body arrived, so a failed download never leaves a partial
transcript behind. A repeated callback for the same audio overwrites the
previous file.
"""

from __future__ import annotations

import contextlib
import os
import uuid
from pathlib import Path
from typing import Any, Protocol

import aiofiles
import httpx
import structlog

from transcript_bridge.config import Settings
from transcript_bridge.errors import BridgeError, DownloadError, MalformedCallbackError
from transcript_bridge.webhooks.events import Operation

logger = structlog.get_logger(__name__)

CHUNK_SIZE = 64 * 1024


class LinkService(Protocol):
    """Remote call the downloader needs."""

    async def get_document_link(self, document: Any) -> dict[str, Any]: ...


def transcript_filename(storage_dir: Path, audio_id: str) -> Path:
    """Path a transcript for ``audio_id`` is stored at.

    Raises:
        MalformedCallbackError: If the id would escape the storage directory.
    """
    if not audio_id or audio_id in (".", "..") or any(c in audio_id for c in "/\\\x00"):
        raise MalformedCallbackError(f"Invalid audio id: {audio_id!r}")
    return storage_dir / f"{audio_id}.json"


class ArtifactDownloader:
    """Downloads classified transcripts into the storage directory."""

    def __init__(
        self,
        service: LinkService,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ) -> None:
        """Initialize the downloader.

        Args:
            service: Remote service used to resolve document links.
            settings: Application settings (storage directory, mode switch).
            http_client: Optional client for fetching links.
            timeout: Download timeout in seconds.
        """
        self._service = service
        self._settings = settings
        self._client = http_client
        self._timeout = timeout
        self._logger = logger.bind(component="artifact_downloader")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def resolve_link(self, document: Any) -> str:
        """Resolve a document reference to a transient direct link."""
        result = await self._service.get_document_link(document)
        link = (result.get("document") or {}).get("link")
        if not link:
            raise BridgeError(
                "Document link response carried no link",
                status_code=502,
                details={"document": document},
            )
        return link

    async def download_transcript(self, operation: Operation) -> Path | None:
        """Fetch the transcript produced by a classify-transcript operation.

        Args:
            operation: Completed operation carrying the document reference.

        Returns:
            Path of the written file, or None when only the link was logged.

        Raises:
            MalformedCallbackError: If the operation has no audio id.
            BridgeError: If the result has no transcript document.
            DownloadError: If fetching or writing the transcript fails.
        """
        audio_id = operation.audio_id
        if audio_id is None:
            raise MalformedCallbackError(
                f"Operation {operation.id} has no audio_id parameter"
            )

        document = operation.transcript_document
        if document is None:
            raise BridgeError(
                f"Operation {operation.id} has no transcript document",
                status_code=502,
                details={"operation_id": operation.id, "audio_id": audio_id},
            )

        link = await self.resolve_link(document)

        if not self._settings.local_storage_enabled:
            self._logger.info(
                "transcript_link",
                audio_id=audio_id,
                operation_id=operation.id,
                link=link,
            )
            return None

        filename = transcript_filename(self._settings.storage_dir, audio_id)
        size = await self.download_file(link, filename)

        self._logger.info(
            "transcript_downloaded",
            audio_id=audio_id,
            operation_id=operation.id,
            path=str(filename),
            bytes=size,
        )
        return filename

    async def download_file(self, url: str, destination: Path) -> int:
        """Stream ``url`` into ``destination``.

        Every failure (non-2xx status, transport error, write error) surfaces
        as a single DownloadError. The connection and the file handle are
        released on all paths.

        Args:
            url: Link to fetch.
            destination: Final file path.

        Returns:
            Number of bytes written.

        Raises:
            DownloadError: If the download fails.
        """
        partial = destination.with_name(f"{destination.name}.{uuid.uuid4().hex[:8]}.part")
        written = 0

        try:
            client = await self._get_client()
            async with client.stream("GET", url) as response:
                if response.status_code >= 300:
                    raise DownloadError(
                        f"Unable to download file ({response.status_code}) from url: {url}",
                        url=url,
                        response_status=response.status_code,
                    )

                async with aiofiles.open(partial, "wb") as f:
                    async for chunk in response.aiter_bytes(CHUNK_SIZE):
                        await f.write(chunk)
                        written += len(chunk)

            os.replace(partial, destination)

        except DownloadError:
            raise
        except httpx.HTTPError as e:
            raise DownloadError(f"Transport error downloading {url}: {e}", url=url) from e
        except OSError as e:
            raise DownloadError(f"Unable to write {destination}: {e}", url=url) from e
        finally:
            with contextlib.suppress(OSError):
                partial.unlink(missing_ok=True)

        return written
