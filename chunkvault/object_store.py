"""Object store mapping files onto a Discord channel's message log."""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Any, AsyncIterator, Callable, List, Optional, Tuple, Union

import aiofiles

from .channel_index import ChannelIndex, blob_records, count_blobs_by_file, file_records, find_file_record
from .common.constants import DEFAULT_CHUNK_SIZE, DEFAULT_MEDIA_TYPE, DEFAULT_WINDOW_SIZE
from .common.types import BlobRecord, DeleteReport, FileRecord, FileSummary
from .core import share_code
from .core.chunking import build_chunk_name, expected_chunk_count, generate_file_id, rechunk
from .core.crypto import StreamDecryptor, StreamEncryptor
from .core.metadata import build_metadata_content
from .deleter import RetentionAwareDeleter
from .utils import ChunksMissing, FileNotFound, sanitize_filename


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
Source = Union[bytes, bytearray, memoryview, Path]


class ObjectStore:
    """
    Files stored as one metadata message plus N ordered chunk messages.

    Every operation recomputes its view of the channel from the backend;
    nothing is cached between calls. Operations on one file run strictly
    sequentially. Callers that need ``get`` and ``delete`` of the same file
    to be exclusive must serialize them.
    """

    def __init__(
        self,
        gateway: Any,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        window_size: int = DEFAULT_WINDOW_SIZE,
        index: Optional[ChannelIndex] = None,
        deleter: Optional[RetentionAwareDeleter] = None,
    ) -> None:
        if chunk_size <= 0 or window_size <= 0:
            raise ValueError("Chunk and window sizes must be greater than 0.")
        self.gateway = gateway
        self.chunk_size = chunk_size
        self.window_size = window_size
        self.index = index or ChannelIndex(gateway)
        self.deleter = deleter or RetentionAwareDeleter(gateway)

    async def _read_windows(self, source: Source) -> AsyncIterator[bytes]:
        if isinstance(source, Path):
            async with aiofiles.open(source, "rb") as infile:
                while True:
                    window = await infile.read(self.window_size)
                    if not window:
                        break
                    yield window
            return
        view = memoryview(source)
        for offset in range(0, len(view), self.window_size):
            yield bytes(view[offset:offset + self.window_size])

    async def _encrypted(self, source: Source, key: str) -> AsyncIterator[bytes]:
        encryptor = StreamEncryptor(key)
        async for window in self._read_windows(source):
            yield encryptor.update(window)
        yield encryptor.finalize()

    async def put(
        self,
        source: Source,
        name: str,
        media_type: Optional[str],
        key: str,
        channel_id: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Encrypt and upload a file.

        The metadata message is posted first so a file is discoverable even
        if a later chunk fails; chunks follow in sequence order, one request
        at a time.

        Args:
            source: File content, or a path to read it from.
            name: File name stored in the metadata record.
            media_type: MIME type; guessed from ``name`` when None.
            key: Encryption passphrase.
            channel_id: Target channel id.
            progress_callback: Called with (chunks_done, chunks_total).

        Returns:
            The new file id.
        """
        size = source.stat().st_size if isinstance(source, Path) else len(source)
        if not media_type:
            media_type = mimetypes.guess_type(name)[0] or DEFAULT_MEDIA_TYPE
        file_id = generate_file_id()
        record = FileRecord(id=file_id, name=name, size=size, media_type=media_type)
        total = expected_chunk_count(size, self.chunk_size)
        endpoint = f"/channels/{channel_id}/messages"

        logger.info("Uploading %s (%s bytes) as %s in %s chunk(s)", name, size, file_id, total)
        await self.gateway.send("POST", endpoint, {"content": build_metadata_content(record)})

        done = 0
        async for chunk in rechunk(self._encrypted(source, key), self.chunk_size):
            await self.gateway.send(
                "POST",
                endpoint,
                {"content": f"Chunk {done + 1} of {total}"},
                attachment=(build_chunk_name(file_id, done), chunk),
            )
            done += 1
            logger.debug("Uploaded chunk %s/%s of %s", done, total, file_id)
            if progress_callback:
                progress_callback(done, total)

        logger.info("Upload of %s complete (%s chunk(s))", file_id, done)
        return file_id

    async def list(self, channel_id: str) -> List[FileSummary]:
        """
        Summaries of every file with a metadata record in the channel.

        Files whose chunks never landed are still listed, with their true
        (possibly zero) chunk count.
        """
        messages = await self.index.list_all(channel_id)
        counts = count_blobs_by_file(messages)
        return [
            FileSummary(
                id=record.id,
                name=record.name,
                size=record.size,
                media_type=record.media_type,
                chunk_count=counts.get(record.id, 0),
            )
            for record in file_records(messages)
        ]

    async def _locate(self, file_id: str, channel_id: str) -> Tuple[FileRecord, List[BlobRecord]]:
        messages = await self.index.list_all(channel_id)
        record = find_file_record(messages, file_id)
        if record is None:
            raise FileNotFound(file_id)
        return record, blob_records(messages, file_id)

    async def _ordered_blobs(self, file_id: str, channel_id: str) -> Tuple[FileRecord, List[BlobRecord]]:
        record, blobs = await self._locate(file_id, channel_id)
        if not blobs:
            raise ChunksMissing(file_id)
        blobs.sort(key=lambda blob: blob.sequence)
        present = {blob.sequence for blob in blobs}
        missing = [index for index in range(blobs[-1].sequence + 1) if index not in present]
        if missing:
            raise ChunksMissing(file_id, missing)
        if len(present) != len(blobs):
            logger.warning("File %s has duplicate chunk records; using the first of each", file_id)
            unique: List[BlobRecord] = []
            for blob in blobs:
                if unique and unique[-1].sequence == blob.sequence:
                    continue
                unique.append(blob)
            blobs = unique
        return record, blobs

    async def _decrypted(
        self,
        urls: List[str],
        key: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> AsyncIterator[bytes]:
        decryptor = StreamDecryptor(key)
        total = len(urls)
        for done, url in enumerate(urls, start=1):
            data = await self.gateway.fetch_binary(url)
            yield decryptor.update(data)
            logger.debug("Fetched chunk %s/%s", done, total)
            if progress_callback:
                progress_callback(done, total)
        yield decryptor.finalize()

    async def get(
        self,
        file_id: str,
        channel_id: str,
        key: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> bytes:
        """
        Download and decrypt a file into memory.

        Raises:
            FileNotFound: If no metadata record matches ``file_id``.
            ChunksMissing: If there are no chunks or the sequence has gaps.
            DecryptionFailure: If the key is wrong or the data is corrupt.
        """
        record, blobs = await self._ordered_blobs(file_id, channel_id)
        logger.info("Downloading %s (%s, %s chunk(s))", file_id, record.name, len(blobs))
        parts = []
        async for plain in self._decrypted([blob.url for blob in blobs], key, progress_callback):
            parts.append(plain)
        return b"".join(parts)

    async def download(
        self,
        file_id: str,
        channel_id: str,
        key: str,
        destination: Path,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Path:
        """
        Download and decrypt a file straight to disk.

        Args:
            destination: Target file, or a directory to place the file in
                under its stored name.

        Returns:
            Path of the written file.
        """
        record, blobs = await self._ordered_blobs(file_id, channel_id)
        output_path = _resolve_destination(destination, record.name)
        await _write_stream(
            output_path,
            self._decrypted([blob.url for blob in blobs], key, progress_callback),
        )
        logger.info("Restored %s to %s", file_id, output_path)
        return output_path

    async def delete(self, file_id: str, channel_id: str) -> DeleteReport:
        """
        Remove a file's metadata and chunk messages.

        Failures of individual deletions are reported in the returned
        DeleteReport; only a failed enumeration raises.
        """
        record, blobs = await self._locate(file_id, channel_id)
        ids = [record.message_id] + [blob.message_id for blob in blobs]
        report = await self.deleter.delete(channel_id, ids)
        if report.failed:
            logger.warning(
                "Delete of %s left %s record(s) behind: %s",
                file_id, len(report.failed), ", ".join(report.remaining_ids),
            )
        return report

    async def share(self, file_id: str, channel_id: str, key: str) -> str:
        """Share code for a stored file, chunk URLs frozen in byte order."""
        record, blobs = await self._ordered_blobs(file_id, channel_id)
        return share_code.generate(key, [blob.url for blob in blobs], record.name)

    async def fetch_shared(
        self, code: str, progress_callback: Optional[ProgressCallback] = None
    ) -> Tuple[str, bytes]:
        """
        Fetch and decrypt a file described by a share code.

        Returns:
            Tuple of (file name, content).
        """
        shared = share_code.decode(code)
        if not shared.blob_urls:
            raise ChunksMissing(shared.file_name)
        parts = []
        async for plain in self._decrypted(shared.blob_urls, shared.key, progress_callback):
            parts.append(plain)
        return shared.file_name, b"".join(parts)

    async def fetch_shared_to(
        self,
        code: str,
        destination: Path,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Path:
        """Same as fetch_shared but streams the plaintext to disk."""
        shared = share_code.decode(code)
        if not shared.blob_urls:
            raise ChunksMissing(shared.file_name)
        output_path = _resolve_destination(destination, shared.file_name)
        await _write_stream(
            output_path,
            self._decrypted(shared.blob_urls, shared.key, progress_callback),
        )
        return output_path


def _resolve_destination(destination: Path, name: str) -> Path:
    destination = Path(destination).expanduser()
    if destination.is_dir():
        return destination / sanitize_filename(name)
    return destination


def _partial_path(output_path: Path) -> Path:
    return output_path.with_name(output_path.name + ".part")


async def _write_stream(output_path: Path, stream: AsyncIterator[bytes]) -> None:
    """Write to a sibling ``.part`` file and move it into place on success."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = _partial_path(output_path)
    try:
        async with aiofiles.open(temp_path, "wb") as outfile:
            async for plain in stream:
                await outfile.write(plain)
        temp_path.replace(output_path)
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise
