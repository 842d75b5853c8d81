"""
Core Document Processor for the DOCX filling pipeline.

This module copies a DOCX container entry by entry. Every entry keeps its
name, position and metadata; all entries except the target part are copied
byte for byte, and the target part is streamed through the token
transcoder.
"""

import io
import logging
import os
import tempfile
import time
import zipfile
import zlib
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Union

from ..config import FillConfig
from ..processors.text_processor import TokenStreamTranscoder, create_text_processor
from ..utils.shared_constants import (
    COPY_CHUNK_SIZE,
    ERROR_DESTINATION_WRITE,
    ERROR_INVALID_DOCX,
    ERROR_TARGET_NOT_FOUND,
)
from .error_handler import ArchiveOpenError, MissingTargetEntry, WriteError
from .models import TranscodeResult

logger = logging.getLogger(__name__)

PathOrStream = Union[str, Path, BinaryIO]

# zipfile refuses to grow an entry past this size unless zip64 was requested
_ZIP64_THRESHOLD = (1 << 31) - 1

_SOURCE_READ_ERRORS = (OSError, EOFError, zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError)


class DocumentProcessor:
    """
    Copies a DOCX container while rewriting its document body part.

    The processor is stateless between calls: the configuration is immutable
    and every call gets its own transcoding pass, so one instance can fill
    any number of documents.
    """

    def __init__(self, config: FillConfig):
        """
        Initialize document processor with configuration.

        Args:
            config: FillConfig with replacements, delimiters and target part
        """
        self.config = config
        self.transcoder: TokenStreamTranscoder = create_text_processor(config)

    def transcode(self, source: PathOrStream, destination: PathOrStream) -> TranscodeResult:
        """
        Write a copy of ``source`` to ``destination`` with variables replaced.

        Entries are processed strictly in archive order. If the target part is
        missing the destination still receives every other entry before
        MissingTargetEntry is raised; cleaning up the destination is left to
        the caller.

        Args:
            source: Path or seekable binary stream of the source archive
            destination: Path or writable binary stream for the new archive

        Returns:
            TranscodeResult describing the copy

        Raises:
            ArchiveOpenError: Source archive is malformed or unreadable
            MissingTargetEntry: Target part is absent from the archive
            DecodeError: Target part is not well-formed XML
            EncodeError: Rewritten part could not be written
            WriteError: Destination failure
        """
        start_time = time.time()
        result = TranscodeResult(target_part=self.config.target_part)
        target_found = False

        with self._open_source(source) as zin:
            zout = self._open_destination(destination)
            try:
                for info in zin.infolist():
                    if info.filename == self.config.target_part:
                        target_found = True
                        self._transcode_entry(zin, zout, info, result)
                    else:
                        result.bytes_written += self._copy_entry(zin, zout, info)
                    result.entries.append(info.filename)
            except BaseException:
                self._abort_destination(zout)
                raise
            self._close_destination(zout)

        result.processing_time = time.time() - start_time

        if not target_found:
            raise MissingTargetEntry(
                ERROR_TARGET_NOT_FOUND.format(name=self.config.target_part),
                self.config.target_part,
            )

        logger.info(
            f"Filled {self.config.target_part}: {result.replacements} replacement(s), "
            f"{len(result.entries)} entries, {result.bytes_written} bytes"
        )
        return result

    @contextmanager
    def _open_source(self, source: PathOrStream) -> Iterator[zipfile.ZipFile]:
        try:
            zin = zipfile.ZipFile(source, 'r')
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            raise ArchiveOpenError(f"{ERROR_INVALID_DOCX}: {e}") from e
        with zin:
            yield zin

    def _open_destination(self, destination: PathOrStream) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(destination, 'w')
        except (OSError, ValueError) as e:
            raise WriteError(f"{ERROR_DESTINATION_WRITE}: {e}") from e

    def _close_destination(self, zout: zipfile.ZipFile):
        try:
            zout.close()
        except (OSError, ValueError) as e:
            raise WriteError(f"{ERROR_DESTINATION_WRITE}: {e}") from e

    def _abort_destination(self, zout: zipfile.ZipFile):
        # an error is already propagating; a close failure must not replace it
        try:
            zout.close()
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to close destination archive after error: {e}")

    @contextmanager
    def _open_entry_reader(self, zin: zipfile.ZipFile, info: zipfile.ZipInfo) -> Iterator[BinaryIO]:
        try:
            reader = zin.open(info, 'r')
        except _SOURCE_READ_ERRORS as e:
            raise ArchiveOpenError(f"Failed to open entry {info.filename}: {e}") from e
        with reader:
            yield reader

    @contextmanager
    def _open_entry_writer(self, zout: zipfile.ZipFile, info: zipfile.ZipInfo) -> Iterator[BinaryIO]:
        out_info = self._clone_info(info)
        try:
            writer = zout.open(out_info, 'w', force_zip64=info.file_size > _ZIP64_THRESHOLD)
        except (OSError, ValueError, RuntimeError) as e:
            raise WriteError(f"{ERROR_DESTINATION_WRITE}: cannot create entry {info.filename}: {e}") from e
        try:
            with writer:
                yield writer
        except OSError as e:
            raise WriteError(f"{ERROR_DESTINATION_WRITE}: entry {info.filename}: {e}") from e

    @staticmethod
    def _clone_info(info: zipfile.ZipInfo) -> zipfile.ZipInfo:
        """Fresh ZipInfo carrying the source entry's name and metadata."""
        out_info = zipfile.ZipInfo(info.filename, date_time=info.date_time)
        out_info.compress_type = info.compress_type
        out_info.comment = info.comment
        out_info.create_system = info.create_system
        out_info.external_attr = info.external_attr
        return out_info

    def _copy_entry(self, zin: zipfile.ZipFile, zout: zipfile.ZipFile, info: zipfile.ZipInfo) -> int:
        """Copy one entry verbatim and return the number of bytes copied."""
        if info.is_dir():
            try:
                zout.writestr(self._clone_info(info), b"")
            except (OSError, ValueError) as e:
                raise WriteError(f"{ERROR_DESTINATION_WRITE}: cannot create entry {info.filename}: {e}") from e
            logger.debug(f"Copied directory entry {info.filename}")
            return 0

        total = 0
        with self._open_entry_reader(zin, info) as src, self._open_entry_writer(zout, info) as dst:
            while True:
                try:
                    chunk = src.read(COPY_CHUNK_SIZE)
                except _SOURCE_READ_ERRORS as e:
                    raise ArchiveOpenError(f"Failed to read entry {info.filename}: {e}") from e
                if not chunk:
                    break
                try:
                    dst.write(chunk)
                except (OSError, ValueError) as e:
                    raise WriteError(f"{ERROR_DESTINATION_WRITE}: entry {info.filename}: {e}") from e
                total += len(chunk)

        logger.debug(f"Copied {info.filename} ({total} bytes)")
        return total

    def _transcode_entry(self, zin: zipfile.ZipFile, zout: zipfile.ZipFile,
                         info: zipfile.ZipInfo, result: TranscodeResult):
        """Stream the target part through the token transcoder."""
        logger.debug(f"Transcoding {info.filename} ({info.file_size} bytes)")
        with self._open_entry_reader(zin, info) as src, self._open_entry_writer(zout, info) as dst:
            stats = self.transcoder.transcode_stream(src, dst)

        result.bytes_written += stats.bytes_written
        result.replacements += stats.replacements
        result.unmatched_flushes += stats.unmatched_flushes
        result.forced_flushes += stats.forced_flushes


def create_document_processor(config: FillConfig) -> DocumentProcessor:
    """
    Factory function to create a document processor.

    Args:
        config: Fill configuration

    Returns:
        DocumentProcessor instance
    """
    return DocumentProcessor(config)


def transcode(source: PathOrStream, destination: PathOrStream, config: FillConfig) -> TranscodeResult:
    """Fill ``source`` into ``destination`` using ``config``."""
    return create_document_processor(config).transcode(source, destination)


def fill_docx_bytes(data: bytes, config: FillConfig) -> bytes:
    """
    Fill a document held in memory.

    Args:
        data: Bytes of the source .docx
        config: Fill configuration

    Returns:
        Bytes of the filled .docx
    """
    output = io.BytesIO()
    transcode(io.BytesIO(data), output, config)
    return output.getvalue()


def fill_docx(input_path: Union[str, Path], output_path: Union[str, Path],
              config: FillConfig) -> TranscodeResult:
    """
    Fill a document on disk, replacing ``output_path`` only on success.

    The new archive is written to a temporary file next to the output and
    moved into place once complete, so a failed run never leaves a partial
    document behind. ``input_path`` and ``output_path`` may be the same file.

    Args:
        input_path: Source .docx path
        output_path: Destination .docx path

    Returns:
        TranscodeResult with ``output_path`` set
    """
    input_path = Path(input_path)
    output_path = Path(output_path)
    output_dir = output_path.parent if str(output_path.parent) else Path('.')

    try:
        fd, temp_name = tempfile.mkstemp(prefix=".docfill_", suffix=".docx", dir=output_dir)
    except OSError as e:
        raise WriteError(f"{ERROR_DESTINATION_WRITE}: cannot create temporary file in {output_dir}: {e}") from e
    logger.debug(f"Writing {output_path} through temporary file {temp_name}")

    try:
        with os.fdopen(fd, 'wb') as temp_file:
            result = transcode(input_path, temp_file, config)
        try:
            os.replace(temp_name, output_path)
        except OSError as e:
            raise WriteError(f"{ERROR_DESTINATION_WRITE}: cannot move output into {output_path}: {e}") from e
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise

    result.output_path = str(output_path)
    return result
