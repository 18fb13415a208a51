"""Compressors for artifact payloads, selectable by id or file extension."""

from __future__ import annotations

import gzip
import io
import lzma
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import BinaryIO

import zstandard


class Compressor(ABC):
    """A compression format able to wrap binary streams."""

    @abstractmethod
    def file_extension(self) -> str:
        """Return the file-name suffix of this format, or '' for none."""

    @abstractmethod
    def open_reader(self, stream: BinaryIO) -> BinaryIO:
        """Return a readable stream decompressing ``stream``."""

    @abstractmethod
    def open_writer(self, stream: BinaryIO) -> BinaryIO:
        """Return a writable stream compressing into ``stream``.

        Closing it finishes the compressed data but leaves ``stream`` open.
        """


class _Passthrough(io.BufferedIOBase):
    """Forwards reads and writes; closing it leaves the wrapped stream open."""

    def __init__(self, stream: BinaryIO) -> None:
        super().__init__()
        self._stream = stream

    def readable(self) -> bool:
        return True

    def writable(self) -> bool:
        return True

    def read(self, size: int | None = -1) -> bytes:
        return self._stream.read(size)

    def read1(self, size: int = -1) -> bytes:
        return self._stream.read(size)

    def write(self, data) -> int:
        self._stream.write(data)
        return len(data)


class NoneCompressor(Compressor):
    """Stores data uncompressed."""

    def file_extension(self) -> str:
        return ""

    def open_reader(self, stream: BinaryIO) -> BinaryIO:
        return _Passthrough(stream)

    def open_writer(self, stream: BinaryIO) -> BinaryIO:
        return _Passthrough(stream)


class GzipCompressor(Compressor):
    """Gzip at best compression."""

    def file_extension(self) -> str:
        return ".gz"

    def open_reader(self, stream: BinaryIO) -> BinaryIO:
        return gzip.GzipFile(fileobj=stream, mode="rb")

    def open_writer(self, stream: BinaryIO) -> BinaryIO:
        return gzip.GzipFile(fileobj=stream, mode="wb", compresslevel=9)


class LzmaCompressor(Compressor):
    """XZ container at preset 9 with a CRC64 check."""

    def file_extension(self) -> str:
        return ".xz"

    def open_reader(self, stream: BinaryIO) -> BinaryIO:
        return lzma.LZMAFile(stream, mode="rb", format=lzma.FORMAT_XZ)

    def open_writer(self, stream: BinaryIO) -> BinaryIO:
        return lzma.LZMAFile(
            stream,
            mode="wb",
            format=lzma.FORMAT_XZ,
            check=lzma.CHECK_CRC64,
            preset=9,
        )


class ZstdLevel(IntEnum):
    """Zstandard compression levels offered by the registry."""

    FASTEST = 1
    DEFAULT = 3
    BETTER = 7
    BEST = 11


class ZstdCompressor(Compressor):
    """Zstandard at a chosen compression level."""

    def __init__(self, level: int) -> None:
        self.level = int(level)

    def file_extension(self) -> str:
        return ".zst"

    def open_reader(self, stream: BinaryIO) -> BinaryIO:
        return zstandard.ZstdDecompressor().stream_reader(stream, closefd=False)

    def open_writer(self, stream: BinaryIO) -> BinaryIO:
        return zstandard.ZstdCompressor(level=self.level).stream_writer(
            stream, closefd=False
        )


_COMPRESSORS: dict[str, Compressor] = {}


def register_compressor(compressor_id: str, compressor: Compressor) -> None:
    _COMPRESSORS[compressor_id] = compressor


def compressor_from_file_name(name: str) -> Compressor:
    """Pick the compressor whose extension ends ``name``; none if no match."""
    for compressor in _COMPRESSORS.values():
        extension = compressor.file_extension()
        if extension and name.endswith(extension):
            return compressor
    return NoneCompressor()


def compressor_from_id(compressor_id: str) -> Compressor:
    try:
        return _COMPRESSORS[compressor_id]
    except KeyError:
        raise ValueError(f"invalid compressor id: {compressor_id}") from None


def registered_compressor_ids() -> list[str]:
    """Return registered ids: 'none' first, the rest alphabetically."""
    return sorted(_COMPRESSORS, key=lambda cid: (cid != "none", cid))


register_compressor("none", NoneCompressor())
register_compressor("gzip", GzipCompressor())
register_compressor("lzma", LzmaCompressor())
register_compressor("zstd_fastest", ZstdCompressor(ZstdLevel.FASTEST))
register_compressor("zstd_fast", ZstdCompressor(ZstdLevel.DEFAULT))
register_compressor("zstd_better", ZstdCompressor(ZstdLevel.BETTER))
register_compressor("zstd_best", ZstdCompressor(ZstdLevel.BEST))