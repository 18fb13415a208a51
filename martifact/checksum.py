"""SHA-256 checksumming of streams and the manifest checksum store."""

from __future__ import annotations

import errno
import hashlib
import os
from typing import BinaryIO


class ChecksumError(Exception):
    """Raised when a checksum is missing, malformed or does not match."""


def _bad_descriptor() -> OSError:
    return OSError(errno.EBADF, os.strerror(errno.EBADF))


class ChecksumWriter:
    """Writes through to a stream while computing the SHA-256 of the data."""

    def __init__(self, writer: BinaryIO | None) -> None:
        self._writer = writer
        self._hash = hashlib.sha256() if writer is not None else None

    def write(self, data: bytes) -> int:
        if self._writer is None or self._hash is None:
            raise _bad_descriptor()
        self._hash.update(data)
        self._writer.write(data)
        return len(data)

    def checksum(self) -> bytes | None:
        """Return the hex-encoded digest of everything written so far."""
        if self._hash is None:
            return None
        return self._hash.hexdigest().encode("ascii")


class ChecksumReader:
    """Reads from a stream and verifies its SHA-256 once the end is reached."""

    def __init__(self, reader: BinaryIO | None, expected: bytes | None) -> None:
        self._reader = reader
        self._expected = bytes(expected) if expected is not None else None
        self._hash = hashlib.sha256() if reader is not None else None

    def read(self, size: int | None = -1) -> bytes:
        """Read up to ``size`` bytes; verify the checksum at end of stream."""
        if self._reader is None or self._hash is None:
            raise _bad_descriptor()
        data = self._reader.read(size)
        if data:
            self._hash.update(data)
        if not data or size is None or size < 0:
            self.verify()
        return data

    def checksum(self) -> bytes | None:
        """Return the hex-encoded digest of everything read so far."""
        if self._hash is None:
            return None
        return self._hash.hexdigest().encode("ascii")

    def verify(self) -> None:
        actual = self.checksum()
        if self._expected != actual:
            expected_text = (self._expected or b"").decode("utf-8", "replace")
            actual_text = (actual or b"").decode("utf-8", "replace")
            raise ChecksumError(
                f"invalid checksum; expected: [{expected_text}]; actual: [{actual_text}]"
            )


class ChecksumStore:
    """Checksums of artifact files, kept alongside their manifest text."""

    def __init__(self) -> None:
        self._sums: dict[str, bytes] = {}
        self._marked: dict[str, bool] = {}
        self._raw = bytearray()

    def add(self, file: str, checksum: bytes) -> None:
        if file in self._sums:
            raise FileExistsError(errno.EEXIST, "file already exists", file)
        checksum = bytes(checksum)
        self._sums[file] = checksum
        self._marked[file] = False
        self._raw += checksum + b"  " + file.encode("utf-8") + b"\n"

    def get(self, file: str) -> bytes:
        try:
            return self._sums[file]
        except KeyError:
            raise ChecksumError(
                f"checksum: checksum missing for file: '{file}'"
            ) from None

    def get_and_mark(self, file: str) -> bytes:
        """Like :meth:`get`, and also mark the file as visited."""
        checksum = self.get(file)
        self._marked[file] = True
        return checksum

    def files_not_marked(self) -> list[str]:
        return [file for file, marked in self._marked.items() if not marked]

    def raw(self) -> bytes:
        """Return the manifest text of all added checksums, in insertion order."""
        return bytes(self._raw)

    def read_raw(self, data: bytes) -> None:
        """Parse manifest lines of the form ``<checksum>  <file>``.

        A trailing fragment not terminated by a newline is ignored.
        """
        *lines, _unterminated = bytes(data).split(b"\n")
        for line in lines:
            self._read_line(line.decode("utf-8"))

    def _read_line(self, line: str) -> None:
        trimmed = line.strip()
        if not trimmed:
            return
        chunks = trimmed.split("  ")
        if len(chunks) != 2:
            raise ChecksumError(f"checksum: malformed checksum line: '{line}\n'")
        checksum, file = chunks
        self.add(file, checksum.encode("utf-8"))