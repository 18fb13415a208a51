"""Writing files and serialised metadata into tar archives."""

from __future__ import annotations

import io
import json
import tarfile
from typing import Any, BinaryIO

from martifact.metadata import ValidationError


class ArchiveError(Exception):
    """Raised when an entry can not be written to an archive."""


def to_stream(obj: Any) -> bytes:
    """Validate a metadata record and return its compact JSON encoding."""
    try:
        obj.validate()
    except ValueError as err:
        raise ValidationError(
            f"ToStream: Failed to validate: {type(obj).__name__}: {err}"
        ) from err
    try:
        text = json.dumps(obj.to_dict(), separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as err:
        raise ValueError(
            f"ToStream: Failed to marshal json for {type(obj).__name__}: {err}"
        ) from err
    return text.encode("utf-8")


class FileArchiver:
    """Adds open files to a tar archive under a chosen name."""

    def __init__(self, tar: tarfile.TarFile) -> None:
        self.tar = tar

    def write(self, file: BinaryIO | None, archive_path: str) -> None:
        if file is None:
            raise ArchiveError("arch: invalid file")
        try:
            info = self.tar.gettarinfo(arcname=archive_path, fileobj=file)
        except (OSError, AttributeError, ValueError) as err:
            raise ArchiveError(f"arch: invalid file info header: {err}") from err
        if info is None:
            raise ArchiveError("arch: invalid file info header: unsupported file type")
        info.name = archive_path
        try:
            self.tar.addfile(info, file)
        except (OSError, ValueError, tarfile.TarError) as err:
            raise ArchiveError(f"writer: can not tar header: {err}") from err


class StreamArchiver:
    """Adds in-memory data to a tar archive as a regular file."""

    def __init__(self, tar: tarfile.TarFile | None) -> None:
        self.tar = tar

    def write(self, data: bytes, archive_path: str) -> None:
        if self.tar is None:
            raise ArchiveError("arch: Can not write to empty tar-writer")
        info = tarfile.TarInfo(name=archive_path)
        info.mode = 0o600
        info.size = len(data)
        try:
            self.tar.addfile(info, io.BytesIO(data))
        except (OSError, ValueError, tarfile.TarError) as err:
            raise ArchiveError(f"arch: can not write stream data: {err}") from err