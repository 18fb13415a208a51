"""Archive paths of update headers and payloads, and processing stages."""

from __future__ import annotations

import posixpath
from enum import Enum

HEADER_DIRECTORY = "headers"
DATA_DIRECTORY = "data"


class Stage(str, Enum):
    """The stages an artifact reader or writer passes through."""

    VERSION = "Version"
    MANIFEST = "Manifest"
    MANIFEST_SIGNATURE = "Manifest signature"
    MANIFEST_AUGMENT = "Manifest augment"
    HEADER = "Header"
    HEADER_AUGMENT = "Header Augment"
    DATA = "Payload"


def update_path(no: int) -> str:
    return posixpath.join(DATA_DIRECTORY, f"{no:04d}")


def update_header_path(no: int) -> str:
    return posixpath.join(HEADER_DIRECTORY, f"{no:04d}")


def update_data_path(no: int) -> str:
    return posixpath.join(DATA_DIRECTORY, f"{no:04d}.tar")