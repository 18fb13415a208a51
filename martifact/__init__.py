"""Checksums, compressors, metadata, state scripts, tar writing and signing for update artifacts."""

__version__ = "0.1.0"