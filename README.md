# martifact

Building blocks for reading and writing software update artifacts:
checksums, compression, metadata records, state scripts, tar entries and
signatures.

## Installation

```
pip install martifact
```

To run the test suite, install the `test` extra and run pytest:

```
pip install "martifact[test]"
pytest
```

## Modules

### `martifact.checksum`

- `ChecksumWriter(writer)` passes every `write` through to `writer` and keeps
  a SHA-256 of the data. `checksum()` returns the hex digest as bytes. With
  `writer=None`, `write` raises `OSError` (EBADF) and `checksum()` returns
  `None`.
- `ChecksumReader(reader, expected)` hashes what it reads. When a read
  reaches end of input, or reads everything at once, it calls `verify()`.
  That method raises `ChecksumError` if the digest differs from `expected`.
  With `reader=None`, `read` raises `OSError` (EBADF).
- `ChecksumStore` holds a manifest of `<sum>  <file>` lines:
  - `add` raises `FileExistsError` for a file that is already present.
  - `get` raises `ChecksumError` for an unknown file.
  - `get_and_mark` also records the file as visited.
  - `files_not_marked` lists the files that were never visited.
  - `raw()` returns the manifest text in insertion order.
  - `read_raw(data)` parses manifest text and raises `ChecksumError` on a
    malformed line. A final line without a newline is ignored.

### `martifact.compressor`

The `Compressor` base class has three methods: `file_extension()`,
`open_reader(stream)` and `open_writer(stream)`. Closing the writer finishes
the compressed data.

Registered compressors:

| id             | class              | extension |
|----------------|--------------------|-----------|
| `none`         | `NoneCompressor`   | (none)    |
| `gzip`         | `GzipCompressor`   | `.gz`     |
| `lzma`         | `LzmaCompressor`   | `.xz`     |
| `zstd_fastest` | `ZstdCompressor`   | `.zst`    |
| `zstd_fast`    | `ZstdCompressor`   | `.zst`    |
| `zstd_better`  | `ZstdCompressor`   | `.zst`    |
| `zstd_best`    | `ZstdCompressor`   | `.zst`    |

- `gzip` uses level 9.
- `lzma` writes the XZ format at preset 9 with a CRC64 check.
- The four `zstd_*` entries differ only in level, 1, 3, 7 and 11 in table
  order. The levels are listed in `ZstdLevel`.

Functions:

- `compressor_from_id(compressor_id)` raises `ValueError` for an unknown id.
- `compressor_from_file_name(name)` returns the compressor whose extension
  ends the name. If none matches, it returns a `NoneCompressor`.
- `registered_compressor_ids()` puts `none` first and the rest in
  alphabetical order.
- `register_compressor(compressor_id, compressor)` adds to the registry or
  replaces an entry.

### `martifact.paths`

- `update_path(1) == "data/0001"`
- `update_header_path(2) == "headers/0002"`
- `update_data_path(3) == "data/0003.tar"`

`Stage` is a string enum of the processing stages: `VERSION`, `MANIFEST`,
`MANIFEST_SIGNATURE`, `MANIFEST_AUGMENT`, `HEADER`, `HEADER_AUGMENT` and
`DATA`.

### `martifact.scripter`

`Scripts.add(path)` accepts a state script named like
`ArtifactInstall_Enter_05_wifi-driver`. The state must be one of:

- `ArtifactInstall`
- `ArtifactReboot`
- `ArtifactCommit`
- `ArtifactRollback`
- `ArtifactRollbackReboot`
- `ArtifactFailure`

`add` raises `ScriptError` for a badly formed name, an unsupported state, or
a file name that was already added. `paths()` returns the added paths, and
`len()` counts them.

### `martifact.metadata`

This module holds the metadata records as dataclasses:

- `Info`
- `UpdateType`
- `ArtifactDepends`
- `ArtifactProvides`
- `HeaderInfo`
- `HeaderInfoV3`
- `TypeInfo`
- `TypeInfoV3`
- `Files`

`Metadata` is a `dict` subclass. Each record has:

- `validate()`, which raises `ValidationError`.
- `to_dict()`, the JSON shape.
- `write(data)`, which decodes JSON bytes into the record and returns the
  number of bytes given. Empty input leaves the record unchanged.

Unknown fields are rejected by `Info`, `HeaderInfoV3`, `ArtifactProvides`,
`TypeInfo`, `TypeInfoV3` and `Files`. A depends section, and a `HeaderInfo`
JSON object, without compatible devices raises `CompatibleDevicesError`.
`type_info_depends` and `type_info_provides` check and normalise the
per-update depends and provides maps. They raise `TypeError` on values of the
wrong type.

### `martifact.tar_writer`

- `to_stream(obj)` validates a record and returns its compact JSON. It raises
  `ValidationError` if the record is invalid.
- `FileArchiver(tar).write(file, archive_path)` adds an open file.
- `StreamArchiver(tar).write(data, archive_path)` adds bytes as a regular
  file with mode 0600.

Both raise `ArchiveError` on failure.

### `martifact.signer`

This module signs and verifies with RSA (PKCS#1 v1.5, SHA-256) and ECDSA
P-256 (SHA-256). Keys are PEM: PKCS#1, SEC 1 or PKCS#8 private keys and
SubjectPublicKeyInfo public keys.

- `new_pki_signer(private_key)` returns a `PKISigner` that can sign and
  verify.
- `new_pki_verifier(public_key)` returns one that can only verify.
- Signatures are base64. ECDSA signatures are the 64-byte `r || s` form.
  Verification also accepts ASN.1 DER signatures of 70 to 72 bytes.
- `get_public` returns the DER public key of a PEM private key.
- `marshal_ecdsa_signature` and the `unmarshal_ecdsa_signature*` helpers
  convert between the signature forms.
- Failures raise `SignerError`.

## Example

```python
import io
import tarfile

from martifact.checksum import ChecksumWriter
from martifact.compressor import compressor_from_id
from martifact.metadata import Info
from martifact.tar_writer import StreamArchiver, to_stream

sink = io.BytesIO()
writer = ChecksumWriter(sink)
writer.write(b"payload")
print(writer.checksum())

buffer = io.BytesIO()
with compressor_from_id("gzip").open_writer(buffer) as out:
    out.write(b"payload")

archive = io.BytesIO()
with tarfile.open(fileobj=archive, mode="w") as tar:
    StreamArchiver(tar).write(to_stream(Info(format="mender", version=3)), "version")
```

Signing with a freshly generated key:

```python
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from martifact.signer import new_pki_signer

private_pem = ec.generate_private_key(ec.SECP256R1()).private_bytes(
    serialization.Encoding.PEM,
    serialization.PrivateFormat.TraditionalOpenSSL,
    serialization.NoEncryption(),
)
signer = new_pki_signer(private_pem)
signature = signer.sign(b"message")
signer.verify(b"message", signature)  # raises SignerError on mismatch
```

## What this package does not do

This package provides the pieces an artifact tool is built from, not the
tool itself:

- There is no command-line program.
- There is no reader or writer that assembles or parses a complete artifact
  archive.
- Signing works only with local PEM keys. There is no support for remote key
  services. `PKCS11Signer` always raises `SignerError`, so hardware-token
  signing is not available.