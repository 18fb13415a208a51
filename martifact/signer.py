"""Signing and verification of artifacts with RSA and P-256 ECDSA keys."""

from __future__ import annotations

import base64
import binascii
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

_ECDSA256_CURVE_BITS = 256
_ECDSA256_KEY_SIZE = 32
_ECDSA256_ASN1_SIZE = 70
_ECDSA256_ASN1_PADDING = 2

_PKCS11_UNSUPPORTED = "PKCS#11 is supported only on linux"

_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([^\r\n-]*)-----\r?\n(.*?)-----END \1-----", re.DOTALL
)


class SignerError(Exception):
    """Raised when signing or verification fails."""


class _Crypto(ABC):
    """A signature algorithm usable by :class:`PKISigner`."""

    @abstractmethod
    def sign(self, message: bytes, key: Any) -> bytes:
        """Return the raw signature of ``message``."""

    @abstractmethod
    def verify(self, message: bytes, signature: bytes, key: Any) -> None:
        """Raise :class:`SignerError` unless ``signature`` matches."""


class RSA(_Crypto):
    """RSA PKCS#1 v1.5 signatures over SHA-256."""

    def sign(self, message: bytes, key: Any) -> bytes:
        if not isinstance(key, rsa.RSAPrivateKey):
            raise SignerError("signer: invalid private key")
        return key.sign(bytes(message), padding.PKCS1v15(), hashes.SHA256())

    def verify(self, message: bytes, signature: bytes, key: Any) -> None:
        if not isinstance(key, rsa.RSAPublicKey):
            raise SignerError("signer: invalid rsa public key")
        try:
            key.verify(
                bytes(signature), bytes(message), padding.PKCS1v15(), hashes.SHA256()
            )
        except InvalidSignature:
            raise SignerError("signer: verification failed") from None


class ECDSA256(_Crypto):
    """ECDSA P-256 signatures over SHA-256, serialised as r || s."""

    def sign(self, message: bytes, key: Any) -> bytes:
        if not isinstance(key, ec.EllipticCurvePrivateKey):
            raise SignerError("signer: invalid private key")
        try:
            der = key.sign(bytes(message), ec.ECDSA(hashes.SHA256()))
        except (ValueError, UnsupportedAlgorithm) as err:
            raise SignerError(f"signer: error signing message: {err}") from err
        if key.curve.key_size != _ECDSA256_CURVE_BITS:
            raise SignerError("signer: invalid ecdsa curve size")
        r, s = decode_dss_signature(der)
        return marshal_ecdsa_signature(r, s)

    def verify(self, message: bytes, signature: bytes, key: Any) -> None:
        if not isinstance(key, ec.EllipticCurvePublicKey):
            raise SignerError("signer: invalid ecdsa public key")
        r, s = unmarshal_ecdsa_signature(signature)
        if r is None or s is None:
            raise SignerError("signer: verification failed")
        try:
            key.verify(
                encode_dss_signature(r, s), bytes(message), ec.ECDSA(hashes.SHA256())
            )
        except (InvalidSignature, ValueError):
            raise SignerError("signer: verification failed") from None


def _byte_length(value: int) -> int:
    return (value.bit_length() + 7) // 8


def marshal_ecdsa_signature(r: int, s: int) -> bytes:
    """Serialise r and s as two left-zero-padded 32-byte big-endian halves."""
    r_size = _byte_length(r)
    s_size = _byte_length(s)
    if r_size > _ECDSA256_KEY_SIZE or s_size > _ECDSA256_KEY_SIZE:
        raise SignerError(
            f"signer: invalid size of ecdsa keys: r: {r_size}; s: {s_size}"
        )
    return r.to_bytes(_ECDSA256_KEY_SIZE, "big") + s.to_bytes(_ECDSA256_KEY_SIZE, "big")


def unmarshal_ecdsa_signature(signature: bytes) -> tuple[int | None, int | None]:
    """Decode an ECDSA signature in r || s or ASN.1 DER form."""
    signature = bytes(signature)
    if len(signature) == 2 * _ECDSA256_KEY_SIZE:
        return unmarshal_ecdsa_signature_raw(signature)
    # Signatures made by hardware tokens come ASN.1-encoded.
    if _ECDSA256_ASN1_SIZE <= len(signature) <= _ECDSA256_ASN1_SIZE + _ECDSA256_ASN1_PADDING:
        return unmarshal_ecdsa_signature_asn1(signature)
    raise SignerError(
        f"signer: invalid signature length: {len(signature)}. "
        "For ECDSA only P-256 is supported."
    )


def _der_element(data: bytes) -> tuple[bytes, bytes]:
    """Split one DER element off ``data``; return its content and the rest."""
    if len(data) < 2:
        raise ValueError("asn1: data truncated")
    if data[0] & 0x1F == 0x1F:
        raise ValueError("asn1: unsupported high tag number")
    length = data[1]
    pos = 2
    if length & 0x80:
        count = length & 0x7F
        if count == 0 or count > 4 or len(data) < 2 + count:
            raise ValueError("asn1: invalid length")
        length = int.from_bytes(data[2 : 2 + count], "big")
        pos = 2 + count
    end = pos + length
    if end > len(data):
        raise ValueError("asn1: data truncated")
    return data[pos:end], data[end:]


def unmarshal_ecdsa_signature_asn1(signature: bytes) -> tuple[int | None, int | None]:
    """Decode a DER sequence of two integers into (r, s)."""
    try:
        body, _ = _der_element(bytes(signature))
    except ValueError as err:
        raise SignerError(f"cannot unmarshal asn1 data: {err}") from err
    r: int | None = None
    s: int | None = None
    if body:
        try:
            value, body = _der_element(body)
        except ValueError as err:
            raise SignerError(f"cannot unmarshal asn1 r value: {err}") from err
        r = int.from_bytes(value, "big")
    if body:
        try:
            value, _ = _der_element(body)
        except ValueError as err:
            raise SignerError(f"cannot unmarshal asn1 s value: {err}") from err
        s = int.from_bytes(value, "big")
    return r, s


def unmarshal_ecdsa_signature_raw(signature: bytes) -> tuple[int, int]:
    """Decode an r || s signature into (r, s)."""
    signature = bytes(signature)
    r = int.from_bytes(signature[:_ECDSA256_KEY_SIZE], "big")
    s = int.from_bytes(signature[_ECDSA256_KEY_SIZE:], "big")
    return r, s


@dataclass
class SigningMethod:
    """A key, its encoded public part and the algorithm that uses it."""

    key: Any
    method: _Crypto | None
    public: bytes = b""


class PKISigner:
    """Signs and verifies with X.509-encoded RSA or P-256 ECDSA keys."""

    def __init__(
        self,
        sign_method: SigningMethod | None,
        verify_method: SigningMethod | None,
    ) -> None:
        self.sign_method = sign_method
        self.verify_method = verify_method

    def sign(self, message: bytes) -> bytes:
        """Return the base64-encoded signature of ``message``."""
        if self.sign_method is None or self.sign_method.method is None:
            raise SignerError("signer: only verification allowed with this signer")
        try:
            signature = self.sign_method.method.sign(message, self.sign_method.key)
        except SignerError as err:
            raise SignerError(f"signer: error signing image: {err}") from err
        return base64.b64encode(signature)

    def verify(self, message: bytes, signature: bytes) -> None:
        """Raise :class:`SignerError` unless the base64 ``signature`` matches."""
        try:
            decoded = base64.b64decode(bytes(signature), validate=True)
        except (binascii.Error, ValueError) as err:
            raise SignerError(f"signer: error decoding signature: {err}") from err
        if self.verify_method is None:
            raise SignerError("verifyMethod is nil")
        if self.verify_method.method is None:
            raise SignerError("verifyMethod.Method is nil")
        self.verify_method.method.verify(message, decoded, self.verify_method.key)


def _pem_decode(data: bytes) -> bytes | None:
    """Return the DER content of the first PEM block, or None."""
    match = _PEM_BLOCK.search(bytes(data))
    if match is None:
        return None
    lines = [
        line.strip()
        for line in match.group(2).splitlines()
        if line.strip() and b":" not in line
    ]
    try:
        return base64.b64decode(b"".join(lines), validate=True)
    except (binascii.Error, ValueError):
        return None


def _public_der(key: Any) -> bytes:
    return key.public_key().public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )


def _load_public_der(der: bytes) -> Any:
    try:
        return serialization.load_der_public_key(der)
    except (ValueError, UnsupportedAlgorithm) as err:
        raise SignerError(f"failed to parse encoded public key: {err}") from err


def new_pki_signer(private_key: bytes) -> PKISigner:
    """Create a signer, able to verify too, from a PEM private key."""
    if not private_key:
        raise SignerError("signer: missing key")
    sign_method = get_key_and_sign_method(private_key)
    public = _load_public_der(sign_method.public)
    return PKISigner(
        sign_method=sign_method,
        verify_method=SigningMethod(key=public, method=sign_method.method),
    )


def new_pki_verifier(public_key: bytes) -> PKISigner:
    """Create a verify-only signer from a PEM public key."""
    if not public_key:
        raise SignerError("signer: missing key")
    return PKISigner(sign_method=None, verify_method=get_key_and_verify_method(public_key))


def get_public(private_key: bytes) -> bytes:
    """Return the DER SubjectPublicKeyInfo of a PEM private key."""
    try:
        return get_key_and_sign_method(private_key).public
    except SignerError as err:
        raise SignerError(f"signer: error parsing private key: {err}") from err


def get_key_and_verify_method(key_pem: bytes) -> SigningMethod:
    """Load a PEM public key and pick the matching algorithm."""
    der = _pem_decode(key_pem)
    if der is None:
        raise SignerError("signer: failed to parse public key")
    public = _load_public_der(der)
    if isinstance(public, rsa.RSAPublicKey):
        return SigningMethod(key=public, method=RSA())
    if isinstance(public, ec.EllipticCurvePublicKey):
        return SigningMethod(key=public, method=ECDSA256())
    raise SignerError(f"unsupported public key type: {type(public).__name__}")


def get_key_and_sign_method(key_pem: bytes) -> SigningMethod:
    """Load a PEM private key (PKCS#1, SEC 1 or PKCS#8) and pick the algorithm."""
    der = _pem_decode(key_pem)
    if der is None:
        raise SignerError("signer: failed to parse private key")
    try:
        key = serialization.load_der_private_key(der, None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as err:
        raise SignerError(
            f"signer: unsupported private key type or error occurred: {err}"
        ) from err
    if isinstance(key, rsa.RSAPrivateKey):
        return SigningMethod(key=key, method=RSA(), public=_public_der(key))
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return SigningMethod(key=key, method=ECDSA256(), public=_public_der(key))
    raise SignerError(
        "signer: unsupported private key type or error occurred: "
        "unsupported private key type"
    )


class PKCS11Signer:
    """Placeholder for hardware-token signing, which is unavailable here."""

    def __init__(self, pkcs_key: str) -> None:
        raise SignerError(_PKCS11_UNSUPPORTED)

    def sign(self, message: bytes) -> bytes:
        raise SignerError(_PKCS11_UNSUPPORTED)

    def verify(self, message: bytes, signature: bytes) -> None:
        raise SignerError(_PKCS11_UNSUPPORTED)