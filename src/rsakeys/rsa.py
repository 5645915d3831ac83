"""Provides the RSA key handle, PEM import/export and PKCS#1 v1.5 signing and verification.

A `RSAKey` is an opaque handle owning at most one backend key object. A fresh handle is empty; it turns valid once a
PEM import (or key generation) succeeds and returns to empty when freed. Every operation other than import checks the
handle first and refuses to touch an empty one.

Operations that produce bytes (PEM export, signing) write into a caller supplied buffer and follow a two-phase
protocol: call with no buffer to learn the size from `BufferTooSmallError.required_size`, then call again with a buffer
at least that large. `negotiate` runs both phases in one go.

Typical usage example:

    with RSAKey.from_private_pem(pem) as key:
        signature = key.sign_digest(HashType.SHA256, hashlib.sha256(b"Hi there!").digest())
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import enum
import logging
import typing

from cryptography.hazmat.primitives import hashes

from rsakeys import backend
from rsakeys.errors import BufferTooSmallError
from rsakeys.errors import InvalidParameterError
from rsakeys.errors import UnexpectedError

logger = logging.getLogger(__name__)

RSA_KEY_MAGIC = 0x2A11ED055E91B281
NULL_TERMINATOR = b"\x00"

Buffer = bytearray | memoryview


class HashType(str, enum.Enum):
    """Digest algorithms accepted by sign and verify."""
    SHA256 = "sha256"
    SHA512 = "sha512"


HASH_ALGOS: dict[HashType, type[hashes.HashAlgorithm]] = {
    HashType.SHA256: hashes.SHA256,
    HashType.SHA512: hashes.SHA512,
}


class RSAKey:
    """Opaque handle over one backend RSA key, public or private.

    The handle is valid only while its magic tag is set and it owns a key object. Both fields are private; callers
    only ever pass the handle around. Usable as a context manager that frees the handle on exit.
    """
    __slots__ = ("_magic", "_rsa")

    def __init__(self) -> None:
        self._magic: int = 0
        self._rsa: backend.BackendKey | None = None

    def __enter__(self) -> "RSAKey":
        return self

    def __exit__(self, *exc_info) -> None:
        if self.is_valid:
            self.free()

    def __repr__(self) -> str:
        if not self.is_valid:
            return "<RSAKey empty>"
        kind = "private" if self.is_private else "public"
        return f"<RSAKey {kind} {self._rsa.key_size}-bit>"

    @property
    def is_valid(self) -> bool:
        """Whether the handle currently owns a live key."""
        return self._magic == RSA_KEY_MAGIC and self._rsa is not None

    @property
    def is_private(self) -> bool:
        """Whether the handle is valid and its key carries private material."""
        return self.is_valid and backend.has_private(self._rsa)

    def _clear(self) -> None:
        self._magic = 0
        self._rsa = None

    def _adopt(self, key: backend.BackendKey) -> None:
        self._magic = RSA_KEY_MAGIC
        self._rsa = key

    def _require_valid(self) -> None:
        if not self.is_valid:
            raise InvalidParameterError("Key handle is not valid.")

    def free(self) -> None:
        """Releases the owned key and returns the handle to its empty state.

        Raises:
            InvalidParameterError: If the handle is not valid, including when it was already freed.
        """
        self._require_valid()
        logger.debug("Releasing %r.", self)
        self._clear()

    def read_private_pem(self, data: bytes | bytearray | memoryview) -> None:
        """Imports a private key into this handle.

        The handle is emptied first, so on failure it is left empty whatever it held before.

        Args:
            data: Unencrypted PEM private key whose last byte, and only null byte, is the terminator.

        Raises:
            InvalidParameterError: If `data` is missing, empty or not properly null terminated.
            CryptoFailureError: If the PEM does not parse as an RSA private key.
        """
        self._clear()
        pem = _check_pem(data)
        backend.initialize()
        self._adopt(backend.load_private_pem(pem))
        logger.debug("Imported %r.", self)

    def read_public_pem(self, data: bytes | bytearray | memoryview) -> None:
        """Imports a SubjectPublicKeyInfo public key into this handle.

        Validation follows `read_private_pem`.

        Args:
            data: PEM public key whose last byte, and only null byte, is the terminator.

        Raises:
            InvalidParameterError: If `data` is missing, empty or not properly null terminated.
            CryptoFailureError: If the PEM does not parse as an RSA public key.
        """
        self._clear()
        pem = _check_pem(data)
        backend.initialize()
        self._adopt(backend.load_public_pem(pem))
        logger.debug("Imported %r.", self)

    @classmethod
    def from_private_pem(cls, data: bytes | bytearray | memoryview) -> "RSAKey":
        """Creates a new handle from a null terminated PEM private key."""
        key = cls()
        key.read_private_pem(data)
        return key

    @classmethod
    def from_public_pem(cls, data: bytes | bytearray | memoryview) -> "RSAKey":
        """Creates a new handle from a null terminated PEM public key."""
        key = cls()
        key.read_public_pem(data)
        return key

    def write_private_pem(self, buffer: Buffer | None = None, size: int | None = None) -> int:
        """Exports the private key as null terminated PKCS#1 PEM.

        Args:
            buffer: Writable destination, or None to query the required size.
            size: Capacity of `buffer` the caller allows to be used. Defaults to its full length.

        Returns:
            Number of bytes written, terminator included.

        Raises:
            InvalidParameterError: If the handle is not valid or `buffer` and `size` disagree.
            BufferTooSmallError: If the capacity is short. Carries the required size, `buffer` is untouched.
            CryptoFailureError: If the handle holds a public key only.
        """
        self._require_valid()
        capacity = _output_capacity(buffer, size)
        backend.initialize()
        return _copy_out(buffer, capacity, terminate_pem(backend.dump_private_pem(self._rsa)))

    def write_public_pem(self, buffer: Buffer | None = None, size: int | None = None) -> int:
        """Exports the public key as null terminated SubjectPublicKeyInfo PEM.

        Works on private handles too, exporting their public half. Arguments, return value and errors follow
        `write_private_pem`.
        """
        self._require_valid()
        capacity = _output_capacity(buffer, size)
        backend.initialize()
        return _copy_out(buffer, capacity, terminate_pem(backend.dump_public_pem(self._rsa)))

    def sign(self,
             hash_type: HashType,
             digest: bytes | bytearray | memoryview,
             signature: Buffer | None = None,
             size: int | None = None) -> int:
        """Signs a digest with PKCS#1 v1.5 padding.

        The signature is always exactly the modulus size of the key.

        Args:
            hash_type: The algorithm that produced `digest`.
            digest: The message digest, of the algorithm's output length.
            signature: Writable destination, or None to query the required size.
            size: Capacity of `signature` the caller allows to be used. Defaults to its full length.

        Returns:
            Number of signature bytes written.

        Raises:
            InvalidParameterError: On an invalid handle, unknown hash type, bad digest or buffer/size mismatch.
            BufferTooSmallError: If the capacity is below the modulus size.
            CryptoFailureError: If the handle holds no private key or the backend fails to sign.
            UnexpectedError: If the backend returns a signature of the wrong length.
        """
        self._require_valid()
        algorithm = _hash_algorithm(hash_type)
        digest = _check_bytes(digest, "Digest")
        if len(digest) != algorithm.digest_size:
            raise InvalidParameterError(f"Digest must be {algorithm.digest_size} bytes for {algorithm.name}.")
        capacity = _output_capacity(signature, size)
        backend.initialize()
        required = backend.modulus_size(self._rsa)
        if capacity < required:
            raise BufferTooSmallError(required)
        produced = backend.sign(self._rsa, digest, algorithm)
        # This should never happen.
        if len(produced) != required:
            raise UnexpectedError(f"Backend produced a {len(produced)} byte signature, expected {required}.")
        return _copy_out(signature, capacity, produced)

    def verify(self, hash_type: HashType, digest: bytes | bytearray | memoryview,
               signature: bytes | bytearray | memoryview) -> None:
        """Checks a PKCS#1 v1.5 signature over a digest.

        Returns normally only when the signature is valid. Every way a signature can fail to check out raises the
        same error kind.

        Args:
            hash_type: The algorithm that produced `digest`.
            digest: The message digest.
            signature: The signature to check.

        Raises:
            InvalidParameterError: On an invalid handle, unknown hash type, or missing digest or signature.
            CryptoFailureError: If the signature does not verify.
        """
        self._require_valid()
        algorithm = _hash_algorithm(hash_type)
        digest = _check_bytes(digest, "Digest")
        signature = _check_bytes(signature, "Signature")
        backend.initialize()
        backend.verify(self._rsa, signature, digest, algorithm)

    def private_pem(self) -> bytes:
        """The null terminated private PEM, sized automatically."""
        return negotiate(self.write_private_pem)

    def public_pem(self) -> bytes:
        """The null terminated public PEM, sized automatically."""
        return negotiate(self.write_public_pem)

    def sign_digest(self, hash_type: HashType, digest: bytes | bytearray | memoryview) -> bytes:
        """Signs a digest and returns the signature, sized automatically."""
        return negotiate(self.sign, hash_type, digest)


def negotiate(operation: typing.Callable[..., int], *args: typing.Any) -> bytes:
    """Runs the two-phase size protocol against a buffer-producing operation.

    Calls `operation(*args)` without a buffer to learn the size, then again with a buffer of exactly that size.

    Args:
        operation: A bound export or sign method, taking the output buffer after `args`.
        *args: Leading arguments for `operation`.

    Returns:
        Exactly the bytes the operation produced.

    Raises:
        UnexpectedError: If the operation succeeds without a buffer to write into.
    """
    try:
        operation(*args)
    except BufferTooSmallError as exc:
        buffer = bytearray(exc.required_size)
    else:
        raise UnexpectedError("Operation completed without an output buffer.")
    written = operation(*args, buffer)
    return bytes(buffer[:written])


def terminate_pem(pem: bytes) -> bytes:
    """Appends the single null terminator expected on PEM buffers."""
    return pem + NULL_TERMINATOR


def _hash_algorithm(hash_type: HashType) -> hashes.HashAlgorithm:
    """Maps a hash type to a fresh backend algorithm object, rejecting anything outside `HashType`."""
    try:
        return HASH_ALGOS[HashType(hash_type)]()
    except ValueError as exc:
        raise InvalidParameterError(f"Unsupported hash type: {hash_type!r}") from exc


def _check_bytes(data: typing.Any, name: str) -> bytes:
    """Validates a required, non-empty bytes-like input and returns it as bytes."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise InvalidParameterError(f"{name} must be a bytes-like object.")
    data = bytes(data)
    if not data:
        raise InvalidParameterError(f"{name} must not be empty.")
    return data


def _check_pem(data: typing.Any) -> bytes:
    """Validates PEM input and strips its terminator.

    The first null byte must be the last byte. This rejects a missing terminator as well as truncated or concatenated
    documents.

    Raises:
        InvalidParameterError: If `data` is not a non-empty, properly terminated bytes-like object.
    """
    data = _check_bytes(data, "PEM data")
    if data.find(NULL_TERMINATOR) != len(data) - 1:
        raise InvalidParameterError("PEM data must end with its only null terminator.")
    return data[:-1]


def _output_capacity(buffer: typing.Any, size: int | None) -> int:
    """Works out how many bytes the caller allows an operation to write.

    Raises:
        InvalidParameterError: If `buffer` is absent while `size` is not zero, is not writable, or `size` is out of
            range for it.
    """
    if size is not None and (isinstance(size, bool) or not isinstance(size, int)):
        raise InvalidParameterError("Size must be an integer.")
    if buffer is None:
        if size:
            raise InvalidParameterError("Size must be zero when no buffer is given.")
        return 0
    try:
        view = memoryview(buffer)
    except TypeError as exc:
        raise InvalidParameterError("Buffer must be a writable bytes-like object.") from exc
    if view.readonly:
        raise InvalidParameterError("Buffer must be writable.")
    if not view.c_contiguous:
        raise InvalidParameterError("Buffer must be contiguous.")
    if size is None:
        return view.nbytes
    if not 0 <= size <= view.nbytes:
        raise InvalidParameterError(f"Size must be in range [0, {view.nbytes}].")
    return size


def _copy_out(buffer: Buffer | None, capacity: int, payload: bytes) -> int:
    """Copies `payload` to the head of `buffer`, or reports the size needed without writing anything."""
    if capacity < len(payload):
        raise BufferTooSmallError(len(payload))
    memoryview(buffer).cast("B")[:len(payload)] = payload
    return len(payload)
