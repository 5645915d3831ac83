"""Adapter over the `cryptography` package, which performs all RSA math and PEM/DER encoding for this package.

Every function here takes and returns backend key objects, and translates backend exceptions into
`CryptoFailureError`, so nothing backend-specific leaks past this module. Key handles never call `cryptography`
directly.

Typical usage example:

    initialize()
    key = load_private_pem(pem)
    signature = sign(key, digest, hashes.SHA256())
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import logging
import threading

from cryptography.exceptions import InvalidSignature
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric import utils

from rsakeys.errors import CryptoFailureError

logger = logging.getLogger(__name__)

BackendKey = rsa.RSAPrivateKey | rsa.RSAPublicKey

_INIT_LOCK = threading.Lock()
_INITIALIZED = False


def initialize() -> None:
    """Initialize the crypto backend once per process.

    Safe to call from any thread and any number of times; only the first call does any work.
    """
    global _INITIALIZED
    if _INITIALIZED:
        return
    with _INIT_LOCK:
        if _INITIALIZED:
            return
        openssl = default_backend()
        logger.debug("Crypto backend ready: %s", openssl.openssl_version_text())
        _INITIALIZED = True


def has_private(key: BackendKey) -> bool:
    """Whether the key object carries private material."""
    return isinstance(key, rsa.RSAPrivateKey)


def modulus_size(key: BackendKey) -> int:
    """Byte length of the key's modulus, which is also the size of every signature it makes."""
    return (key.key_size + 7) // 8


def _public_part(key: BackendKey) -> rsa.RSAPublicKey:
    if isinstance(key, rsa.RSAPrivateKey):
        return key.public_key()
    return key


def load_private_pem(data: bytes) -> rsa.RSAPrivateKey:
    """Parses an unencrypted PEM private key.

    Args:
        data: PEM text, without a null terminator.

    Returns:
        The parsed RSA private key.

    Raises:
        CryptoFailureError: If the PEM is malformed, encrypted, or holds a non-RSA key.
    """
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise CryptoFailureError("Unable to parse PEM private key.") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise CryptoFailureError("PEM private key is not an RSA key.")
    return key


def load_public_pem(data: bytes) -> rsa.RSAPublicKey:
    """Parses a SubjectPublicKeyInfo PEM and extracts the RSA public key from it.

    Args:
        data: PEM text, without a null terminator.

    Returns:
        The parsed RSA public key.

    Raises:
        CryptoFailureError: If the PEM is malformed or holds a non-RSA key.
    """
    try:
        key = serialization.load_pem_public_key(data)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise CryptoFailureError("Unable to parse PEM public key.") from exc
    if not isinstance(key, rsa.RSAPublicKey):
        raise CryptoFailureError("PEM public key is not an RSA key.")
    return key


def dump_private_pem(key: BackendKey) -> bytes:
    """Serializes a private key to traditional PKCS#1 PEM, without passphrase.

    Raises:
        CryptoFailureError: If the key holds no private material or the backend cannot serialize it.
    """
    if not has_private(key):
        raise CryptoFailureError("Key holds no private material.")
    try:
        return key.private_bytes(serialization.Encoding.PEM, serialization.PrivateFormat.TraditionalOpenSSL,
                                 serialization.NoEncryption())
    except (ValueError, TypeError) as exc:
        raise CryptoFailureError("Unable to serialize private key.") from exc


def dump_public_pem(key: BackendKey) -> bytes:
    """Serializes the public half of a key to SubjectPublicKeyInfo PEM.

    Raises:
        CryptoFailureError: If the backend cannot serialize the key.
    """
    try:
        return _public_part(key).public_bytes(serialization.Encoding.PEM,
                                              serialization.PublicFormat.SubjectPublicKeyInfo)
    except (ValueError, TypeError) as exc:
        raise CryptoFailureError("Unable to serialize public key.") from exc


def sign(key: BackendKey, digest: bytes, algorithm: hashes.HashAlgorithm) -> bytes:
    """Produces a PKCS#1 v1.5 signature over an already computed digest.

    Args:
        key: The signing key.
        digest: Output of `algorithm` over the message.
        algorithm: The hash algorithm that produced `digest`.

    Returns:
        The raw signature.

    Raises:
        CryptoFailureError: If the key holds no private material or the backend refuses to sign.
    """
    if not has_private(key):
        raise CryptoFailureError("Key holds no private material.")
    try:
        return key.sign(digest, padding.PKCS1v15(), utils.Prehashed(algorithm))
    except (ValueError, TypeError) as exc:
        raise CryptoFailureError("Signing failed.") from exc


def verify(key: BackendKey, signature: bytes, digest: bytes, algorithm: hashes.HashAlgorithm) -> None:
    """Checks a PKCS#1 v1.5 signature over an already computed digest.

    Raises:
        CryptoFailureError: On any mismatch, malformed signature or malformed digest alike.
    """
    try:
        _public_part(key).verify(signature, digest, padding.PKCS1v15(), utils.Prehashed(algorithm))
    except (InvalidSignature, ValueError, TypeError) as exc:
        raise CryptoFailureError("Signature verification failed.") from exc


def generate(bits: int, exponent: int) -> rsa.RSAPrivateKey:
    """Generates raw RSA key material.

    Args:
        bits: Modulus size in bits.
        exponent: The public exponent.

    Returns:
        A fresh private key.

    Raises:
        CryptoFailureError: If the backend rejects the parameters or generation fails.
    """
    try:
        return rsa.generate_private_key(public_exponent=exponent, key_size=bits)
    except (ValueError, TypeError, OverflowError) as exc:
        logger.warning("Backend refused to generate a %d-bit key with exponent %d: %s", bits, exponent, exc)
        raise CryptoFailureError("Key generation failed.") from exc
