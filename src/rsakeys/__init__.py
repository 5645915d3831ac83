"""RSA Key Management.

Provides opaque RSA key handles with PEM import/export, PKCS#1 v1.5 signing and verification of SHA-256 and SHA-512
digests, and key pair generation. All RSA math and encoding is carried out by the `cryptography` package.

Typical usage example:

    priv, pub = RSAKey(), RSAKey()
    generate_key_pair(3072, 65537, priv, pub)
    digest = hashlib.sha256(b"Hi there!").digest()
    pub.verify(HashType.SHA256, digest, priv.sign_digest(HashType.SHA256, digest))
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from rsakeys.errors import BufferTooSmallError
from rsakeys.errors import CryptoFailureError
from rsakeys.errors import InvalidParameterError
from rsakeys.errors import Result
from rsakeys.errors import RSAKeyError
from rsakeys.errors import UnexpectedError
from rsakeys.keygen import generate_key_pair
from rsakeys.rsa import HashType
from rsakeys.rsa import negotiate
from rsakeys.rsa import RSAKey

__version__ = "0.1.0"
__all__ = [
    "RSAKey",
    "HashType",
    "generate_key_pair",
    "negotiate",
    "Result",
    "RSAKeyError",
    "InvalidParameterError",
    "BufferTooSmallError",
    "CryptoFailureError",
    "UnexpectedError",
]
