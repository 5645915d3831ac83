"""RSA key pair generation into a pair of key handles.

The backend generates the raw key material. Both halves are then serialized to PEM and imported back through
`RSAKey.read_private_pem` and `RSAKey.read_public_pem`, so generated handles pass exactly the same validation as keys
read from outside.

Typical usage example:

    priv, pub = RSAKey(), RSAKey()
    generate_key_pair(3072, 65537, priv, pub)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import logging
import typing

from rsakeys import backend
from rsakeys.errors import CryptoFailureError
from rsakeys.errors import InvalidParameterError
from rsakeys.errors import RSAKeyError
from rsakeys.rsa import RSAKey
from rsakeys.rsa import terminate_pem

logger = logging.getLogger(__name__)

DEFAULT_EXPONENT: int = 65537
# Native int and unsigned long ranges of the backend's generation call.
MAX_BITS: int = 2**31 - 1
MAX_EXPONENT: int = 2**64 - 1


def _check_range(value: typing.Any, upper: int, name: str) -> None:
    """Rejects non-integers and values outside [0, upper]."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameterError(f"{name} must be an integer.")
    if not 0 <= value <= upper:
        raise InvalidParameterError(f"{name} must be in range [0, {upper}].")


def _release(*keys: RSAKey) -> None:
    """Frees whichever of the handles are valid."""
    for key in keys:
        if key.is_valid:
            key.free()


def generate_key_pair(bits: int, exponent: int, private_key: RSAKey, public_key: RSAKey) -> None:
    """Generates an RSA key pair into two handles.

    Both handles are emptied up front. Either both end up valid or, on any error, both end up empty.

    Args:
        bits: The modulus size in bits.
        exponent: The public exponent. 65537 is recommended.
        private_key: Handle to receive the private key.
        public_key: Handle to receive the public key. Must be a different handle.

    Raises:
        InvalidParameterError: If the handles are missing or identical, or `bits`/`exponent` are out of the native
            ranges.
        CryptoFailureError: If the backend cannot generate the pair or the generated key fails to re-import.
    """
    if not isinstance(private_key, RSAKey) or not isinstance(public_key, RSAKey):
        raise InvalidParameterError("Both output key handles are required.")
    if private_key is public_key:
        raise InvalidParameterError("Private and public outputs must be distinct handles.")
    private_key._clear()  # pylint: disable=protected-access
    public_key._clear()  # pylint: disable=protected-access
    _check_range(bits, MAX_BITS, "Bit length")
    _check_range(exponent, MAX_EXPONENT, "Exponent")

    backend.initialize()
    logger.debug("Generating %d-bit key pair with exponent %d.", bits, exponent)
    generated = backend.generate(bits, exponent)
    try:
        private_key.read_private_pem(terminate_pem(backend.dump_private_pem(generated)))
        public_key.read_public_pem(terminate_pem(backend.dump_public_pem(generated)))
    except RSAKeyError as exc:
        _release(private_key, public_key)
        raise CryptoFailureError("Generated key pair could not be loaded.") from exc
    except BaseException:
        _release(private_key, public_key)
        raise
