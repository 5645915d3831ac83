"""Result codes and the exception types raised by every public operation.

Each exception carries the `Result` code of its kind, so callers that prefer codes over exception types can branch on
`exc.result` alone.

Typical usage example:

    try:
        key.verify(HashType.SHA256, digest, signature)
    except CryptoFailureError:
        print("Signature rejected.")
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import enum


class Result(enum.Enum):
    """Outcome kinds shared by all key operations."""
    OK = 0
    INVALID_PARAMETER = 1
    BUFFER_TOO_SMALL = 2
    FAILURE = 3
    UNEXPECTED = 4


class RSAKeyError(Exception):
    """Base class for all key manager errors.

    Attributes:
        result: The result code of this error kind.
    """
    result: Result = Result.UNEXPECTED


class InvalidParameterError(RSAKeyError, ValueError):
    """The caller broke the contract of an operation, e.g. passed an empty buffer or a released handle."""
    result = Result.INVALID_PARAMETER


class BufferTooSmallError(RSAKeyError, ValueError):
    """The output buffer cannot hold the produced data. Nothing was written.

    Attributes:
        required_size: The number of bytes needed to complete the call.
    """
    result = Result.BUFFER_TOO_SMALL

    def __init__(self, required_size: int) -> None:
        super().__init__(f"Buffer too small, {required_size} bytes required.")
        self.required_size = required_size


class CryptoFailureError(RSAKeyError, RuntimeError):
    """The cryptographic operation itself failed (parse, sign, verify or generation)."""
    result = Result.FAILURE


class UnexpectedError(RSAKeyError, RuntimeError):
    """An internal invariant broke. Signals a defect in the backend or this package."""
    result = Result.UNEXPECTED
