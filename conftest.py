"""Configures pytest further and provides shared key material."""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
import pytest

TARGET_SIZES = [1024, 2048, pytest.param(4096, marks=pytest.mark.slow)]
_generated: dict[int, rsa.RSAPrivateKey] = {}


def pytest_addoption(parser):
    parser.addoption("--skip-slow", action="store_true", default=False, help="skip slower tests")
    parser.addoption("--run-extreme", action="store_true", default=False, help="run extreme value extremely slow tests")


def pytest_collection_modifyitems(config, items):
    skipdict = {}
    if config.getoption("--skip-slow"):
        skipdict["slow"] = pytest.mark.skip(reason="Slow test: needs no --skip-slow option")
    if not config.getoption("--run-extreme"):
        skipdict["extreme"] = pytest.mark.skip(reason="Extreme test: needs --run-extreme option")
    if not skipdict:
        return
    for item in items:
        for k, v in skipdict.items():
            if k in item.keywords:
                item.add_marker(v)


def reference_key(size: int) -> rsa.RSAPrivateKey:
    """A cached key generated straight through `cryptography`, used as the reference implementation."""
    if size not in _generated:
        _generated[size] = rsa.generate_private_key(public_exponent=65537, key_size=size)
    return _generated[size]


def private_pem(key: rsa.RSAPrivateKey, fmt=serialization.PrivateFormat.TraditionalOpenSSL) -> bytes:
    """Null terminated PEM of a reference private key."""
    return key.private_bytes(serialization.Encoding.PEM, fmt, serialization.NoEncryption()) + b"\x00"


def public_pem(key: rsa.RSAPrivateKey) -> bytes:
    """Null terminated SubjectPublicKeyInfo PEM of a reference key."""
    return key.public_key().public_bytes(serialization.Encoding.PEM,
                                         serialization.PublicFormat.SubjectPublicKeyInfo) + b"\x00"


@pytest.fixture(scope="session", params=TARGET_SIZES)
def keyset(request) -> tuple[rsa.RSAPrivateKey, bytes, bytes]:
    """(reference key, private PEM, public PEM) for each target size."""
    key = reference_key(request.param)
    return key, private_pem(key), public_pem(key)


@pytest.fixture(scope="session")
def small_keyset() -> tuple[rsa.RSAPrivateKey, bytes, bytes]:
    """The smallest keyset only, for tests that do not depend on the key size."""
    key = reference_key(1024)
    return key, private_pem(key), public_pem(key)
