# pylint: disable=missing-module-docstring,redefined-outer-name,protected-access
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import hashlib

from cryptography.hazmat.primitives import serialization
import pytest

import rsakeys
from rsakeys import HashType
from rsakeys import keygen

test_sizes = [
    1024,
    2048,
    pytest.param(3072, marks=pytest.mark.slow),
    pytest.param(4096, marks=pytest.mark.slow),
    pytest.param(7680, marks=pytest.mark.extreme),
]


@pytest.fixture(scope="module")
def keypair() -> tuple[rsakeys.RSAKey, rsakeys.RSAKey]:
    priv, pub = rsakeys.RSAKey(), rsakeys.RSAKey()
    keygen.generate_key_pair(1024, keygen.DEFAULT_EXPONENT, priv, pub)
    return priv, pub


def valid_pair(small_keyset) -> tuple[rsakeys.RSAKey, rsakeys.RSAKey]:
    """Handles holding a key already, to check they get cleared."""
    _, priv_pem, pub_pem = small_keyset
    return rsakeys.RSAKey.from_private_pem(priv_pem), rsakeys.RSAKey.from_public_pem(pub_pem)


@pytest.mark.parametrize("size", test_sizes)
def test_generate(size):
    priv, pub = rsakeys.RSAKey(), rsakeys.RSAKey()
    keygen.generate_key_pair(size, 65537, priv, pub)
    assert priv.is_private
    assert pub.is_valid and not pub.is_private
    interkey = serialization.load_pem_private_key(priv.private_pem().rstrip(b"\x00"), None)
    assert interkey.key_size == size
    assert interkey.public_key().public_numbers().e == 65537
    assert priv.public_pem() == pub.public_pem()


def test_generate_small_exponent():
    priv, pub = rsakeys.RSAKey(), rsakeys.RSAKey()
    keygen.generate_key_pair(1024, 3, priv, pub)
    interkey = serialization.load_pem_public_key(pub.public_pem().rstrip(b"\x00"))
    assert interkey.public_numbers().e == 3


@pytest.mark.parametrize("hashf", list(HashType))
def test_generated_sign_verify(keypair, hashf):
    priv, pub = keypair
    digest = hashlib.new(hashf.value, b"Hi there!").digest()
    signature = priv.sign_digest(hashf, digest)
    pub.verify(hashf, digest, signature)
    flipped = bytes([digest[0] ^ 0x80]) + digest[1:]
    with pytest.raises(rsakeys.CryptoFailureError):
        pub.verify(hashf, flipped, signature)


@pytest.mark.parametrize("hashf", list(HashType))
def test_generated_export_round_trip(keypair, hashf):
    priv, pub = keypair
    digest = hashlib.new(hashf.value, b"Round and round.").digest()
    with rsakeys.RSAKey.from_private_pem(priv.private_pem()) as reimported:
        signature = reimported.sign_digest(hashf, digest)
    pub.verify(hashf, digest, signature)
    with rsakeys.RSAKey.from_public_pem(pub.public_pem()) as reimported:
        reimported.verify(hashf, digest, priv.sign_digest(hashf, digest))


def test_generate_into_released_handles(keypair):
    priv, pub = rsakeys.RSAKey(), rsakeys.RSAKey()
    keygen.generate_key_pair(1024, 65537, priv, pub)
    first = pub.public_pem()
    priv.free()
    pub.free()
    keygen.generate_key_pair(1024, 65537, priv, pub)
    assert priv.is_valid and pub.is_valid
    assert pub.public_pem() != first


@pytest.mark.parametrize("bits,exponent", [
    (2**31, 65537),
    (-1, 65537),
    ("2048", 65537),
    (2048.0, 65537),
    (True, 65537),
    (2048, 2**64),
    (2048, -3),
    (2048, None),
])
def test_generate_validates_range(mocker, small_keyset, bits, exponent):
    gen = mocker.patch("rsakeys.backend.generate")
    priv, pub = valid_pair(small_keyset)
    with pytest.raises(rsakeys.InvalidParameterError):
        keygen.generate_key_pair(bits, exponent, priv, pub)
    gen.assert_not_called()
    assert not priv.is_valid
    assert not pub.is_valid


def test_generate_accepts_native_limits(mocker):
    gen = mocker.patch("rsakeys.backend.generate", side_effect=rsakeys.CryptoFailureError("Refused."))
    with pytest.raises(rsakeys.CryptoFailureError):
        keygen.generate_key_pair(keygen.MAX_BITS, keygen.MAX_EXPONENT, rsakeys.RSAKey(), rsakeys.RSAKey())
    gen.assert_called_once_with(keygen.MAX_BITS, keygen.MAX_EXPONENT)


def test_generate_validates_handles(small_keyset):
    key = rsakeys.RSAKey()
    with pytest.raises(rsakeys.InvalidParameterError):
        keygen.generate_key_pair(1024, 65537, key, key)
    with pytest.raises(rsakeys.InvalidParameterError):
        keygen.generate_key_pair(1024, 65537, None, key)
    with pytest.raises(rsakeys.InvalidParameterError):
        keygen.generate_key_pair(1024, 65537, key, small_keyset[2])


@pytest.mark.parametrize("bits,exponent", [(256, 65537), (0, 65537), (1024, 4), (1024, 1)])
def test_generate_backend_refuses(small_keyset, bits, exponent):
    priv, pub = valid_pair(small_keyset)
    with pytest.raises(rsakeys.CryptoFailureError, match="Key generation failed."):
        keygen.generate_key_pair(bits, exponent, priv, pub)
    assert not priv.is_valid
    assert not pub.is_valid


@pytest.mark.parametrize("target", ["rsakeys.backend.load_public_pem", "rsakeys.backend.dump_public_pem"])
def test_generate_public_failure_frees_private(mocker, target):
    mocker.patch(target, side_effect=rsakeys.CryptoFailureError("Injected."))
    priv, pub = rsakeys.RSAKey(), rsakeys.RSAKey()
    with pytest.raises(rsakeys.CryptoFailureError, match="could not be loaded") as excinfo:
        keygen.generate_key_pair(1024, 65537, priv, pub)
    assert excinfo.value.__cause__ is not None
    assert not priv.is_valid
    assert not pub.is_valid


def test_generate_private_failure(mocker):
    mocker.patch("rsakeys.backend.load_private_pem", side_effect=rsakeys.CryptoFailureError("Injected."))
    public_loader = mocker.spy(rsakeys.backend, "load_public_pem")
    priv, pub = rsakeys.RSAKey(), rsakeys.RSAKey()
    with pytest.raises(rsakeys.CryptoFailureError):
        keygen.generate_key_pair(1024, 65537, priv, pub)
    public_loader.assert_not_called()
    assert not priv.is_valid
    assert not pub.is_valid


def test_generate_reimport_validation_failure(mocker):
    mocker.patch("rsakeys.keygen.terminate_pem", side_effect=lambda pem: pem)
    priv, pub = rsakeys.RSAKey(), rsakeys.RSAKey()
    with pytest.raises(rsakeys.CryptoFailureError) as excinfo:
        keygen.generate_key_pair(1024, 65537, priv, pub)
    assert isinstance(excinfo.value.__cause__, rsakeys.InvalidParameterError)
    assert not priv.is_valid


@pytest.mark.parametrize("error", [ValueError("Injected."), KeyboardInterrupt()])
def test_generate_foreign_error_frees_private(mocker, error):
    private_loader = mocker.spy(rsakeys.backend, "load_private_pem")
    mocker.patch("rsakeys.backend.dump_public_pem", side_effect=error)
    priv, pub = rsakeys.RSAKey(), rsakeys.RSAKey()
    with pytest.raises(type(error)):
        keygen.generate_key_pair(1024, 65537, priv, pub)
    private_loader.assert_called_once()
    assert not priv.is_valid
    assert not pub.is_valid

