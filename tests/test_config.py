"""
Tests for configuration loading.
"""

import hashlib

import pytest
from pydantic import ValidationError

from utilities.config import LibraryConfig, SecurityConfig


def make_config(**overrides):
    return LibraryConfig(_env_file=None, **overrides)


def test_defaults():
    config = make_config()

    assert config.mongodb_database == "e-libro"
    assert config.access_token_expire_seconds == 15
    assert config.refresh_token_expire_days == 7
    assert len(config.access_token_secret) >= 32


def test_security_derives_stable_key_and_iv():
    config = make_config(encryption_secret_key="seed")

    first, second = config.security(), config.security()

    assert first.encryption_key == hashlib.sha256(b"seed").digest()
    assert len(first.encryption_iv) == 16
    assert first == second


def test_explicit_iv():
    config = make_config(encryption_iv="00" * 16)

    assert config.security().encryption_iv == bytes(16)


def test_ttls_flow_into_security():
    security = make_config(access_token_expire_seconds=60, refresh_token_expire_days=1).security()

    assert security.access_token_ttl.total_seconds() == 60
    assert security.refresh_token_ttl.days == 1


@pytest.mark.parametrize("overrides", [
    {"mongodb_url": "http://localhost"},
    {"encryption_iv": "abcd"},
    {"access_token_secret": "s" * 40, "refresh_token_secret": "s" * 40},
    {"access_token_secret": "too-short-secret"},
    {"log_level": "LOUD"},
    {"access_token_expire_seconds": 0},
])
def test_invalid_settings(overrides):
    with pytest.raises(ValidationError):
        make_config(**overrides)


def test_security_config_is_frozen(security_config):
    with pytest.raises(ValidationError):
        security_config.jwt_algorithm = "HS512"


def test_security_config_rejects_bad_key():
    with pytest.raises(ValidationError):
        SecurityConfig(
            encryption_key=b"short",
            encryption_iv=b"i" * 16,
            access_token_secret="a",
            refresh_token_secret="b",
        )
