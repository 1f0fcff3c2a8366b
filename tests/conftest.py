"""Shared fixtures for tiercache tests."""

import io
from unittest.mock import MagicMock

import pytest

from tiercache.access import CacheAccess
from tiercache.keys import CacheKey
from tiercache.stores.memory import InMemoryStore


def read_all(entries: dict):
    """Processor that collects each entry's bytes into *entries*."""

    def processor(key, reader):
        entries.setdefault(key, []).append(reader.read())

    return processor


def load_only(store, key):
    """Read one key straight from a store, bypassing the access layer."""
    result = []
    found = store.load(key, lambda reader: result.append(reader.read()))
    return result[0] if found else None


@pytest.fixture
def key_a():
    return CacheKey.of_bytes(b"entry a")


@pytest.fixture
def key_b():
    return CacheKey.of_bytes(b"entry b")


@pytest.fixture
def local_store():
    """In-memory local tier wrapped so calls can be asserted."""
    return MagicMock(wraps=InMemoryStore())


@pytest.fixture
def remote_store():
    """In-memory remote tier wrapped so calls can be asserted."""
    return MagicMock(wraps=InMemoryStore())


@pytest.fixture
def access(local_store, remote_store):
    return CacheAccess(local_store, remote_store)


@pytest.fixture
def r2_env(monkeypatch):
    """Set both required R2 credential environment variables."""
    monkeypatch.setenv("TIERCACHE_R2_ACCESS_KEY_ID", "test-access-key")
    monkeypatch.setenv("TIERCACHE_R2_SECRET_ACCESS_KEY", "test-secret-key")


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Point the config directory at a temporary location."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("TIERCACHE_R2_BUCKET", raising=False)
    monkeypatch.delenv("TIERCACHE_R2_ENDPOINT_URL", raising=False)
    monkeypatch.delenv("TIERCACHE_R2_REGION", raising=False)
    return tmp_path / "xdg" / "tiercache"


class FailingStore:
    """Store whose operations raise the configured errors."""

    def __init__(self, load_error=None, store_error=None, close_error=None):
        self.load_error = load_error
        self.store_error = store_error
        self.close_error = close_error

    def load(self, key, consumer):
        if self.load_error:
            raise self.load_error
        return False

    def store(self, key, writer):
        if self.store_error:
            raise self.store_error
        writer.write_to(io.BytesIO())

    def close(self):
        if self.close_error:
            raise self.close_error
