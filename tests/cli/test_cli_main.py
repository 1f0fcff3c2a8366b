"""Tests for the tiercache CLI."""

import logging
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from tiercache import __version__
from tiercache.access import CacheAccess
from tiercache.cli.main import app
from tiercache.entries import BytesWriter
from tiercache.errors import CacheCloseError
from tiercache.keys import CacheKey
from tiercache.stores.disk import DiskStore
from tiercache.stores.memory import InMemoryStore

runner = CliRunner()


@pytest.fixture(autouse=True)
def reset_tiercache_logger():
    yield
    logger = logging.getLogger("tiercache")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()


@pytest.fixture
def tiers(tmp_path, config_home):
    """Local disk tier and in-memory remote tier used by the CLI."""
    local = DiskStore(tmp_path / "local")
    remote = InMemoryStore()
    with patch(
        "tiercache.cli.main.build_cache_access",
        side_effect=lambda config: CacheAccess(local, remote),
    ):
        yield local, remote


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestGetCommand:
    """Tests for 'get' command."""

    def test_fetches_local_and_remote_entries(self, tiers, tmp_path):
        local, remote = tiers
        local_key = CacheKey.of_bytes(b"local")
        remote_key = CacheKey.of_bytes(b"remote")
        local.store(local_key, BytesWriter(b"local"))
        remote.store(remote_key, BytesWriter(b"remote"))
        out_dir = tmp_path / "out"

        result = runner.invoke(
            app, ["get", local_key.hash_code, remote_key.hash_code, "-o", str(out_dir)]
        )

        assert result.exit_code == 0, result.output
        assert (out_dir / local_key.hash_code).read_bytes() == b"local"
        assert (out_dir / remote_key.hash_code).read_bytes() == b"remote"
        assert local.contains(remote_key)

    def test_missing_entry_reported(self, tiers, tmp_path):
        key = CacheKey.of_bytes(b"nowhere")

        result = runner.invoke(app, ["get", key.hash_code, "-o", str(tmp_path / "out")])

        assert result.exit_code == 0
        assert "Fetched Entries" in result.output
        assert not (tmp_path / "out" / key.hash_code).exists()

    def test_stale_output_file_not_reported_found(self, tiers, tmp_path):
        """A file left by an earlier run does not count as fetched."""
        key = CacheKey.of_bytes(b"gone")
        out_dir = tmp_path / "out"
        out_dir.mkdir()
        (out_dir / key.hash_code).write_bytes(b"from an earlier run")

        result = runner.invoke(app, ["get", key.hash_code, "-o", str(out_dir)])

        assert result.exit_code == 0, result.output
        assert "missing" in result.output
        assert "found" not in result.output

    def test_interrupted_read_leaves_no_output(self, tmp_path, config_home):
        """An entry whose read fails midway is neither written nor reported found."""

        class BrokenReader:
            def read(self, size=-1):
                raise ConnectionResetError("r2-reset")

        remote = MagicMock()
        remote.load.side_effect = lambda key, consumer: consumer(BrokenReader())
        access = CacheAccess(DiskStore(tmp_path / "local"), remote)
        key = CacheKey.of_bytes(b"x")
        out_dir = tmp_path / "out"

        with patch("tiercache.cli.main.build_cache_access", return_value=access):
            result = runner.invoke(app, ["get", key.hash_code, "-o", str(out_dir)])

        assert result.exit_code == 1
        assert "found" not in result.output
        assert list(out_dir.iterdir()) == []

    def test_duplicate_hashes_fetched_once(self, tmp_path, config_home):
        local = DiskStore(tmp_path / "local")
        remote = MagicMock(wraps=InMemoryStore())
        key = CacheKey.of_bytes(b"dup")
        local.store(key, BytesWriter(b"dup"))
        access = CacheAccess(local, remote, max_workers=4)
        out_dir = tmp_path / "out"

        with patch.object(local, "load", wraps=local.load) as local_load, patch(
            "tiercache.cli.main.build_cache_access", return_value=access
        ):
            result = runner.invoke(
                app, ["get", key.hash_code, key.hash_code, "-o", str(out_dir)]
            )

        assert result.exit_code == 0, result.output
        assert local_load.call_count == 1
        assert (out_dir / key.hash_code).read_bytes() == b"dup"

    def test_invalid_hash(self, tiers):
        result = runner.invoke(app, ["get", "not-a-hash"])

        assert result.exit_code == 1
        assert "Invalid cache key" in result.output

    def test_remote_failure_exits_nonzero(self, tmp_path, config_home):
        remote = MagicMock()
        remote.load.side_effect = ConnectionError("r2-unreachable")
        access = CacheAccess(DiskStore(tmp_path / "local"), remote)
        key = CacheKey.of_bytes(b"x")

        with patch("tiercache.cli.main.build_cache_access", return_value=access):
            result = runner.invoke(app, ["get", key.hash_code, "-o", str(tmp_path / "out")])

        assert result.exit_code == 1
        assert "r2-unreachable" in result.output

    def test_close_failure_exits_nonzero(self, tmp_path, config_home):
        access = MagicMock()
        access.close.side_effect = CacheCloseError([OSError("stuck")])
        key = CacheKey.of_bytes(b"x")

        with patch("tiercache.cli.main.build_cache_access", return_value=access):
            result = runner.invoke(app, ["get", key.hash_code, "-o", str(tmp_path / "out")])

        assert result.exit_code == 1
        assert "Error closing cache" in result.output

    def test_unconfigured_endpoint(self, tmp_path, config_home, r2_env):
        key = CacheKey.of_bytes(b"x")

        result = runner.invoke(app, ["get", key.hash_code, "-o", str(tmp_path / "out")])

        assert result.exit_code == 1
        assert "R2 endpoint not configured" in result.output

    def test_explicit_config_missing(self, tmp_path):
        key = CacheKey.of_bytes(b"x")

        result = runner.invoke(
            app, ["get", key.hash_code, "--config", str(tmp_path / "missing.toml")]
        )

        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestPutCommand:
    """Tests for 'put' command."""

    def test_stores_files_in_both_tiers(self, tiers, tmp_path):
        local, remote = tiers
        file_path = tmp_path / "artifact.bin"
        file_path.write_bytes(b"artifact bytes")
        key = CacheKey.of_file(file_path)

        result = runner.invoke(app, ["put", str(file_path)])

        assert result.exit_code == 0, result.output
        assert key.hash_code in result.output
        assert remote.get(key) == b"artifact bytes"
        assert local.contains(key)

    def test_missing_file(self, tiers, tmp_path):
        result = runner.invoke(app, ["put", str(tmp_path / "nope.bin")])

        assert result.exit_code == 1
        assert "File not found" in result.output


class TestLocalCommands:
    """Tests for 'local' subcommands."""

    def test_size(self, config_home):
        result = runner.invoke(app, ["local", "size"])

        assert result.exit_code == 0
        assert "MB" in result.output

    def test_clear(self, config_home):
        from tiercache.config import ensure_config_exists

        store = DiskStore(ensure_config_exists().local_dir)
        store.store(CacheKey.of_bytes(b"x"), BytesWriter(b"x"))

        result = runner.invoke(app, ["local", "clear"])

        assert result.exit_code == 0
        assert "Removed 1 file(s)" in result.output
        assert store.get_cache_size() == 0


class TestConfigCommand:
    """Tests for 'config' command."""

    def test_path(self, config_home):
        result = runner.invoke(app, ["config", "path"])

        assert result.exit_code == 0
        assert "config.toml" in result.output

    def test_show(self, config_home):
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "R2 Bucket" in result.output
        assert "tiercache" in result.output

    def test_set_persists(self, config_home):
        result = runner.invoke(app, ["config", "set", "access.max_workers", "6"])

        assert result.exit_code == 0
        assert "max_workers = 6" in (config_home / "config.toml").read_text()

    def test_set_invalid_key(self, config_home):
        result = runner.invoke(app, ["config", "set", "bogus.key", "1"])

        assert result.exit_code == 1
        assert "Invalid config key" in result.output

    def test_set_requires_value(self, config_home):
        result = runner.invoke(app, ["config", "set", "r2.bucket"])

        assert result.exit_code == 1

    def test_unknown_action(self, config_home):
        result = runner.invoke(app, ["config", "explode"])

        assert result.exit_code == 1
        assert "Unknown action" in result.output
