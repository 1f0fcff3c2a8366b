"""Configuration management for tiercache.

Handles loading, saving, and validating TOML configuration stored in:
- macOS: ~/.config/tiercache/config.toml
- Linux: ~/.config/tiercache/config.toml (XDG_CONFIG_HOME)
- Windows: %APPDATA%\\tiercache\\config.toml
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import tomllib
import tomli_w

from tiercache.buffers import DEFAULT_BUFFER_SIZE


@dataclass
class CacheConfig:
    """Configuration for the tiered cache.

    Attributes:
        local_dir: Directory holding the local cache tier
        r2_bucket: Cloudflare R2 bucket name for the remote tier
        r2_endpoint_url: R2 endpoint URL
        r2_region: R2 region (usually "auto")
        r2_prefix: Key prefix for cache entries in the bucket
        max_workers: Threads used to process one batch
        buffer_size: Scratch buffer size for remote reads, in bytes
    """

    # Local tier
    local_dir: Path = field(default_factory=lambda: get_default_local_dir())

    # Cloudflare R2
    r2_bucket: str = "tiercache"
    r2_endpoint_url: str = ""
    r2_region: str = "auto"
    r2_prefix: str = "cache"

    # Access layer
    max_workers: int = 1
    buffer_size: int = DEFAULT_BUFFER_SIZE

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "CacheConfig":
        """Load configuration from TOML file.

        Args:
            path: Path to config file (defaults to standard location)

        Returns:
            CacheConfig instance with loaded values

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        if path is None:
            path = get_config_path()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        config = cls()

        if "local" in data:
            local_dir = data["local"].get("dir")
            if local_dir:
                config.local_dir = Path(local_dir).expanduser()

        if "r2" in data:
            r2 = data["r2"]
            config.r2_bucket = r2.get("bucket", config.r2_bucket)
            config.r2_endpoint_url = r2.get("endpoint_url", config.r2_endpoint_url)
            config.r2_region = r2.get("region", config.r2_region)
            config.r2_prefix = r2.get("prefix", config.r2_prefix)

        if "access" in data:
            access = data["access"]
            config.max_workers = int(access.get("max_workers", config.max_workers))
            config.buffer_size = int(access.get("buffer_size", config.buffer_size))

        config.apply_env_overrides()
        config.validate()
        return config

    def apply_env_overrides(self) -> None:
        """Apply R2 settings from the environment, which take precedence over the file."""
        for env_var, attr in _ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value:
                setattr(self, attr, value)

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ValueError: If a numeric setting is out of range
        """
        if self.max_workers < 1:
            raise ValueError(f"access.max_workers must be at least 1, got {self.max_workers}")
        if self.buffer_size < 1:
            raise ValueError(f"access.buffer_size must be positive, got {self.buffer_size}")

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to TOML file.

        Args:
            path: Path to save config (defaults to standard location)
        """
        if path is None:
            path = get_config_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "local": {"dir": str(self.local_dir)},
            "r2": {
                "bucket": self.r2_bucket,
                "endpoint_url": self.r2_endpoint_url,
                "region": self.r2_region,
                "prefix": self.r2_prefix,
            },
            "access": {
                "max_workers": self.max_workers,
                "buffer_size": self.buffer_size,
            },
        }

        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def get(self, key: str, default: Optional[str] = None):
        """Get a configuration value by key.

        Accepts either the TOML form ("r2.bucket") or the attribute name
        ("r2_bucket").

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        attr = _attribute_name(key)
        if attr is None:
            return default

        value = getattr(self, attr)
        if isinstance(value, Path):
            return str(value)
        return value

    def set(self, key: str, value: str) -> None:
        """Set a configuration value by key, preserving its type.

        Args:
            key: Configuration key ("access.max_workers" or "max_workers")
            value: New value as a string

        Raises:
            ValueError: If the key is unknown or the value cannot be converted
        """
        attr = _attribute_name(key)
        if attr is None:
            raise ValueError(f"Invalid config key: {key}")

        current = getattr(self, attr)
        if isinstance(current, bool):
            new_value = value.lower() in ("true", "1", "yes")
        elif isinstance(current, int):
            new_value = int(value)
        elif isinstance(current, Path):
            new_value = Path(value).expanduser()
        else:
            new_value = value

        setattr(self, attr, new_value)
        self.validate()


_ENV_OVERRIDES = {
    "TIERCACHE_R2_BUCKET": "r2_bucket",
    "TIERCACHE_R2_ENDPOINT_URL": "r2_endpoint_url",
    "TIERCACHE_R2_REGION": "r2_region",
}

_TOML_KEYS = {
    "local.dir": "local_dir",
    "r2.bucket": "r2_bucket",
    "r2.endpoint_url": "r2_endpoint_url",
    "r2.region": "r2_region",
    "r2.prefix": "r2_prefix",
    "access.max_workers": "max_workers",
    "access.buffer_size": "buffer_size",
}


def _attribute_name(key: str) -> Optional[str]:
    if key in _TOML_KEYS:
        return _TOML_KEYS[key]
    if key in _TOML_KEYS.values():
        return key
    return None


def get_config_dir() -> Path:
    """Get the platform-specific config directory.

    Returns:
        Path to the config directory for tiercache.
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "tiercache"
        return Path.home() / "AppData" / "Roaming" / "tiercache"

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "tiercache"
    return Path.home() / ".config" / "tiercache"


def get_config_path() -> Path:
    """Get the path to the config.toml file."""
    return get_config_dir() / "config.toml"


def get_default_local_dir() -> Path:
    """Get the default local cache directory."""
    return get_config_dir() / "cache"


def get_log_dir() -> Path:
    """Get the directory CLI log files are written to."""
    return get_config_dir() / "logs"


def ensure_config_exists() -> CacheConfig:
    """Ensure config file exists, creating default if needed.

    Returns:
        CacheConfig instance
    """
    config_path = get_config_path()

    if config_path.exists():
        return CacheConfig.load(config_path)

    config = CacheConfig()
    config.save(config_path)
    config.apply_env_overrides()
    return config
