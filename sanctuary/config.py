"""
Configuration management for record stores.

The configuration is stored as a TOML file in the store directory.
It names the note backend and the identity that owns new notes.
"""

import getpass
import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import tomli_w


CONFIG_FILENAME = "sanctuary.toml"
CONFIG_VERSION = 1

DEFAULT_BACKEND = "local"


def get_default_store_path() -> Path:
    """Store directory: SANCTUARY_STORE_PATH or ~/.sanctuary."""
    env = os.environ.get("SANCTUARY_STORE_PATH")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".sanctuary"


def _default_owner() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "local"


@dataclass
class RemoteConfig:
    """Connection details for the hosted note API."""
    api_url: str
    api_key: str


@dataclass
class StoreConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    backend: str = DEFAULT_BACKEND
    owner: str = field(default_factory=_default_owner)
    remote: Optional[RemoteConfig] = None

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    @property
    def db_path(self) -> Path:
        """Path to the local SQLite note database."""
        return self.path / "notes.db"

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def _apply_env_overrides(config: StoreConfig) -> StoreConfig:
    """Environment variables win over the TOML file."""
    owner = os.environ.get("SANCTUARY_OWNER")
    if owner:
        config.owner = owner

    api_url = os.environ.get("SANCTUARY_API_URL")
    api_key = os.environ.get("SANCTUARY_API_KEY")
    if api_url and api_key:
        config.remote = RemoteConfig(api_url=api_url, api_key=api_key)
        config.backend = "remote"
    return config


def load_config(store_path: Path) -> StoreConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    store = data.get("store", {})
    version = store.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    remote = None
    remote_section = data.get("remote")
    if remote_section:
        try:
            remote = RemoteConfig(
                api_url=remote_section["api_url"],
                api_key=remote_section["api_key"],
            )
        except KeyError as e:
            raise ValueError(f"[remote] section is missing {e.args[0]!r}") from None

    return StoreConfig(
        path=store_path,
        version=version,
        created=store.get("created", ""),
        backend=store.get("backend", DEFAULT_BACKEND),
        owner=store.get("owner") or _default_owner(),
        remote=remote,
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    data: dict = {
        "store": {
            "version": config.version,
            "created": config.created,
            "backend": config.backend,
            "owner": config.owner,
        },
    }
    if config.remote is not None:
        data["remote"] = {
            "api_url": config.remote.api_url,
            "api_key": config.remote.api_key,
        }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Optional[Path] = None) -> StoreConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    store_path = store_path if store_path is not None else get_default_store_path()
    config_path = store_path / CONFIG_FILENAME

    if config_path.exists():
        config = load_config(store_path)
    else:
        config = StoreConfig(path=store_path)
        save_config(config)
    return _apply_env_overrides(config)
