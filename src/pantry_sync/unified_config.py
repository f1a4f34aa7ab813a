"""Unified configuration for pantry-sync.

Configuration is stored in ~/.pantry-sync/config.toml
Record data is stored in ~/.pantry-sync/records.db (SQLite)
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def get_pantry_sync_dir() -> Path:
    """Get pantry-sync data directory.

    Priority:
    1. PANTRY_SYNC_DIR environment variable
    2. ~/.pantry-sync/
    """
    env_dir = os.environ.get("PANTRY_SYNC_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".pantry-sync"


def _non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")


@dataclass
class SyncSettings:
    """Remote endpoint and sync timing."""

    base_url: str = ""
    request_timeout_seconds: float = 30.0
    debounce_seconds: float = 0.3
    probe_interval_seconds: float = 5.0
    sync_interval_seconds: float = 0.0  # 0 disables periodic sync
    max_write_attempts: int = 3

    def __post_init__(self) -> None:
        _non_negative("debounce_seconds", self.debounce_seconds)
        _non_negative("probe_interval_seconds", self.probe_interval_seconds)
        _non_negative("sync_interval_seconds", self.sync_interval_seconds)
        if self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")
        if self.max_write_attempts < 1:
            raise ValueError("max_write_attempts must be >= 1")
        if self.base_url and not self.base_url.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_url": self.base_url,
            "request_timeout_seconds": self.request_timeout_seconds,
            "debounce_seconds": self.debounce_seconds,
            "probe_interval_seconds": self.probe_interval_seconds,
            "sync_interval_seconds": self.sync_interval_seconds,
            "max_write_attempts": self.max_write_attempts,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncSettings:
        return cls(
            base_url=str(data.get("base_url", "")),
            request_timeout_seconds=float(data.get("request_timeout_seconds", 30.0)),
            debounce_seconds=float(data.get("debounce_seconds", 0.3)),
            probe_interval_seconds=float(data.get("probe_interval_seconds", 5.0)),
            sync_interval_seconds=float(data.get("sync_interval_seconds", 0.0)),
            max_write_attempts=int(data.get("max_write_attempts", 3)),
        )


@dataclass
class NotificationSettings:
    """Expiry notification settings."""

    enabled: bool = True
    window_days: int = 3

    def __post_init__(self) -> None:
        _non_negative("window_days", self.window_days)

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "window_days": self.window_days,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NotificationSettings:
        return cls(
            enabled=bool(data.get("enabled", True)),
            window_days=int(data.get("window_days", 3)),
        )


@dataclass
class UnifiedConfig:
    """Unified configuration for pantry-sync.

    Storage location: ~/.pantry-sync/config.toml
    Record database: ~/.pantry-sync/records.db
    """

    # Base directory for all pantry-sync data
    data_dir: Path = field(default_factory=get_pantry_sync_dir)

    sync: SyncSettings = field(default_factory=SyncSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)

    version: str = "1.0"

    @classmethod
    def load(cls, config_path: Path | None = None) -> UnifiedConfig:
        """Load configuration from file, or defaults if it doesn't exist.

        Environment overrides (PANTRY_SYNC_BASE_URL) are applied last.
        """
        if config_path is None:
            data_dir = get_pantry_sync_dir()
            config_path = data_dir / "config.toml"
        else:
            data_dir = config_path.parent

        data: dict[str, Any] = {}
        if config_path.exists():
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        else:
            logger.debug("No config at %s, using defaults", config_path)

        config = cls.from_dict(data, data_dir=data_dir)
        config.apply_env_overrides()
        return config

    @classmethod
    def from_dict(cls, data: dict[str, Any], data_dir: Path | None = None) -> UnifiedConfig:
        return cls(
            data_dir=data_dir if data_dir is not None else get_pantry_sync_dir(),
            sync=SyncSettings.from_dict(data.get("sync", {})),
            notifications=NotificationSettings.from_dict(data.get("notifications", {})),
            version=str(data.get("version", "1.0")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "sync": self.sync.to_dict(),
            "notifications": self.notifications.to_dict(),
        }

    def apply_env_overrides(self) -> None:
        base_url = os.environ.get("PANTRY_SYNC_BASE_URL")
        if base_url:
            self.sync = SyncSettings.from_dict({**self.sync.to_dict(), "base_url": base_url})

    def save(self) -> None:
        """Save configuration to TOML file (atomic write via temp+rename)."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # Build TOML content manually (no toml write dependency)
        lines = [
            "# pantry-sync configuration",
            "",
            f"version = {json.dumps(self.version)}",
            "",
            "[sync]",
            f"base_url = {json.dumps(self.sync.base_url)}",
            f"request_timeout_seconds = {float(self.sync.request_timeout_seconds)}",
            f"debounce_seconds = {float(self.sync.debounce_seconds)}",
            f"probe_interval_seconds = {float(self.sync.probe_interval_seconds)}",
            f"sync_interval_seconds = {float(self.sync.sync_interval_seconds)}",
            f"max_write_attempts = {self.sync.max_write_attempts}",
            "",
            "# Expiry notifications",
            "[notifications]",
            f"enabled = {'true' if self.notifications.enabled else 'false'}",
            f"window_days = {self.notifications.window_days}",
        ]

        # Atomic write: write to temp file, then rename
        content = "\n".join(lines) + "\n"
        fd, tmp_path = tempfile.mkstemp(dir=str(self.data_dir), suffix=".toml.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            Path(tmp_path).replace(self.config_path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    @property
    def config_path(self) -> Path:
        """Get path to config file."""
        return self.data_dir / "config.toml"

    @property
    def db_path(self) -> Path:
        """Get path to the local record database."""
        return self.data_dir / "records.db"


# Singleton instance for easy access
_config: UnifiedConfig | None = None


def get_config(reload: bool = False) -> UnifiedConfig:
    """Get the unified configuration (singleton).

    Args:
        reload: Force reload from disk

    Returns:
        UnifiedConfig instance
    """
    global _config
    if _config is None or reload:
        _config = UnifiedConfig.load()
    return _config
