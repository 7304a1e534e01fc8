"""Configuration management for DailyChamp."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .adapters.webdav import DEFAULT_FILE_PATH
from .sync import BASE_INTERVAL, GRACE_PERIOD

logger = logging.getLogger(__name__)

DAILYCHAMP_HOME = Path(os.environ.get("DAILYCHAMP_HOME", Path.home() / "dailychamp"))
CONFIG_FILE = DAILYCHAMP_HOME / "config" / "dailychamp.conf"
CREDENTIALS_FILE = DAILYCHAMP_HOME / "config" / ".credentials.json"
DEFAULT_JOURNAL_FILE = DAILYCHAMP_HOME / "daily.md"


@dataclass
class Config:
    """DailyChamp configuration."""

    journal_file: str = ""
    nextcloud_url: str = ""
    nextcloud_username: str = ""
    nextcloud_path: str = DEFAULT_FILE_PATH
    sync_interval: int = BASE_INTERVAL
    sync_grace_period: int = GRACE_PERIOD

    @property
    def journal_path(self) -> Path:
        if self.journal_file:
            return Path(self.journal_file).expanduser()
        return DEFAULT_JOURNAL_FILE

    @property
    def sync_enabled(self) -> bool:
        return bool(self.nextcloud_url and self.nextcloud_username)


@dataclass
class Credentials:
    """Nextcloud app password."""

    password: str = ""

    def save(self, path: Path | None = None) -> None:
        """Save credentials to file, readable by the owner only."""
        path = path or CREDENTIALS_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"password": self.password}))
        path.chmod(0o600)

    @classmethod
    def load(cls, path: Path | None = None) -> "Credentials":
        """Load credentials from file."""
        path = path or CREDENTIALS_FILE
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text())
            return cls(password=data.get("password", ""))
        except (json.JSONDecodeError, AttributeError):
            logger.warning(f"Ignoring unreadable credentials file {path}")
            return cls()


def _unquote(value: str) -> str:
    """Strip quotes, or an inline comment from an unquoted value."""
    if value[:1] in ('"', "'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        return value.split("#")[0].strip()
    return value


def _parse_seconds(key: str, value: str, default: int) -> int:
    try:
        seconds = int(value)
    except ValueError:
        logger.warning(f"Invalid {key.upper()} value {value!r}, using {default}")
        return default
    if seconds <= 0:
        logger.warning(f"{key.upper()} must be positive, using {default}")
        return default
    return seconds


def load_config(path: Path | None = None) -> Config:
    """Load configuration from dailychamp.conf file."""
    path = path or CONFIG_FILE
    config = Config()

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "journal_file":
                config.journal_file = value
            case "nextcloud_url":
                config.nextcloud_url = value.rstrip("/")
            case "nextcloud_username":
                config.nextcloud_username = value
            case "nextcloud_path":
                config.nextcloud_path = value if value.startswith("/") else f"/{value}"
            case "sync_interval":
                config.sync_interval = _parse_seconds(key, value, BASE_INTERVAL)
            case "sync_grace_period":
                config.sync_grace_period = _parse_seconds(key, value, GRACE_PERIOD)
            case _:
                logger.debug(f"Unknown config key: {key}")

    return config
