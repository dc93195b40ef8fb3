"""Configuration management for the bot.

Provides a ConfigManager class that handles loading, updating, and persisting
bot configuration from YAML files with sensible defaults, plus typed views
of the sections the bootstrap code needs.
"""
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.client import DEFAULT_API_URL, DEFAULT_TIMEOUT
from storage.file_store import YAMLFileStore
from storage.fsm import Strategy

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "TELEGRAM_BOT_CONFIG"


DEFAULT_CONFIG: Dict[str, Any] = {
    "bot": {
        # name of the environment variable holding the token
        "token_env": "TELEGRAM_BOT_TOKEN",
        "api_url": DEFAULT_API_URL,
        "request_timeout": DEFAULT_TIMEOUT,
    },
    "polling": {
        "timeout": 30,
        "limit": 100,
        # empty: derived from the registered handlers
        "allowed_updates": [],
        "backoff_initial": 1.0,
        "backoff_max": 30.0,
        "backoff_factor": 2.0,
    },
    "fsm": {
        # memory | yaml
        "storage": "memory",
        "path": "fsm_state.yaml",
        "strategy": Strategy.USER_IN_CHAT.value,
    },
    "logging": {
        "level": "INFO",
    },
}


@dataclass
class BotSettings:
    token_env: str
    api_url: str
    request_timeout: float


@dataclass
class PollingSettings:
    timeout: int
    limit: int
    allowed_updates: Optional[List[str]]
    backoff_initial: float
    backoff_max: float
    backoff_factor: float


@dataclass
class FSMSettings:
    storage: str
    path: str
    strategy: Strategy


@dataclass
class ConfigManager:
    """Manages bot configuration with YAML file persistence.

    Attributes:
        path: Path to the YAML configuration file
    """
    path: str
    _store: YAMLFileStore = field(init=False)
    _config: Dict[str, Any] = field(init=False, default_factory=dict)

    def __post_init__(self) -> None:
        self._store = YAMLFileStore(self.path)

    def load(self) -> Dict[str, Any]:
        """Load configuration from file, creating defaults if needed."""
        if not self._store.exists():
            logger.info("Config file %s not found, creating default config", self.path)
            self._store.write(DEFAULT_CONFIG)
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            return self._config

        data = self._store.read()
        if not data:
            logger.warning("Config file %s empty or malformed, resetting to defaults", self.path)
            self._store.write(DEFAULT_CONFIG)
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            return self._config

        # Merge defaults with existing config, section by section
        merged = copy.deepcopy(DEFAULT_CONFIG)
        for k, v in data.items():
            if isinstance(v, dict) and isinstance(merged.get(k), dict):
                merged[k].update(v)
            else:
                merged[k] = v
        self._config = merged
        return self._config

    def get(self) -> Dict[str, Any]:
        """Get the current configuration dictionary."""
        return self._config

    def update(self, new_config: Dict[str, Any]) -> None:
        """Update and persist the configuration.

        Args:
            new_config: New configuration dictionary to save
        """
        self._config = new_config
        self._store.write(self._config)
        logger.info("Config updated and saved to %s", self.path)

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._config.get(name)
        if not isinstance(section, dict):
            return dict(DEFAULT_CONFIG[name])
        return section

    def bot_settings(self) -> BotSettings:
        section = self._section("bot")
        return BotSettings(
            token_env=str(section["token_env"]),
            api_url=str(section["api_url"]),
            request_timeout=float(section["request_timeout"]),
        )

    def polling_settings(self) -> PollingSettings:
        section = self._section("polling")
        return PollingSettings(
            timeout=int(section["timeout"]),
            limit=int(section["limit"]),
            allowed_updates=list(section["allowed_updates"] or []) or None,
            backoff_initial=float(section["backoff_initial"]),
            backoff_max=float(section["backoff_max"]),
            backoff_factor=float(section["backoff_factor"]),
        )

    def fsm_settings(self) -> FSMSettings:
        """
        Raises:
            ValueError: Unknown storage kind or strategy
        """
        section = self._section("fsm")
        storage = str(section["storage"])
        if storage not in ("memory", "yaml"):
            raise ValueError(f"Unknown FSM storage {storage!r}, expected memory or yaml")
        return FSMSettings(
            storage=storage,
            path=str(section["path"]),
            strategy=Strategy(section["strategy"]),
        )

    def log_level(self) -> str:
        return str(self._section("logging").get("level", "INFO")).upper()
