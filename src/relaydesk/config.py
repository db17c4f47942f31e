"""Settings for the dashboard core.

A YAML file is optional. It is taken from an explicit path, else from
``relaydesk.yaml`` in the working directory, else from
``~/.relaydesk/config.yaml``. String values may embed ``${NAME}``
placeholders filled from the environment, and ``RELAYDESK_<SECTION>_<FIELD>``
variables win over the file (``RELAYDESK_CHANNEL_MAX_ATTEMPTS=3``).
"""

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, model_validator

logger = logging.getLogger(__name__)

ENV_PREFIX = "RELAYDESK_"
_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


def resolve_env_vars(value: str) -> str:
    """Fill ``${NAME}`` placeholders from the environment; unset names become ''."""
    return _PLACEHOLDER.sub(lambda m: os.environ.get(m.group(1), ""), value)


def _expand(node: Any) -> Any:
    if isinstance(node, str):
        return resolve_env_vars(node)
    if isinstance(node, list):
        return [_expand(item) for item in node]
    if isinstance(node, dict):
        return {key: _expand(item) for key, item in node.items()}
    return node


class ApiConfig(BaseModel):
    """REST endpoints of the automation backend and the messaging service."""

    base_url: str = "http://localhost:3000"
    messaging_url: str = "http://localhost:5000/api"
    timeout: float = 30.0
    access_token: str = ""


class ChannelConfig(BaseModel):
    """Push channel connection and reconnection settings."""

    url: str | None = None
    max_attempts: int = 5
    delay_floor: float = 1.0
    delay_ceiling: float = 5.0
    transports: list[str] = ["websocket", "polling"]
    room_event: str = "join-user-room"
    progress_event: str = "automation-progress"

    @model_validator(mode="after")
    def check_backoff(self) -> "ChannelConfig":
        """Ensure the retry budget and delay bounds are usable."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_floor < 0 or self.delay_floor > self.delay_ceiling:
            raise ValueError("delay_floor must be between 0 and delay_ceiling")
        return self


class MessagingConfig(BaseModel):
    """Conversation sync settings."""

    page_size: int = 20
    poll_interval: float = 60.0
    resync_delay: float = 3.0
    profile_urn: str = ""
    mailbox_urn: str = ""


class MonitorConfig(BaseModel):
    """Automation list refresh settings.

    ``poll_interval`` of None disables periodic snapshot refreshes; the list
    is then refreshed on start and after every control call only.
    """

    loading_floor: float = 1.0
    poll_interval: float | None = None


class LoggingConfig(BaseModel):
    """Logging output settings."""

    level: str = "info"
    file: str | None = None


class RelaydeskConfig(BaseModel):
    """Top-level configuration for the dashboard core."""

    api: ApiConfig = ApiConfig()
    channel: ChannelConfig = ChannelConfig()
    messaging: MessagingConfig = MessagingConfig()
    monitor: MonitorConfig = MonitorConfig()
    logging: LoggingConfig = LoggingConfig()

    @property
    def channel_url(self) -> str:
        """Push channel URL, defaulting to the automation API host."""
        return self.channel.url or self.api.base_url


def _search_paths() -> list[Path]:
    return [
        directory / name
        for directory, names in (
            (Path.cwd(), ("relaydesk.yaml", "relaydesk.yml")),
            (Path.home() / ".relaydesk", ("config.yaml", "config.yml")),
        )
        for name in names
    ]


def _coerce(raw: str) -> Any:
    lowered = raw.strip().lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for kind in (int, float):
        try:
            return kind(raw)
        except ValueError:
            continue
    return raw


def _env_overrides(environ: Mapping[str, str]) -> dict[str, dict[str, Any]]:
    """Collect ``RELAYDESK_<SECTION>_<FIELD>`` values for fields that exist."""
    overrides: dict[str, dict[str, Any]] = {}
    for name, raw in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        key = name[len(ENV_PREFIX):].lower()
        for section, info in RelaydeskConfig.model_fields.items():
            field = key.removeprefix(section + "_")
            if field != key and field in info.annotation.model_fields:
                overrides.setdefault(section, {})[field] = _coerce(raw)
                break
        else:
            logger.warning("Ignoring unknown setting %s", name)
    return overrides


def load_config(config_path: str | None = None) -> RelaydeskConfig | None:
    """Read, expand and validate the settings file.

    Returns None when no path is given and no file exists in the search
    locations. An explicit path that does not exist raises FileNotFoundError.
    """
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = next((p for p in _search_paths() if p.exists()), None)
        if path is None:
            logger.debug("No settings file in %s", [str(p) for p in _search_paths()])
            return None

    logger.info("Loading config from %s", path)
    data = _expand(yaml.safe_load(path.read_text()) or {})
    for section, values in _env_overrides(os.environ).items():
        current = data.get(section)
        data[section] = {**(current if isinstance(current, dict) else {}), **values}
    return RelaydeskConfig(**data)
