"""
Exporter configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Every setting is read from a ``DOMOTICZ_``-prefixed environment variable
(or a ``.env`` file); the debug switch additionally honours a bare
``DEBUG`` variable.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import logging

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Lower bound on the poll interval so the hub is not hammered.
MIN_INTERVAL_S: int = 2

# Port used whenever the hub is reached over TLS.
HTTPS_PORT: int = 443


class ExporterSettings(BaseSettings):
    """Domoticz exporter configuration.

    Attributes:
        port: TCP port the scrape endpoint listens on.
        interval: Seconds between poll cycles. Values below
            ``MIN_INTERVAL_S`` are raised to it.
        hostip: Domoticz hub IP/hostname.
        hostport: Domoticz hub HTTP port. Ignored when ``hostssl`` is set.
        hostssl: Reach the hub over HTTPS (forces port 443).
        defaultmetrics: Also export process metrics (memory, CPU, fds).
        timeout: Per-request timeout for hub calls, in seconds.
        debug: Enable debug logging of cycle and fetch events.
    """

    port: int = 9486
    interval: int = 15
    hostip: str = "127.0.0.1"
    hostport: int = 8080
    hostssl: bool = False
    defaultmetrics: bool = False
    timeout: float = 10.0
    debug: bool = Field(
        default=False,
        validation_alias=AliasChoices("DOMOTICZ_DEBUG", "DEBUG"),
    )

    model_config = SettingsConfigDict(
        env_prefix="DOMOTICZ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("interval")
    @classmethod
    def interval_floor(cls, v: int) -> int:
        """Clamp the poll interval to ``MIN_INTERVAL_S``."""
        if v < MIN_INTERVAL_S:
            logger.warning(
                "Poll interval %ds is below the %ds minimum, using %ds",
                v,
                MIN_INTERVAL_S,
                MIN_INTERVAL_S,
            )
            return MIN_INTERVAL_S
        return v

    @field_validator("port", "hostport")
    @classmethod
    def port_must_be_valid(cls, v: int) -> int:
        """Validate that a port number is within 1..65535."""
        if v < 1 or v > 65535:
            raise ValueError("port must be >= 1 and <= 65535")
        return v

    @field_validator("timeout")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        """Validate the hub request timeout is strictly positive."""
        if v <= 0:
            raise ValueError("DOMOTICZ_TIMEOUT must be > 0")
        return v

    @property
    def hub_scheme(self) -> str:
        """URL scheme used to reach the hub."""
        return "https" if self.hostssl else "http"

    @property
    def hub_port(self) -> int:
        """Effective hub port; TLS always uses 443."""
        return HTTPS_PORT if self.hostssl else self.hostport

    @property
    def log_level(self) -> int:
        return logging.DEBUG if self.debug else logging.INFO
