"""
Configuration module for the Seq operator.

Loads Seq connection settings from explicit values (CLI flags, plugin config)
falling back to environment variables. Explicit values always win.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlparse

DEFAULT_TIMEOUT_SECONDS = 30

_TRUE_VALUES = {"1", "t", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "f", "false", "no", "n", "off"}


class ConfigError(ValueError):
    """Raised when the Seq connection settings are missing or malformed."""

    def __init__(self, summary: str, detail: str):
        self.summary = summary
        self.detail = detail
        super().__init__(f"{summary}: {detail}")


def _first_non_empty(*values: Optional[str]) -> str:
    for value in values:
        if value is not None and value.strip():
            return value
    return ""


def _parse_bool(value: Optional[str]) -> Optional[bool]:
    """Parse a boolean env value, returning None when it is unset or unparseable."""
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


@dataclass
class SeqConfig:
    """Seq HTTP API connection settings."""

    server_url: str
    api_key: str = field(default="", repr=False)  # Never log the credential
    insecure_skip_verify: bool = False
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self):
        if not self.server_url or not self.server_url.strip():
            raise ConfigError(
                "Missing Seq server_url",
                "Configure server_url or set SEQ_SERVER_URL.",
            )
        parsed = urlparse(self.server_url)
        if not parsed.scheme or not parsed.netloc:
            raise ConfigError(
                "Invalid server_url",
                "server_url must include scheme and host, "
                "e.g. http://localhost:5342",
            )
        if self.timeout_seconds <= 0:
            raise ConfigError(
                "Invalid timeout_seconds",
                f"timeout_seconds must be positive, got {self.timeout_seconds}",
            )

    @classmethod
    def resolve(
        cls,
        server_url: Optional[str] = None,
        api_key: Optional[str] = None,
        insecure_skip_verify: Optional[bool] = None,
        timeout_seconds: Optional[int] = None,
    ) -> "SeqConfig":
        """
        Build settings from explicit values, falling back to the environment.

        Args:
            server_url: Base URL of the Seq server (SEQ_SERVER_URL).
            api_key: Credential sent as X-Seq-ApiKey (SEQ_API_KEY).
            insecure_skip_verify: Skip TLS verification (SEQ_INSECURE_SKIP_VERIFY).
            timeout_seconds: Request timeout (SEQ_TIMEOUT_SECONDS), default 30.

        Returns:
            A validated SeqConfig.

        Raises:
            ConfigError: If the server URL is missing or malformed.
        """
        if insecure_skip_verify is None:
            insecure_skip_verify = _parse_bool(
                os.getenv("SEQ_INSECURE_SKIP_VERIFY")
            )
        if timeout_seconds is None:
            timeout_seconds = _parse_int(os.getenv("SEQ_TIMEOUT_SECONDS"))

        return cls(
            server_url=_first_non_empty(server_url, os.getenv("SEQ_SERVER_URL")),
            api_key=_first_non_empty(api_key, os.getenv("SEQ_API_KEY")),
            insecure_skip_verify=bool(insecure_skip_verify),
            timeout_seconds=(
                DEFAULT_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
            ),
        )

    @classmethod
    def from_env(cls) -> "SeqConfig":
        """Load from environment variables."""
        return cls.resolve()

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "SeqConfig":
        """Load from a plugin configuration dict, falling back to the environment."""
        return cls.resolve(
            server_url=config.get("server_url"),
            api_key=config.get("api_key"),
            insecure_skip_verify=config.get("insecure_skip_verify"),
            timeout_seconds=config.get("timeout_seconds"),
        )


@dataclass
class CLIConfig:
    """Command line host configuration."""

    state_file: str = "seq-state.json"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            state_file=os.getenv("SEQ_STATE_FILE", "seq-state.json"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
