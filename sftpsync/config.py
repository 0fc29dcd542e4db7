"""Configuration for sftpsync.

Values are read from environment variables first and fall back to
``KEY=VALUE`` lines in ``~/.config/sftpsync/config``.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .exceptions import SftpConfigError
from .session import DEFAULT_PORT, DEFAULT_TIMEOUT
from .sync.modes import ErrorPolicy

logger = logging.getLogger(__name__)

ENV_HOST = "SFTPSYNC_HOST"
ENV_PORT = "SFTPSYNC_PORT"
ENV_USER = "SFTPSYNC_USER"
ENV_PASSWORD = "SFTPSYNC_PASSWORD"
ENV_TIMEOUT = "SFTPSYNC_TIMEOUT"
ENV_ERROR_POLICY = "SFTPSYNC_ERROR_POLICY"

# Keys written by save_connection; the password is never persisted
_SAVED_KEYS = (ENV_HOST, ENV_PORT, ENV_USER)


class Config:
    """Connection settings from the environment and the config file."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Config file location (default ~/.config/sftpsync/config)
        """
        self._config_path = config_path or (
            Path.home() / ".config" / "sftpsync" / "config"
        )
        self._file_values: dict[str, str] = self._read_file()

    def _read_file(self) -> dict[str, str]:
        values: dict[str, str] = {}
        if not self._config_path.is_file():
            return values

        with open(self._config_path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                values[key.strip()] = value.strip().strip("\"'")

        logger.debug("Loaded %d values from %s", len(values), self._config_path)
        return values

    def _get(self, key: str) -> Optional[str]:
        value = os.environ.get(key)
        if value:
            return value
        return self._file_values.get(key) or None

    @property
    def host(self) -> Optional[str]:
        return self._get(ENV_HOST)

    @property
    def user(self) -> Optional[str]:
        return self._get(ENV_USER)

    @property
    def password(self) -> Optional[str]:
        return self._get(ENV_PASSWORD)

    @property
    def port(self) -> int:
        value = self._get(ENV_PORT)
        if value is None:
            return DEFAULT_PORT
        try:
            port = int(value)
        except ValueError:
            raise SftpConfigError(f"Invalid port: {value!r}") from None
        if not 0 < port < 65536:
            raise SftpConfigError(f"Port out of range: {port}")
        return port

    @property
    def timeout(self) -> float:
        value = self._get(ENV_TIMEOUT)
        if value is None:
            return DEFAULT_TIMEOUT
        try:
            timeout = float(value)
        except ValueError:
            raise SftpConfigError(f"Invalid timeout: {value!r}") from None
        if timeout <= 0:
            raise SftpConfigError("Timeout must be positive")
        return timeout

    @property
    def error_policy(self) -> ErrorPolicy:
        value = self._get(ENV_ERROR_POLICY)
        if value is None:
            return ErrorPolicy.STRICT
        try:
            return ErrorPolicy.from_string(value)
        except ValueError as e:
            raise SftpConfigError(str(e)) from e

    def is_configured(self) -> bool:
        """Check if a host and user are known."""
        return bool(self.host and self.user)

    def get_config_path(self) -> Path:
        return self._config_path

    def save_connection(self, host: str, user: str, port: int = DEFAULT_PORT) -> None:
        """Store host, user and port in the config file.

        Other keys already in the file are kept.
        """
        values = dict(self._file_values)
        values.update({ENV_HOST: host, ENV_USER: user, ENV_PORT: str(port)})

        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [f"{key}={values[key]}" for key in _SAVED_KEYS]
        lines.extend(
            f"{key}={value}" for key, value in values.items() if key not in _SAVED_KEYS
        )
        self._config_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        self._file_values = values
        logger.info("Saved connection settings to %s", self._config_path)


config = Config()
