"""
Environment-driven configuration.

The bridge takes no command-line flags; everything it needs at startup is
read from the environment once and frozen into ``BridgeConfig``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from rime_cli import PROJECT_NAME, __version__
from rime_cli.engine import Traits

DEFAULT_SHARED_DATA_DIR = '/usr/share/rime-data'
DEFAULT_SELECT_KEYS = '1234567890'
DEFAULT_MAX_LINE_BYTES = 64 * 1024
DEFAULT_LOG_LEVEL = 'WARNING'


class ConfigError(ValueError):
    """Raised when an environment variable holds an unusable value."""


def get_xdg_data_home(environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Resolve the XDG data home directory.

    ``XDG_DATA_HOME`` wins when set and non-empty; otherwise
    ``$HOME/.local/share`` (falling back to the password database when
    ``HOME`` is unset).
    """
    env = os.environ if environ is None else environ
    xdg_data_home = env.get('XDG_DATA_HOME')
    if xdg_data_home:
        return xdg_data_home
    home = env.get('HOME') or str(Path.home())
    return os.path.join(home, '.local', 'share')


def get_user_data_dir(environ: Optional[Mapping[str, str]] = None) -> str:
    return os.path.join(get_xdg_data_home(environ), PROJECT_NAME)


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f'{name} must be an integer, got {raw!r}') from None
    if value <= 0:
        raise ConfigError(f'{name} must be positive, got {value}')
    return value


def _log_level(env: Mapping[str, str]) -> int:
    raw = (env.get('RIME_CLI_LOG_LEVEL') or DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(raw)
    if not isinstance(level, int):
        raise ConfigError(f'RIME_CLI_LOG_LEVEL is not a logging level: {raw!r}')
    return level


@dataclass(frozen=True)
class BridgeConfig:
    """
    Startup configuration for the bridge.

    Attributes:
        user_data_dir: Per-user engine data, ``<XDG data home>/rime-cli``.
        shared_data_dir: Read-only engine data shipped with the system.
        library: librime file name or path; ``None`` lets ctypes search.
        select_keys: Labels used when the engine reports no select keys.
        max_line_bytes: Longest accepted request line, newline excluded.
        log_level: Threshold for diagnostics on stderr.
    """

    user_data_dir: str
    shared_data_dir: str = DEFAULT_SHARED_DATA_DIR
    library: Optional[str] = None
    select_keys: str = DEFAULT_SELECT_KEYS
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES
    log_level: int = logging.WARNING
    distribution_name: str = 'Rime'
    distribution_code_name: str = PROJECT_NAME
    distribution_version: str = __version__
    app_name: str = f'rime.{PROJECT_NAME}'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'BridgeConfig':
        """
        Build the configuration from environment variables.

        Raises:
            ConfigError: If a numeric or log-level variable is malformed.
        """
        env = os.environ if environ is None else environ
        return cls(
            user_data_dir=get_user_data_dir(env),
            shared_data_dir=env.get('RIME_CLI_SHARED_DATA_DIR') or DEFAULT_SHARED_DATA_DIR,
            library=env.get('RIME_CLI_LIBRARY') or None,
            max_line_bytes=_positive_int(env, 'RIME_CLI_MAX_LINE_BYTES', DEFAULT_MAX_LINE_BYTES),
            log_level=_log_level(env),
        )

    def traits(self) -> Traits:
        return Traits(
            shared_data_dir=self.shared_data_dir,
            user_data_dir=self.user_data_dir,
            distribution_name=self.distribution_name,
            distribution_code_name=self.distribution_code_name,
            distribution_version=self.distribution_version,
            app_name=self.app_name,
        )
