"""Where budgeteer keeps its settings, and how connection settings are resolved.

The stored config is one JSON file holding the service host, the *source*
of the API key (never the key itself) and request settings. On Linux and
the BSDs it lives under ``$XDG_CONFIG_HOME/budgeteer/``; elsewhere under
``~/.budgeteer/``. Crash logs go to the matching data directory.

:func:`resolve_provider_config` builds the
:class:`~budgeteer.models.ProviderConfig` a client needs, taking each
setting from the first of: CLI flag, environment variable, stored config.
"""

from __future__ import annotations

import contextlib
import getpass
import os
import sys
import tempfile
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from budgeteer.exceptions import ConfigError
from budgeteer.models import ProviderConfig, StoredConfig

_APP_NAME = "budgeteer"
_CONFIG_FILENAME = "config.json"

ENV_HOST = "BUDGETEER_HOST"
ENV_API_KEY = "BUDGETEER_API_KEY"

# kind -> (XDG variable, default location relative to $HOME)
_XDG_DIRS: dict[str, tuple[str, tuple[str, ...]]] = {
    "config": ("XDG_CONFIG_HOME", (".config",)),
    "data": ("XDG_DATA_HOME", (".local", "share")),
}


def _uses_xdg() -> bool:
    return sys.platform.startswith(("linux", "freebsd", "openbsd", "netbsd"))


def _app_dir(kind: str) -> Path:
    if _uses_xdg():
        env_var, default = _XDG_DIRS[kind]
        root = Path(os.environ.get(env_var) or Path.home().joinpath(*default))
        path = root / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if kind == "data":
            path = path / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory of the stored config, created on first use."""
    return _app_dir("config")


def get_data_dir() -> Path:
    """Directory for crash logs, created on first use."""
    return _app_dir("data")


def config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* so that readers never see a partial file.

    The temp file sits next to *path*, which keeps ``os.replace`` a rename
    on the same filesystem. It is removed if anything fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


def load_stored_config() -> StoredConfig:
    """Read the stored config; a missing file yields the defaults.

    Raises:
        ConfigError: If the file is not JSON or does not match
            :class:`~budgeteer.models.StoredConfig`.
    """
    path = config_path()
    if not path.is_file():
        return StoredConfig()
    try:
        return StoredConfig.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_stored_config(config: StoredConfig) -> None:
    _atomic_write(config_path(), config.model_dump_json(indent=2) + "\n")


# --- Credential sources ---


def _credential_from_env(name: str) -> str:
    try:
        return os.environ[name]
    except KeyError:
        raise ConfigError(f"Environment variable '{name}' is not set (source: env:{name})") from None


def _credential_from_file(location: str) -> str:
    path = Path(location).expanduser()
    if not path.is_file():
        raise ConfigError(f"Credential file not found: {path}")
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc


def _credential_from_prompt(_: str) -> str:
    if not sys.stdin.isatty():
        raise ConfigError("Cannot prompt for the API key: stdin is not a TTY")
    return getpass.getpass("Budgeteer API key: ")


_CREDENTIAL_SOURCES: dict[str, Callable[[str], str]] = {
    "env": _credential_from_env,
    "file": _credential_from_file,
    "prompt": _credential_from_prompt,
}


def resolve_credential(source: str) -> str:
    """Return the secret described by *source*.

    Accepted descriptors are ``env:VAR``, ``file:/path`` (content is
    stripped) and ``prompt`` (interactive, TTY only).

    Raises:
        ConfigError: If the descriptor is unknown or cannot be resolved.
    """
    kind, _, argument = source.partition(":")
    reader = _CREDENTIAL_SOURCES.get(kind)
    if reader is None or (kind != "prompt" and not argument):
        raise ConfigError(f"Unknown credential source format: {source}")
    return reader(argument)


def resolve_provider_config(
    cli_host: Optional[str] = None,
    cli_api_key_source: Optional[str] = None,
) -> ProviderConfig:
    """Resolve the connection settings for one command.

    Each setting comes from the first source that has it: the CLI flag
    (``--host``, ``--api-key-source``), the environment
    (``BUDGETEER_HOST``, ``BUDGETEER_API_KEY``), then the stored config.
    Request settings always come from the stored config.

    Raises:
        ConfigError: If no host or no credential can be found, or the
            result is invalid.
    """
    stored = load_stored_config()

    host = cli_host or os.environ.get(ENV_HOST) or stored.host
    if not host:
        raise ConfigError(
            f"No service host configured. Pass --host, set {ENV_HOST}, "
            "or run 'budgeteer config set host <url>'"
        )

    if cli_api_key_source is not None:
        api_key = resolve_credential(cli_api_key_source)
    elif os.environ.get(ENV_API_KEY):
        api_key = os.environ[ENV_API_KEY]
    elif stored.api_key_source:
        api_key = resolve_credential(stored.api_key_source)
    else:
        raise ConfigError(
            f"No API key configured. Pass --api-key-source, set {ENV_API_KEY}, "
            "or run 'budgeteer config set api_key_source env:VAR'"
        )

    try:
        return ProviderConfig(host=host, api_key=api_key, request=stored.request)
    except ValidationError as exc:
        raise ConfigError(f"Invalid provider configuration: {exc}") from exc
