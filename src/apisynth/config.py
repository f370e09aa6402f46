"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for apisynth:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.apisynth/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- ``config.json`` in the config directory.
* **Project config** -- ``apisynth.json`` in the working directory, or any
  file passed with ``--config``.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project config, and global config into one
  :class:`~apisynth.models.RunConfig`.

File writes go through :func:`atomic_write` (temp file, then rename).
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from apisynth.exceptions import ConfigError
from apisynth.models import RunConfig

_APP_NAME = "apisynth"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "apisynth.json"

# Environment variable -> (dotted config key, converter)
ENV_VARS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "APISYNTH_BASE_URL": ("base_url", str),
    "APISYNTH_TIMEOUT": ("timeout", float),
    "APISYNTH_SETTLE_DELAY": ("settle_delay", float),
    "APISYNTH_LOCALE": ("mock.locale", str),
    "APISYNTH_SEED": ("mock.seed", int),
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/apisynth/`` (default ``~/.config/apisynth/``).
    On macOS/Windows: ``~/.apisynth/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/apisynth/`` (default ``~/.local/share/apisynth/``).
    On macOS/Windows: ``~/.apisynth/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* atomically using temp file + rename.

    The temporary file is created next to *path* so ``os.replace`` is an
    atomic rename on POSIX.  On any failure the temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config files ---


def _read_json(path: Path, label: str) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Invalid {label} config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {label} config at {path}: expected a JSON object")
    return data


def load_global_config() -> dict[str, Any]:
    """Load ``config.json`` from the config directory (empty when absent).

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = get_config_dir() / _CONFIG_FILENAME
    if not path.is_file():
        return {}
    return _read_json(path, "global")


def load_project_config(path: Optional[Path] = None) -> dict[str, Any]:
    """Load project configuration.

    Args:
        path: Explicit config file (``--config``).  It must exist.  When
            omitted, ``./apisynth.json`` is read if present.

    Raises:
        ConfigError: If an explicit file is missing, or a file is invalid.
    """
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        return _read_json(path, "project")

    default = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not default.is_file():
        return {}
    return _read_json(default, "project")


def save_project_config(config: RunConfig, path: Optional[Path] = None) -> Path:
    """Persist *config* atomically as project config; returns the path written."""
    target = path or Path.cwd() / _PROJECT_CONFIG_FILENAME
    data = config.model_dump(mode="json", exclude_defaults=True)
    atomic_write(target, json.dumps(data, indent=2) + "\n")
    return target


def env_overrides() -> dict[str, Any]:
    """Collect ``APISYNTH_*`` environment overrides as a nested dict.

    Raises:
        ConfigError: If a value cannot be converted.
    """
    overrides: dict[str, Any] = {}
    for var, (key, convert) in ENV_VARS.items():
        raw = os.environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            value = convert(raw)
        except ValueError as exc:
            raise ConfigError(f"Invalid value for {var}: {raw!r}") from exc
        _set_dotted(overrides, key, value)
    return overrides


def _set_dotted(target: dict[str, Any], key: str, value: Any) -> None:
    head, _, rest = key.partition(".")
    if rest:
        _set_dotted(target.setdefault(head, {}), rest, value)
    else:
        target[head] = value


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# --- Precedence resolution ---


def resolve_config(
    cli_base_url: Optional[str] = None,
    cli_timeout: Optional[float] = None,
    cli_locale: Optional[str] = None,
    cli_seed: Optional[int] = None,
    cli_settle_delay: Optional[float] = None,
    config_path: Optional[Path] = None,
) -> RunConfig:
    """Resolve the effective run configuration.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``APISYNTH_BASE_URL``, ``APISYNTH_TIMEOUT``,
           ``APISYNTH_LOCALE``, ``APISYNTH_SEED``, ``APISYNTH_SETTLE_DELAY``)
        3. Project config (``./apisynth.json`` or *config_path*)
        4. Global config (``~/.config/apisynth/config.json``)
        5. Defaults

    Raises:
        ConfigError: If any layer holds invalid JSON or invalid values.
    """
    data = _merge(load_global_config(), load_project_config(config_path))
    data = _merge(data, env_overrides())

    cli: dict[str, Any] = {}
    for key, value in (
        ("base_url", cli_base_url),
        ("timeout", cli_timeout),
        ("settle_delay", cli_settle_delay),
        ("mock.locale", cli_locale),
        ("mock.seed", cli_seed),
    ):
        if value is not None:
            _set_dotted(cli, key, value)
    data = _merge(data, cli)

    try:
        return RunConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
