"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for apidex:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.apidex/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Settings file** -- a single ``config.json`` holding the database path,
  the provider request timeout, and one block per provider
  (``api_url``, ``api_key``, ``model``, plus OpenRouter's ``referer`` and
  ``app_title``).
* **Precedence resolution** -- :func:`load_settings` layers environment
  variables over the file and the file over defaults, and returns one
  immutable :class:`~apidex.models.Settings`.
* **Credential indirection** -- an ``api_key`` may be written as
  ``env:VAR_NAME`` or ``file:/path/to/key`` instead of the secret itself;
  see :func:`resolve_credential`.  It is resolved only when that provider
  is actually used.
  Likewise each provider block is type-checked only when that provider is
  selected, by :meth:`~apidex.models.Settings.provider`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from apidex.exceptions import ConfigurationError
from apidex.models import ProviderId, Settings

_APP_NAME = "apidex"
_CONFIG_FILENAME = "config.json"
_DB_FILENAME = "apidex.db"

PROVIDER_FIELDS = ("api_url", "api_key", "model", "referer", "app_title")
_ENV_PROVIDER_FIELDS = ("api_url", "api_key", "model")
_SECRET_FIELDS = frozenset({"api_key"})


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/apidex/`` (default ``~/.config/apidex/``).
    On macOS/Windows: ``~/.apidex/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (database, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/apidex/`` (default ``~/.local/share/apidex/``).
    On macOS/Windows: ``~/.apidex/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_db_path() -> Path:
    return get_data_dir() / _DB_FILENAME


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  On any failure the
    temp file is removed and the error re-raised.
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
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


# --- Config file ---


def config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_config_data() -> dict[str, Any]:
    """Return the raw contents of ``config.json`` (``{}`` when absent).

    Raises:
        ConfigurationError: If the file exists but is not a JSON object.
    """
    path = config_path()
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid config at {path}: expected a JSON object")
    return data


def save_config_data(data: dict[str, Any]) -> None:
    """Validate and persist *data* atomically as ``config.json``."""
    _settings_from_dict(data)
    _atomic_write(config_path(), json.dumps(data, indent=2) + "\n")


def set_config_value(key: str, value: str) -> dict[str, Any]:
    """Set one setting using dot notation and save the file.

    Accepted keys are ``db_path``, ``request_timeout``, and
    ``<provider>.<field>`` where provider is one of ``openai``,
    ``openrouter``, ``gemini`` and field one of :data:`PROVIDER_FIELDS`.

    Returns:
        The updated raw config dict.

    Raises:
        ConfigurationError: For an unknown key or an invalid value.
    """
    data = load_config_data()
    parts = key.split(".")

    if parts == ["db_path"]:
        data["db_path"] = value
    elif parts == ["request_timeout"]:
        try:
            data["request_timeout"] = float(value)
        except ValueError as exc:
            raise ConfigurationError(
                f"request_timeout must be a number, got '{value}'", setting=key
            ) from exc
    elif len(parts) == 2 and parts[0] in _provider_names() and parts[1] in PROVIDER_FIELDS:
        providers = data.setdefault("providers", {})
        block = providers.get(parts[0])
        if not isinstance(block, dict):
            block = providers[parts[0]] = {}
        block[parts[1]] = value
    else:
        raise ConfigurationError(
            f"Unknown config key '{key}'. Use db_path, request_timeout, or "
            f"<{'|'.join(_provider_names())}>.<{'|'.join(PROVIDER_FIELDS)}>",
            setting=key,
        )

    save_config_data(data)
    return data


# --- Precedence resolution ---


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Assemble the effective settings.

    Precedence (high to low):
        1. Environment variables (``APIDEX_DB_PATH``,
           ``APIDEX_REQUEST_TIMEOUT``, ``APIDEX_<PROVIDER>_API_URL``,
           ``APIDEX_<PROVIDER>_API_KEY``, ``APIDEX_<PROVIDER>_MODEL``)
        2. User config (``~/.config/apidex/config.json``)
        3. Defaults

    Provider URL and model defaults are applied by the strategies, not
    here, so blank values are kept as ``None``.

    Raises:
        ConfigurationError: If the file or an environment value is invalid.
    """
    env = os.environ if env is None else env
    data = load_config_data()

    if env.get("APIDEX_DB_PATH"):
        data["db_path"] = env["APIDEX_DB_PATH"]
    if env.get("APIDEX_REQUEST_TIMEOUT"):
        try:
            data["request_timeout"] = float(env["APIDEX_REQUEST_TIMEOUT"])
        except ValueError as exc:
            raise ConfigurationError(
                "APIDEX_REQUEST_TIMEOUT must be a number", setting="request_timeout"
            ) from exc

    providers = dict(data.get("providers") or {})
    for provider_id in ProviderId:
        block = providers.get(provider_id.value) or {}
        if not isinstance(block, dict):
            continue
        block = dict(block)
        for field in _ENV_PROVIDER_FIELDS:
            env_value = env.get(f"APIDEX_{provider_id.name}_{field.upper()}")
            if env_value:
                block[field] = env_value
        providers[provider_id.value] = block
    data["providers"] = providers

    return _settings_from_dict(data)


def resolve_credential(value: Optional[str]) -> Optional[str]:
    """Resolve an ``api_key`` value that may point at its real source.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - anything else -- returned unchanged

    Raises:
        ConfigurationError: If the referenced variable or file is missing.
    """
    if value is None:
        return None
    if value.startswith("env:"):
        var_name = value[4:]
        resolved = os.environ.get(var_name)
        if resolved is None:
            raise ConfigurationError(f"Environment variable '{var_name}' is not set")
        return resolved
    if value.startswith("file:"):
        path = Path(value[5:]).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Credential file not found: {path}")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigurationError(f"Cannot read credential file {path}: {exc}") from exc
    return value


def masked_settings(settings: Settings) -> dict[str, Any]:
    """Return *settings* as a JSON-ready dict with credentials masked."""
    data = settings.model_dump(mode="json")
    for block in data["providers"].values():
        if not isinstance(block, dict):
            continue
        for field in _SECRET_FIELDS:
            if block.get(field):
                block[field] = _mask(block[field])
    return data


def _mask(secret: str) -> str:
    if len(secret) <= 8:
        return "****"
    return f"{secret[:4]}...{secret[-4:]}"


def _provider_names() -> list[str]:
    return [p.value for p in ProviderId]


def _settings_from_dict(data: dict[str, Any]) -> Settings:
    providers_raw = data.get("providers") or {}
    if not isinstance(providers_raw, dict):
        raise ConfigurationError("providers must be a JSON object", setting="providers")
    unknown = set(providers_raw) - set(_provider_names())
    if unknown:
        raise ConfigurationError(
            f"Unknown provider(s) in config: {', '.join(sorted(unknown))}", setting="providers"
        )
    providers = {
        provider_id: _drop_blanks(providers_raw.get(provider_id.value) or {})
        for provider_id in ProviderId
    }
    try:
        return Settings(
            db_path=data.get("db_path"),
            request_timeout=data.get("request_timeout", 120.0),
            providers=providers,
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc


def _drop_blanks(block: Any) -> Any:
    if not isinstance(block, dict):
        return block
    return {key: value for key, value in block.items() if value not in (None, "")}
