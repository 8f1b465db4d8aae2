"""Configuration loading for charmref.

Reads an optional ``charmref.toml`` and performs light validation. When no
file is found, built-in defaults apply.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from charmref.errors import CharmRefConfigError
from charmref.parser import ReferenceParser
from charmref.validators import DEFAULT_SERIES, is_series_token

CONFIG_FILENAME = "charmref.toml"

DEFAULT_STORE_URL = "https://store.juju.ubuntu.com"
DEFAULT_CACHE_PATH = "$HOME/.juju/cache"


@dataclass(frozen=True)
class StoreConfig:
    url: str = DEFAULT_STORE_URL
    cache_path: Path = field(default_factory=lambda: _expand_path(DEFAULT_CACHE_PATH))
    timeout_s: float = 30.0
    retries: int = 3


@dataclass(frozen=True)
class ParseConfig:
    default_series: str = ""
    extra_series: tuple[str, ...] = ()


@dataclass(frozen=True)
class CharmRefConfig:
    version: int = 1
    store: StoreConfig = field(default_factory=StoreConfig)
    parse: ParseConfig = field(default_factory=ParseConfig)
    source: Path | None = None

    def parser(self) -> ReferenceParser:
        """Return a parser that also accepts the configured extra series."""

        if not self.parse.extra_series:
            return ReferenceParser()
        return ReferenceParser(DEFAULT_SERIES.extended(self.parse.extra_series))


def _expand_path(raw: str) -> Path:
    return Path(os.path.expanduser(os.path.expandvars(raw)))


def find_config(start: Path) -> Path | None:
    """Walk upward from `start` (file or directory) looking for `charmref.toml`."""

    cur = start
    try:
        if cur.is_file():
            cur = cur.parent
    except OSError:
        cur = cur.parent

    cur = cur.resolve()
    while True:
        candidate = cur / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if cur.parent == cur:
            return None
        cur = cur.parent


def _as_table(value: Any, *, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise CharmRefConfigError(f"Expected [{name}] to be a table.")
    return value


def _as_str_list(value: Any, *, name: str) -> list[str]:
    if not isinstance(value, list) or any(not isinstance(x, str) for x in value):
        raise CharmRefConfigError(f"Expected {name} to be a list of strings.")
    return list(value)


def _as_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise CharmRefConfigError(f"Expected {name} to be an integer.")
    return value


def _as_float(value: Any, *, name: str) -> float:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise CharmRefConfigError(f"Expected {name} to be a number.")
    return float(value)


def _as_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str):
        raise CharmRefConfigError(f"Expected {name} to be a string.")
    return value


def load_config(*, config_path: Path | None = None, start: Path | None = None) -> CharmRefConfig:
    """Load and validate `charmref.toml`.

    Without `config_path`, the file is discovered by walking upward from
    `start` (default: the current working directory); if none exists the
    defaults are returned.
    """

    if config_path is None:
        config_path = find_config(start if start is not None else Path.cwd())
        if config_path is None:
            return CharmRefConfig()

    try:
        raw = config_path.read_bytes()
    except FileNotFoundError as e:
        raise CharmRefConfigError(f"Missing {CONFIG_FILENAME} at: {config_path}") from e
    except OSError as e:
        raise CharmRefConfigError(f"Failed reading config file: {config_path}") from e

    try:
        data = tomllib.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise CharmRefConfigError(f"Config is not valid UTF-8: {config_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise CharmRefConfigError(f"Invalid TOML in {config_path}: {e}") from e

    version = data.get("version", None)
    if version is None:
        raise CharmRefConfigError(f"Missing required `version = 1` in {CONFIG_FILENAME}.")
    version_i = _as_int(version, name="version")
    if version_i != 1:
        raise CharmRefConfigError(f"Unsupported config version: {version_i} (expected 1).")

    store_tbl = _as_table(data.get("store"), name="store")
    parse_tbl = _as_table(data.get("parse"), name="parse")

    if "url" in store_tbl:
        url = _as_str(store_tbl["url"], name="store.url").rstrip("/")
    else:
        url = DEFAULT_STORE_URL

    if "cache_path" in store_tbl:
        cache_path = _expand_path(_as_str(store_tbl["cache_path"], name="store.cache_path"))
    else:
        cache_path = _expand_path(DEFAULT_CACHE_PATH)

    if "timeout_s" in store_tbl:
        timeout_s = _as_float(store_tbl["timeout_s"], name="store.timeout_s")
    else:
        timeout_s = 30.0

    if "retries" in store_tbl:
        retries = _as_int(store_tbl["retries"], name="store.retries")
    else:
        retries = 3

    if "default_series" in parse_tbl:
        default_series = _as_str(parse_tbl["default_series"], name="parse.default_series")
    else:
        default_series = ""

    if "extra_series" in parse_tbl:
        extra_series = tuple(_as_str_list(parse_tbl["extra_series"], name="parse.extra_series"))
    else:
        extra_series = ()

    # Validation
    if not url.startswith(("http://", "https://")):
        raise CharmRefConfigError("Invalid config: store.url must be an http(s) URL.")

    if timeout_s <= 0:
        raise CharmRefConfigError("Invalid config: store.timeout_s must be > 0.")

    if retries < 0:
        raise CharmRefConfigError("Invalid config: store.retries must be >= 0.")

    bad = [s for s in extra_series if not is_series_token(s)]
    if bad:
        raise CharmRefConfigError(
            f"Invalid config: parse.extra_series entries must be lowercase alphanumeric: {bad!r}"
        )

    if default_series and not is_series_token(default_series):
        raise CharmRefConfigError(
            "Invalid config: parse.default_series must be lowercase alphanumeric."
        )

    return CharmRefConfig(
        version=version_i,
        store=StoreConfig(url=url, cache_path=cache_path, timeout_s=timeout_s, retries=retries),
        parse=ParseConfig(default_series=default_series, extra_series=extra_series),
        source=config_path,
    )
