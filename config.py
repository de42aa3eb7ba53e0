"""
config.py — Factory configuration and environment loading.
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from dotenv import load_dotenv

from errors import ConfigurationError
from sanity_client import DEFAULT_API_VERSION

DEFAULT_CACHE_DIRNAME = ".sanity_loader_cache"

_PATH_ALIASES = {"assetsPublic": "assets_public"}


def _as_path(value: Any) -> Optional[Path]:
    return Path(value) if value else None


@dataclass(frozen=True)
class LoaderPaths:
    queries: Optional[Path] = None
    cache: Optional[Path] = None
    assets: Optional[Path] = None
    assets_public: Optional[str] = None

    @classmethod
    def coerce(cls, raw: "LoaderPaths | Mapping[str, Any]") -> "LoaderPaths":
        if isinstance(raw, LoaderPaths):
            return raw
        options = {_PATH_ALIASES.get(k, k): v for k, v in raw.items()}
        return cls(
            queries=_as_path(options.get("queries")),
            cache=_as_path(options.get("cache")),
            assets=_as_path(options.get("assets")),
            assets_public=options.get("assets_public"),
        )

    def cache_dir(self) -> Path:
        return self.cache or Path.cwd() / DEFAULT_CACHE_DIRNAME


@dataclass(frozen=True)
class LoaderFactoryConfig:
    paths: LoaderPaths
    client: Any = None
    client_config: Optional[Mapping[str, Any]] = None
    invalidate_cache_per_call: bool = False
    is_cache_stale: Any = None
    verbose: bool = False

    def __post_init__(self):
        if self.paths is None:
            raise ConfigurationError("Configuration requires `paths`.")
        if (self.client is None) == (self.client_config is None):
            raise ConfigurationError(
                "Configuration requires exactly one of a `client` instance or a `client_config` mapping."
            )
        if self.is_cache_stale is not None and not callable(self.is_cache_stale):
            raise ConfigurationError("`is_cache_stale` must be callable.")

    @property
    def cache_dir(self) -> Path:
        return self.paths.cache_dir()


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def client_config_from_env(env_file: Union[str, Path, None] = None) -> dict[str, Any]:
    """Build a client config from SANITY_* variables, loading a .env file first."""
    load_dotenv(dotenv_path=env_file)

    project_id = os.environ.get("SANITY_PROJECT_ID")
    dataset = os.environ.get("SANITY_DATASET")
    if not project_id or not dataset:
        raise ConfigurationError("SANITY_PROJECT_ID and SANITY_DATASET must be set (environment or .env file).")

    return {
        "project_id": project_id,
        "dataset": dataset,
        "token": os.environ.get("SANITY_API_TOKEN") or None,
        "api_version": os.environ.get("SANITY_API_VERSION") or DEFAULT_API_VERSION,
        "use_cdn": _env_flag(os.environ.get("SANITY_USE_CDN")),
    }
