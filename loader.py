"""
loader.py — Loader factory and per-query loaders.

A SanityLoader holds the client, paths and staleness policy. Each call to
define_loader() returns a Loader bound to one query; running it goes:

  1. staleness verdict (cached loaders only, via the shared coordinator)
  2. resolve the query text (inline or <queries>/<name>.groq)
  3. cache read (stale verdict, query fingerprint, pinned version)
  4. fetch on miss, write the slot back
  5. optional transform

All loaders from one factory share one staleness verdict. Separate
factories share nothing.
"""

from __future__ import annotations
import functools
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Mapping, Optional, Protocol, Union

import log
from assets import AssetMirror
from cache import MISS, QueryCache
from config import LoaderFactoryConfig, LoaderPaths
from errors import ConfigurationError, FetchError, SanityLoaderError
from images import image_url
from portable_text import fix_portable_text
from queries import QueryResolver
from sanity_client import create_client
from staleness import StalenessCoordinator, StalenessStrategy, is_cache_stale


class ResultTransform(Protocol):
    def __call__(self, result: Any) -> Union[Any, Awaitable[Any]]: ...


@dataclass(frozen=True)
class LoaderDefinition:
    query_name: Optional[str] = None
    query: Optional[str] = None
    transform: Optional[ResultTransform] = field(default=None, compare=False)
    cache_enabled: bool = True
    expected_version: Optional[str] = None


class Loader:
    def __init__(self, factory: "SanityLoader", definition: LoaderDefinition):
        self.factory = factory
        self.definition = definition

    @property
    def query_name(self) -> Optional[str]:
        return self.definition.query_name

    def _log(self, msg: str):
        self.factory._log(msg)

    async def __call__(self) -> Any:
        return await self.run()

    async def run(self) -> Any:
        try:
            return await self._run()
        except Exception as e:
            if isinstance(e, SanityLoaderError) and e.query_name is None:
                e.query_name = self.query_name
            if isinstance(e, SanityLoaderError):
                self.factory._log_error(str(e))
            else:
                self.factory._log_error(f"({self.query_name}) {e}")
            raise

    async def _run(self) -> Any:
        d = self.definition
        factory = self.factory

        if d.cache_enabled and not d.query_name:
            raise ConfigurationError("define_loader: `query_name` is required for caching.")

        is_stale = True
        if d.cache_enabled:
            is_stale = await factory.coordinator.get_verdict()
            if is_stale:
                self._log(f"Cache is stale for query ({d.query_name})")

        query_string = factory.resolver.resolve(query=d.query, query_name=d.query_name)
        if not query_string:
            raise ConfigurationError("define_loader: `query` or `query_name` must be provided.")

        cached = MISS
        if d.cache_enabled:
            cached = factory.cache.read(
                d.query_name,
                current_query=query_string,
                is_stale=is_stale,
                expected_version=d.expected_version,
            )

        if cached is not MISS:
            self._log(f"Loaded query ({d.query_name}) data from cache")
            result = cached
        else:
            self._log(f"Fetching fresh data for query ({d.query_name})")
            result = await factory.fetch(query_string)
            if d.cache_enabled:
                factory.cache.write(
                    d.query_name,
                    result,
                    query=query_string,
                    version=d.expected_version,
                )

        if d.transform is None:
            return result
        transformed = d.transform(result)
        if inspect.isawaitable(transformed):
            transformed = await transformed
        return transformed


class SanityLoader:
    def __init__(self, config: LoaderFactoryConfig):
        self.config = config
        self.verbose = config.verbose
        self.paths = config.paths
        self.cache_dir = config.cache_dir

        self.client = config.client if config.client is not None else create_client(config.client_config)

        strategy: StalenessStrategy = config.is_cache_stale or functools.partial(
            is_cache_stale, verbose=self.verbose
        )
        self.coordinator = StalenessCoordinator(
            self.client,
            cache_dir=self.cache_dir,
            strategy=strategy,
            per_call=config.invalidate_cache_per_call,
        )
        self.cache = QueryCache(self.cache_dir, on_error=self._log_error)
        self.resolver = QueryResolver(self.paths.queries)
        self.assets = AssetMirror(
            self.paths.assets,
            self.paths.assets_public,
            verbose=self.verbose,
        )

    def _log(self, msg: str):
        log.info(msg, verbose=self.verbose)

    def _log_error(self, msg: str):
        log.error(msg)

    def define_loader(
        self,
        definition: Optional[LoaderDefinition] = None,
        **options: Any,
    ) -> Loader:
        if definition is None:
            definition = LoaderDefinition(**options)
        elif options:
            raise TypeError("Pass either a LoaderDefinition or keyword options, not both.")
        return Loader(self, definition)

    async def fetch(self, query: str) -> Any:
        if not query:
            raise ConfigurationError("Incorrect query passed to fetch")
        try:
            return await self.client.fetch(query)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(f"Fetch failed: {e}") from e

    def get_query(self, query_name: str) -> str:
        return self.resolver.get_query(query_name)

    async def save_asset(self, url: Optional[str]) -> Optional[str]:
        return await self.assets.save_asset(url)

    def image_url(self, source: Any, **options: Any) -> str:
        return image_url(
            source,
            project_id=self.client.project_id,
            dataset=self.client.dataset,
            **options,
        )

    fix_portable_text = staticmethod(fix_portable_text)


def create_sanity_loader(
    *,
    paths: "LoaderPaths | Mapping[str, Any] | None" = None,
    client: Any = None,
    client_config: Optional[Mapping[str, Any]] = None,
    invalidate_cache_per_call: bool = False,
    is_cache_stale: Optional[StalenessStrategy] = None,
    verbose: bool = False,
) -> SanityLoader:
    if paths is None:
        raise ConfigurationError(
            "Configuration requires `paths` and either a `client` instance or a `client_config` mapping."
        )
    config = LoaderFactoryConfig(
        paths=LoaderPaths.coerce(paths),
        client=client,
        client_config=client_config,
        invalidate_cache_per_call=invalidate_cache_per_call,
        is_cache_stale=is_cache_stale,
        verbose=verbose,
    )
    return SanityLoader(config)
