"""
assets.py — Mirrors remote assets into the local assets directory.

A file is downloaded at most once: if the destination already exists the
public path is returned without touching the network. A failed download
leaves nothing behind and is not retried.
"""

from __future__ import annotations
import os
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import urlparse

import httpx

import log
from errors import AssetTransportError, ConfigurationError


def asset_filename(url: str) -> str:
    name = PurePosixPath(urlparse(url).path).name
    if not name:
        raise ConfigurationError(f"Cannot derive an asset filename from {url}")
    return name


class AssetMirror:
    def __init__(
        self,
        assets_dir: Optional[Path],
        public_prefix: Optional[str],
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
        chunk_size: int = 64 * 1024,
        verbose: bool = False,
    ):
        self.assets_dir = Path(assets_dir) if assets_dir is not None else None
        self.public_prefix = public_prefix
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.verbose = verbose
        self._http = http_client
        self.downloads = 0

    def _log(self, msg: str):
        log.info(msg, verbose=self.verbose)

    def _require_paths(self) -> tuple[Path, str]:
        if self.assets_dir is None or self.public_prefix is None:
            raise ConfigurationError("`paths.assets` and `paths.assets_public` are required to save assets.")
        return self.assets_dir, self.public_prefix.rstrip("/")

    def public_path(self, filename: str) -> str:
        _, prefix = self._require_paths()
        return f"{prefix}/{filename}"

    async def save_asset(self, url: Optional[str]) -> Optional[str]:
        if not url:
            return None

        assets_dir, _ = self._require_paths()
        filename = asset_filename(url)
        local_path = assets_dir / filename
        public_path = self.public_path(filename)

        if local_path.exists():
            return public_path

        assets_dir.mkdir(parents=True, exist_ok=True)
        part_path = local_path.with_name(local_path.name + ".part")
        try:
            try:
                await self._download(url, part_path)
                os.replace(part_path, local_path)
            except BaseException:
                # Only finished downloads may ever sit at the destination.
                part_path.unlink(missing_ok=True)
                raise
        except (httpx.HTTPError, OSError) as e:
            log.error(f"Error downloading {filename}: {e}")
            raise AssetTransportError(f"Error downloading {filename}: {e}", url=url) from e

        self.downloads += 1
        self._log(f"Downloaded {filename}")
        return public_path

    async def _download(self, url: str, dest: Path) -> None:
        if self._http is not None:
            await self._stream_to(self._http, url, dest)
            return
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as http:
            await self._stream_to(http, url, dest)

    async def _stream_to(self, http: httpx.AsyncClient, url: str, dest: Path) -> None:
        async with http.stream("GET", url, follow_redirects=True) as response:
            response.raise_for_status()
            with dest.open("wb") as fh:
                async for chunk in response.aiter_bytes(self.chunk_size):
                    fh.write(chunk)
