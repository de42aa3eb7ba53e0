"""
sanity_client.py — Minimal async client for the Sanity query API.

Handles:
- API / CDN host selection
- Bearer-token auth (token scrubbed from any error message)
- GROQ params, sent as JSON-encoded $name query parameters
- Lazily created httpx.AsyncClient, or an injected one
"""

from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

from errors import ConfigurationError, FetchError

DEFAULT_API_VERSION = "2023-05-03"

# camelCase option names are accepted alongside the snake_case ones.
_CONFIG_ALIASES = {
    "projectId": "project_id",
    "apiVersion": "api_version",
    "useCdn": "use_cdn",
}


@dataclass(frozen=True)
class ClientConfig:
    project_id: str
    dataset: str
    token: Optional[str] = None
    api_version: str = DEFAULT_API_VERSION
    use_cdn: bool = False
    timeout: float = 30.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ClientConfig":
        options = {_CONFIG_ALIASES.get(k, k): v for k, v in raw.items()}
        known = {k: v for k, v in options.items() if k in cls.__dataclass_fields__}
        if not known.get("project_id") or not known.get("dataset"):
            raise ConfigurationError("Client config requires `project_id` and `dataset`.")
        return cls(**known)

    @property
    def base_url(self) -> str:
        host = "apicdn.sanity.io" if self.use_cdn else "api.sanity.io"
        version = self.api_version.lstrip("v")
        return f"https://{self.project_id}.{host}/v{version}"


def encode_params(params: Optional[Mapping[str, Any]]) -> dict[str, str]:
    if not params:
        return {}
    return {f"${name}": json.dumps(value) for name, value in params.items()}


class SanityClient:
    def __init__(self, config: ClientConfig, *, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._http = http_client
        self._owns_http = http_client is None

    @property
    def project_id(self) -> str:
        return self.config.project_id

    @property
    def dataset(self) -> str:
        return self.config.dataset

    def _scrub(self, text: str) -> str:
        token = self.config.token
        return text.replace(token, "***") if token else text

    def _ensure_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.config.timeout)
            self._owns_http = True
        return self._http

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def query_url(self) -> str:
        return f"{self.config.base_url}/data/query/{self.config.dataset}"

    async def fetch(self, query: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        if not query:
            raise ConfigurationError("Incorrect query passed to fetch")

        http = self._ensure_http()
        request_params = {"query": query, **encode_params(params)}
        try:
            response = await http.get(self.query_url(), params=request_params, headers=self._headers())
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                self._scrub(f"Query failed with HTTP {e.response.status_code}: {e.response.text[:500]}")
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(self._scrub(f"Query request failed: {e}")) from e
        except ValueError as e:
            raise FetchError(f"Query response was not valid JSON: {e}") from e

        if not isinstance(body, dict) or "result" not in body:
            raise FetchError("Query response did not include a `result` field")
        return body["result"]

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "SanityClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def create_client(
    config: "ClientConfig | Mapping[str, Any]",
    *,
    http_client: Optional[httpx.AsyncClient] = None,
) -> SanityClient:
    if not isinstance(config, ClientConfig):
        config = ClientConfig.from_mapping(config)
    return SanityClient(config, http_client=http_client)
