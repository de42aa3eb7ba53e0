"""
images.py — CDN URLs for image assets.

Image asset ids look like `image-<hash>-<width>x<height>-<ext>` and map to
https://cdn.sanity.io/images/<project>/<dataset>/<hash>-<width>x<height>.<ext>
"""

from __future__ import annotations
import re
from typing import Any, Optional
from urllib.parse import urlencode

CDN_BASE = "https://cdn.sanity.io/images"

_REF_RE = re.compile(r"^image-(?P<id>[A-Za-z0-9]+)-(?P<dims>\d+x\d+)-(?P<ext>[a-z0-9]+)$")


def asset_ref(source: Any) -> str:
    """Pull the asset ref out of an image field, asset object or bare ref string."""
    if isinstance(source, str):
        return source
    if isinstance(source, dict):
        asset = source.get("asset", source)
        if isinstance(asset, dict):
            ref = asset.get("_ref") or asset.get("_id")
            if ref:
                return ref
    raise ValueError(f"Unable to resolve image asset reference from {source!r}")


def image_url(
    source: Any,
    *,
    project_id: str,
    dataset: str,
    width: Optional[int] = None,
    height: Optional[int] = None,
    fmt: Optional[str] = None,
) -> str:
    ref = asset_ref(source)
    m = _REF_RE.match(ref)
    if not m:
        raise ValueError(f"Malformed image asset reference: {ref}")

    url = f"{CDN_BASE}/{project_id}/{dataset}/{m['id']}-{m['dims']}.{m['ext']}"
    params = {}
    if width:
        params["w"] = width
    if height:
        params["h"] = height
    if fmt:
        params["fm"] = fmt
    return f"{url}?{urlencode(params)}" if params else url
