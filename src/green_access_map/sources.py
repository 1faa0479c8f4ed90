"""Byte access to feature sources (HTTP(S) URLs and local files)."""

from __future__ import annotations

import os
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Optional

import httpx


def is_remote(url: str) -> bool:
    return urllib.parse.urlparse(url).scheme in ("http", "https")


def local_path(url: str) -> str:
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme == "file":
        return urllib.request.url2pathname(parsed.path)
    return url


def _client_kwargs(timeout: Optional[float]) -> dict:
    use_no_proxy = (
        os.environ.get("NO_PROXY_LOOKUP") == "1"
        or os.environ.get("CI") == "1"
    )
    return {
        "timeout": httpx.Timeout(timeout),
        "follow_redirects": True,
        "trust_env": not use_no_proxy,
    }


async def read_all(
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> bytes:
    """Return the body of `url`.

    Remote sources go through httpx; a non-success status raises
    `httpx.HTTPStatusError`. A caller-supplied client is left open.
    """

    if not is_remote(url):
        return Path(local_path(url)).read_bytes()

    owned = client is None
    if owned:
        client = httpx.AsyncClient(**_client_kwargs(timeout))
    try:
        response = await client.get(url)
        response.raise_for_status()
        return response.content
    finally:
        if owned:
            await client.aclose()
