from __future__ import annotations

import base64
from typing import Callable
from urllib.parse import quote, urlsplit

from phototag.config import RenderConfig

UrlResolver = Callable[[str], str]


def _is_remote(url: str) -> bool:
    return url.lower().startswith(("http://", "https://"))


def _origin_of(url: str) -> tuple[str, str]:
    parts = urlsplit(url)
    return parts.scheme.lower(), parts.netloc.lower()


def resolve_url(url: str, proxy_url: str = "", page_origin: str = "") -> str:
    """Route cross-origin image URLs through the image proxy.

    The proxied form is ``proxy_url`` followed by the percent-encoded base64
    of the original URL. Same-origin URLs, local paths and URLs seen while no
    proxy is configured pass through unchanged.
    """
    if not proxy_url or not _is_remote(url):
        return url
    if page_origin and _origin_of(url) == _origin_of(page_origin):
        return url
    encoded = base64.b64encode(url.encode("utf-8")).decode("ascii")
    return proxy_url + quote(encoded, safe="")


def make_url_resolver(config: RenderConfig) -> UrlResolver:
    def _resolve(url: str) -> str:
        return resolve_url(url, proxy_url=config.image_proxy_url, page_origin=config.page_origin)

    return _resolve
