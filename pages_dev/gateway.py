"""
The asset gateway: the request handler that either proxies to a local
process or serves a static directory according to its rule files.
"""
import logging
from functools import partial
from typing import Callable, Dict, Optional
from urllib.parse import quote, urlsplit

from fastapi import Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from .config import GatewayOptions
from .errors import NotConfigured, NotFound
from .hashing import hash_file as default_hash_file
from .hashing import mime_type as default_mime_type
from .matcher import match_redirect, matching_header_rules, substitute_placeholders
from .metadata import MetadataRef
from .models import Asset, Metadata
from .negotiation import negotiate, parse_quality_weighted_list
from .proxy import ProxyClient, ProxiedResponse
from .resolver import AssetResolver

logger = logging.getLogger(__name__)

SERVER_ENV = "dev"
ALLOWED_METHODS = ("GET", "HEAD")


def _request_path(request: Request) -> str:
    """The still-encoded request path, as rules and the resolver expect it."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return raw_path.decode("latin-1")
    return quote(request.url.path)


def _etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    if not if_none_match:
        return False
    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate == "*" or candidate == etag:
            return True
    return False


class AssetGateway:
    """
    Handles every request for a dev server.

    With a proxy port, requests go to localhost:<port> unchanged. With a
    directory, redirects are applied first, then the file is resolved,
    negotiated, read and decorated with the rule headers. Failures come
    back as responses; nothing is raised to the caller.
    """

    def __init__(
        self,
        options: GatewayOptions,
        metadata_ref: Optional[MetadataRef] = None,
        forward: Optional[Callable[..., ProxiedResponse]] = None,
        hash_file: Callable[[str], str] = default_hash_file,
        mime_type: Callable[[str], Optional[str]] = default_mime_type,
        resolver_factory: Optional[Callable[[str], AssetResolver]] = None,
        response_class=Response,
    ):
        self.options = options
        self.metadata_ref = metadata_ref or MetadataRef()
        self.response_class = response_class
        self.resolver_factory = resolver_factory or partial(
            AssetResolver, hash_file=hash_file, mime_type=mime_type
        )
        self._forward = forward
        self._proxy_client = None

    @property
    def forward(self) -> Callable[..., ProxiedResponse]:
        """Proxy forwarding function, created on first use."""
        if self._forward is None:
            self._proxy_client = ProxyClient(self.options.proxy_port, timeout=self.options.proxy_timeout)
            self._forward = self._proxy_client.forward
        return self._forward

    def close(self):
        if self._proxy_client is not None:
            self._proxy_client.close()

    async def handle(self, request: Request) -> Response:
        if self.options.proxy_port:
            try:
                return await self._proxy(request)
            except Exception as e:
                logger.error(f"Could not proxy request: {e}")
                return self._message(502, f"[pages-dev] Could not proxy request: {e}")

        try:
            return await self._serve(request)
        except NotFound as e:
            return self._message(e.status_code, str(e))
        except Exception as e:
            logger.error(f"Could not serve static asset: {e}")
            return self._message(502, f"[pages-dev] Could not serve static asset: {e}")

    async def _proxy(self, request: Request) -> Response:
        body = await request.body()
        proxied = await run_in_threadpool(
            self.forward, request.method, str(request.url), request.headers.items(), body
        )
        response = self.response_class(content=proxied.body, status_code=proxied.status)
        for name, value in proxied.headers:
            response.headers.append(name, value)
        return response

    async def _serve(self, request: Request) -> Response:
        if self.options.directory is None:
            raise NotConfigured("Trying to fetch assets directly when there is no `directory` option specified.")

        if request.method not in ALLOWED_METHODS:
            return self._message(405, "Method Not Allowed", {"allow": ", ".join(ALLOWED_METHODS)})

        # One snapshot for the whole request, even if the watcher swaps it meanwhile
        metadata = self.metadata_ref.current
        path = _request_path(request)

        matched = match_redirect(metadata.redirects, path)
        if matched is not None:
            rule, captures = matched
            destination = substitute_placeholders(rule.destination, captures)
            if rule.status != 200:
                return self._redirect(rule.status, destination, request.url.query)
            path = urlsplit(destination).path

        resolver = self.resolver_factory(self.options.directory)
        status = 200
        asset_key = await run_in_threadpool(resolver.find_asset, path)
        if asset_key is None:
            asset_key = await run_in_threadpool(resolver.find_not_found_page, path)
            if asset_key is None:
                raise NotFound("Not Found")
            status = 404

        negotiate(parse_quality_weighted_list(request.headers.get("accept-encoding")))

        asset = await run_in_threadpool(resolver.fetch, asset_key)
        headers = self._asset_headers(asset_key, asset, metadata, str(request.url))

        if status == 200 and _etag_matches(request.headers.get("if-none-match"), headers.get("etag", "")):
            headers.pop("content-type", None)
            return self.response_class(status_code=304, headers=headers)

        if request.method == "HEAD":
            headers["content-length"] = str(len(asset.body))
            return self.response_class(content=b"", status_code=status, headers=headers)
        return self.response_class(content=asset.body, status_code=status, headers=headers)

    def _asset_headers(self, asset_key: str, asset: Asset, metadata: Metadata, url: str) -> Dict[str, str]:
        headers = {
            "content-type": asset.content_type,
            "etag": f'"{asset_key}"',
            "access-control-allow-origin": "*",
            "referrer-policy": "strict-origin-when-cross-origin",
            "x-content-type-options": "nosniff",
            "x-server-env": SERVER_ENV,
        }
        # Later rules overwrite what earlier ones set
        for rule, captures in matching_header_rules(metadata.headers, url):
            for name in rule.unset:
                headers.pop(name, None)
            for name, value in rule.headers:
                headers[name] = substitute_placeholders(value, captures)
        return headers

    def _redirect(self, status: int, destination: str, query: str) -> Response:
        location = destination
        if query and "?" not in destination:
            location = f"{destination}?{query}"
        return self.response_class(status_code=status, headers={"location": location})

    def _message(self, status: int, message: str, headers: Optional[Dict[str, str]] = None) -> Response:
        return self.response_class(
            content=message,
            status_code=status,
            headers=headers,
            media_type="text/plain",
        )
