"""
Forwarding requests to a separately running local process.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

import requests

from .errors import ProxyFailure

logger = logging.getLogger(__name__)

# Not forwarded in either direction
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}
# requests decodes the body, so these no longer describe what we send on
DECODED_BODY_HEADERS = {"content-encoding", "content-length"}


@dataclass
class ProxiedResponse:
    status: int
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: bytes = b""


def rewrite_url(url: str, port: int) -> str:
    """Point a request URL at localhost:<port>, keeping path and query."""
    parts = urlsplit(url)
    return urlunsplit(("http", f"localhost:{port}", parts.path, parts.query, ""))


def merge_request_headers(headers: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """
    Fold repeated request headers into one value each, as HTTP allows.

    Cookie lines are joined with "; ", everything else with ", ".
    Hop-by-hop headers and Host are left out.
    """
    merged: Dict[str, str] = {}
    names: Dict[str, str] = {}
    for name, value in headers:
        key = name.lower()
        if key in HOP_BY_HOP_HEADERS or key == "host":
            continue
        if key in merged:
            separator = "; " if key == "cookie" else ", "
            merged[key] = f"{merged[key]}{separator}{value}"
        else:
            merged[key] = value
            names[key] = name
    return {names[key]: value for key, value in merged.items()}


class ProxyClient:
    """Client for the process the gateway proxies to."""

    def __init__(self, port: int, timeout: float = 30.0):
        self.port = port
        self.timeout = timeout
        self.session = requests.Session()
        # Never pick up HTTP(S)_PROXY for a localhost hop
        self.session.trust_env = False

    def forward(self, method: str, url: str, headers: Iterable[Tuple[str, str]], body: Optional[bytes] = None) -> ProxiedResponse:
        """
        Send a request on to the proxied process, unchanged apart from the host.

        Raises ProxyFailure for anything that goes wrong on the way.
        """
        target = rewrite_url(url, self.port)
        outgoing = merge_request_headers(headers)
        try:
            response = self.session.request(
                method,
                target,
                headers=outgoing,
                data=body or None,
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error forwarding to {target}: {str(e)}")
            raise ProxyFailure(str(e)) from e

        # urllib3 keeps repeated headers such as Set-Cookie apart; requests joins them
        raw_headers = getattr(response.raw, "headers", None) or response.headers
        response_headers = [
            (name, value) for name, value in raw_headers.items()
            if name.lower() not in HOP_BY_HOP_HEADERS and name.lower() not in DECODED_BODY_HEADERS
        ]
        return ProxiedResponse(status=response.status_code, headers=response_headers, body=response.content)

    def close(self):
        self.session.close()
