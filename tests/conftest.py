import asyncio

import pytest
from fastapi import Request

from pages_dev.config import GatewayOptions
from pages_dev.gateway import AssetGateway
from pages_dev.watcher import RuleWatcher


def _header_items(headers):
    if isinstance(headers, dict):
        return headers.items()
    return headers or ()


def make_request(path="/", method="GET", headers=None, query_string=b"", body=b""):
    """Build a starlette Request without a server, for driving the gateway directly."""
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "server": ("testserver", 80),
        "root_path": "",
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": query_string,
        "headers": [(name.lower().encode("latin-1"), value.encode("latin-1"))
                    for name, value in _header_items(headers)],
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


def run(coroutine):
    return asyncio.run(coroutine)


@pytest.fixture
def site(tmp_path):
    """A small static site on disk."""
    (tmp_path / "index.html").write_text("hi")
    (tmp_path / "about.html").write_text("about us")
    (tmp_path / "blog").mkdir()
    (tmp_path / "blog" / "index.html").write_text("blog home")
    (tmp_path / "blog" / "404.html").write_text("no such post")
    (tmp_path / "style.css").write_text("body { color: red; }")
    (tmp_path / "_worker.js").write_text("export default {}")
    return tmp_path


@pytest.fixture
def serve_site(site):
    """Returns a function building a gateway over the site with the given rule files."""

    def build(redirects=None, headers=None, **gateway_kwargs):
        if redirects is not None:
            (site / "_redirects").write_text(redirects)
        if headers is not None:
            (site / "_headers").write_text(headers)
        watcher = RuleWatcher(str(site))
        watcher.load()
        options = GatewayOptions(directory=str(site), watch=False)
        return AssetGateway(options, watcher.metadata_ref, **gateway_kwargs)

    return build
