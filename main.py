"""
Pages dev server

Serves a static directory with its _redirects and _headers rules applied,
or proxies everything to a local process.

Usage:
    python main.py ./public
    python main.py --proxy 9000
    PAGES_DEV_DIRECTORY=./public uvicorn main:app --port 8788
"""
import argparse
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request

from pages_dev.config import GatewayOptions
from pages_dev.gateway import AssetGateway
from pages_dev.metadata import MetadataRef
from pages_dev.watcher import RuleWatcher

logger = logging.getLogger("pages_dev")

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8788
METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(options: Optional[GatewayOptions] = None, gateway: Optional[AssetGateway] = None) -> FastAPI:
    """Build the FastAPI app around an AssetGateway."""
    options = options or GatewayOptions.from_env()
    metadata_ref = gateway.metadata_ref if gateway is not None else MetadataRef()

    watcher = None
    if options.directory is not None and not options.proxy_port:
        watcher = RuleWatcher(options.directory, metadata_ref)
        watcher.load()

    if gateway is None:
        gateway = AssetGateway(options, metadata_ref)

    if not options.configured:
        logger.warning("Neither a proxy port nor a directory is configured; every request will fail.")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if watcher is not None and options.watch:
            watcher.start()
        try:
            yield
        finally:
            if watcher is not None:
                watcher.stop()
            gateway.close()

    app = FastAPI(title="Pages dev server", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.gateway = gateway
    app.state.watcher = watcher

    @app.api_route("/{path:path}", methods=METHODS, include_in_schema=False)
    async def serve(request: Request):
        """Every path goes through the gateway."""
        return await gateway.handle(request)

    return app


app = create_app()


def main():
    parser = argparse.ArgumentParser(prog="pages-dev", description="Local dev server for static sites")
    parser.add_argument("directory", nargs="?", help="Directory of static assets to serve")
    parser.add_argument("--proxy", type=int, dest="proxy_port", help="Forward every request to localhost:<port>")
    parser.add_argument("--host", default=DEFAULT_HOST, help=f"Interface to listen on (default: {DEFAULT_HOST})")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"Port to listen on (default: {DEFAULT_PORT})")
    parser.add_argument("--no-watch", action="store_true", help="Do not reload rule files when they change")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    options = GatewayOptions.from_env(
        directory=args.directory,
        proxy_port=args.proxy_port,
        watch=False if args.no_watch else None,
    )
    if not options.configured:
        parser.error("give a directory to serve or --proxy PORT")

    if options.proxy_port:
        print(f"Proxying http://{args.host}:{args.port} to localhost:{options.proxy_port}")
    else:
        print(f"Serving {options.directory} at http://{args.host}:{args.port}")
    uvicorn.run(create_app(options), host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
