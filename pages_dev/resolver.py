"""
Locating, hashing and reading static assets for a single request.
"""
import logging
import os
import posixpath
import stat
from typing import Callable, Dict, Optional
from urllib.parse import unquote

from .errors import InternalInconsistency
from .hashing import hash_file as default_hash_file
from .hashing import mime_type as default_mime_type
from .models import Asset

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
WORKER_FILENAME = "_worker.js"
IGNORED_FILENAMES = ("_headers", "_redirects", WORKER_FILENAME)
NOT_FOUND_PAGE = "404.html"


def ignored_paths(directory: str):
    """Files in the directory that are never served as assets."""
    return frozenset(os.path.join(directory, name) for name in IGNORED_FILENAMES)


class AssetResolver:
    """
    Maps request paths to asset keys and asset keys back to files.

    One instance belongs to one request: the hash -> path entries it
    records are only valid for that request and are thrown away with it.
    """

    def __init__(
        self,
        directory: str,
        hash_file: Callable[[str], str] = default_hash_file,
        mime_type: Callable[[str], Optional[str]] = default_mime_type,
    ):
        self.directory = os.path.abspath(directory)
        self.hash_file = hash_file
        self.mime_type = mime_type
        self.ignored = ignored_paths(self.directory)
        self.real_directory = os.path.realpath(self.directory)
        self._entries: Dict[str, str] = {}

    def _filepath(self, request_path: str) -> Optional[str]:
        relative = posixpath.normpath("/" + unquote(request_path).lstrip("/")).lstrip("/")
        filepath = os.path.abspath(os.path.join(self.directory, *relative.split("/")))
        if filepath != self.directory and not filepath.startswith(self.directory + os.sep):
            return None
        return filepath

    def resolve(self, request_path: str) -> Optional[str]:
        """Return the asset key for a path, or None when nothing may be served there."""
        filepath = self._filepath(request_path)
        if filepath is None or filepath in self.ignored:
            return None
        try:
            # lstat: a symlink is not a regular file, whatever it points at
            if not stat.S_ISREG(os.lstat(filepath).st_mode):
                return None
            # Catches symlinked directories along the way
            if not os.path.realpath(filepath).startswith(self.real_directory + os.sep):
                return None
        except OSError:
            return None

        asset_key = self.hash_file(filepath)
        self._entries[asset_key] = filepath
        return asset_key

    def find_asset(self, request_path: str) -> Optional[str]:
        """
        Resolve a request path the way a deployed site would.

        ``/`` and ``/dir/`` serve the directory's index.html; ``/page``
        falls back to ``/page.html`` and then ``/page/index.html``.
        """
        if request_path.endswith("/"):
            return self.resolve(request_path + "index.html")

        asset_key = self.resolve(request_path)
        if asset_key is not None:
            return asset_key
        if request_path.endswith(".html"):
            return None
        return self.resolve(request_path + ".html") or self.resolve(request_path + "/index.html")

    def find_not_found_page(self, request_path: str) -> Optional[str]:
        """Asset key of the closest 404.html at or above the request path."""
        directory = posixpath.dirname(posixpath.normpath("/" + request_path.lstrip("/")))
        while True:
            asset_key = self.resolve(posixpath.join(directory, NOT_FOUND_PAGE))
            if asset_key is not None:
                return asset_key
            parent = posixpath.dirname(directory)
            if parent == directory:
                return None
            directory = parent

    def filepath_for(self, asset_key: str) -> Optional[str]:
        return self._entries.get(asset_key)

    def fetch(self, asset_key: str) -> Asset:
        """Read the file behind an asset key resolved earlier in this request."""
        filepath = self._entries.get(asset_key)
        if filepath is None:
            raise InternalInconsistency(
                f"Could not fetch asset {asset_key}: it was not resolved during this request"
            )
        logger.debug(f"Serving {filepath}")
        with open(filepath, "rb") as f:
            body = f.read()
        content_type = self.mime_type(filepath) or DEFAULT_CONTENT_TYPE
        return Asset(body=body, content_type=content_type)
