"""
Default file hashing and MIME lookup used by the asset resolver.

Both are plain functions so the gateway can be given replacements.
"""
import hashlib
import mimetypes
import os
from functools import lru_cache
from typing import Optional

HASH_LENGTH = 32
CHUNK_SIZE = 64 * 1024

# Types the platform tables are often missing or get wrong
EXTRA_TYPES = {
    ".mjs": "application/javascript",
    ".js": "application/javascript",
    ".wasm": "application/wasm",
    ".map": "application/json",
    ".webmanifest": "application/manifest+json",
    ".svg": "image/svg+xml",
    ".avif": "image/avif",
    ".webp": "image/webp",
    ".woff2": "font/woff2",
}


def hash_file(path: str) -> str:
    """Content hash of a file, salted with its extension."""
    digest = hashlib.blake2b()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    extension = os.path.splitext(path)[1].lstrip(".")
    digest.update(extension.encode("utf-8"))
    return digest.hexdigest()[:HASH_LENGTH]


@lru_cache(maxsize=None)
def _mime_table() -> mimetypes.MimeTypes:
    """Built once, on first lookup."""
    table = mimetypes.MimeTypes()
    for extension, content_type in EXTRA_TYPES.items():
        table.add_type(content_type, extension)
    return table


def mime_type(path: str) -> Optional[str]:
    content_type, _ = _mime_table().guess_type(path, strict=False)
    return content_type
