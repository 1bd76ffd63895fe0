"""Local dev gateway for static sites with _redirects and _headers rules."""

from .config import GatewayOptions
from .gateway import AssetGateway
from .metadata import MetadataRef, compile_metadata
from .rules import parse_headers, parse_redirects
from .watcher import RuleWatcher

__all__ = [
    'AssetGateway',
    'GatewayOptions',
    'MetadataRef',
    'RuleWatcher',
    'compile_metadata',
    'parse_headers',
    'parse_redirects',
]
