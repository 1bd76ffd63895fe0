"""
Compiling rule sets into Metadata snapshots, and the shared reference the
gateway reads them from.
"""
import logging
import os
import threading
from typing import Callable, Iterable, List, Optional

from .models import HeaderRule, Metadata, RedirectRule

logger = logging.getLogger(__name__)

MAX_STATIC_REDIRECT_RULES = 2000
MAX_DYNAMIC_REDIRECT_RULES = 100
MAX_HEADER_RULES = 100


def _noop(message: str) -> None:
    pass


def compile_metadata(
    redirects: Optional[Iterable[RedirectRule]] = None,
    headers: Optional[Iterable[HeaderRule]] = None,
    warn: Optional[Callable[[str], None]] = None,
) -> Metadata:
    """Combine parsed redirect and header rules into an immutable snapshot."""
    warn = warn or _noop

    kept_redirects = []
    static_count = 0
    dynamic_count = 0
    for rule in redirects or ():
        if rule.is_dynamic:
            if dynamic_count >= MAX_DYNAMIC_REDIRECT_RULES:
                warn(f"Maximum number of dynamic redirect rules ({MAX_DYNAMIC_REDIRECT_RULES}) exceeded, "
                     f"ignoring {rule.source} (line {rule.line_number})")
                continue
            dynamic_count += 1
        else:
            if static_count >= MAX_STATIC_REDIRECT_RULES:
                warn(f"Maximum number of static redirect rules ({MAX_STATIC_REDIRECT_RULES}) exceeded, "
                     f"ignoring {rule.source} (line {rule.line_number})")
                continue
            static_count += 1
        kept_redirects.append(rule)

    header_rules = list(headers or ())
    if len(header_rules) > MAX_HEADER_RULES:
        warn(f"Maximum number of header rules ({MAX_HEADER_RULES}) exceeded, "
             f"ignoring {len(header_rules) - MAX_HEADER_RULES} rule(s)")
        header_rules = header_rules[:MAX_HEADER_RULES]

    return Metadata(redirects=tuple(kept_redirects), headers=tuple(header_rules))


def load_rule_file(path: str, parser: Callable, warn: Optional[Callable[[str], None]] = None) -> Optional[List]:
    """Read and parse a rule file. Returns None when the file does not exist."""
    if not os.path.isfile(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        contents = f.read()
    return parser(contents, warn)


class MetadataRef:
    """
    Holds the Metadata snapshot currently in use.

    Readers take ``current`` once per request and keep using that object;
    writers swap in a new snapshot with a single assignment, so a reader
    sees either the old rules or the new ones.
    """

    def __init__(self, metadata: Optional[Metadata] = None):
        self._current = metadata if metadata is not None else Metadata()
        self._write_lock = threading.Lock()
        self.version = 0

    @property
    def current(self) -> Metadata:
        return self._current

    def publish(self, metadata: Metadata) -> None:
        with self._write_lock:
            self._current = metadata
            self.version += 1
        logger.debug(f"Published rules snapshot #{self.version}: "
                     f"{len(metadata.redirects)} redirect(s), {len(metadata.headers)} header rule(s)")
