"""
Data models for rule files and served assets.
"""
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

_PLACEHOLDER = re.compile(r":[A-Za-z]\w*")


@dataclass(frozen=True)
class RedirectRule:
    """A single line of a _redirects file."""
    source: str
    destination: str
    status: int = 302
    line_number: Optional[int] = None

    @property
    def is_dynamic(self) -> bool:
        """Splat and placeholder rules need pattern matching; the rest match exactly."""
        return "*" in self.source or bool(_PLACEHOLDER.search(self.source))


@dataclass(frozen=True)
class HeaderRule:
    """A path pattern from a _headers file with the headers it sets or removes."""
    path: str
    headers: Tuple[Tuple[str, str], ...] = ()
    unset: Tuple[str, ...] = ()  # Names from "! Name" lines
    line_number: Optional[int] = None


@dataclass(frozen=True)
class Metadata:
    """Compiled snapshot of both rule files. Replaced wholesale, never edited."""
    redirects: Tuple[RedirectRule, ...] = field(default_factory=tuple)
    headers: Tuple[HeaderRule, ...] = field(default_factory=tuple)


@dataclass
class Asset:
    """Bytes of a resolved file and the content type they are served with."""
    body: bytes
    content_type: str
