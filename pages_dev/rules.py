"""
Parsers for the _redirects and _headers rule files.
"""
import re
from typing import Callable, Dict, List, Optional

from .errors import ParseError
from .models import HeaderRule, RedirectRule

Warn = Callable[[str], None]

PERMITTED_STATUS_CODES = {200, 301, 302, 303, 307, 308}
DEFAULT_STATUS = 302
REDIRECTS_MAX_LINE_LENGTH = 1000
HEADERS_MAX_LINE_LENGTH = 2000

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)
_HEADER_NAME = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def _noop(message: str) -> None:
    pass


def _check_recognizable(text: str, filename: str) -> None:
    if "\x00" in text:
        raise ParseError(f"{filename} does not look like a text file")


def _validate_redirect(source: str, destination: str, status: int) -> Optional[str]:
    """Return why a redirect line is invalid, or None when it is fine."""
    if status not in PERMITTED_STATUS_CODES:
        allowed = ", ".join(str(code) for code in sorted(PERMITTED_STATUS_CODES))
        return f"Valid status codes are {allowed}, got {status}"
    if not source.startswith("/"):
        return f"Only relative URLs are allowed as a source, got {source}"
    if _ABSOLUTE_URL.match(destination):
        if status == 200:
            return f"Proxy (200) redirects can only point to relative paths, got {destination}"
        return None
    if not destination.startswith("/"):
        return f"Destinations must be relative paths or absolute URLs, got {destination}"
    return None


def parse_redirects(text: str, warn: Optional[Warn] = None) -> List[RedirectRule]:
    """
    Parse the contents of a _redirects file.

    Each rule line is ``<source> <destination> [status]``. Bad lines are
    reported through ``warn`` and skipped; a source that was already
    declared keeps its first rule.
    """
    warn = warn or _noop
    _check_recognizable(text, "_redirects")

    rules = []
    seen_sources = set()
    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        if len(line) > REDIRECTS_MAX_LINE_LENGTH:
            warn(f"_redirects line {line_number}: line exceeds {REDIRECTS_MAX_LINE_LENGTH} characters, skipping")
            continue

        tokens = line.split()
        if len(tokens) not in (2, 3):
            warn(f"_redirects line {line_number}: expected 2 or 3 whitespace-separated tokens, got {len(tokens)}")
            continue

        source, destination = tokens[0], tokens[1]
        status = DEFAULT_STATUS
        if len(tokens) == 3:
            try:
                status = int(tokens[2])
            except ValueError:
                warn(f"_redirects line {line_number}: status code {tokens[2]!r} is not a number")
                continue

        problem = _validate_redirect(source, destination, status)
        if problem:
            warn(f"_redirects line {line_number}: {problem}")
            continue

        if source in seen_sources:
            warn(f"_redirects line {line_number}: ignoring duplicate rule for path {source}")
            continue
        seen_sources.add(source)

        rules.append(RedirectRule(
            source=source,
            destination=destination,
            status=status,
            line_number=line_number,
        ))
    return rules


def _is_path_line(line: str) -> bool:
    return line.startswith("/") or bool(_ABSOLUTE_URL.match(line))


def parse_headers(text: str, warn: Optional[Warn] = None) -> List[HeaderRule]:
    """
    Parse the contents of a _headers file.

    A path line opens a rule; the indented ``Name: value`` lines under it
    add headers and ``! Name`` lines remove them from the response.
    """
    warn = warn or _noop
    _check_recognizable(text, "_headers")

    rules = []
    path = None
    path_line = None
    headers: Dict[str, str] = {}
    unset: List[str] = []

    def close_rule():
        if path is None:
            return
        if not headers and not unset:
            warn(f"_headers line {path_line}: no headers specified for {path}, skipping")
            return
        rules.append(HeaderRule(
            path=path,
            headers=tuple(headers.items()),
            unset=tuple(unset),
            line_number=path_line,
        ))

    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        if len(line) > HEADERS_MAX_LINE_LENGTH:
            warn(f"_headers line {line_number}: line exceeds {HEADERS_MAX_LINE_LENGTH} characters, skipping")
            continue

        indented = raw_line[:1].isspace()
        if not indented and _is_path_line(line):
            close_rule()
            path, path_line = line, line_number
            headers, unset = {}, []
            continue

        if path is None:
            warn(f"_headers line {line_number}: expected a path beginning with '/' or 'https://'")
            continue

        if line.startswith("!"):
            name = line[1:].strip().lower()
            if not _HEADER_NAME.match(name):
                warn(f"_headers line {line_number}: invalid header name to remove {name!r}")
                continue
            unset.append(name)
            continue

        if ":" not in line:
            warn(f"_headers line {line_number}: expected a colon-separated header pair (e.g. name: value)")
            continue

        name, value = line.split(":", 1)
        name, value = name.strip().lower(), value.strip()
        if not _HEADER_NAME.match(name):
            warn(f"_headers line {line_number}: invalid header name {name!r}")
            continue
        if name in headers:
            headers[name] = f"{headers[name]}, {value}"
        else:
            headers[name] = value

    close_rule()
    return rules
