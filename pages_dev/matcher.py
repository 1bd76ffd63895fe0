"""
Pattern matching for redirect and header rules.

``*`` matches anything and is captured as ``splat``; ``:name`` matches a
single path segment and is captured under that name.
"""
import re
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlsplit

from .models import HeaderRule, RedirectRule

_TOKEN = re.compile(r"\*|:([A-Za-z]\w*)")
_SCHEME = re.compile(r"^https?://", re.IGNORECASE)


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> "re.Pattern[str]":
    """Turn a rule pattern into an anchored regex."""
    parts = []
    position = 0
    seen_splat = False
    for match in _TOKEN.finditer(pattern):
        parts.append(re.escape(pattern[position:match.start()]))
        if match.group(0) == "*":
            # Only the first splat is captured; later ones still match.
            parts.append("(?P<splat>.*)" if not seen_splat else ".*")
            seen_splat = True
        else:
            parts.append(f"(?P<{match.group(1)}>[^/]+)")
        position = match.end()
    parts.append(re.escape(pattern[position:]))
    return re.compile("^" + "".join(parts) + "$")


def match_pattern(pattern: str, target: str) -> Optional[Dict[str, str]]:
    """Return the captures when ``target`` matches ``pattern``, else None."""
    try:
        regex = compile_pattern(pattern)
    except re.error:
        # Repeated placeholder names cannot become a regex
        return None
    match = regex.match(target)
    if match is None:
        return None
    return {key: value for key, value in match.groupdict().items() if value is not None}


def match_redirect(rules: Iterable[RedirectRule], path: str) -> Optional[Tuple[RedirectRule, Dict[str, str]]]:
    """First rule, in file order, whose source matches the path."""
    for rule in rules:
        if not rule.is_dynamic:
            if rule.source == path:
                return rule, {}
            continue
        captures = match_pattern(rule.source, path)
        if captures is not None:
            return rule, captures
    return None


def substitute_placeholders(text: str, captures: Dict[str, str]) -> str:
    """Fill ``:splat`` and ``:name`` placeholders from a match (destinations, header values)."""
    if not captures:
        return text

    def replace(match):
        name = match.group(1)
        if name in captures:
            return captures[name]
        return match.group(0)

    return re.sub(r":([A-Za-z]\w*)", replace, text)


def matching_header_rules(rules: Iterable[HeaderRule], url: str) -> List[Tuple[HeaderRule, Dict[str, str]]]:
    """
    All header rules that apply to a request URL, in file order, with the
    captures of each match.

    Rules written as absolute URLs are matched against host and path,
    everything else against the path only.
    """
    parts = urlsplit(url)
    path = parts.path or "/"
    host_and_path = f"{parts.netloc}{path}"

    matched = []
    for rule in rules:
        if rule.path.startswith("/"):
            pattern, target = rule.path, path
        else:
            # The scheme is ignored; the dev server only speaks http
            pattern, target = _SCHEME.sub("", rule.path), host_and_path
        captures = match_pattern(pattern, target)
        if captures is not None:
            matched.append((rule, captures))
    return matched
