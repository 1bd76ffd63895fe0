"""
Content negotiation for served assets.

Only the identity encoding is ever produced. Negotiation therefore comes
down to checking that the client has not ruled identity out.
"""
from dataclasses import dataclass
from typing import Dict, Optional

from .errors import NotAcceptable


@dataclass(frozen=True)
class Negotiated:
    encoding: Optional[str] = None  # None means identity


def parse_quality_weighted_list(value: Optional[str]) -> Dict[str, float]:
    """
    Parse a header such as ``gzip;q=1.0, identity; q=0.5, *;q=0``.

    Tokens are lower-cased. A missing or malformed ``q`` counts as 1.
    """
    weights: Dict[str, float] = {}
    if not value:
        return weights

    for entry in value.split(","):
        parts = [part.strip() for part in entry.split(";")]
        token = parts[0].lower()
        if not token:
            continue
        weight = 1.0
        for param in parts[1:]:
            name, _, raw = param.partition("=")
            if name.strip().lower() != "q":
                continue
            try:
                weight = float(raw.strip())
            except ValueError:
                weight = 1.0
            break
        weights[token] = weight
    return weights


def negotiate(preferences: Dict[str, float]) -> Negotiated:
    """Pick the response encoding, raising NotAcceptable when identity is excluded."""
    identity = preferences.get("identity")
    if identity == 0 or (preferences.get("*") == 0 and identity is None):
        raise NotAcceptable("No acceptable encodings available")
    return Negotiated(encoding=None)
